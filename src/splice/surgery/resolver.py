"""
ReferenceResolver: turn user-supplied commit specifiers into commit ids.

Read-only. Checks that the commits involved in an operation are ordered
base -> target -> HEAD before anything is touched.
"""

from dataclasses import dataclass
from typing import Optional

from splice.exceptions import InvalidArguments, NotAncestor
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import Operation, OperationDescriptor


@dataclass
class ResolvedRefs:
    """Commit ids an operation works on.

    For swap, `base` is the earlier commit and `target` the later one.
    `target` is None when it will be created from staged changes.
    """

    base: str
    head: str
    target: Optional[str] = None


class ReferenceResolver:
    """
    Resolves specifiers and validates ancestry for an operation.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def resolve(self, spec: str) -> str:
        sha = self.repo.resolve(spec)
        logger.debug(f"Resolved {spec} -> {sha}")
        return sha

    def is_ancestor(self, ancestor: str, descendant: str, strict: bool = True) -> bool:
        return self.repo.is_ancestor(ancestor, descendant, strict=strict)

    def resolve_operation(self, descriptor: OperationDescriptor) -> ResolvedRefs:
        """
        Resolve every commit named by the descriptor and validate their order.

        Args:
            descriptor: The requested operation

        Returns:
            ResolvedRefs with base, head and (if given) target

        Raises:
            InvalidReference: A specifier does not resolve
            NotAncestor: The commits are not ordered base -> target -> HEAD
            InvalidArguments: The commits cannot form a valid range (e.g. dropping a root commit)
        """
        head = self.resolve("HEAD")

        if descriptor.operation == Operation.DROP:
            target = self.resolve(descriptor.base)
            parents = self.repo.parents(target)
            if not parents:
                raise InvalidArguments(f"Cannot drop {target[:12]}: it is a root commit")
            refs = ResolvedRefs(base=parents[0], head=head, target=target)
        elif descriptor.operation == Operation.SWAP and descriptor.target is not None:
            first = self.resolve(descriptor.base)
            second = self.resolve(descriptor.target)
            if first == second:
                raise InvalidArguments("Cannot swap a commit with itself")
            if self.is_ancestor(first, second):
                early, late = first, second
            elif self.is_ancestor(second, first):
                early, late = second, first
            else:
                raise NotAncestor(first, second, f"{first[:12]} and {second[:12]} are not on the same line of history")
            refs = ResolvedRefs(base=early, head=head, target=late)
        else:
            base = self.resolve(descriptor.base)
            target = self.resolve(descriptor.target) if descriptor.target is not None else None
            refs = ResolvedRefs(base=base, head=head, target=target)

        self.validate(refs)
        return refs

    def validate(self, refs: ResolvedRefs) -> None:
        """Base must be an ancestor of HEAD; target must sit strictly after base and not after HEAD."""
        if not self.is_ancestor(refs.base, refs.head, strict=False):
            raise NotAncestor(refs.base, refs.head, f"{refs.base[:12]} is not an ancestor of HEAD")

        if refs.target is None:
            return

        if not self.is_ancestor(refs.base, refs.target):
            raise NotAncestor(refs.base, refs.target, f"{refs.target[:12]} does not descend from {refs.base[:12]}")
        if not self.is_ancestor(refs.target, refs.head, strict=False):
            raise NotAncestor(refs.target, refs.head, f"{refs.target[:12]} is not an ancestor of HEAD")
