"""
PlanSynthesizer: build the rewrite plan that replaces git's default todo list.

Every plan is laid out around two positions in the enumerated range: the
base (depth 0) and the operation's target (target_depth). Commits between
them and after the target keep their relative order.
"""

from typing import List

from splice.exceptions import (
    DirtyWorkingTree,
    InvalidArguments,
    MergeCommitsPresent,
    NoStagedChanges,
)
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import Commit, Directive, Operation, OperationDescriptor, RewritePlan

from .config import AMEND_PREFIX, EXPECTED_DELTAS
from .tracker import CommitRange


def _keep(commit: Commit) -> Directive:
    return Directive(action="keep", sha=commit.sha, subject=commit.subject)


def _squash(commit: Commit, inherit_message: bool) -> Directive:
    action = "squash-inherit-message" if inherit_message else "squash"
    return Directive(action=action, sha=commit.sha, subject=commit.subject)


def build_directives(
    operation: Operation,
    commits: List[Commit],
    target_depth: int,
    inherit_message: bool = False,
) -> List[Directive]:
    """
    Lay out the directives for one operation.

    Args:
        operation: The edit to perform
        commits: The linear range, oldest first, base at index 0
        target_depth: Index of the target commit (for swap: the later commit)
        inherit_message: Squash directive replaces the base's message (amend)

    Returns:
        Directives in execution order
    """
    if not 0 < target_depth < len(commits):
        raise InvalidArguments(f"Target depth {target_depth} is outside a range of {len(commits)} commit(s)")

    base = commits[0]
    target = commits[target_depth]
    between = [_keep(c) for c in commits[1:target_depth]]
    after = [_keep(c) for c in commits[target_depth + 1:]]

    if operation in (Operation.FIXUP, Operation.AMEND):
        return [_keep(base), _squash(target, inherit_message), *between, *after]
    if operation == Operation.PICK:
        return [_keep(base), _keep(target), *between, *after]
    if operation == Operation.DROP:
        return [_keep(base), *between, *after]
    if operation == Operation.SWAP:
        return [_keep(target), *between, _keep(base), *after]
    raise InvalidArguments(f"Unknown operation: {operation}")


class PlanSynthesizer:
    """
    Validates repository state for an operation and produces its RewritePlan.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def validate(self, descriptor: OperationDescriptor, commit_range: CommitRange) -> None:
        """
        Check the index, working tree and range before anything is mutated.

        Raises:
            NoStagedChanges: A commit must be built from staged changes and none exist
            DirtyWorkingTree: Changes are present that the operation cannot carry
            MergeCommitsPresent: The range holds merges and force was not given
        """
        if descriptor.creates_commit:
            staged = self.repo.staged_changes_present()
            # amend may create an empty, message-only commit
            if not staged and descriptor.operation != Operation.AMEND:
                raise NoStagedChanges()
            if self.repo.unstaged_changes_present():
                raise DirtyWorkingTree("Unstaged changes present alongside staged ones; stage or stash them first")
        elif not self.repo.working_tree_clean():
            raise DirtyWorkingTree("Index or working tree has uncommitted changes; commit or stash them first")

        if commit_range.merges:
            if not descriptor.force:
                raise MergeCommitsPresent([c.sha for c in commit_range.merges])
            logger.warning(
                f"Linearizing {len(commit_range.merges)} merge commit(s): "
                f"{', '.join(c.short for c in commit_range.merges)}"
            )

    def synthesize(self, descriptor: OperationDescriptor, commit_range: CommitRange, target_sha: str) -> RewritePlan:
        """
        Produce the rewrite plan for an operation.

        Args:
            descriptor: The requested operation
            commit_range: Enumerated range, including any commit built from staged changes
            target_sha: The target commit (for drop: the commit to omit; for swap: the later commit)

        Returns:
            RewritePlan ready for the executor
        """
        try:
            target_depth = commit_range.depth_of(target_sha)
        except KeyError:
            raise InvalidArguments(f"{target_sha[:12]} is not part of the range to rewrite") from None

        target = commit_range.commits[target_depth]
        inherit_message = descriptor.operation == Operation.AMEND or (
            descriptor.operation == Operation.FIXUP and target.subject.startswith(AMEND_PREFIX)
        )

        directives = build_directives(descriptor.operation, commit_range.commits, target_depth, inherit_message)
        plan = RewritePlan(
            operation=descriptor.operation,
            base_sha=commit_range.commits[0].sha,
            target_sha=target_sha,
            target_depth=target_depth,
            expected_delta=EXPECTED_DELTAS[descriptor.operation],
            directives=directives,
        )
        logger.debug(f"Plan for {descriptor.operation.value}:\n{plan.describe()}")
        return plan
