"""
RewriteExecutor: run the plan on a disposable branch.

The original branch is never touched here. Work happens on a uniquely
named temporary branch started at the original tip; cleanup() returns the
repository to its starting state (staged changes included) whenever the
operation does not complete.
"""

import secrets
from typing import Optional, Tuple

from splice.exceptions import GitCommandError, RewriteConflict, RewriteFailed
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import Commit, Operation, OperationDescriptor, RewritePlan

from .config import AMEND_PREFIX, FIXUP_PREFIX, SURGERY_CONFIG


def staged_commit_message(
    repo: GitRepository, descriptor: OperationDescriptor, base: str
) -> Tuple[Optional[str], bool]:
    """
    Decide the message for the commit built from staged changes.

    Returns:
        (message, edit): message None means the editor writes it from scratch;
        edit True opens the editor pre-filled with message
    """
    if descriptor.operation == Operation.FIXUP:
        return f"{FIXUP_PREFIX}{repo.subject(base)}", False

    if descriptor.operation == Operation.AMEND:
        header = f"{AMEND_PREFIX}{repo.subject(base)}"
        if descriptor.message is not None:
            return f"{header}\n\n{descriptor.message}", False
        return f"{header}\n\n{repo.message(base)}", True

    return descriptor.message, False


class RewriteExecutor:
    """
    Owns the temporary branch for one operation.

    Args:
        repo: Repository to work in
        temp_branch_prefix: Prefix for the temporary branch name
        keep_empty: Keep commits that become empty during the rebase
    """

    def __init__(self, repo: GitRepository, temp_branch_prefix: Optional[str] = None, keep_empty: Optional[bool] = None):
        self.repo = repo
        self.prefix = temp_branch_prefix or SURGERY_CONFIG["temp_branch_prefix"]
        self.keep_empty = SURGERY_CONFIG["keep_empty"] if keep_empty is None else keep_empty

        self.original_branch: Optional[str] = None
        self.original_head: Optional[str] = None
        self.temp_branch: Optional[str] = None
        self.snapshot: Optional[str] = None
        self.created_commit: Optional[str] = None

    @property
    def started(self) -> bool:
        return self.temp_branch is not None

    def _temp_branch_name(self, operation: Operation) -> str:
        while True:
            suffix = secrets.token_hex(SURGERY_CONFIG["temp_branch_suffix_bytes"])
            name = f"{self.prefix}-{operation.value}-{suffix}"
            if not self.repo.branch_exists(name):
                return name

    def begin(self, original_branch: str, original_head: str, operation: Operation) -> str:
        """
        Create and check out the temporary branch at the original tip.

        Returns:
            Temporary branch name
        """
        self.original_branch = original_branch
        self.original_head = original_head
        self.snapshot = original_head

        name = self._temp_branch_name(operation)
        self.repo.create_branch(name, original_head, checkout=True)
        self.temp_branch = name
        logger.debug(f"Working on temporary branch {name}")
        return name

    def commit_staged(self, descriptor: OperationDescriptor, base: str) -> Commit:
        """
        Commit the staged changes on the temporary branch.

        The new commit becomes the safety snapshot the rewrite is checked against.
        """
        message, edit = staged_commit_message(self.repo, descriptor, base)
        sha = self.repo.create_commit(
            message,
            allow_empty=descriptor.operation == Operation.AMEND,
            edit=edit,
        )
        self.created_commit = sha
        self.snapshot = sha

        subject = self.repo.subject(sha)
        logger.info(f"Created {sha[:12]} from staged changes: {subject}")
        return Commit(sha=sha, parents=[self.original_head], subject=subject)

    def execute(self, plan: RewritePlan, upstream: Optional[str]) -> str:
        """
        Rebase the temporary branch with the plan in place of git's todo list.

        Args:
            plan: Directives to apply
            upstream: Exclusive lower bound of the range (None rewrites from the root)

        Returns:
            New tip of the temporary branch

        Raises:
            RewriteConflict: The rebase stopped on a conflict (already aborted)
            RewriteFailed: The rebase failed for another reason
        """
        logger.info(f"Rewriting {len(plan.directives)} commit(s) for {plan.operation.value}")
        outcome = self.repo.rewrite(upstream, plan.to_todo(), keep_empty=self.keep_empty)

        if outcome.status == "conflict":
            self.repo.abort_rebase()
            raise RewriteConflict(outcome.conflicts)
        if not outcome.ok:
            if self.repo.rebase_in_progress():
                self.repo.abort_rebase()
            lines = outcome.stderr.strip().splitlines()
            raise RewriteFailed(f"git rebase failed: {lines[-1] if lines else 'unknown error'}")

        return self.repo.resolve("HEAD")

    def cleanup(self, restore: bool) -> None:
        """
        Remove the temporary branch; with restore=True also undo everything else.

        Restoring aborts any in-progress rebase, puts staged changes back in
        the index and checks the original branch out again.
        """
        if self.temp_branch is None:
            return

        temp_branch = self.temp_branch
        steps = []
        if restore:
            steps.append(("abort rebase", self._abort_if_rebasing))
            steps.append(("restore working tree", self._restore_temp_branch))
        steps.append(("return to original branch", self._return_to_original))
        steps.append(("delete temporary branch", self._delete_temp_branch))

        failed = False
        for label, step in steps:
            try:
                step()
            except GitCommandError as e:
                failed = True
                logger.error(f"Cleanup step '{label}' failed: {e}")

        if failed:
            logger.error(f"Repository may need attention: temporary branch was {temp_branch}")
        elif restore:
            logger.info(f"Restored {self.original_branch} to its original state")
        self.temp_branch = None

    def _abort_if_rebasing(self) -> None:
        if self.repo.rebase_in_progress():
            logger.debug("Aborting in-progress rebase")
            self.repo.abort_rebase()

    def _restore_temp_branch(self) -> None:
        if self.repo.current_branch() != self.temp_branch:
            return
        if self.snapshot and self.repo.resolve("HEAD") != self.snapshot:
            self.repo.reset(self.snapshot, mode="hard")
        if self.created_commit and self.original_head:
            # Uncommit, leaving the staged changes in the index
            self.repo.reset(self.original_head, mode="soft")

    def _return_to_original(self) -> None:
        if self.original_branch and self.repo.current_branch() != self.original_branch:
            self.repo.checkout(self.original_branch)

    def _delete_temp_branch(self) -> None:
        if self.temp_branch and self.repo.branch_exists(self.temp_branch):
            self.repo.delete_branch(self.temp_branch)
