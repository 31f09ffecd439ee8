"""
BranchReconciler: the only component that moves branches.

Nothing is moved until the rewritten tip has been checked against the
safety snapshot; a mismatch aborts with every branch untouched.
"""

from typing import List, Optional

from splice.exceptions import ContentMismatch, GitCommandError
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import BranchMove, RewritePlan

from .config import CONTENT_PRESERVING


class BranchReconciler:
    """
    Verifies rewritten content and force-updates tracked branches.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def verify_content(self, plan: RewritePlan, snapshot: str, new_head: str) -> None:
        """
        Require the rewritten tip's tree to match the snapshot (all operations but drop).

        Raises:
            ContentMismatch: The trees differ
        """
        if plan.operation not in CONTENT_PRESERVING:
            logger.debug(f"Skipping content check for {plan.operation.value}")
            return

        differing = self.repo.diff_trees(snapshot, new_head)
        if differing:
            raise ContentMismatch(differing)
        logger.debug(f"Content check passed: {new_head[:12]} matches {snapshot[:12]}")

    def apply(self, plan: RewritePlan, moves: List[BranchMove], original_branch: Optional[str] = None) -> None:
        """
        Force every branch in `moves` to its new commit, the original branch last.

        If any update fails, the branches already moved are put back before
        the error propagates.
        """
        ordered = sorted(moves, key=lambda m: m.name == original_branch)
        applied: List[BranchMove] = []
        try:
            for move in ordered:
                self.repo.set_branch(move.name, move.new_sha, reason=f"splice: {plan.operation.value}")
                applied.append(move)
                logger.info(
                    f"Moved {move.name}: {move.old_sha[:12]} -> {move.new_sha[:12]} "
                    f"(depth {move.old_depth} -> {move.new_depth})"
                )
        except (GitCommandError, KeyboardInterrupt):
            self.revert(applied, plan)
            raise

    def revert(self, applied: List[BranchMove], plan: RewritePlan) -> None:
        """Point every applied move's branch back at its old commit, newest update first."""
        for move in reversed(applied):
            try:
                self.repo.set_branch(move.name, move.old_sha, reason=f"splice: revert {plan.operation.value}")
                logger.info(f"Restored {move.name} to {move.old_sha[:12]}")
            except GitCommandError as e:
                logger.error(f"Could not restore {move.name} to {move.old_sha[:12]}: {e}")

    def finish(self, original_branch: str, temp_branch: str) -> None:
        """Check the original branch out again and delete the temporary branch."""
        self.repo.checkout(original_branch)
        self.repo.delete_branch(temp_branch)
        logger.debug(f"Deleted temporary branch {temp_branch}")

    def reconcile(
        self,
        plan: RewritePlan,
        snapshot: str,
        new_head: str,
        moves: List[BranchMove],
        original_branch: str,
        temp_branch: str,
    ) -> None:
        """
        Content gate, branch updates, then return to the original branch.
        """
        self.verify_content(plan, snapshot, new_head)
        self.apply(plan, moves, original_branch)
        self.finish(original_branch, temp_branch)
