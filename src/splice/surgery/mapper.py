"""
PostRewriteMapper: find the new commit for every tracked branch.

The rewritten range is enumerated the same way as the original one, and
each recorded depth is shifted by the operation's arithmetic:

    fixup/amend, drop   depths >= target_depth move down by one
    pick                depths <  target_depth move up by one
    swap                depth 0 and target_depth trade places

A branch whose shifted depth falls outside the new range is reported as
lost and left where it was.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from splice.exceptions import BranchMappingLost, RewriteFailed
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import BranchMove, BranchPosition, Operation, RewritePlan

from .tracker import CommitRange, list_range


def adjust_depth(operation: Operation, depth: int, target_depth: int, pinned: bool = False) -> int:
    """
    Shift a pre-rewrite depth into the rewritten range's coordinates.

    Args:
        operation: The applied edit
        depth: Depth recorded before the rewrite
        target_depth: Depth of the operation's target commit (for swap: the later commit)
        pinned: Keep the depth unchanged (swap only: the checked-out branch at the tip)
    """
    if operation in (Operation.FIXUP, Operation.AMEND, Operation.DROP):
        return depth - 1 if depth >= target_depth else depth

    if operation == Operation.PICK:
        if target_depth > 0 and depth < target_depth:
            return depth + 1
        return depth

    if operation == Operation.SWAP:
        if pinned:
            return depth
        if depth == 0:
            return target_depth
        if depth == target_depth:
            return 0
        return depth

    raise ValueError(f"Unknown operation: {operation}")


@dataclass
class MappingResult:
    """Branch relocations computed for one rewrite."""

    new_range: CommitRange
    moves: List[BranchMove] = field(default_factory=list)
    lost: List[BranchMappingLost] = field(default_factory=list)


class PostRewriteMapper:
    """
    Maps tracked branch positions onto the rewritten history.
    """

    def __init__(self, repo: GitRepository, pin_current_branch: bool = True):
        self.repo = repo
        self.pin_current_branch = pin_current_branch

    def is_pinned(self, plan: RewritePlan, position: BranchPosition, current_branch: Optional[str]) -> bool:
        """Swap leaves the checked-out branch at the tip instead of sending it back to depth 0."""
        return (
            self.pin_current_branch
            and plan.operation == Operation.SWAP
            and position.name == current_branch
            and position.depth == plan.target_depth
        )

    def map_positions(
        self,
        plan: RewritePlan,
        positions: List[BranchPosition],
        new_shas: List[str],
        current_branch: Optional[str] = None,
    ) -> MappingResult:
        """
        Compute moves against an already enumerated list of new commit ids.
        """
        result = MappingResult(new_range=CommitRange(upstream=None, commits=[]))

        for position in positions:
            pinned = self.is_pinned(plan, position, current_branch)
            if pinned:
                logger.debug(f"Keeping current branch '{position.name}' at depth {position.depth}")
            new_depth = adjust_depth(plan.operation, position.depth, plan.target_depth, pinned)

            if not 0 <= new_depth < len(new_shas):
                lost = BranchMappingLost(position.name, new_depth, len(new_shas))
                logger.warning(str(lost))
                result.lost.append(lost)
                continue

            result.moves.append(
                BranchMove(
                    name=position.name,
                    old_sha=position.sha,
                    new_sha=new_shas[new_depth],
                    old_depth=position.depth,
                    new_depth=new_depth,
                )
            )

        return result

    def remap(
        self,
        plan: RewritePlan,
        positions: List[BranchPosition],
        original_range: CommitRange,
        new_head: str,
        current_branch: Optional[str] = None,
    ) -> MappingResult:
        """
        Enumerate the rewritten range and relocate every tracked branch.

        Args:
            plan: The executed plan
            positions: Positions recorded before the rewrite
            original_range: Range the plan was built from
            new_head: Tip of the rewritten history
            current_branch: Branch that was checked out when the operation started

        Raises:
            RewriteFailed: The rewritten range does not have the expected number of commits
        """
        new_range = list_range(self.repo, original_range.upstream, new_head)
        expected = len(original_range) + plan.expected_delta
        if new_range.merges or len(new_range) != expected:
            raise RewriteFailed(
                f"Rewritten range has {len(new_range)} commit(s) and {len(new_range.merges)} merge(s), "
                f"expected {expected} linear commit(s)"
            )

        result = self.map_positions(plan, positions, new_range.shas, current_branch)
        result.new_range = new_range
        self.check_current_branch(plan, positions, result, new_head, current_branch)
        return result

    def check_current_branch(
        self,
        plan: RewritePlan,
        positions: List[BranchPosition],
        result: MappingResult,
        new_head: str,
        current_branch: Optional[str],
    ) -> None:
        """
        Require the checked-out branch to land on the rewritten tip.

        The only exception is a swap with pinning disabled, which sends the
        branch back to depth 0 on request.

        Raises:
            RewriteFailed: The checked-out branch would lose commits
        """
        if current_branch is None or not any(p.name == current_branch for p in positions):
            return
        if plan.operation == Operation.SWAP and not self.pin_current_branch:
            return

        move = next((m for m in result.moves if m.name == current_branch), None)
        if move is None or move.new_sha != new_head:
            landed = move.new_sha[:12] if move else "nowhere"
            raise RewriteFailed(
                f"Branch '{current_branch}' would move to {landed} instead of the rewritten tip {new_head[:12]}"
            )
