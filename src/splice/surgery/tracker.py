"""
BranchPositionTracker: record where every branch points before a rewrite.

Depth is the coordinate system used to relocate branches afterwards:
the base commit is depth 0 and every later commit of the range counts up
from there, oldest first.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from splice.exceptions import InvalidArguments
from splice.git import GitRepository
from splice.logging_config import logger
from splice.schemas import BranchPosition, Commit


@dataclass
class CommitRange:
    """An enumerated commit range, oldest first.

    `upstream` is the exclusive lower bound handed to git rebase (the base's
    first parent, or None when the base is a root commit). Merge commits
    are held apart in `merges`; `commits` is the linear sequence the plan
    is built from.
    """

    upstream: Optional[str]
    commits: List[Commit]
    merges: List[Commit] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.commits)

    @property
    def shas(self) -> List[str]:
        return [c.sha for c in self.commits]

    @property
    def head(self) -> Optional[str]:
        return self.commits[-1].sha if self.commits else None

    def depth_of(self, sha: str) -> int:
        for depth, commit in enumerate(self.commits):
            if commit.sha == sha:
                return depth
        raise KeyError(sha)

    def depth_map(self) -> Dict[str, int]:
        return {c.sha: depth for depth, c in enumerate(self.commits)}

    def append(self, commit: Commit) -> None:
        self.commits.append(commit)


def list_range(repo: GitRepository, upstream: Optional[str], head: str) -> CommitRange:
    """Enumerate `upstream..head`, separating merge commits from the linear sequence."""
    listed = repo.commits_between(upstream, head)
    commits = [c for c in listed if not c.is_merge]
    merges = [c for c in listed if c.is_merge]
    return CommitRange(upstream=upstream, commits=commits, merges=merges)


class BranchPositionTracker:
    """
    Snapshots branch positions inside the range an operation will rewrite.
    """

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def enumerate(self, base: str, head: str) -> CommitRange:
        """
        Enumerate the inclusive range base..head with base at depth 0.

        Raises:
            InvalidArguments: If the base itself is a merge commit
        """
        parents = self.repo.parents(base)
        if len(parents) > 1:
            raise InvalidArguments(f"Base commit {base[:12]} is a merge commit; pick a single-parent base")

        commit_range = list_range(self.repo, parents[0] if parents else None, head)

        # Commits merged in from side history may sort ahead of the base
        commit_range.commits.sort(key=lambda c: c.sha != base)
        if not commit_range.commits or commit_range.commits[0].sha != base:
            raise InvalidArguments(f"Base commit {base[:12]} is not part of the range to rewrite")

        logger.debug(
            f"Range {base[:12]}..{head[:12]}: {len(commit_range)} commit(s), {len(commit_range.merges)} merge(s)"
        )
        return commit_range

    def track(
        self,
        commit_range: CommitRange,
        exclude: Iterable[str] = (),
        head_branch: Optional[str] = None,
    ) -> List[BranchPosition]:
        """
        Record (branch, depth) for every local branch pointing into the range.

        Args:
            commit_range: Range produced by enumerate()
            exclude: Branch names to ignore
            head_branch: Checked-out branch; if it sits on a merge commit that
                linearization removes, it is tracked at the last linear commit

        Returns:
            Positions ordered by depth, then name
        """
        depths = commit_range.depth_map()
        merge_shas = {c.sha for c in commit_range.merges}
        skipped = set(exclude)
        positions: List[BranchPosition] = []

        for name, sha in sorted(self.repo.branches().items()):
            if name in skipped:
                continue
            if sha in depths:
                positions.append(BranchPosition(name=name, sha=sha, depth=depths[sha]))
            elif sha in merge_shas and name == head_branch and commit_range.commits:
                depth = len(commit_range) - 1
                logger.info(f"Branch '{name}' points at merge commit {sha[:12]}; it will follow the linearized tip")
                positions.append(BranchPosition(name=name, sha=sha, depth=depth))
            elif sha in merge_shas:
                logger.warning(f"Branch '{name}' points at merge commit {sha[:12]} and will not be moved")

        positions.sort(key=lambda p: (p.depth, p.name))
        for position in positions:
            logger.debug(f"Tracking {position.name} at depth {position.depth} ({position.sha[:12]})")
        return positions

    def follow(self, positions: List[BranchPosition], name: str, depth: int) -> List[BranchPosition]:
        """
        Track `name` at `depth` instead of where it was recorded.

        The checked-out branch moves onto a commit built from staged changes,
        so it must be mapped from that commit's depth.
        """
        followed = [p for p in positions if p.name != name]
        sha = next((p.sha for p in positions if p.name == name), None)
        if sha is None:
            sha = self.repo.branches()[name]
        followed.append(BranchPosition(name=name, sha=sha, depth=depth))
        followed.sort(key=lambda p: (p.depth, p.name))
        logger.debug(f"Tracking {name} at depth {depth} (commit built from staged changes)")
        return followed
