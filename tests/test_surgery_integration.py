"""
End-to-end tests for SurgeryFacade against real throwaway repositories.

History built by the repo_builder fixture: root -> base -> c1 -> c2 (main).
"""

import pytest

from splice.exceptions import (
    ContentMismatch,
    DetachedHead,
    DirtyWorkingTree,
    GitCommandError,
    InvalidArguments,
    InvalidReference,
    MergeCommitsPresent,
    NoStagedChanges,
    NotAncestor,
    OperationInterrupted,
    RewriteConflict,
    RewriteFailed,
)
from splice.schemas import Operation, OperationDescriptor
from splice.surgery import BranchPositionTracker, RewriteExecutor, SurgeryFacade

pytestmark = pytest.mark.integration


def _run(git_repo, operation, base, target=None, **kwargs):
    descriptor = OperationDescriptor(operation=operation, base=base, target=target, **kwargs)
    return SurgeryFacade(git_repo).run(descriptor)


def _assert_untouched(repo_builder, branches_before, staged=""):
    """Repository is exactly as it was: same branches, main checked out, no rebase."""
    assert repo_builder.branches() == branches_before
    assert repo_builder.current_branch() == "main"
    assert not (repo_builder.path / ".git" / "rebase-merge").exists()
    assert repo_builder.git("diff", "--cached", "--name-only") == staged


class TestFixup:
    """fixup / amend."""

    def test_fixup_staged_changes_into_base(self, repo_builder, git_repo):
        """Scenario A: staged change squashed into base, tree preserved."""
        repo_builder.stage("d.txt", "d\n")
        expected_tree = repo_builder.git("write-tree")

        result = _run(git_repo, Operation.FIXUP, "base")

        assert repo_builder.subjects() == ["base", "c1", "c2"]
        assert repo_builder.tree("main") == expected_tree
        assert repo_builder.git("show", "main~2:d.txt") == "d"
        assert result.created_commit is not None
        assert result.new_head == repo_builder.rev("main")
        assert set(repo_builder.branches()) == {"main"}
        assert repo_builder.current_branch() == "main"
        assert repo_builder.status() == ""

    def test_fixup_existing_commit_moves_branches(self, repo_builder, git_repo):
        repo_builder.git("branch", "feature", repo_builder.shas["c1"])
        original_tree = repo_builder.tree("main")

        _run(git_repo, Operation.FIXUP, "base", repo_builder.shas["c1"])

        assert repo_builder.subjects() == ["base", "c2"]
        assert repo_builder.tree("main") == original_tree
        # feature pointed at the squashed commit: it now points at base'
        assert repo_builder.rev("feature") == repo_builder.rev("main~1")
        assert repo_builder.git("show", "feature:b.txt") == "b"

    def test_amend_replaces_base_message(self, repo_builder, git_repo):
        repo_builder.stage("a.txt", "a2\n")

        _run(git_repo, Operation.AMEND, "base", message="base, reworded")

        assert repo_builder.git("log", "-1", "--format=%B", "main~2") == "base, reworded"
        assert repo_builder.git("show", "main~2:a.txt") == "a2"
        assert repo_builder.subjects() == ["base, reworded", "c1", "c2"]

    def test_amend_without_staged_changes_rewords_only(self, repo_builder, git_repo):
        original_tree = repo_builder.tree("main")

        _run(git_repo, Operation.AMEND, "c1", message="c1 renamed")

        assert repo_builder.subjects() == ["base", "c1 renamed", "c2"]
        assert repo_builder.tree("main") == original_tree

    def test_no_staged_changes_is_a_noop(self, repo_builder, git_repo):
        before = repo_builder.branches()
        with pytest.raises(NoStagedChanges) as exc:
            _run(git_repo, Operation.FIXUP, "base")
        assert exc.value.exit_code == 0
        _assert_untouched(repo_builder, before)


class TestDrop:
    """drop."""

    def test_drop_middle_commit(self, repo_builder, git_repo):
        """Scenario B: dropping c1 moves the branch at c2 to c2' at depth 1."""
        repo_builder.git("branch", "topic", repo_builder.shas["c2"])

        result = _run(git_repo, Operation.DROP, repo_builder.shas["c1"])

        assert repo_builder.subjects() == ["base", "c2"]
        assert repo_builder.rev("topic") == repo_builder.rev("main")
        assert repo_builder.rev("main~1") == repo_builder.shas["base"]
        assert not (repo_builder.path / "b.txt").exists()
        moves = {m.name: (m.old_depth, m.new_depth) for m in result.moves}
        assert moves["topic"] == (2, 1)

    def test_drop_tip(self, repo_builder, git_repo):
        _run(git_repo, Operation.DROP, "c2")
        assert repo_builder.subjects() == ["base", "c1"]
        assert repo_builder.rev("main") == repo_builder.shas["c1"]

    def test_drop_root_commit_rejected(self, repo_builder, git_repo):
        before = repo_builder.branches()
        with pytest.raises(InvalidArguments):
            _run(git_repo, Operation.DROP, "root")
        _assert_untouched(repo_builder, before)


class TestPick:
    """pick."""

    def test_pick_staged_changes_after_base(self, repo_builder, git_repo):
        repo_builder.git("branch", "feature", repo_builder.shas["c1"])
        repo_builder.git("branch", "at-base", repo_builder.shas["base"])
        repo_builder.stage("d.txt", "d\n")
        expected_tree = repo_builder.git("write-tree")

        _run(git_repo, Operation.PICK, "base", message="picked")

        assert repo_builder.subjects() == ["base", "picked", "c1", "c2"]
        assert repo_builder.tree("main") == expected_tree
        assert repo_builder.git("log", "-1", "--format=%s", "feature") == "c1"
        # depths before the target move up by one, the base included
        assert repo_builder.git("log", "-1", "--format=%s", "at-base") == "picked"

    def test_pick_existing_commit(self, repo_builder, git_repo):
        original_tree = repo_builder.tree("main")
        _run(git_repo, Operation.PICK, "base", repo_builder.shas["c2"])
        assert repo_builder.subjects() == ["base", "c2", "c1"]
        assert repo_builder.tree("main") == original_tree


class TestSwap:
    """swap."""

    def test_swap_tracks_positions(self, repo_builder, git_repo):
        """Scenario C: feature at depth 1 keeps pointing at depth 1."""
        repo_builder.git("branch", "feature", repo_builder.shas["c1"])
        original_tree = repo_builder.tree("main")

        _run(git_repo, Operation.SWAP, "base", "c2")

        assert repo_builder.subjects() == ["c2", "c1", "base"]
        assert repo_builder.rev("feature") == repo_builder.rev("main~1")
        assert repo_builder.tree("main") == original_tree

    def test_swap_argument_order_does_not_matter(self, repo_builder, git_repo):
        _run(git_repo, Operation.SWAP, "c2", "base")
        assert repo_builder.subjects() == ["c2", "c1", "base"]

    def test_swap_pins_current_branch_at_tip(self, repo_builder, git_repo):
        repo_builder.git("branch", "also-at-tip", repo_builder.shas["c2"])

        _run(git_repo, Operation.SWAP, "c1", "c2")

        assert repo_builder.subjects() == ["base", "c2", "c1"]
        # main stays at the tip; another branch at the late commit follows the swap
        assert repo_builder.git("log", "-1", "--format=%s", "main") == "c1"
        assert repo_builder.rev("also-at-tip") == repo_builder.rev("main~1")

    def test_swap_with_staged_changes(self, repo_builder, git_repo):
        repo_builder.stage("d.txt", "d\n")
        expected_tree = repo_builder.git("write-tree")

        result = _run(git_repo, Operation.SWAP, "c1", message="new")

        assert repo_builder.subjects() == ["base", "new", "c2", "c1"]
        # main follows the new commit, which is the late side of the swap
        assert result.new_head == repo_builder.rev("main")
        assert repo_builder.tree("main") == expected_tree
        assert (repo_builder.path / "b.txt").read_text() == "b\n"
        assert (repo_builder.path / "d.txt").read_text() == "d\n"
        assert repo_builder.status() == ""

    def test_swap_explicit_commit_before_head(self, repo_builder, git_repo):
        repo_builder.git("branch", "feature", "c1")
        original_tree = repo_builder.tree("main")

        result = _run(git_repo, Operation.SWAP, "base", "c1")

        assert repo_builder.subjects() == ["c1", "base", "c2"]
        assert result.new_head == repo_builder.rev("main")
        assert repo_builder.tree("main") == original_tree
        assert repo_builder.rev("feature") == repo_builder.rev("main~2")
        for name in ("a.txt", "b.txt", "c.txt"):
            assert (repo_builder.path / name).exists()


class TestPreconditions:
    """Failures detected before anything is mutated."""

    def test_invalid_reference(self, repo_builder, git_repo):
        with pytest.raises(InvalidReference):
            _run(git_repo, Operation.DROP, "no-such-commit")

    def test_target_before_base(self, repo_builder, git_repo):
        before = repo_builder.branches()
        with pytest.raises(NotAncestor):
            _run(git_repo, Operation.FIXUP, "c2", repo_builder.shas["c1"])
        _assert_untouched(repo_builder, before)

    def test_detached_head(self, repo_builder, git_repo):
        repo_builder.git("checkout", "-q", "--detach")
        with pytest.raises(DetachedHead):
            _run(git_repo, Operation.DROP, "c1")

    def test_dirty_tree_with_explicit_target(self, repo_builder, git_repo):
        repo_builder.write("a.txt", "changed\n")
        before = repo_builder.branches()
        with pytest.raises(DirtyWorkingTree):
            _run(git_repo, Operation.FIXUP, "base", "c1")
        assert repo_builder.branches() == before

    def test_merges_require_force(self, repo_builder, git_repo):
        repo_builder.git("checkout", "-q", "-b", "side", repo_builder.shas["c1"])
        repo_builder.commit("s1", {"s.txt": "s\n"})
        repo_builder.git("checkout", "-q", "main")
        repo_builder.git("merge", "-q", "--no-ff", "-m", "merge side", "side")
        before = repo_builder.branches()

        with pytest.raises(MergeCommitsPresent):
            _run(git_repo, Operation.DROP, "c2")
        _assert_untouched(repo_builder, before)

        original_tree = repo_builder.tree("main")
        repo_builder.stage("d.txt", "d\n")
        expected_tree = repo_builder.git("write-tree")
        _run(git_repo, Operation.FIXUP, "base", force=True)

        assert repo_builder.git("rev-list", "--merges", "root..main") == ""
        assert repo_builder.tree("main") == expected_tree
        assert original_tree != expected_tree


class TestRollback:
    """Failures after the temporary branch exists restore the original state."""

    def _conflicting_history(self, repo_builder):
        repo_builder.commit("c3", {"a.txt": "a3\n"})
        repo_builder.commit("c4", {"a.txt": "a4\n"})

    def test_conflict_aborts_and_restores(self, repo_builder, git_repo):
        self._conflicting_history(repo_builder)
        before = repo_builder.branches()

        with pytest.raises(RewriteConflict) as exc:
            _run(git_repo, Operation.FIXUP, "base", repo_builder.shas["c4"])

        assert "a.txt" in exc.value.paths
        _assert_untouched(repo_builder, before)
        assert repo_builder.status() == ""

    def test_conflict_keeps_staged_changes(self, repo_builder, git_repo):
        self._conflicting_history(repo_builder)
        repo_builder.stage("a.txt", "a5\n")
        before = repo_builder.branches()

        with pytest.raises(RewriteConflict):
            _run(git_repo, Operation.FIXUP, "base")

        _assert_untouched(repo_builder, before, staged="a.txt")
        assert (repo_builder.path / "a.txt").read_text() == "a5\n"

    def test_content_mismatch_blocks_branch_updates(self, repo_builder, git_repo, monkeypatch):
        repo_builder.git("branch", "feature", repo_builder.shas["c1"])
        before = repo_builder.branches()
        monkeypatch.setattr(git_repo, "diff_trees", lambda a, b: ["c.txt"])

        with pytest.raises(ContentMismatch):
            _run(git_repo, Operation.SWAP, "base", "c2")

        _assert_untouched(repo_builder, before)
        assert repo_builder.subjects() == ["base", "c1", "c2"]

    def test_interrupt_restores(self, repo_builder, git_repo, monkeypatch):
        repo_builder.stage("d.txt", "d\n")
        before = repo_builder.branches()

        def interrupted(self, plan, upstream):
            raise KeyboardInterrupt()

        monkeypatch.setattr(RewriteExecutor, "execute", interrupted)

        with pytest.raises(OperationInterrupted):
            _run(git_repo, Operation.FIXUP, "base")

        _assert_untouched(repo_builder, before, staged="d.txt")


class TestDryRunAndTracking:
    """Planning without mutation; deterministic enumeration."""

    def test_dry_run_changes_nothing(self, repo_builder, git_repo):
        repo_builder.stage("d.txt", "d\n")
        before = repo_builder.branches()

        descriptor = OperationDescriptor(operation=Operation.FIXUP, base="base")
        result = SurgeryFacade(git_repo).run(descriptor, dry_run=True)

        assert result.dry_run
        assert result.plan[0].startswith(f"keep {repo_builder.shas['base']}")
        assert result.plan[1] == "squash (staged) fixup! base"
        assert [p.name for p in result.positions] == ["main"]
        _assert_untouched(repo_builder, before, staged="d.txt")

    def test_failed_branch_update_reverts_moved_branches(self, repo_builder, git_repo, monkeypatch):
        repo_builder.git("branch", "feature", "c1")
        repo_builder.git("branch", "topic", "c2")
        before = repo_builder.branches()
        real_set_branch = git_repo.set_branch
        calls = []

        def failing_set_branch(name, sha, reason="splice"):
            calls.append(name)
            if len(calls) == 2:
                raise GitCommandError(["update-ref", f"refs/heads/{name}", sha], 1, "cannot lock ref")
            real_set_branch(name, sha, reason=reason)

        monkeypatch.setattr(git_repo, "set_branch", failing_set_branch)

        with pytest.raises(GitCommandError):
            _run(git_repo, Operation.SWAP, "base", "c2")

        # feature moved, topic failed, feature put back; main never touched
        assert calls == ["feature", "topic", "feature"]
        _assert_untouched(repo_builder, before)
        assert repo_builder.subjects() == ["base", "c1", "c2"]

    def test_current_branch_must_land_on_new_tip(self, repo_builder, git_repo, monkeypatch):
        from splice.surgery import mapper as mapper_module

        before = repo_builder.branches()
        monkeypatch.setattr(mapper_module, "adjust_depth", lambda operation, depth, target_depth, pinned=False: 0)

        with pytest.raises(RewriteFailed, match="rewritten tip"):
            _run(git_repo, Operation.FIXUP, "base", "c1")

        _assert_untouched(repo_builder, before)
        assert repo_builder.subjects() == ["base", "c1", "c2"]

    def test_enumeration_is_deterministic(self, repo_builder, git_repo):
        tracker = BranchPositionTracker(git_repo)
        first = tracker.enumerate(repo_builder.shas["base"], repo_builder.shas["c2"])
        second = tracker.enumerate(repo_builder.shas["base"], repo_builder.shas["c2"])

        assert first.shas == second.shas
        assert first.shas == [repo_builder.shas[label] for label in ("base", "c1", "c2")]
        assert first.upstream == repo_builder.shas["root"]
