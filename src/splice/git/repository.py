"""
Thin wrapper around the git command line.

Every interaction splice has with the repository goes through
GitRepository: resolving references, listing commits, moving branches and
running the plan-driven interactive rebase.
"""

import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from splice.exceptions import GitCommandError, InvalidReference
from splice.schemas import Commit

# Field separator for --format output; never appears in subjects
_SEP = "\x1f"


@dataclass
class RewriteOutcome:
    """Result of a plan-driven rebase."""

    status: str  # success, conflict, failed
    conflicts: List[str] = field(default_factory=list)
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "success"


class GitRepository:
    """
    A git working copy driven through the `git` executable.

    Args:
        path: Any directory inside the working tree
        timeout: Seconds allowed for ordinary git calls (rebase is not limited)
    """

    def __init__(self, path: Path, timeout: int = 60):
        self.path = Path(path)
        self.timeout = timeout
        self._git_dir: Optional[Path] = None

    def run_git(
        self,
        *args: str,
        check: bool = True,
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
        timeout: Optional[float] = -1,
        capture: bool = True,
    ) -> subprocess.CompletedProcess:
        """
        Run a git command in the repository.

        Args:
            args: git arguments, without the leading "git"
            check: Raise GitCommandError on non-zero exit
            env: Extra environment variables
            input: Text sent to stdin
            timeout: Seconds, None for no limit, -1 for the repository default
            capture: Capture stdout/stderr (False lets an editor use the terminal)

        Returns:
            The completed process
        """
        cmd = ["git", *args]
        run_env = None
        if env:
            run_env = {**os.environ, **env}
        if timeout == -1:
            timeout = self.timeout

        logger.debug(f"Running: {' '.join(shlex.quote(a) for a in cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=str(self.path),
                capture_output=capture,
                text=True,
                env=run_env,
                input=input,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(list(args), -1, f"timed out after {e.timeout} seconds") from e

        if check and result.returncode != 0:
            raise GitCommandError(list(args), result.returncode, result.stderr or "")
        return result

    def _output(self, *args: str) -> str:
        return self.run_git(*args).stdout.strip()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def git_dir(self) -> Path:
        """Absolute path of the repository's .git directory."""
        if self._git_dir is None:
            self._git_dir = Path(self._output("rev-parse", "--absolute-git-dir"))
        return self._git_dir

    def toplevel(self) -> Path:
        return Path(self._output("rev-parse", "--show-toplevel"))

    def resolve(self, spec: str) -> str:
        """
        Resolve a commit specifier to a full commit id.

        Raises:
            InvalidReference: If the specifier does not name a commit
        """
        result = self.run_git("rev-parse", "--verify", "--quiet", f"{spec}^{{commit}}", check=False)
        sha = result.stdout.strip()
        if result.returncode != 0 or not sha:
            raise InvalidReference(spec)
        return sha

    def is_ancestor(self, ancestor: str, descendant: str, strict: bool = False) -> bool:
        """
        Test whether `ancestor` is reachable from `descendant`.

        With strict=True a commit is not its own ancestor.
        """
        if strict and ancestor == descendant:
            return False
        result = self.run_git("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(["merge-base", "--is-ancestor", ancestor, descendant], result.returncode, result.stderr)

    def parents(self, sha: str) -> List[str]:
        fields = self._output("rev-list", "--parents", "-n", "1", sha).split()
        return fields[1:]

    def message(self, sha: str) -> str:
        """Full commit message."""
        return self.run_git("log", "-1", "--format=%B", sha).stdout.rstrip("\n")

    def subject(self, sha: str) -> str:
        return self._output("log", "-1", "--format=%s", sha)

    def commits_between(self, exclusive: Optional[str], inclusive: str) -> List[Commit]:
        """
        List commits reachable from `inclusive` but not from `exclusive`, oldest first.

        Merge commits are included; callers decide what to do with them.
        With exclusive=None every ancestor of `inclusive` is listed.
        """
        revision = inclusive if exclusive is None else f"{exclusive}..{inclusive}"
        output = self.run_git(
            "log", "--no-color", "--reverse", "--topo-order",
            f"--format=%H{_SEP}%P{_SEP}%s", revision, "--",
        ).stdout

        commits: List[Commit] = []
        for line in output.splitlines():
            if not line:
                continue
            sha, parents, subject = line.split(_SEP, 2)
            commits.append(Commit(sha=sha, parents=parents.split(), subject=subject))
        return commits

    def branches(self) -> Dict[str, str]:
        """Map every local branch name to the commit it points at."""
        output = self._output("for-each-ref", f"--format=%(refname){_SEP}%(objectname)", "refs/heads/")
        heads: Dict[str, str] = {}
        for line in output.splitlines():
            refname, sha = line.split(_SEP, 1)
            heads[refname[len("refs/heads/"):]] = sha
        return heads

    def branch_exists(self, name: str) -> bool:
        result = self.run_git("show-ref", "--verify", "--quiet", f"refs/heads/{name}", check=False)
        return result.returncode == 0

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached."""
        result = self.run_git("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def staged_changes_present(self) -> bool:
        return self.run_git("diff", "--cached", "--quiet", check=False).returncode == 1

    def unstaged_changes_present(self) -> bool:
        return self.run_git("diff", "--quiet", check=False).returncode == 1

    def working_tree_clean(self) -> bool:
        """True when neither the index nor tracked files differ from HEAD."""
        return not self.staged_changes_present() and not self.unstaged_changes_present()

    def diff_trees(self, a: str, b: str) -> List[str]:
        """Paths whose content differs between two revisions; empty when the trees match."""
        output = self._output("diff", "--no-renames", "--name-only", a, b, "--")
        return [line for line in output.splitlines() if line]

    def rebase_in_progress(self) -> bool:
        return (self.git_dir / "rebase-merge").exists() or (self.git_dir / "rebase-apply").exists()

    def conflicted_paths(self) -> List[str]:
        output = self.run_git("diff", "--name-only", "--diff-filter=U", check=False).stdout
        return [line for line in output.splitlines() if line]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_commit(self, message: Optional[str], allow_empty: bool = False, edit: bool = False) -> str:
        """
        Commit the index and return the new commit id.

        Args:
            message: Commit message; None opens the user's editor
            allow_empty: Permit a commit with no changes
            edit: Open the editor pre-filled with `message`
        """
        args = ["commit", "--quiet"]
        if allow_empty:
            args.append("--allow-empty")

        if message is None:
            self.run_git(*args, timeout=None, capture=False)
        elif edit:
            with tempfile.TemporaryDirectory(prefix="splice-msg-") as msg_dir:
                msg_path = Path(msg_dir) / "COMMIT_EDITMSG"
                msg_path.write_text(message + "\n")
                self.run_git(*args, "--edit", "--file", str(msg_path), timeout=None, capture=False)
        else:
            self.run_git(*args, "--file", "-", input=message + "\n")

        return self.resolve("HEAD")

    def create_branch(self, name: str, start: str, checkout: bool = False) -> None:
        if checkout:
            self.run_git("checkout", "--quiet", "-b", name, start)
        else:
            self.run_git("branch", name, start)

    def checkout(self, name: str) -> None:
        self.run_git("checkout", "--quiet", name)

    def delete_branch(self, name: str) -> None:
        self.run_git("branch", "-D", name)

    def reset(self, sha: str, mode: str = "hard") -> None:
        self.run_git("reset", "--quiet", f"--{mode}", sha)

    def set_branch(self, name: str, sha: str, reason: str = "splice") -> None:
        """Force a local branch to point at `sha`."""
        self.run_git("update-ref", "-m", reason, f"refs/heads/{name}", sha)

    def abort_rebase(self) -> None:
        self.run_git("rebase", "--abort", check=False)

    def rewrite(self, upstream: Optional[str], todo: str, keep_empty: bool = True) -> RewriteOutcome:
        """
        Rebase the checked-out branch onto `upstream`, replacing git's todo list with `todo`.

        The sequence editor copies the prepared plan over git's own, and the
        message editor accepts whatever git proposes, so the rebase never
        waits for input. With upstream=None the whole history is rewritten
        (--root).

        Returns:
            RewriteOutcome; a conflict leaves the rebase in progress for the caller to abort
        """
        with tempfile.TemporaryDirectory(prefix="splice-plan-") as plan_dir:
            plan_path = Path(plan_dir) / "git-rebase-todo"
            plan_path.write_text(todo)

            env = {
                "GIT_SEQUENCE_EDITOR": f"cp {shlex.quote(str(plan_path))}",
                "GIT_EDITOR": "true",
            }
            args = [
                "-c", "rebase.missingCommitsCheck=ignore",
                "-c", "rebase.updateRefs=false",
                "-c", "rebase.autoStash=false",
                "rebase", "--interactive", "--no-autosquash",
            ]
            if keep_empty:
                args += ["--keep-empty", "--empty=keep"]
            args.append("--root" if upstream is None else upstream)

            result = self.run_git(*args, check=False, env=env, timeout=None)

        if result.returncode == 0 and not self.rebase_in_progress():
            return RewriteOutcome(status="success", stderr=result.stderr)
        if self.rebase_in_progress():
            return RewriteOutcome(status="conflict", conflicts=self.conflicted_paths(), stderr=result.stderr)
        return RewriteOutcome(status="failed", stderr=result.stderr)
