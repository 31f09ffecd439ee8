"""
Pytest configuration for the splice test suite.

This conftest.py provides:
- Quiet logging for clean test output
- An isolated git environment (no user or system config leaks in)
- Throwaway repositories with a small linear history
"""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict

import pytest

from splice.git import GitRepository
from splice.logging_config import setup_logging
from splice.user_config import UserConfig


# ============================================================================
# LOGGING / ENVIRONMENT FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def setup_test_logging():
    """
    Suppress console logs for clean test output.
    """
    setup_logging(level="DEBUG", suppress_console=True, enable_file_logging=False, force=True)


@pytest.fixture(autouse=True)
def isolated_git_env(monkeypatch, tmp_path_factory):
    """Keep the developer's git and splice config out of the tests."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_EDITOR", "true")
    for var in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE", "GIT_SEQUENCE_EDITOR", "SPLICE_QUIET", "SPLICE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory that's cleaned up after the test."""
    tmp = Path(tempfile.mkdtemp(prefix="splice_test_"))
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


# ============================================================================
# GIT HELPERS
# ============================================================================

def run_git(repo: Path, *args: str) -> str:
    """Run a git command and return its stripped stdout."""
    result = subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def init_repo(repo: Path) -> None:
    """Initialize a git repo with default user config."""
    init = subprocess.run(
        ["git", "init", "-b", "main"],
        cwd=repo,
        capture_output=True,
        text=True,
    )
    if init.returncode != 0:
        run_git(repo, "init")
        run_git(repo, "checkout", "-b", "main")

    run_git(repo, "config", "user.email", "test@example.com")
    run_git(repo, "config", "user.name", "Test User")
    run_git(repo, "config", "commit.gpgsign", "false")


class RepoBuilder:
    """
    A throwaway repository plus shortcuts for building history.

    `shas` maps commit labels (the commit message) to their ids; each
    label is also a lightweight tag so it can be passed as a specifier.
    """

    def __init__(self, path: Path):
        self.path = path
        self.shas: Dict[str, str] = {}

    def git(self, *args: str) -> str:
        return run_git(self.path, *args)

    def write(self, relative: str, content: str) -> Path:
        path = self.path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def commit(self, label: str, files: Dict[str, str]) -> str:
        for relative, content in files.items():
            self.write(relative, content)
        self.git("add", "-A")
        self.git("commit", "-q", "-m", label)
        sha = self.git("rev-parse", "HEAD")
        self.shas[label] = sha
        self.git("tag", label)
        return sha

    def stage(self, relative: str, content: str) -> None:
        self.write(relative, content)
        self.git("add", relative)

    def rev(self, spec: str) -> str:
        return self.git("rev-parse", spec)

    def tree(self, spec: str) -> str:
        return self.git("rev-parse", f"{spec}^{{tree}}")

    def subjects(self, spec: str = "main", upstream: str = "root") -> list:
        """Subjects of upstream..spec, oldest first."""
        output = self.git("log", "--reverse", "--format=%s", f"{upstream}..{spec}")
        return output.splitlines()

    def branches(self) -> Dict[str, str]:
        output = self.git("for-each-ref", "--format=%(refname:short) %(objectname)", "refs/heads/")
        return dict(line.split(" ", 1) for line in output.splitlines())

    def current_branch(self) -> str:
        return self.git("symbolic-ref", "--short", "HEAD")

    def status(self) -> str:
        return self.git("status", "--porcelain", "--untracked-files=no")


@pytest.fixture
def repo_builder(temp_dir):
    """
    Repository with history root -> base -> c1 -> c2 on main.

    Each commit adds its own file, so any reordering applies cleanly. Every
    commit is tagged with its label.
    """
    path = temp_dir / "repo"
    path.mkdir()
    init_repo(path)

    builder = RepoBuilder(path)
    builder.commit("root", {"root.txt": "root\n"})
    builder.commit("base", {"a.txt": "a\n"})
    builder.commit("c1", {"b.txt": "b\n"})
    builder.commit("c2", {"c.txt": "c\n"})
    return builder


@pytest.fixture
def git_repo(repo_builder):
    """GitRepository handle for repo_builder's repository."""
    return GitRepository(repo_builder.path)


@pytest.fixture
def user_config(repo_builder):
    """Default configuration rooted at the test repository."""
    return UserConfig(repo_builder.path)
