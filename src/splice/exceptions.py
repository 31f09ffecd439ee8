# Custom exceptions for splice

from typing import List, Optional


class SpliceError(Exception):
    """Base exception for all application-specific errors."""

    exit_code = 1
    severity = "ERROR"


class InvalidArguments(SpliceError):
    """Raised when the command line does not describe exactly one valid operation."""
    pass


class InvalidReference(SpliceError):
    """Raised when a commit specifier does not resolve to a commit."""
    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(f"'{spec}' does not name a commit")


class NotAncestor(SpliceError):
    """Raised when the commits involved are not ordered base -> target -> HEAD."""
    def __init__(self, ancestor: str, descendant: str, message: Optional[str] = None):
        self.ancestor = ancestor
        self.descendant = descendant
        super().__init__(message or f"{ancestor[:12]} is not an ancestor of {descendant[:12]}")


class DetachedHead(SpliceError):
    """Raised when HEAD does not point at a branch."""
    def __init__(self):
        super().__init__("HEAD is detached; check out a branch first")


class DirtyWorkingTree(SpliceError):
    """Raised when the index or working tree holds changes the operation cannot carry."""
    pass


class NoStagedChanges(SpliceError):
    """Raised when an operation needs staged changes and there are none. Not a failure."""

    exit_code = 0
    severity = "WARN"

    def __init__(self):
        super().__init__("No staged changes; nothing to do")


class MergeCommitsPresent(SpliceError):
    """Raised when the rewritten range contains merges and --force was not given."""
    def __init__(self, merges: List[str]):
        self.merges = merges
        listing = ", ".join(sha[:12] for sha in merges)
        super().__init__(
            f"Range contains {len(merges)} merge commit(s): {listing}. "
            "Use --force to linearize them."
        )


class RewriteConflict(SpliceError):
    """Raised when the rebase stopped on a conflict. The rebase has already been aborted."""
    def __init__(self, paths: List[str]):
        self.paths = paths
        message = "Rewrite stopped on a conflict and was aborted"
        if paths:
            message += f": {', '.join(paths)}"
        super().__init__(message)


class RewriteFailed(SpliceError):
    """Raised when the rewrite fails for any reason other than a conflict."""
    pass


class GitCommandError(RewriteFailed):
    """Raised when a git invocation exits non-zero."""
    def __init__(self, args: List[str], returncode: int, stderr: str = ""):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else f"exit status {returncode}"
        super().__init__(f"git {' '.join(args)} failed: {detail}")


class ContentMismatch(SpliceError):
    """Raised when the rewritten tip's tree differs from the safety snapshot."""
    def __init__(self, paths: List[str]):
        self.paths = paths
        super().__init__(
            f"Rewritten history does not reproduce the original tree ({len(paths)} path(s) differ: "
            f"{', '.join(paths[:5])}); no branch was modified"
        )


class BranchMappingLost(SpliceError):
    """Raised per branch when its adjusted depth falls outside the rewritten range."""

    severity = "WARN"

    def __init__(self, branch: str, depth: int, size: int):
        self.branch = branch
        self.depth = depth
        self.size = size
        super().__init__(
            f"Branch '{branch}' maps to depth {depth} outside the rewritten range of {size}; left unchanged"
        )


class OperationInterrupted(SpliceError):
    """Raised when the user interrupts the operation; the repository has been restored."""
    def __init__(self):
        super().__init__("Interrupted; original state restored")


class ConfigError(SpliceError):
    """Raised for configuration-related problems."""
    pass
