from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal


class Operation(str, Enum):
    """
    The history edits splice knows how to perform.
    """
    FIXUP = "fixup"
    AMEND = "amend"
    PICK = "pick"
    DROP = "drop"
    SWAP = "swap"


class OperationDescriptor(BaseModel):
    """
    What the user asked for, before any reference is resolved.

    `base` is the first commit argument (for drop: the commit to remove),
    `target` the optional second one.
    """
    operation: Operation
    base: str
    target: Optional[str] = None
    force: bool = False
    message: Optional[str] = None

    @property
    def creates_commit(self) -> bool:
        """True when the operation builds its target commit from staged changes."""
        return self.operation != Operation.DROP and self.target is None


class Commit(BaseModel):
    """
    A commit as seen by the planner: identity, parents and subject line.
    """
    sha: str
    parents: List[str] = Field(default_factory=list)
    subject: str = ""

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def short(self) -> str:
        return self.sha[:12]


DirectiveAction = Literal["keep", "squash", "squash-inherit-message"]

# How each directive is spelled in git's rebase todo list
TODO_VERBS: Dict[str, str] = {
    "keep": "pick",
    "squash": "fixup",
    "squash-inherit-message": "fixup -C",
}


class Directive(BaseModel):
    """
    One line of a rewrite plan.
    """
    action: DirectiveAction
    sha: str
    subject: str = ""

    def describe(self) -> str:
        """Render as `keep <id> <subject>` / `squash <id> <subject>`."""
        return f"{self.action} {self.sha} {self.subject}".rstrip()

    def to_todo(self) -> str:
        """Render as a line of git's rebase todo list."""
        return f"{TODO_VERBS[self.action]} {self.sha} {self.subject}".rstrip()


class RewritePlan(BaseModel):
    """
    Ordered directives replacing the default interactive rebase sequence.
    """
    operation: Operation
    base_sha: str
    target_sha: str
    target_depth: int
    expected_delta: int
    directives: List[Directive] = Field(default_factory=list)

    def describe(self) -> str:
        return "\n".join(d.describe() for d in self.directives) + "\n"

    def to_todo(self) -> str:
        return "\n".join(d.to_todo() for d in self.directives) + "\n"


class BranchPosition(BaseModel):
    """
    A branch recorded by the tracker: where it pointed and at which depth.
    """
    name: str
    sha: str
    depth: int


class BranchMove(BaseModel):
    """
    A branch relocation computed by the mapper.
    """
    name: str
    old_sha: str
    new_sha: str
    old_depth: int
    new_depth: int


class SurgeryResult(BaseModel):
    """
    Summary of a completed (or dry-run) operation.
    """
    operation: Operation
    branch: str
    original_head: str
    new_head: Optional[str] = None
    created_commit: Optional[str] = None
    dry_run: bool = False
    plan: List[str] = Field(default_factory=list)
    positions: List[BranchPosition] = Field(default_factory=list)
    moves: List[BranchMove] = Field(default_factory=list)
    lost_branches: List[str] = Field(default_factory=list)
