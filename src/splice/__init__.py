"""
splice - targeted git history surgery

Fixup, amend, pick, drop and swap commits in the current branch while
moving every branch that pointed into the rewritten range.
"""

__version__ = "1.0.0"

# Core exports
from splice.git import GitRepository
from splice.schemas import Operation, OperationDescriptor, RewritePlan, SurgeryResult
from splice.surgery import SurgeryFacade
from splice.user_config import UserConfig

__all__ = [
    "__version__",
    "GitRepository",
    "Operation",
    "OperationDescriptor",
    "RewritePlan",
    "SurgeryResult",
    "SurgeryFacade",
    "UserConfig",
]
