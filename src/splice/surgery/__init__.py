"""
History surgery package.

Resolver -> Tracker -> Synthesizer -> Executor -> Mapper -> Reconciler,
orchestrated by SurgeryFacade.
"""

from .facade import SurgeryFacade
from .resolver import ReferenceResolver, ResolvedRefs
from .tracker import BranchPositionTracker, CommitRange, list_range
from .planner import PlanSynthesizer, build_directives
from .executor import RewriteExecutor, staged_commit_message
from .mapper import PostRewriteMapper, MappingResult, adjust_depth
from .reconciler import BranchReconciler
from .config import (
    SURGERY_CONFIG,
    AMEND_PREFIX,
    FIXUP_PREFIX,
    EXPECTED_DELTAS,
    CONTENT_PRESERVING,
    STAGED_PLACEHOLDER,
)

__all__ = [
    # Main facade
    "SurgeryFacade",

    # Components
    "ReferenceResolver",
    "ResolvedRefs",
    "BranchPositionTracker",
    "CommitRange",
    "list_range",
    "PlanSynthesizer",
    "build_directives",
    "RewriteExecutor",
    "staged_commit_message",
    "PostRewriteMapper",
    "MappingResult",
    "adjust_depth",
    "BranchReconciler",

    # Configuration
    "SURGERY_CONFIG",
    "AMEND_PREFIX",
    "FIXUP_PREFIX",
    "EXPECTED_DELTAS",
    "CONTENT_PRESERVING",
    "STAGED_PLACEHOLDER",
]
