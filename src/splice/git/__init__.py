"""
Git access layer.

All subprocess calls to git live behind GitRepository.
"""

from .repository import GitRepository, RewriteOutcome

__all__ = [
    "GitRepository",
    "RewriteOutcome",
]
