"""
Configuration for history surgery.

Static constants shared by the planner, mapper and executor. Tunable
settings live in splice.user_config.
"""

from splice.schemas import Operation


SURGERY_CONFIG = {
    "temp_branch_prefix": "splice",
    "temp_branch_suffix_bytes": 4,   # random hex bytes appended to the temp branch name
    "keep_empty": True,              # never prune commits that become empty
}

# Commit message prefixes understood by git's autosquash convention
AMEND_PREFIX = "amend! "
FIXUP_PREFIX = "fixup! "

# Change in commit count of the rewritten range, per operation
EXPECTED_DELTAS = {
    Operation.FIXUP: -1,
    Operation.AMEND: -1,
    Operation.DROP: -1,
    Operation.PICK: 0,
    Operation.SWAP: 0,
}

# Operations whose rewritten tip must reproduce the original tree exactly
CONTENT_PRESERVING = frozenset({
    Operation.FIXUP,
    Operation.AMEND,
    Operation.PICK,
    Operation.SWAP,
})

# Placeholder id shown in dry-run plans for the commit built from staged changes
STAGED_PLACEHOLDER = "(staged)"
