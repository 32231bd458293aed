"""Diff-derived indices for violation correlation.

Submodules:
    matcher       -- IdentityMatcher: explicit class-identity / path matching policy.
    shift_index   -- LineShiftIndex: per-file anchor -> net line delta.
    rename_index  -- RenameIndex: new path -> old path pairs.
    git_provider  -- GitRepository: DiffModel extraction via the git CLI.
"""

from vms.diff.git_provider import DiffProvider, GitRepository, parse_unified_diff
from vms.diff.matcher import IdentityMatcher, MatchPolicy
from vms.diff.rename_index import RenameIndex
from vms.diff.shift_index import LineShiftIndex

__all__ = [
    "DiffProvider",
    "GitRepository",
    "IdentityMatcher",
    "LineShiftIndex",
    "MatchPolicy",
    "RenameIndex",
    "parse_unified_diff",
]
