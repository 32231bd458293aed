"""Violation ledgers and persisted correlation state.

Submodules:
    violation_ledger -- Line parsing/serialisation, load/save, raw-output rewrite.
    persistence      -- PersistenceManager: ledger rotation, revision marker, revision log.
"""

from vms.ledger.persistence import PersistenceManager, RecoveryAction, RevisionHistory, StatePaths
from vms.ledger.violation_ledger import (
    format_violation,
    load_ledger,
    parse_violation,
    rewrite_raw_output,
    save_ledger,
)

__all__ = [
    "PersistenceManager",
    "RecoveryAction",
    "RevisionHistory",
    "StatePaths",
    "format_violation",
    "load_ledger",
    "parse_violation",
    "rewrite_raw_output",
    "save_ledger",
]
