"""Exception hierarchy for vms.

Fatal errors propagate to the CLI, which reports them and exits non-zero.
Missing ledger files are never errors.
"""

from __future__ import annotations


class VmsError(Exception):
    """Base class for every error raised by vms."""


class ConfigError(VmsError):
    """Raised when configuration values fail validation."""


class DiffExtractionError(VmsError):
    """Raised when the diff between two revisions cannot be produced."""


class LedgerParseError(VmsError):
    """Raised when a ledger line cannot be parsed into a Violation."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"Cannot parse ledger line ({reason}): {line[:200]!r}")
        self.line = line
        self.reason = reason


class PersistenceError(VmsError):
    """Raised when ledger or revision state cannot be written."""

    def __init__(self, path: object, cause: Exception) -> None:
        super().__init__(f"Failed to persist '{path}': {cause}")
        self.path = path
        self.cause = cause


class RunnerError(VmsError):
    """Raised when the instrumented test run fails."""
