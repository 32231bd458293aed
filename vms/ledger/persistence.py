"""On-disk correlation state: old ledger, raw output, revision marker and log.

The state is a small machine mutated by successive, non-overlapping runs.
Every run first filters the raw output in place. A run that rotates state
then goes through the append-only revision log::

    intent     -- about to replace the old ledger (carries the new digest)
    <old ledger atomically replaced by the unfiltered raw output>
    <revision marker atomically replaced>
    committed  -- marker advanced

The marker is always written last. After a crash, :meth:`PersistenceManager.recover`
replays the trailing ``intent``: if the old ledger already carries the intended
digest the commit is finished, otherwise the intent is marked ``aborted`` and
the previous baseline stays in force.
"""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from vms.errors import PersistenceError
from vms.ledger.violation_ledger import atomic_write_bytes, atomic_write_text, rewrite_raw_output, touch
from vms.models.config import PathsConfig
from vms.models.violations import Violation
from vms.observability.logging import get_logger

_logger = get_logger("ledger.persistence")


class LogEntryKind(StrEnum):
    """Kinds of revision log records."""

    INTENT = "intent"
    COMMITTED = "committed"
    ABORTED = "aborted"


class RecoveryAction(StrEnum):
    """Outcome of replaying the revision log."""

    NONE = "none"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class StatePaths:
    """Files making up the persisted correlation state."""

    old_ledger: Path
    raw_output: Path
    revision_marker: Path
    revision_log: Path

    @classmethod
    def from_config(cls, paths: PathsConfig) -> StatePaths:
        return cls(
            old_ledger=paths.old_ledger,
            raw_output=paths.raw_output,
            revision_marker=paths.revision_marker,
            revision_log=paths.revision_log,
        )


def file_digest(path: Path) -> str:
    """SHA-256 of *path*, or of the empty string when the file is absent."""
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        data = b""
    except OSError as exc:
        raise PersistenceError(path, exc) from exc
    return hashlib.sha256(data).hexdigest()


def _now() -> str:
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class RevisionHistory:
    """Revision marker plus the append-only revision log."""

    def __init__(self, marker_path: Path, log_path: Path) -> None:
        self.marker_path = marker_path
        self.log_path = log_path

    def read_marker(self) -> str | None:
        """Return the last clean revision, or None when there is none yet."""
        try:
            text = self.marker_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(self.marker_path, exc) from exc
        for line in text.splitlines():
            if line.strip():
                return line.strip()
        return None

    def write_marker(self, revision: str) -> None:
        atomic_write_text(self.marker_path, revision + "\n")

    def append(self, kind: LogEntryKind, **fields: Any) -> dict[str, Any]:
        entry: dict[str, Any] = {"kind": kind.value, "ts": _now(), **fields}
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, sort_keys=True) + "\n")
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as exc:
            raise PersistenceError(self.log_path, exc) from exc
        return entry

    def entries(self) -> list[dict[str, Any]]:
        """All readable log entries, oldest first. A torn trailing line is ignored."""
        try:
            text = self.log_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise PersistenceError(self.log_path, exc) from exc
        entries: list[dict[str, Any]] = []
        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                _logger.warning("revision_log_line_skipped", path=str(self.log_path))
                continue
            if isinstance(entry, dict) and "kind" in entry:
                entries.append(entry)
        return entries

    def last(self) -> dict[str, Any] | None:
        entries = self.entries()
        return entries[-1] if entries else None


class PersistenceManager:
    """Commits the outcome of a run to disk and keeps the state consistent."""

    def __init__(self, paths: StatePaths) -> None:
        self.paths = paths
        self.history = RevisionHistory(paths.revision_marker, paths.revision_log)

    def ensure_files(self) -> None:
        """Create empty old-ledger and raw-output files on first use."""
        touch(self.paths.old_ledger)
        touch(self.paths.raw_output)

    def recover(self) -> RecoveryAction:
        """Finish or abandon an interrupted rotation found in the log."""
        last = self.history.last()
        if last is None or last.get("kind") != LogEntryKind.INTENT:
            return RecoveryAction.NONE

        revision = str(last.get("revision", ""))
        if file_digest(self.paths.old_ledger) == last.get("digest"):
            self.history.write_marker(revision)
            self.history.append(LogEntryKind.COMMITTED, revision=revision, recovered=True)
            _logger.warning("interrupted_rotation_completed", revision=revision)
            return RecoveryAction.COMPLETED

        self.history.append(LogEntryKind.ABORTED, revision=revision)
        _logger.warning("interrupted_rotation_aborted", revision=revision)
        return RecoveryAction.ABORTED

    def _read_raw_output(self) -> bytes:
        try:
            return self.paths.raw_output.read_bytes()
        except FileNotFoundError:
            return b""
        except OSError as exc:
            raise PersistenceError(self.paths.raw_output, exc) from exc

    def rotate_ledgers(self, revision: str | None, clean: bool, content: bytes | None = None) -> bool:
        """Make this run's raw output the next baseline, if the tree is clean.

        *content* is the unfiltered raw output; it is read from disk when
        omitted. Returns True when the old ledger and the marker were advanced.
        """
        if not clean or not revision:
            _logger.info("rotation_skipped", clean=clean, revision=revision)
            return False

        if content is None:
            content = self._read_raw_output()

        digest = hashlib.sha256(content).hexdigest()
        self.history.append(
            LogEntryKind.INTENT,
            revision=revision,
            digest=digest,
            lines=content.count(b"\n"),
        )
        atomic_write_bytes(self.paths.old_ledger, content)
        self.history.write_marker(revision)
        self.history.append(LogEntryKind.COMMITTED, revision=revision)
        _logger.info("ledgers_rotated", revision=revision)
        return True

    def commit_run(
        self,
        revision: str | None,
        clean: bool,
        retained: frozenset[Violation],
    ) -> bool:
        """Filter the raw output in place, then rotate its unfiltered content into the baseline.

        The baseline only moves once the filtered output is on disk: a failed
        rewrite leaves the old ledger and the marker where they were, so the
        next run still reports this run's new violations.
        """
        content = self._read_raw_output()
        rewrite_raw_output(self.paths.raw_output, retained)
        return self.rotate_ledgers(revision, clean, content=content)
