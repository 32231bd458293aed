"""Violation ledger files: parsing, loading, saving and raw-output rewriting.

Two line formats are understood:

RV-Monitor ``violation-counts`` lines, as produced by the instrumented run::

    1 Specification Collections_SynchronizedCollection has been violated on line
    org.apache.commons.io.FileUtils.listFiles(FileUtils.java:123). Documentation ...

(a single line in the file). The class identity is the source path derived
from the frame's package and file name: ``org/apache/commons/io/FileUtils.java``.

Canonical lines, written by :func:`format_violation`::

    Collections_SynchronizedCollection<TAB>org/apache/commons/io/FileUtils.java<TAB>123

All files are UTF-8 and written atomically (temp file + ``os.replace``).
"""

from __future__ import annotations

import os
import re
import tempfile
from collections.abc import Iterable
from pathlib import Path

from vms.errors import LedgerParseError, PersistenceError
from vms.models.violations import Violation
from vms.observability.logging import get_logger

_logger = get_logger("ledger.violations")

_FIELD_SEP = "\t"

_RE_RV_MONITOR = re.compile(
    r"^\s*(?:\d+\s+)?Specification\s+(?P<spec>\S+)\s+has been violated on line\s+"
    r"(?P<frame>[^\s(]*)\((?P<file>[^():]+):(?P<line>\d+)\)"
)


def _class_identity(frame: str, file_name: str) -> str:
    """Turn ``org.x.Foo$Inner.run`` + ``Foo.java`` into ``org/x/Foo.java``."""
    parts = frame.split(".")
    # drop method and (possibly nested) class name
    package = [p for p in parts[:-2] if p]
    return "/".join([*package, file_name])


def parse_violation(line: str) -> Violation | None:
    """Parse one ledger line.

    Returns None for blank lines. Raises LedgerParseError for anything else
    that is not a recognised violation.
    """
    stripped = line.strip()
    if not stripped:
        return None

    match = _RE_RV_MONITOR.match(stripped)
    if match is not None:
        return Violation(
            specification=match.group("spec"),
            class_name=_class_identity(match.group("frame"), match.group("file")),
            line_number=int(match.group("line")),
        )

    fields = line.rstrip("\r\n").split(_FIELD_SEP)
    if len(fields) != 3:
        raise LedgerParseError(line, "unrecognised format")
    spec, class_name, line_number = (f.strip() for f in fields)
    if not spec or not class_name:
        raise LedgerParseError(line, "empty specification or class")
    try:
        number = int(line_number)
    except ValueError as exc:
        raise LedgerParseError(line, "line number is not an integer") from exc
    return Violation(specification=spec, class_name=class_name, line_number=number)


def format_violation(violation: Violation) -> str:
    """Canonical single-line form; round-trips through parse_violation."""
    return _FIELD_SEP.join(
        (violation.specification, violation.class_name, str(violation.line_number))
    )


def load_ledger(path: Path) -> frozenset[Violation]:
    """Load the violations stored in *path*.

    A missing or unreadable file is an empty ledger. Malformed lines are
    skipped individually.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        _logger.info("ledger_missing", path=str(path))
        return frozenset()
    except OSError as exc:
        _logger.warning("ledger_unreadable", path=str(path), error=str(exc))
        return frozenset()

    violations: set[Violation] = set()
    skipped = 0
    for lineno, line in enumerate(text.splitlines(), start=1):
        try:
            violation = parse_violation(line)
        except LedgerParseError as exc:
            skipped += 1
            _logger.warning("ledger_line_skipped", path=str(path), lineno=lineno, reason=exc.reason)
            continue
        if violation is not None:
            violations.add(violation)

    _logger.debug("ledger_loaded", path=str(path), violations=len(violations), skipped=skipped)
    return frozenset(violations)


def atomic_write_text(path: Path, content: str) -> None:
    atomic_write_bytes(path, content.encode("utf-8"))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Replace *path* with *data* without ever exposing a partial file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(path, exc) from exc


def save_ledger(path: Path, violations: Iterable[Violation]) -> None:
    """Write *violations* to *path* in canonical form, replacing its contents."""
    lines = [format_violation(v) + "\n" for v in sorted(set(violations))]
    atomic_write_text(path, "".join(lines))
    _logger.debug("ledger_saved", path=str(path), violations=len(lines))


def rewrite_raw_output(path: Path, retained: Iterable[Violation]) -> tuple[int, int]:
    """Keep only the raw lines of *path* whose violation is in *retained*.

    Kept lines are preserved byte-for-byte, terminators included. Returns
    ``(kept, dropped)`` line counts.
    """
    keep = set(retained)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        _logger.info("raw_output_missing", path=str(path))
        return 0, 0
    except OSError as exc:
        raise PersistenceError(path, exc) from exc

    kept: list[bytes] = []
    dropped = 0
    for raw in data.splitlines(keepends=True):
        try:
            violation = parse_violation(raw.decode("utf-8", errors="replace"))
        except LedgerParseError as exc:
            _logger.warning("raw_line_dropped", path=str(path), reason=exc.reason)
            violation = None
        if violation is not None and violation in keep:
            kept.append(raw)
        else:
            dropped += 1

    atomic_write_bytes(path, b"".join(kept))
    _logger.debug("raw_output_rewritten", path=str(path), kept=len(kept), dropped=dropped)
    return len(kept), dropped


def touch(path: Path) -> None:
    """Create an empty ledger file at *path* if none exists."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
    except OSError as exc:
        raise PersistenceError(path, exc) from exc
