"""Per-file line shift table built from a structural diff.

For every changed file the index records, keyed by the old-file anchor line,
the net number of lines the edit inserted (positive) or deleted (negative).
An in-place modification records 0. Keys are old paths: when a file was
renamed its shifts are stored under the name it had in the baseline.

Example (one line inserted after old line 2)::

    old          new
    line 1       line 1
    line 2       line 2
    line 3       new line
    line 4       line 3
                 line 4

    table = {"File.java": {3: 1}}
    offset_before("File.java", 2) == 0    # only new line 2 maps to old line 2
    offset_before("File.java", 3) == 1    # new lines 3..4 map to old line 3
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from vms.models.diff import DiffModel, Edit
from vms.observability.logging import get_logger

_logger = get_logger("diff.shift_index")


class LineShiftIndex:
    """Mapping old file path -> (anchor line -> delta)."""

    def __init__(self) -> None:
        self._table: dict[str, dict[int, int]] = {}

    @classmethod
    def build(cls, diff: DiffModel) -> LineShiftIndex:
        """Index every edit of every file that exists on both sides of *diff*."""
        index = cls()
        for file_diff in diff:
            if file_diff.old_path is None or file_diff.new_path is None:
                continue
            index.add_edits(file_diff.old_path, file_diff.edits)
        _logger.debug("shift_index_built", changed_files=len(index))
        return index

    def add_edits(self, file_path: str, edits: Iterable[Edit]) -> None:
        """Record *edits* for *file_path*; a repeated anchor overwrites the earlier delta."""
        for edit in edits:
            anchors = self._table.setdefault(file_path, {})
            if edit.begin_line_old in anchors:
                _logger.debug("duplicate_anchor_overwritten", file=file_path, anchor=edit.begin_line_old)
            anchors[edit.begin_line_old] = edit.delta

    def offset_before(self, file_path: str, old_line: int) -> int:
        """Net lines inserted minus deleted at or before *old_line*; 0 for untracked files."""
        anchors = self._table.get(file_path)
        if not anchors:
            return 0
        return sum(delta for anchor, delta in anchors.items() if anchor <= old_line)

    def anchors(self, file_path: str) -> dict[int, int]:
        return dict(self._table.get(file_path, {}))

    def tracked_paths(self) -> Iterator[str]:
        return iter(self._table)

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._table

    def __len__(self) -> int:
        return len(self._table)
