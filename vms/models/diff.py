"""Diff model consumed by the shift and rename indices.

Produced by a diff provider (see ``vms.diff.git_provider``); the core only
reads it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Edit:
    """A contiguous replaced region of a file.

    ``begin_line_old`` is the 1-based anchor in the old file. A delta of 0 is
    an in-place modification.
    """

    begin_line_old: int
    length_old: int
    length_new: int

    @property
    def delta(self) -> int:
        return self.length_new - self.length_old


@dataclass(frozen=True)
class FileDiff:
    """Edits for one file. A ``None`` path means the side does not exist."""

    old_path: str | None
    new_path: str | None
    edits: tuple[Edit, ...] = field(default_factory=tuple)

    @property
    def is_creation(self) -> bool:
        return self.old_path is None

    @property
    def is_deletion(self) -> bool:
        return self.new_path is None

    @property
    def is_rename(self) -> bool:
        """True only when both sides exist and their paths differ."""
        return self.old_path is not None and self.new_path is not None and self.old_path != self.new_path


@dataclass(frozen=True)
class DiffModel:
    """Ordered per-file diffs between a baseline and the current tree."""

    files: tuple[FileDiff, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[FileDiff]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @classmethod
    def empty(cls) -> DiffModel:
        return cls()
