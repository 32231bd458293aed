"""Violation records and correlation results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, order=True)
class Violation:
    """A single runtime-verification violation.

    Identity is the full (specification, class_name, line_number) triple, so
    a set of violations never holds two entries with identical triples.
    ``class_name`` is a (possibly partial) source path such as
    ``org/apache/io/FileUtils.java``.
    """

    specification: str
    class_name: str
    line_number: int


@dataclass
class CorrelationReport:
    """Summary of one correlation run, returned by the pipeline."""

    total_violations: int = 0
    new_violations: int = 0
    renamed_files: int = 0
    changed_files: int = 0
    first_run: bool = False
    baseline_revision: str | None = None
    current_revision: str | None = None
    tree_clean: bool = False
    rotated: bool = False
    recovery: str = "none"
    warnings: list[str] = field(default_factory=list)

    @property
    def suppressed_violations(self) -> int:
        return self.total_violations - self.new_violations
