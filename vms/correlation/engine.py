"""Correlation of new violations against the previous run's ledger.

A violation of the current run is a re-detection when the old ledger holds a
violation of the same specification, in the same (or renamed) class, whose
line could plausibly have moved to the new line given the diff.

The line predicate is deliberately generous. For a class whose file changed,
with ``offset`` the net lines inserted minus deleted at or before the old
line:

    new >= old:  match iff offset >= 0 and offset >= new - old
                 (window [old, old + offset])
    new <  old:  match iff offset <= 0 and offset <= new - old
                 (window [old + offset, old])

For a class whose file did not change, only the identical line matches. When
in doubt the engine suppresses: it favours not re-reporting a known defect
over surfacing every shifted duplicate.
"""

from __future__ import annotations

from collections.abc import Iterable

from vms.diff.matcher import IdentityMatcher
from vms.diff.rename_index import RenameIndex
from vms.diff.shift_index import LineShiftIndex
from vms.models.violations import Violation
from vms.observability.logging import get_logger

_logger = get_logger("correlation.engine")


class CorrelationEngine:
    """Filters a new ledger down to the violations with no known counterpart."""

    def __init__(
        self,
        shift_index: LineShiftIndex | None = None,
        rename_index: RenameIndex | None = None,
        matcher: IdentityMatcher | None = None,
    ) -> None:
        self.matcher = matcher or IdentityMatcher()
        self.shift_index = shift_index or LineShiftIndex()
        self.rename_index = rename_index or RenameIndex(self.matcher)

    def same_line(self, class_identity: str, old_line: int, new_line: int) -> bool:
        """Whether *old_line* in the old version of the class can map to *new_line*."""
        tracked = self.matcher.first_match(class_identity, self.shift_index.tracked_paths())
        if tracked is None:
            return old_line == new_line

        offset = self.shift_index.offset_before(tracked, old_line)
        if new_line >= old_line:
            return offset >= 0 and offset >= new_line - old_line
        return offset <= 0 and offset <= new_line - old_line

    def is_same_violation(self, old: Violation, new: Violation) -> bool:
        if old.specification != new.specification:
            return False
        if old.class_name != new.class_name and not self.rename_index.is_renamed(old.class_name, new.class_name):
            return False
        # the line table is keyed by pre-change paths, so look up the old class
        return self.same_line(old.class_name, old.line_number, new.line_number)

    def find_match(self, new: Violation, old_ledger: Iterable[Violation]) -> Violation | None:
        """Return the first old violation equivalent to *new*, if any."""
        for old in old_ledger:
            if self.is_same_violation(old, new):
                return old
        return None

    def correlate(
        self,
        old_ledger: Iterable[Violation],
        new_ledger: Iterable[Violation],
    ) -> frozenset[Violation]:
        """Return the violations of *new_ledger* that are genuinely new."""
        old = tuple(old_ledger)
        new = frozenset(new_ledger)
        if not old:
            return new

        # candidates grouped by specification; other fields need the diff
        by_spec: dict[str, list[Violation]] = {}
        for violation in old:
            by_spec.setdefault(violation.specification, []).append(violation)

        retained: set[Violation] = set()
        for violation in new:
            match = self.find_match(violation, by_spec.get(violation.specification, ()))
            if match is None:
                retained.add(violation)
            else:
                _logger.debug(
                    "violation_suppressed",
                    specification=violation.specification,
                    class_name=violation.class_name,
                    line=violation.line_number,
                    old_class_name=match.class_name,
                    old_line=match.line_number,
                )

        _logger.info("correlation_done", total=len(new), new=len(retained))
        return frozenset(retained)
