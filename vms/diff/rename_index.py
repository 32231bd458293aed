"""Old/new file identity lookup for a single diff."""

from __future__ import annotations

from vms.diff.matcher import IdentityMatcher
from vms.models.diff import DiffModel


class RenameIndex:
    """Rename pairs ``new_path -> old_path`` detected by the diff provider.

    Creations and deletions carry no prior identity and are never renames.
    """

    def __init__(self, matcher: IdentityMatcher | None = None) -> None:
        self._renames: dict[str, str] = {}
        self._matcher = matcher or IdentityMatcher()

    @classmethod
    def build(cls, diff: DiffModel, matcher: IdentityMatcher | None = None) -> RenameIndex:
        index = cls(matcher)
        for file_diff in diff:
            if file_diff.is_rename:
                assert file_diff.old_path is not None and file_diff.new_path is not None
                index.add(file_diff.new_path, file_diff.old_path)
        return index

    def add(self, new_path: str, old_path: str) -> None:
        self._renames[new_path] = old_path

    def old_path_for(self, new_path: str) -> str | None:
        return self._renames.get(new_path)

    def is_renamed(self, old_identity: str, new_identity: str) -> bool:
        """True if a rename pair's new path matches *new_identity* and its old path matches *old_identity*."""
        return any(
            self._matcher.matches(new_identity, new_path) and self._matcher.matches(old_identity, old_path)
            for new_path, old_path in self._renames.items()
        )

    def pairs(self) -> dict[str, str]:
        return dict(self._renames)

    def __len__(self) -> int:
        return len(self._renames)
