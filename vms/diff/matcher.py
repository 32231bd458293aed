"""Class-identity to file-path matching.

Violation class identities are often only partially qualified relative to
the repository paths reported by the diff provider (``Foo.java`` versus
``src/main/java/org/x/Foo.java``), so identities are compared with an
explicit policy rather than plain equality.

Policies:
    SUBSTRING    -- identity occurs anywhere in the path. Generous: ``Foo.java``
                    also matches ``src/BarFoo.java``.
    PATH_SUFFIX  -- path equals identity, or ends with ``/`` + identity.

An empty identity never matches.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class MatchPolicy(StrEnum):
    """How a class identity is compared against a file path."""

    SUBSTRING = "substring"
    PATH_SUFFIX = "path-suffix"


class IdentityMatcher:
    """Decides whether a class identity denotes a given file path."""

    def __init__(self, policy: MatchPolicy | str = MatchPolicy.SUBSTRING) -> None:
        self.policy = MatchPolicy(policy)

    def matches(self, identity: str, path: str) -> bool:
        if not identity or not path:
            return False
        if self.policy is MatchPolicy.SUBSTRING:
            return identity in path
        identity = identity.lstrip("/")
        return path == identity or path.endswith("/" + identity)

    def first_match(self, identity: str, paths: Iterable[str]) -> str | None:
        """Return the first path in *paths* that *identity* denotes."""
        for path in paths:
            if self.matches(identity, path):
                return path
        return None

    def __repr__(self) -> str:
        return f"IdentityMatcher(policy={self.policy.value!r})"
