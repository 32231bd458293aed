"""Git-backed diff provider.

Thin ``subprocess`` wrappers around the ``git`` executable. Produces the
:class:`~vms.models.diff.DiffModel` the correlation core consumes, plus the
revision and working-tree facts the persistence layer needs.

Diffs are requested with zero context lines and rename detection enabled::

    git diff --no-color --no-ext-diff -U0 -M <base> [HEAD]

Hunk headers ``@@ -a,b +c,d @@`` become :class:`Edit` objects. For a pure
insertion (``b == 0``) git reports the line *after which* lines were added,
so the anchor is ``a + 1``; otherwise the anchor is ``a``.
"""

from __future__ import annotations

import codecs
import re
import subprocess
from pathlib import Path
from typing import Protocol

from vms.errors import DiffExtractionError
from vms.models.diff import DiffModel, Edit, FileDiff
from vms.observability.logging import get_logger

_logger = get_logger("diff.git")

_DEV_NULL = "/dev/null"
_RE_HUNK = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_RE_DIFF_GIT = re.compile(r"^diff --git a/(.+) b/(.+)$")


class DiffProvider(Protocol):
    """What the pipeline needs from a version-control backend."""

    def resolve(self, revision: str) -> str: ...

    def head(self) -> str: ...

    def is_clean(self) -> bool: ...

    def diff(self, base: str, *, use_working_tree: bool = True) -> DiffModel: ...


class GitRepository:
    """A git working tree rooted at *path*."""

    def __init__(self, path: Path | str = ".") -> None:
        self.path = Path(path)

    def _run_git(self, args: list[str]) -> str:
        """Run a git command and return stdout.

        Raises:
            DiffExtractionError: git is missing or exits non-zero.
        """
        try:
            result = subprocess.run(
                ["git", "-c", "core.quotepath=off", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise DiffExtractionError(f"Cannot run git in {self.path}: {exc}") from exc
        if result.returncode != 0:
            raise DiffExtractionError(
                f"git {' '.join(args)} failed (rc={result.returncode}): {result.stderr.strip()}"
            )
        return result.stdout

    def resolve(self, revision: str) -> str:
        """Return the full commit hash for *revision*."""
        if not revision:
            raise DiffExtractionError("Empty revision identifier")
        try:
            return self._run_git(["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"]).strip()
        except DiffExtractionError as exc:
            raise DiffExtractionError(f"Cannot resolve revision '{revision}'") from exc

    def head(self) -> str:
        return self.resolve("HEAD")

    def is_clean(self) -> bool:
        """True when no tracked file has staged or unstaged changes.

        Untracked files are ignored: the ledger files themselves usually live
        inside the working tree.
        """
        return not self._run_git(["status", "--porcelain", "--untracked-files=no"]).strip()

    def diff(self, base: str, *, use_working_tree: bool = True) -> DiffModel:
        """Diff *base* against the working tree, or against HEAD."""
        args = [
            "diff",
            "--no-color",
            "--no-ext-diff",
            "--src-prefix=a/",
            "--dst-prefix=b/",
            "-U0",
            "-M",
            base,
        ]
        if not use_working_tree:
            args.append("HEAD")
        model = parse_unified_diff(self._run_git(args))
        _logger.debug("git_diff_parsed", base=base, files=len(model), working_tree=use_working_tree)
        return model


# ---------------------------------------------------------------------------
# Unified diff parsing
# ---------------------------------------------------------------------------


def _unquote(path: str) -> str:
    path = path.rstrip("\t")
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return codecs.escape_decode(path[1:-1].encode("utf-8"))[0].decode("utf-8")
    return path


def _strip_prefix(path: str, prefix: str) -> str | None:
    path = _unquote(path)
    if path == _DEV_NULL:
        return None
    return path[len(prefix) :] if path.startswith(prefix) else path


def _parse_hunk(line: str) -> Edit | None:
    match = _RE_HUNK.match(line)
    if match is None:
        return None
    old_start = int(match.group(1))
    old_len = int(match.group(2)) if match.group(2) is not None else 1
    new_len = int(match.group(4)) if match.group(4) is not None else 1
    anchor = old_start if old_len > 0 else old_start + 1
    return Edit(begin_line_old=anchor, length_old=old_len, length_new=new_len)


class _FileBlock:
    def __init__(self, header: str) -> None:
        match = _RE_DIFF_GIT.match(header)
        self.old_path: str | None = _unquote(match.group(1)) if match else None
        self.new_path: str | None = _unquote(match.group(2)) if match else None
        self.created = False
        self.deleted = False
        self.edits: list[Edit] = []

    def feed(self, line: str) -> None:
        if line.startswith("@@"):
            edit = _parse_hunk(line)
            if edit is not None:
                self.edits.append(edit)
        elif line.startswith("new file mode"):
            self.created = True
        elif line.startswith("deleted file mode"):
            self.deleted = True
        elif line.startswith("rename from "):
            self.old_path = _unquote(line[len("rename from ") :])
        elif line.startswith("rename to "):
            self.new_path = _unquote(line[len("rename to ") :])
        elif line.startswith("--- "):
            self.old_path = _strip_prefix(line[4:], "a/")
        elif line.startswith("+++ "):
            self.new_path = _strip_prefix(line[4:], "b/")

    def build(self) -> FileDiff:
        return FileDiff(
            old_path=None if self.created else self.old_path,
            new_path=None if self.deleted else self.new_path,
            edits=tuple(self.edits),
        )


def parse_unified_diff(text: str) -> DiffModel:
    """Parse ``git diff -U0`` output into a DiffModel."""
    files: list[FileDiff] = []
    block: _FileBlock | None = None
    for line in text.splitlines():
        if line.startswith("diff --git "):
            if block is not None:
                files.append(block.build())
            block = _FileBlock(line)
        elif block is not None:
            # hunk body
            if block.edits and line[:1] in ("+", "-", " ", "\\"):
                continue
            block.feed(line)
    if block is not None:
        files.append(block.build())
    return DiffModel(files=tuple(files))
