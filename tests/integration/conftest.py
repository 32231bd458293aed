"""Shared fixtures for vms integration tests.

Builds throwaway git repositories so the git diff provider and the full
pipeline can be exercised without mocks. Skipped when git is unavailable.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

FOO_PATH = "src/main/java/org/x/Foo.java"


def git(repo: Path, *args: str) -> str:
    """Run git in *repo* with a fixed identity and no signing."""
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=vms tests",
            "-c",
            "user.email=vms@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def java_source(lines: int, marker: str = "line") -> str:
    """A fake source file with numbered lines."""
    return "".join(f"// {marker} {n}\n" for n in range(1, lines + 1))


def insert_lines(path: Path, after: int, count: int) -> None:
    content = path.read_text().splitlines(keepends=True)
    content[after:after] = [f"// inserted {n}\n" for n in range(count)]
    path.write_text("".join(content))


def rv_line(spec: str, line: int, cls: str = "Foo", package: str = "org.x") -> str:
    return (
        f"1 Specification {spec} has been violated on line {package}.{cls}.run({cls}.java:{line}). "
        "Documentation for this property can be found at http://example.com\n"
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository with one committed 40-line Java file."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    source = repo / FOO_PATH
    source.parent.mkdir(parents=True)
    source.write_text(java_source(40))
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", "initial")
    return repo
