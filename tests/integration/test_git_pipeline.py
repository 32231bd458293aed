"""End-to-end tests against real git repositories."""

from __future__ import annotations

from pathlib import Path

import pytest

from vms.diff.git_provider import GitRepository
from vms.errors import DiffExtractionError
from vms.models.config import PathsConfig, VmsConfig
from vms.models.diff import Edit, FileDiff
from vms.pipeline import run_pipeline

from .conftest import FOO_PATH, git, insert_lines, rv_line

# ---------------------------------------------------------------------------
# GitRepository
# ---------------------------------------------------------------------------


class TestGitRepository:
    def test_working_tree_insertion(self, git_repo: Path) -> None:
        repo = GitRepository(git_repo)
        base = repo.head()
        insert_lines(git_repo / FOO_PATH, after=4, count=2)

        model = repo.diff(base, use_working_tree=True)

        assert model.files == (FileDiff(FOO_PATH, FOO_PATH, (Edit(5, 0, 2),)),)
        assert repo.is_clean() is False

    def test_committed_rename_against_head(self, git_repo: Path) -> None:
        repo = GitRepository(git_repo)
        base = repo.head()
        git(git_repo, "mv", FOO_PATH, "src/main/java/org/x/Bar.java")
        git(git_repo, "commit", "-q", "-m", "rename")

        model = repo.diff(base, use_working_tree=False)

        assert model.files == (FileDiff(FOO_PATH, "src/main/java/org/x/Bar.java", ()),)
        assert repo.is_clean() is True

    def test_unknown_revision_is_fatal(self, git_repo: Path) -> None:
        with pytest.raises(DiffExtractionError):
            GitRepository(git_repo).resolve("0123456789abcdef0123456789abcdef01234567")

    def test_not_a_repository_is_fatal(self, tmp_path: Path) -> None:
        with pytest.raises(DiffExtractionError):
            GitRepository(tmp_path).head()


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------


def _config(git_repo: Path, tmp_path: Path) -> VmsConfig:
    state = tmp_path / "state"
    return VmsConfig(
        paths=PathsConfig(
            repo_dir=git_repo,
            artifacts_dir=state / ".vms",
            raw_output=state / "violation-counts",
        )
    )


class TestPipelineAcrossCommits:
    def test_shifted_violation_is_reported_once(self, git_repo: Path, tmp_path: Path) -> None:
        config = _config(git_repo, tmp_path)
        raw = config.paths.raw_output
        raw.parent.mkdir(parents=True)

        # run 1: nothing known yet, everything is new and becomes the baseline
        raw.write_text(rv_line("SpecA", 10))
        first = run_pipeline(config)
        assert first.new_violations == 1
        assert config.paths.revision_marker.read_text().strip() == GitRepository(git_repo).head()

        # run 2: two lines inserted above the violation, plus a genuinely new one
        insert_lines(git_repo / FOO_PATH, after=4, count=2)
        git(git_repo, "commit", "-q", "-am", "insert")
        raw.write_text(rv_line("SpecA", 12) + rv_line("SpecA", 30))
        second = run_pipeline(config)

        assert second.changed_files == 1
        assert second.new_violations == 1
        assert raw.read_text() == rv_line("SpecA", 30)
        assert config.paths.revision_marker.read_text().strip() == GitRepository(git_repo).head()

    def test_rename_is_followed(self, git_repo: Path, tmp_path: Path) -> None:
        config = _config(git_repo, tmp_path)
        raw = config.paths.raw_output
        raw.parent.mkdir(parents=True)
        raw.write_text(rv_line("SpecA", 10))
        run_pipeline(config)

        git(git_repo, "mv", FOO_PATH, "src/main/java/org/x/Bar.java")
        git(git_repo, "commit", "-q", "-m", "rename")
        raw.write_text(rv_line("SpecA", 10, cls="Bar"))
        report = run_pipeline(config)

        assert report.renamed_files == 1
        assert report.new_violations == 0

    def test_dirty_tree_keeps_last_clean_baseline(self, git_repo: Path, tmp_path: Path) -> None:
        config = _config(git_repo, tmp_path)
        raw = config.paths.raw_output
        raw.parent.mkdir(parents=True)
        raw.write_text(rv_line("SpecA", 10))
        run_pipeline(config)
        baseline = config.paths.revision_marker.read_text()
        old_ledger = config.paths.old_ledger.read_text()

        insert_lines(git_repo / FOO_PATH, after=0, count=3)
        raw.write_text(rv_line("SpecA", 13) + rv_line("SpecB", 2))
        report = run_pipeline(config)

        assert report.tree_clean is False
        assert report.rotated is False
        assert report.new_violations == 1
        assert config.paths.revision_marker.read_text() == baseline
        assert config.paths.old_ledger.read_text() == old_ledger
