"""Tests for the correlation pipeline with an in-memory diff provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from vms.errors import DiffExtractionError, PersistenceError, RunnerError
from vms.ledger.violation_ledger import load_ledger
from vms.models.config import CorrelationConfig, DiffConfig, PathsConfig, VmsConfig
from vms.models.diff import DiffModel, Edit, FileDiff
from vms.models.violations import Violation
from vms.pipeline import run_pipeline


def _rv(spec: str, cls: str, line: int) -> str:
    return f"1 Specification {spec} has been violated on line org.x.{cls}.run({cls}.java:{line}). Documentation ...\n"


@dataclass
class FakeProvider:
    """DiffProvider double: known revisions map to canned diffs."""

    head_revision: str = "rev2"
    clean: bool = True
    diffs: dict[str, DiffModel] = field(default_factory=dict)
    calls: list[tuple[str, bool]] = field(default_factory=list)

    def resolve(self, revision: str) -> str:
        if revision not in self.diffs and revision != self.head_revision:
            raise DiffExtractionError(f"Cannot resolve revision '{revision}'")
        return revision

    def head(self) -> str:
        return self.head_revision

    def is_clean(self) -> bool:
        return self.clean

    def diff(self, base: str, *, use_working_tree: bool = True) -> DiffModel:
        self.calls.append((base, use_working_tree))
        return self.diffs[base]


@dataclass
class FakeRunner:
    contents: str
    ran: bool = False

    def run(self, raw_output: Path) -> None:
        raw_output.write_text(self.contents, encoding="utf-8")
        self.ran = True


_SHIFT_DIFF = DiffModel(
    files=(FileDiff("src/main/java/org/x/Foo.java", "src/main/java/org/x/Foo.java", (Edit(5, 0, 2),)),)
)


@pytest.fixture
def config(tmp_path: Path) -> VmsConfig:
    return VmsConfig(
        paths=PathsConfig(
            repo_dir=tmp_path,
            artifacts_dir=tmp_path / ".vms",
            raw_output=tmp_path / "violation-counts",
        ),
    )


def _seed(config: VmsConfig, *, old: str, raw: str, marker: str | None = "rev1") -> None:
    config.paths.artifacts_dir.mkdir(parents=True, exist_ok=True)
    config.paths.old_ledger.write_text(old, encoding="utf-8")
    config.paths.raw_output.write_text(raw, encoding="utf-8")
    if marker is not None:
        config.paths.revision_marker.write_text(marker + "\n", encoding="utf-8")


class TestRunPipeline:
    def test_shifted_violation_is_suppressed_and_baseline_advances(self, config: VmsConfig) -> None:
        raw = _rv("SpecA", "Foo", 12) + _rv("SpecA", "Foo", 20)
        _seed(config, old=_rv("SpecA", "Foo", 10), raw=raw)
        provider = FakeProvider(diffs={"rev1": _SHIFT_DIFF})

        report = run_pipeline(config, provider=provider)

        assert (report.total_violations, report.new_violations, report.suppressed_violations) == (2, 1, 1)
        assert report.changed_files == 1
        assert report.renamed_files == 0
        assert report.rotated is True
        assert report.baseline_revision == "rev1"
        assert report.current_revision == "rev2"
        assert provider.calls == [("rev1", True)]
        assert config.paths.raw_output.read_text() == _rv("SpecA", "Foo", 20)
        assert config.paths.old_ledger.read_text() == raw
        assert config.paths.revision_marker.read_text() == "rev2\n"

    def test_failed_raw_rewrite_keeps_new_violations_for_the_next_run(
        self, config: VmsConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        raw = _rv("SpecA", "Foo", 12) + _rv("SpecA", "Foo", 20)
        _seed(config, old=_rv("SpecA", "Foo", 10), raw=raw)
        provider = FakeProvider(diffs={"rev1": _SHIFT_DIFF})

        def _fail(path: Path, retained: object) -> tuple[int, int]:
            raise PersistenceError(path, OSError("disk full"))

        with monkeypatch.context() as patch:
            patch.setattr("vms.ledger.persistence.rewrite_raw_output", _fail)
            with pytest.raises(PersistenceError):
                run_pipeline(config, provider=provider)

        assert config.paths.revision_marker.read_text() == "rev1\n"
        assert config.paths.old_ledger.read_text() == _rv("SpecA", "Foo", 10)

        report = run_pipeline(config, provider=provider)

        assert report.new_violations == 1
        assert config.paths.raw_output.read_text() == _rv("SpecA", "Foo", 20)
        assert config.paths.revision_marker.read_text() == "rev2\n"

    def test_dirty_tree_filters_but_keeps_baseline(self, config: VmsConfig) -> None:
        old = _rv("SpecA", "Foo", 10)
        _seed(config, old=old, raw=_rv("SpecA", "Foo", 12))
        provider = FakeProvider(clean=False, diffs={"rev1": _SHIFT_DIFF})

        report = run_pipeline(config, provider=provider)

        assert report.new_violations == 0
        assert report.rotated is False
        assert config.paths.old_ledger.read_text() == old
        assert config.paths.revision_marker.read_text() == "rev1\n"
        assert config.paths.raw_output.read_text() == ""

    def test_explicit_revision_wins_over_marker(self, config: VmsConfig) -> None:
        _seed(config, old="", raw="")
        config.diff = DiffConfig(last_revision="rev0", use_working_tree=False)
        provider = FakeProvider(diffs={"rev0": DiffModel.empty(), "rev1": _SHIFT_DIFF})

        run_pipeline(config, provider=provider)

        assert provider.calls == [("rev0", False)]

    def test_first_invocation_bootstraps_state(self, config: VmsConfig) -> None:
        config.paths.raw_output.write_text(_rv("SpecA", "Foo", 12), encoding="utf-8")
        provider = FakeProvider()

        report = run_pipeline(config, provider=provider)

        assert report.new_violations == 1
        assert report.baseline_revision is None
        assert report.warnings
        assert provider.calls == []
        assert config.paths.revision_marker.read_text() == "rev2\n"
        assert load_ledger(config.paths.old_ledger) == frozenset({Violation("SpecA", "org/x/Foo.java", 12)})

    def test_first_run_flag_reports_everything(self, config: VmsConfig) -> None:
        raw = _rv("SpecA", "Foo", 10)
        _seed(config, old=raw, raw=raw)
        config.correlation = CorrelationConfig(first_run=True)

        report = run_pipeline(config, provider=FakeProvider(diffs={"rev1": DiffModel.empty()}))

        assert report.first_run is True
        assert report.new_violations == 1
        assert config.paths.raw_output.read_text() == raw

    def test_unresolvable_baseline_is_fatal_and_touches_nothing(self, config: VmsConfig) -> None:
        raw = _rv("SpecA", "Foo", 12)
        _seed(config, old=_rv("SpecA", "Foo", 10), raw=raw, marker="missing")

        with pytest.raises(DiffExtractionError):
            run_pipeline(config, provider=FakeProvider())

        assert config.paths.raw_output.read_text() == raw
        assert config.paths.revision_marker.read_text() == "missing\n"

    def test_runner_output_is_correlated_and_new_ledger_saved(self, config: VmsConfig, tmp_path: Path) -> None:
        _seed(config, old=_rv("SpecA", "Foo", 10), raw="stale\n")
        config.paths.new_ledger = tmp_path / "new-violations.txt"
        runner = FakeRunner(_rv("SpecA", "Foo", 10) + _rv("SpecB", "Foo", 10))

        report = run_pipeline(config, provider=FakeProvider(diffs={"rev1": DiffModel.empty()}), runner=runner)

        assert runner.ran
        assert report.new_violations == 1
        assert config.paths.new_ledger.read_text() == "SpecB\torg/x/Foo.java\t10\n"

    def test_runner_failure_aborts_before_persistence(self, config: VmsConfig) -> None:
        _seed(config, old="", raw=_rv("SpecA", "Foo", 10))

        class _Failing:
            def run(self, raw_output: Path) -> None:
                raise RunnerError("boom")

        with pytest.raises(RunnerError):
            run_pipeline(config, provider=FakeProvider(diffs={"rev1": DiffModel.empty()}), runner=_Failing())

        assert config.paths.revision_marker.read_text() == "rev1\n"
        assert config.paths.old_ledger.read_text() == ""
