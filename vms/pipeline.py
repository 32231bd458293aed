"""The correlation pipeline.

Phases run strictly in order, each reading and writing the explicit
:class:`PipelineContext` rather than shared module state::

    prepare state -> instrumented run -> diff extraction -> indices
                  -> correlation -> persistence

Any VmsError aborts the run. Persisted state is only touched in the last
phase, and the revision marker is advanced after the ledgers are written.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vms.correlation.engine import CorrelationEngine
from vms.diff.git_provider import DiffProvider, GitRepository
from vms.diff.matcher import IdentityMatcher
from vms.diff.rename_index import RenameIndex
from vms.diff.shift_index import LineShiftIndex
from vms.ledger.persistence import PersistenceManager, StatePaths
from vms.ledger.violation_ledger import load_ledger, save_ledger
from vms.models.config import VmsConfig
from vms.models.diff import DiffModel
from vms.models.violations import CorrelationReport, Violation
from vms.observability.logging import get_logger
from vms.runner import InstrumentedRunner

_logger = get_logger("pipeline")


@dataclass
class PipelineContext:
    """Everything one invocation computes, passed from phase to phase."""

    config: VmsConfig
    provider: DiffProvider
    persistence: PersistenceManager
    matcher: IdentityMatcher
    baseline_revision: str | None = None
    current_revision: str | None = None
    tree_clean: bool = False
    diff: DiffModel = field(default_factory=DiffModel)
    shift_index: LineShiftIndex = field(default_factory=LineShiftIndex)
    rename_index: RenameIndex = field(default_factory=RenameIndex)
    old_ledger: frozenset[Violation] = frozenset()
    new_ledger: frozenset[Violation] = frozenset()
    retained: frozenset[Violation] = frozenset()
    report: CorrelationReport = field(default_factory=CorrelationReport)


def _prepare_state(ctx: PipelineContext) -> None:
    ctx.persistence.ensure_files()
    ctx.report.recovery = ctx.persistence.recover().value
    ctx.current_revision = ctx.provider.head()
    ctx.tree_clean = ctx.provider.is_clean()
    _logger.debug("state_prepared", revision=ctx.current_revision, clean=ctx.tree_clean)


def _extract_diff(ctx: PipelineContext) -> None:
    explicit = ctx.config.diff.last_revision
    baseline = explicit or ctx.persistence.history.read_marker()
    if not baseline:
        warning = "no baseline revision recorded; treating the tree as unchanged"
        _logger.warning("no_baseline_revision")
        ctx.report.warnings.append(warning)
        ctx.diff = DiffModel.empty()
        return

    ctx.baseline_revision = ctx.provider.resolve(baseline)
    ctx.diff = ctx.provider.diff(ctx.baseline_revision, use_working_tree=ctx.config.diff.use_working_tree)


def _build_indices(ctx: PipelineContext) -> None:
    ctx.shift_index = LineShiftIndex.build(ctx.diff)
    ctx.rename_index = RenameIndex.build(ctx.diff, ctx.matcher)
    ctx.report.renamed_files = len(ctx.rename_index)
    ctx.report.changed_files = len(ctx.shift_index)
    _logger.info("files_renamed", count=ctx.report.renamed_files)
    _logger.info("changed_files_found", count=ctx.report.changed_files)


def _correlate(ctx: PipelineContext) -> None:
    paths = ctx.persistence.paths
    ctx.old_ledger = load_ledger(paths.old_ledger)
    ctx.new_ledger = load_ledger(paths.raw_output)
    _logger.info("total_violations_found", count=len(ctx.new_ledger))

    if ctx.config.correlation.first_run:
        ctx.retained = ctx.new_ledger
    else:
        engine = CorrelationEngine(ctx.shift_index, ctx.rename_index, ctx.matcher)
        ctx.retained = engine.correlate(ctx.old_ledger, ctx.new_ledger)
    _logger.info("new_violations_found", count=len(ctx.retained))


def _persist(ctx: PipelineContext) -> None:
    if ctx.config.paths.new_ledger is not None:
        save_ledger(ctx.config.paths.new_ledger, ctx.retained)
    ctx.report.rotated = ctx.persistence.commit_run(ctx.current_revision, ctx.tree_clean, ctx.retained)


def run_pipeline(
    config: VmsConfig,
    *,
    provider: DiffProvider | None = None,
    runner: InstrumentedRunner | None = None,
) -> CorrelationReport:
    """Run one correlation of the current tree against the last clean baseline."""
    matcher = IdentityMatcher(config.correlation.match_policy)
    ctx = PipelineContext(
        config=config,
        provider=provider or GitRepository(config.paths.repo_dir),
        persistence=PersistenceManager(StatePaths.from_config(config.paths)),
        matcher=matcher,
        rename_index=RenameIndex(matcher),
    )
    ctx.report.first_run = config.correlation.first_run

    _prepare_state(ctx)
    if runner is not None:
        runner.run(ctx.persistence.paths.raw_output)
    _extract_diff(ctx)
    _build_indices(ctx)
    _correlate(ctx)
    _persist(ctx)

    ctx.report.total_violations = len(ctx.new_ledger)
    ctx.report.new_violations = len(ctx.retained)
    ctx.report.baseline_revision = ctx.baseline_revision
    ctx.report.current_revision = ctx.current_revision
    ctx.report.tree_clean = ctx.tree_clean
    return ctx.report
