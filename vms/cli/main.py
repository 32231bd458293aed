"""vms command-line interface.

Commands:
    correlate  -- classify the current run's violations as new or known.
    recover    -- replay an interrupted state rotation.
    status     -- show the revision marker and the last revision log entry.

Options default to the VMS_* environment (see ``vms.config``); command-line
values take precedence.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from vms import __version__
from vms.config import VALID_LOG_LEVELS, VALID_MATCH_POLICIES, load_config, validate_match_policy
from vms.errors import VmsError
from vms.ledger.persistence import PersistenceManager, StatePaths
from vms.models.config import VmsConfig
from vms.observability.logging import get_logger, setup_logging
from vms.pipeline import run_pipeline
from vms.runner import CommandRunner


def _load_config_or_fail() -> VmsConfig:
    try:
        return load_config()
    except VmsError as exc:
        raise click.ClickException(str(exc)) from exc


def _apply_overrides(config: VmsConfig, **overrides: object) -> VmsConfig:
    """Return *config* with every non-None override applied."""
    paths = config.paths
    diff = config.diff
    correlation = config.correlation
    log = config.log

    if overrides.get("repo") is not None:
        paths = dataclasses.replace(paths, repo_dir=overrides["repo"])
    if overrides.get("artifacts_dir") is not None:
        paths = dataclasses.replace(paths, artifacts_dir=overrides["artifacts_dir"])
    if overrides.get("raw_output") is not None:
        paths = dataclasses.replace(paths, raw_output=overrides["raw_output"])
    if overrides.get("new_ledger") is not None:
        paths = dataclasses.replace(paths, new_ledger=overrides["new_ledger"])
    if overrides.get("last_revision") is not None:
        diff = dataclasses.replace(diff, last_revision=str(overrides["last_revision"]).strip())
    if overrides.get("compare_with") is not None:
        diff = dataclasses.replace(diff, use_working_tree=overrides["compare_with"] == "working-tree")
    if overrides.get("first_run"):
        correlation = dataclasses.replace(correlation, first_run=True)
    if overrides.get("match_policy") is not None:
        correlation = dataclasses.replace(
            correlation, match_policy=validate_match_policy(str(overrides["match_policy"]))
        )
    if overrides.get("log_level") is not None:
        log = dataclasses.replace(log, level=str(overrides["log_level"]).lower())

    run_command = overrides.get("run_command")
    return dataclasses.replace(
        config,
        paths=paths,
        diff=diff,
        correlation=correlation,
        log=log,
        run_command=str(run_command) if run_command is not None else config.run_command,
    )


_state_options = [
    click.option("--artifacts-dir", type=click.Path(path_type=Path), help="Directory holding the persisted state."),
    click.option("--raw-output", type=click.Path(path_type=Path), help="Raw violation file of the current run."),
    click.option("--log-level", type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False)),
]


def _with_state_options(func):  # type: ignore[no-untyped-def]
    for option in reversed(_state_options):
        func = option(func)
    return func


@click.group()
@click.version_option(__version__, prog_name="vms")
def cli() -> None:
    """Suppress re-detected runtime-verification violations across revisions."""


@cli.command()
@click.option("--repo", type=click.Path(path_type=Path, file_okay=False), help="Git working tree to diff.")
@_with_state_options
@click.option("--last-revision", help="Baseline revision; defaults to the recorded marker.")
@click.option(
    "--compare-with",
    type=click.Choice(["working-tree", "head"]),
    help="Compare the baseline with the working tree (default) or with the HEAD commit.",
)
@click.option("--first-run", is_flag=True, default=False, help="Treat every violation as new.")
@click.option("--match-policy", type=click.Choice(VALID_MATCH_POLICIES, case_sensitive=False))
@click.option("--new-ledger", type=click.Path(path_type=Path), help="Also save the new violations here.")
@click.option("--run-command", help="Shell command that runs the instrumented test suite first.")
def correlate(**options: object) -> None:
    """Keep only the violations that are new since the last clean run."""
    config = _apply_overrides(_load_config_or_fail(), **options)
    setup_logging(config.log.level)
    log = get_logger("cli")

    runner = CommandRunner(config.run_command, cwd=config.paths.repo_dir) if config.run_command else None
    try:
        report = run_pipeline(config, runner=runner)
    except VmsError as exc:
        log.error("correlation_failed", error=str(exc))
        raise click.ClickException(str(exc)) from exc

    for warning in report.warnings:
        click.echo(f"warning: {warning}", err=True)
    click.echo(
        f"{report.new_violations} new of {report.total_violations} violations "
        f"({report.suppressed_violations} suppressed, {report.changed_files} changed files, "
        f"{report.renamed_files} renames){'; baseline advanced' if report.rotated else ''}"
    )


@cli.command()
@_with_state_options
def recover(**options: object) -> None:
    """Finish or abandon a state rotation interrupted by a crash."""
    config = _apply_overrides(_load_config_or_fail(), **options)
    setup_logging(config.log.level)

    manager = PersistenceManager(StatePaths.from_config(config.paths))
    try:
        action = manager.recover()
    except VmsError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"recovery: {action.value}")


@cli.command()
@_with_state_options
def status(**options: object) -> None:
    """Show the last clean revision and the last revision log entry."""
    config = _apply_overrides(_load_config_or_fail(), **options)
    setup_logging(config.log.level)

    manager = PersistenceManager(StatePaths.from_config(config.paths))
    try:
        marker = manager.history.read_marker()
        last = manager.history.last()
    except VmsError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"revision: {marker or '<none>'}")
    if last is None:
        click.echo("last entry: <none>")
    else:
        click.echo(f"last entry: {last.get('kind')} {last.get('revision', '')} at {last.get('ts', '')}")
