"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class PathsConfig:
    """Locations of the persisted state files."""

    repo_dir: Path = Path(".")
    artifacts_dir: Path = Path(".vms")
    raw_output: Path = Path("violation-counts")
    new_ledger: Path | None = None

    @property
    def old_ledger(self) -> Path:
        return self.artifacts_dir / "violation-counts-old"

    @property
    def revision_marker(self) -> Path:
        return self.artifacts_dir / "last-SHA"

    @property
    def revision_log(self) -> Path:
        return self.artifacts_dir / "revision-log.jsonl"


@dataclass
class DiffConfig:
    """Which revisions are compared."""

    last_revision: str = ""
    use_working_tree: bool = True


@dataclass
class CorrelationConfig:
    """Correlation engine configuration."""

    first_run: bool = False
    match_policy: str = "substring"


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class VmsConfig:
    """Top-level vms configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    log: LogConfig = field(default_factory=LogConfig)
    run_command: str = ""
