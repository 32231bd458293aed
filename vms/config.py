"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from vms.errors import ConfigError
from vms.models.config import (
    CorrelationConfig,
    DiffConfig,
    LogConfig,
    PathsConfig,
    VmsConfig,
)

VALID_LOG_LEVELS = ("debug", "info", "warning", "error")
VALID_MATCH_POLICIES = ("substring", "path-suffix")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"VMS_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_path(key: str, default: str) -> Path:
    return Path(_env(key, default))


def validate_log_level(value: str) -> str:
    if value.lower() not in VALID_LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {VALID_LOG_LEVELS}")
    return value.lower()


def validate_match_policy(value: str) -> str:
    normalized = value.lower().replace("_", "-")
    if normalized not in VALID_MATCH_POLICIES:
        raise ConfigError(f"Invalid match policy: {value}. Must be one of {VALID_MATCH_POLICIES}")
    return normalized


def load_config() -> VmsConfig:
    """Load configuration from VMS_* environment variables."""
    new_ledger = _env("NEW_LEDGER", "")
    return VmsConfig(
        paths=PathsConfig(
            repo_dir=_env_path("REPO_DIR", "."),
            artifacts_dir=_env_path("ARTIFACTS_DIR", ".vms"),
            raw_output=_env_path("RAW_OUTPUT", "violation-counts"),
            new_ledger=Path(new_ledger) if new_ledger else None,
        ),
        diff=DiffConfig(
            last_revision=_env("LAST_REVISION", "").strip(),
            use_working_tree=_env_bool("USE_WORKING_TREE", True),
        ),
        correlation=CorrelationConfig(
            first_run=_env_bool("FIRST_RUN", False),
            match_policy=validate_match_policy(_env("MATCH_POLICY", "substring")),
        ),
        log=LogConfig(
            level=validate_log_level(_env("LOG_LEVEL", "info")),
        ),
        run_command=_env("RUN_COMMAND", ""),
    )
