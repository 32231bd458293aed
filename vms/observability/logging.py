"""Structured logging for vms.

Events are JSON lines on stderr so that stdout carries only the one-line
command summary. Each ``vms`` command calls :func:`setup_logging` with its
resolved level; loggers are not cached, because modules create their
loggers at import time and a later command (or a ``CliRunner`` invocation
in tests) must still pick up the current configuration.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Logger for one vms component, e.g. ``"ledger.persistence"``."""
    return structlog.get_logger(component=f"vms.{component}")  # type: ignore[return-value]
