"""Shared pytest configuration for vms tests."""

from __future__ import annotations

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    """CLI tests configure structlog against CliRunner's temporary stderr."""
    yield
    structlog.reset_defaults()
