"""Entry point for `python -m vms`.

Usage:
    python -m vms correlate
    python -m vms status
"""

from __future__ import annotations

from vms.cli import cli

cli()
