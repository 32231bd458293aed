"""Instrumented test-suite runners.

The correlation core only needs a raw violation file. How it is produced is
behind :class:`InstrumentedRunner`: "run the instrumented suite, leaving a
raw violation file at *raw_output*".
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Protocol

from vms.errors import RunnerError
from vms.observability.logging import get_logger

_logger = get_logger("runner")


class InstrumentedRunner(Protocol):
    def run(self, raw_output: Path) -> None: ...


class CommandRunner:
    """Runs a shell command that writes violations to ``raw_output``.

    The target path is exported to the command as ``VMS_RAW_OUTPUT``.
    """

    def __init__(self, command: str, cwd: Path | str = ".") -> None:
        if not command.strip():
            raise ValueError("Runner command must not be empty")
        self.command = command
        self.cwd = Path(cwd)

    def run(self, raw_output: Path) -> None:
        env = {**os.environ, "VMS_RAW_OUTPUT": str(raw_output.resolve())}
        _logger.info("instrumented_run_started", command=self.command)
        try:
            result = subprocess.run(self.command, shell=True, cwd=self.cwd, env=env)
        except OSError as exc:
            raise RunnerError(f"Cannot start '{self.command}': {exc}") from exc
        if result.returncode != 0:
            raise RunnerError(f"'{self.command}' exited with status {result.returncode}")
        _logger.info("instrumented_run_finished", raw_output=str(raw_output))
