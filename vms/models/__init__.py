"""Core data structures for vms."""

from vms.models.config import VmsConfig
from vms.models.diff import DiffModel, Edit, FileDiff
from vms.models.violations import CorrelationReport, Violation

__all__ = [
    "CorrelationReport",
    "DiffModel",
    "Edit",
    "FileDiff",
    "Violation",
    "VmsConfig",
]
