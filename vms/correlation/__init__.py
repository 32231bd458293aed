"""Violation correlation engine."""

from vms.correlation.engine import CorrelationEngine

__all__ = ["CorrelationEngine"]
