"""Quality module - Source/warehouse reconciliation."""

from .reconciliation import (
    CHECKS, MetricCheck, CheckResult, ReconciliationReport, ReconciliationEngine
)

__all__ = [
    'CHECKS', 'MetricCheck', 'CheckResult',
    'ReconciliationReport', 'ReconciliationEngine',
]
