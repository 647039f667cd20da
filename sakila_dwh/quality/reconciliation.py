"""Reconciliation - Recompute business metrics in both stores and compare."""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from sakila_dwh.config import SYNC_CONFIG
from sakila_dwh.storage.values import to_int, to_money

logger = logging.getLogger(__name__)

COUNT = 'count'
MONEY = 'money'


@dataclass(frozen=True)
class MetricCheck:
    """One metric computed independently on each side."""
    name: str
    kind: str  # 'count' or 'money'
    method: str  # repository method name, same on source and warehouse
    grouped: bool = False


CHECKS = [
    MetricCheck('Rental Count', COUNT, 'count_rentals'),
    MetricCheck('Payment Count', COUNT, 'count_payments'),
    MetricCheck('Payment Total', MONEY, 'sum_payments'),
    MetricCheck('Rental Count by Store', COUNT, 'count_rentals_by_store', grouped=True),
    MetricCheck('Payment Total by Store', MONEY, 'sum_payments_by_store', grouped=True),
]


def _format(kind: str, value: Any) -> str:
    if kind == MONEY:
        return f"${to_money(value)}"
    return str(value)


@dataclass
class CheckResult:
    """Check result. Grouped checks carry the per-group table."""
    name: str
    kind: str
    source: Any
    target: Any
    passed: bool
    groups: Optional[pd.DataFrame] = None

    def describe(self) -> str:
        if self.passed:
            return f"{self.name} PASSED ({_format(self.kind, self.source)})"
        return (
            f"{self.name} FAILED (Source: {_format(self.kind, self.source)}, "
            f"Target: {_format(self.kind, self.target)})"
        )


@dataclass
class ReconciliationReport:
    """All checks of one validation run."""
    as_of: date
    start: date
    days: int
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.checks if not c.passed)

    def check(self, name: str) -> CheckResult:
        for result in self.checks:
            if result.name == name:
                return result
        raise KeyError(name)

    def format_lines(self) -> List[str]:
        lines = [f"Reconciliation window: {self.start} to {self.as_of} ({self.days} days)"]
        for result in self.checks:
            lines.append(result.describe())
            if result.groups is not None and not result.groups.empty:
                lines.extend("    " + line for line in result.groups.to_string(index=False).splitlines())
        if self.passed:
            lines.append(f"Overall: PASSED ({len(self.checks)} checks)")
        else:
            lines.append(f"Overall: FAILED ({self.failed_count} of {len(self.checks)} checks failed)")
        return lines


class ReconciliationEngine:
    """
    Compare source and warehouse over a trailing window.

    Counts must match exactly. Money is normalized to 2-place Decimals and
    matches when the difference is below the tolerance. Neither store is
    written to.
    """

    def __init__(self, source, warehouse, days: Optional[int] = None, tolerance: Optional[Decimal] = None):
        self.source = source
        self.warehouse = warehouse
        self.days = days if days is not None else SYNC_CONFIG["reconciliation_window_days"]
        self.tolerance = tolerance if tolerance is not None else SYNC_CONFIG["money_tolerance"]

    def _normalize(self, kind: str) -> Callable[[Any], Any]:
        return to_money if kind == MONEY else lambda v: to_int(v) or 0

    def _matches(self, kind: str, source_value: Any, target_value: Any) -> bool:
        if kind == MONEY:
            return abs(source_value - target_value) < self.tolerance
        return source_value == target_value

    def _compare_scalar(self, check: MetricCheck, start: date) -> CheckResult:
        normalize = self._normalize(check.kind)
        source_value = normalize(getattr(self.source, check.method)(start))
        target_value = normalize(getattr(self.warehouse, check.method)(start))
        return CheckResult(
            name=check.name,
            kind=check.kind,
            source=source_value,
            target=target_value,
            passed=self._matches(check.kind, source_value, target_value),
        )

    @staticmethod
    def _as_dict(df: pd.DataFrame, normalize: Callable[[Any], Any]) -> Dict[int, Any]:
        return {to_int(row['store_id']): normalize(row['value']) for _, row in df.iterrows()}

    def _compare_grouped(self, check: MetricCheck, start: date) -> CheckResult:
        normalize = self._normalize(check.kind)
        source_groups = self._as_dict(getattr(self.source, check.method)(start), normalize)
        target_groups = self._as_dict(getattr(self.warehouse, check.method)(start), normalize)
        zero = normalize(0)

        # Outer join: a group missing on one side counts as zero there
        rows = []
        for store_id in sorted(set(source_groups) | set(target_groups)):
            source_value = source_groups.get(store_id, zero)
            target_value = target_groups.get(store_id, zero)
            rows.append({
                'store_id': store_id,
                'source': source_value,
                'target': target_value,
                'status': 'PASSED' if self._matches(check.kind, source_value, target_value) else 'FAILED',
            })
        groups = pd.DataFrame(rows, columns=['store_id', 'source', 'target', 'status'])

        source_total = sum(source_groups.values(), zero)
        target_total = sum(target_groups.values(), zero)
        return CheckResult(
            name=check.name,
            kind=check.kind,
            source=source_total,
            target=target_total,
            passed=bool((groups['status'] == 'PASSED').all()) if not groups.empty else True,
            groups=groups,
        )

    def run(self, as_of: Optional[date] = None) -> ReconciliationReport:
        """Run every check over [as_of - days, ...]. as_of defaults to the source's current date."""
        if as_of is None:
            as_of = self.source.now().date()
        start = as_of - timedelta(days=self.days)
        logger.info(f"Reconciling {self.days} days from {start} (as of {as_of})")

        report = ReconciliationReport(as_of=as_of, start=start, days=self.days)
        for check in CHECKS:
            if check.grouped:
                result = self._compare_grouped(check, start)
            else:
                result = self._compare_scalar(check, start)
            report.checks.append(result)
            if result.passed:
                logger.info(result.describe())
            else:
                logger.warning(result.describe())

        logger.info(f"Reconciliation {'PASSED' if report.passed else 'FAILED'}: {report.failed_count} failed checks")
        return report
