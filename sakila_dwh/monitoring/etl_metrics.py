"""ETL Metrics Logger - Track sync passes in the warehouse etl_run_log table."""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import duckdb

logger = logging.getLogger(__name__)


@dataclass
class ETLMetrics:
    """Metrics of one sync pass."""
    mode: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    status: str = 'running'
    error_message: Optional[str] = None
    # target table -> stats dict of its synchronizer
    stats: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def _total(self, *keys: str) -> int:
        return sum(
            value for table_stats in self.stats.values()
            for key, value in table_stats.items() if key in keys
        )

    @property
    def rows_inserted(self) -> int:
        return self._total('inserted')

    @property
    def rows_updated(self) -> int:
        return self._total('updated')

    @property
    def rows_skipped(self) -> int:
        return self._total('skipped', 'failed')


class ETLMetricsLogger:
    """Logger for sync metrics to the etl_run_log table."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    def log(self, metrics: ETLMetrics) -> bool:
        """Append one row to etl_run_log (outside the pass transaction)."""
        try:
            self.conn.execute("""
                INSERT INTO etl_run_log (
                    run_id, mode, status, started_at, ended_at, duration_seconds,
                    rows_inserted, rows_updated, rows_skipped, error_message, stats
                ) VALUES (NEXTVAL('seq_etl_run_id'), ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                metrics.mode, metrics.status, metrics.start_time, metrics.end_time,
                metrics.duration_seconds, metrics.rows_inserted, metrics.rows_updated,
                metrics.rows_skipped, metrics.error_message,
                json.dumps(metrics.stats) if metrics.stats else None,
            ])
            logger.info(
                f"ETL metrics logged: {metrics.mode} {metrics.status} - "
                f"{metrics.rows_inserted} inserted, {metrics.rows_updated} updated in {metrics.duration_seconds:.2f}s"
            )
            return True
        except duckdb.Error as e:
            logger.warning(f"Failed to log ETL metrics: {e}")
            return False

    @contextmanager
    def track(self, mode: str):
        """Context manager to track pass duration and outcome."""
        metrics = ETLMetrics(mode=mode, start_time=datetime.now())
        start = time.time()

        try:
            yield metrics
            metrics.status = 'success'
        except Exception as e:
            metrics.status = 'failed'
            metrics.error_message = str(e)
            raise
        finally:
            metrics.end_time = datetime.now()
            metrics.duration_seconds = time.time() - start
            self.log(metrics)

    def recent_runs(self, limit: int = 10) -> list:
        rows = self.conn.execute("""
            SELECT run_id, mode, status, started_at, duration_seconds,
                   rows_inserted, rows_updated, rows_skipped, error_message
            FROM etl_run_log ORDER BY run_id DESC LIMIT ?
        """, [limit]).fetchall()
        columns = [
            'run_id', 'mode', 'status', 'started_at', 'duration_seconds',
            'rows_inserted', 'rows_updated', 'rows_skipped', 'error_message',
        ]
        return [dict(zip(columns, row)) for row in rows]
