"""
Watermark store (sync_state table).

One row per synchronized table: the source-clock time at which the last
successful pass started reading it.
"""

import logging
from datetime import datetime
from typing import Dict

import duckdb

logger = logging.getLogger(__name__)

# Returned for tables never synchronized: everything is "new"
EPOCH = datetime(1970, 1, 1)


class WatermarkStore:
    """Read/advance watermarks inside the caller's transaction."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    def get(self, table_name: str) -> datetime:
        row = self.conn.execute("""
            SELECT last_run FROM sync_state WHERE table_name = ?
        """, [table_name]).fetchone()
        return row[0] if row else EPOCH

    def set(self, table_name: str, timestamp: datetime):
        existing = self.conn.execute("""
            SELECT 1 FROM sync_state WHERE table_name = ?
        """, [table_name]).fetchone()

        if existing:
            self.conn.execute("""
                UPDATE sync_state SET last_run = ? WHERE table_name = ?
            """, [timestamp, table_name])
        else:
            self.conn.execute("""
                INSERT INTO sync_state (table_name, last_run) VALUES (?, ?)
            """, [table_name, timestamp])
        logger.debug(f"Watermark {table_name} -> {timestamp}")

    def all(self) -> Dict[str, datetime]:
        rows = self.conn.execute("SELECT table_name, last_run FROM sync_state ORDER BY table_name").fetchall()
        return {row[0]: row[1] for row in rows}
