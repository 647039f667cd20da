"""
DuckDB warehouse storage operations.

Connection handling, schema provisioning and the transaction scope used by
every sync pass.
"""

import logging
import os
import re
from contextlib import contextmanager
from typing import Iterator, Optional

import duckdb

from sakila_dwh.config import WAREHOUSE_CONFIG

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), 'sql', 'dwh_schema.sql')

# Tables that must exist before a sync pass can run
REQUIRED_TABLES = [
    'dim_date', 'dim_actor', 'dim_category', 'dim_film', 'dim_store', 'dim_customer',
    'bridge_film_actor', 'bridge_film_category',
    'fact_rental', 'fact_payment',
    'sync_state', 'etl_run_log',
]


def get_duckdb_connection(local_path: Optional[str] = None) -> duckdb.DuckDBPyConnection:
    """Get DuckDB connection to the warehouse file (':memory:' is accepted)."""
    if local_path is None:
        local_path = WAREHOUSE_CONFIG["path"]
    if local_path != ':memory:':
        directory = os.path.dirname(os.path.abspath(local_path))
        os.makedirs(directory, exist_ok=True)
    return duckdb.connect(local_path)


def _read_schema_statements(schema_path: str) -> list:
    with open(schema_path, 'r', encoding='utf-8') as f:
        sql = f.read()

    # Remove comments; block comments first, they may contain '--'
    sql = re.sub(r'/\*.*?\*/', '', sql, flags=re.DOTALL)
    sql = re.sub(r'--[^\n]*', '', sql)

    return [s.strip() for s in sql.split(';') if s.strip()]


def setup_schema(conn: duckdb.DuckDBPyConnection, schema_path: str = SCHEMA_PATH) -> int:
    """
    Create sequences and tables if they don't exist.
    Does NOT drop existing tables to preserve data.

    Returns number of statements executed.
    """
    statements = _read_schema_statements(schema_path)
    for stmt in statements:
        conn.execute(stmt)
    logger.info(f"Schema setup complete ({len(statements)} statements)")
    return len(statements)


def missing_tables(conn: duckdb.DuckDBPyConnection) -> list:
    """Return required warehouse tables that are not present."""
    rows = conn.execute("""
        SELECT table_name FROM information_schema.tables
        WHERE table_schema = 'main'
    """).fetchall()
    existing = {row[0] for row in rows}
    return [t for t in REQUIRED_TABLES if t not in existing]


@contextmanager
def transaction(conn: duckdb.DuckDBPyConnection) -> Iterator[duckdb.DuckDBPyConnection]:
    """All-or-nothing unit of work: COMMIT on success, ROLLBACK on any error."""
    conn.execute("BEGIN TRANSACTION")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        logger.warning("Transaction rolled back")
        raise
    conn.execute("COMMIT")
