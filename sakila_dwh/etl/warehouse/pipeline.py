"""
Sync Pipeline: Sakila source to DuckDB star schema.
Main orchestrator for full-load and incremental passes.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Tuple

import duckdb

from sakila_dwh.monitoring import ETLMetricsLogger
from sakila_dwh.storage.duckdb_store import missing_tables, setup_schema, transaction
from sakila_dwh.storage.postgres import ConnectivityError
from sakila_dwh.storage.warehouse import WarehouseRepository
from .cache import DimensionCaches
from .context import SyncContext, SyncMode
from .dimensions import (
    process_dim_actor,
    process_dim_category,
    process_dim_film,
    process_dim_store,
    process_dim_customer,
    process_dim_date,
)
from .facts import (
    process_bridge_film_actor,
    process_bridge_film_category,
    process_fact_rental,
    process_fact_payment,
)
from .tables import SYNC_TABLES
from .watermark import WatermarkStore

logger = logging.getLogger(__name__)


class SchemaNotInitializedError(Exception):
    """Raised when the warehouse tables do not exist (run `init` first)."""
    pass


class WarehouseNotEmptyError(Exception):
    """Raised when a full load targets a warehouse that already holds data."""
    pass


class ReferentialIntegrityError(Exception):
    """Raised when a fact or bridge row references a missing dimension row."""
    pass


Stage = Tuple[str, List[Tuple[str, Callable[[SyncContext], Dict[str, int]]]]]

# Dimensions before bridges and facts: their key maps must be complete first
STAGES: List[Stage] = [
    ('Dimensions', [
        ('dim_actor', process_dim_actor),
        ('dim_category', process_dim_category),
        ('dim_film', process_dim_film),
        ('dim_store', process_dim_store),
        ('dim_customer', process_dim_customer),
        ('dim_date', process_dim_date),
    ]),
    ('Bridges', [
        ('bridge_film_actor', process_bridge_film_actor),
        ('bridge_film_category', process_bridge_film_category),
    ]),
    ('Facts', [
        ('fact_rental', process_fact_rental),
        ('fact_payment', process_fact_payment),
    ]),
]


def init_warehouse(conn: duckdb.DuckDBPyConnection) -> Dict[str, Any]:
    """Provision sequences and tables (idempotent)."""
    statements = setup_schema(conn)
    return {'success': True, 'message': 'Schema ready', 'statements': statements}


def _check_connectivity(source, warehouse: WarehouseRepository):
    source.ping()
    try:
        warehouse.ping()
    except duckdb.Error as e:
        raise ConnectivityError(f"Warehouse is not answering: {e}") from e
    logger.info("Connectivity check passed")


def _check_schema(conn: duckdb.DuckDBPyConnection):
    missing = missing_tables(conn)
    if missing:
        raise SchemaNotInitializedError(f"Warehouse schema not initialized, missing tables: {', '.join(missing)}")


def _check_empty(warehouse: WarehouseRepository):
    non_empty = {name: warehouse.count(name) for name in SYNC_TABLES}
    non_empty = {name: n for name, n in non_empty.items() if n}
    if non_empty:
        details = ', '.join(f"{name}={n}" for name, n in non_empty.items())
        raise WarehouseNotEmptyError(f"Full load requires an empty warehouse ({details}); use incremental")


def _check_integrity(warehouse: WarehouseRepository):
    orphans = warehouse.orphan_counts()
    if orphans:
        details = ', '.join(f"{name}={n}" for name, n in orphans.items())
        raise ReferentialIntegrityError(f"Dangling foreign keys: {details}")
    logger.info("Integrity check passed")


def _run_stages(ctx: SyncContext, stats: Dict[str, Dict[str, int]]):
    for stage_name, steps in STAGES:
        logger.info(f"Processing {stage_name.lower()}...")
        for table_name, process in steps:
            stats[table_name] = process(ctx)

    logger.info("Processing watermarks...")
    stats['sync_state'] = ctx.commit_watermarks()


def _run(mode: SyncMode, source, conn: duckdb.DuckDBPyConnection) -> Dict[str, Any]:
    """
    Run one sync pass.

    Flow:
    1. Connectivity check (source and warehouse) before any write
    2. Schema check; full load also requires an empty warehouse
    3. BEGIN; caches; dimensions -> bridges -> facts -> watermarks;
       integrity probe; COMMIT (ROLLBACK on any error)
    4. Record the pass in etl_run_log, precondition failures included
       (skipped with a warning when the log table itself is missing)
    """
    start_time = datetime.now()
    result = {
        'success': False,
        'mode': mode.value,
        'start_time': start_time.isoformat(),
        'stats': {}
    }

    warehouse = WarehouseRepository(conn)

    try:
        logger.info("=" * 60)
        logger.info(f"SYNC START ({mode.value}): {start_time}")
        logger.info("=" * 60)

        with ETLMetricsLogger(conn).track(mode.value) as metrics:
            metrics.stats = result['stats']
            _check_connectivity(source, warehouse)
            _check_schema(conn)
            if mode == SyncMode.FULL:
                _check_empty(warehouse)

            with transaction(conn):
                ctx = SyncContext(
                    source=source,
                    warehouse=warehouse,
                    caches=DimensionCaches.build(warehouse),
                    watermarks=WatermarkStore(conn),
                    mode=mode,
                )
                _run_stages(ctx, result['stats'])
                _check_integrity(warehouse)

        result['success'] = True
        result['message'] = f"{mode.value} sync completed successfully"

    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        result['message'] = str(e)

    finally:
        end_time = datetime.now()
        result['end_time'] = end_time.isoformat()
        result['duration_seconds'] = (end_time - start_time).total_seconds()

        for table_name, table_stats in result['stats'].items():
            logger.info(f"  {table_name}: {table_stats}")
        logger.info("=" * 60)
        logger.info(f"SYNC END: Duration {result['duration_seconds']:.2f}s")
        logger.info(f"Status: {'SUCCESS' if result['success'] else 'FAILED'}")
        logger.info("=" * 60)

    return result


def run_full_load(source, conn: duckdb.DuckDBPyConnection) -> Dict[str, Any]:
    """Populate an empty warehouse from the complete source."""
    return _run(SyncMode.FULL, source, conn)


def run_incremental(source, conn: duckdb.DuckDBPyConnection) -> Dict[str, Any]:
    """Apply source changes since each table's watermark."""
    return _run(SyncMode.INCREMENTAL, source, conn)
