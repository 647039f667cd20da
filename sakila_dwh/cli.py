"""Command line interface: init, full-load, incremental, validate, status."""

import logging
import sys

import click

from sakila_dwh.config import LOG_CONFIG, SYNC_CONFIG, WAREHOUSE_CONFIG
from sakila_dwh.etl.warehouse import init_warehouse, run_full_load, run_incremental
from sakila_dwh.etl.warehouse.watermark import WatermarkStore
from sakila_dwh.monitoring import ETLMetricsLogger
from sakila_dwh.quality import ReconciliationEngine
from sakila_dwh.storage import (
    ConnectivityError,
    WarehouseRepository,
    get_duckdb_connection,
    get_source_repository,
    missing_tables,
)

logger = logging.getLogger(__name__)


def _echo_result(result):
    for table_name, stats in result['stats'].items():
        details = ', '.join(f"{k}={v}" for k, v in stats.items())
        click.echo(f"  {table_name}: {details}")
    if result['success']:
        click.echo(f"{result['message']} in {result['duration_seconds']:.2f}s")
    else:
        click.echo(f"Sync FAILED: {result['message']}", err=True)


def _sync(warehouse_path, run):
    try:
        source = get_source_repository()
    except ConnectivityError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    conn = get_duckdb_connection(warehouse_path)
    try:
        result = run(source, conn)
    finally:
        conn.close()
        source.close()

    _echo_result(result)
    if not result['success']:
        sys.exit(1)


@click.group()
@click.option("--warehouse", "warehouse_path", default=None,
              help="DuckDB warehouse file (default: DWH_PATH).")
@click.pass_context
def cli(ctx, warehouse_path):
    """Sakila to DuckDB star schema synchronization."""
    logging.basicConfig(level=LOG_CONFIG["level"], format=LOG_CONFIG["format"])
    ctx.obj = {"warehouse": warehouse_path or WAREHOUSE_CONFIG["path"]}


@cli.command()
@click.pass_context
def init(ctx):
    """Create the warehouse schema (idempotent)."""
    path = ctx.obj["warehouse"]
    click.echo(f"Initializing analytics database {path}...")
    conn = get_duckdb_connection(path)
    try:
        result = init_warehouse(conn)
    finally:
        conn.close()
    click.echo(f"{result['message']} ({result['statements']} statements).")


@cli.command("full-load")
@click.pass_context
def full_load(ctx):
    """Load the complete source into an empty warehouse."""
    click.echo("Starting full data load...")
    _sync(ctx.obj["warehouse"], run_full_load)


@cli.command()
@click.pass_context
def incremental(ctx):
    """Apply source changes since the last successful pass."""
    click.echo("Starting incremental update...")
    _sync(ctx.obj["warehouse"], run_incremental)


@cli.command()
@click.option("--days", default=SYNC_CONFIG["reconciliation_window_days"], type=int,
              show_default=True, help="Number of days to validate.")
@click.option("--as-of", "as_of", default=None, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="End of the window (default: the source's current date).")
@click.option("--strict", is_flag=True, help="Exit with status 1 when any check fails.")
@click.pass_context
def validate(ctx, days, as_of, strict):
    """Verify data consistency between source and warehouse."""
    click.echo(f"Validating data consistency for the last {days} days...")
    try:
        source = get_source_repository()
    except ConnectivityError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    conn = get_duckdb_connection(ctx.obj["warehouse"])
    try:
        missing = missing_tables(conn)
        if missing:
            click.echo(f"Error: warehouse schema not initialized (missing {', '.join(missing)})", err=True)
            sys.exit(1)
        engine = ReconciliationEngine(source, WarehouseRepository(conn), days=days)
        report = engine.run(as_of=as_of.date() if as_of else None)
    finally:
        conn.close()
        source.close()

    for line in report.format_lines():
        click.echo(line)
    if strict and not report.passed:
        sys.exit(1)


@cli.command()
@click.option("--limit", default=10, type=int, show_default=True, help="Number of recent runs to show.")
@click.pass_context
def status(ctx, limit):
    """Show watermarks and recent sync runs."""
    conn = get_duckdb_connection(ctx.obj["warehouse"])
    try:
        missing = missing_tables(conn)
        if missing:
            click.echo(f"Error: warehouse schema not initialized (missing {', '.join(missing)})", err=True)
            sys.exit(1)
        watermarks = WatermarkStore(conn).all()
        runs = ETLMetricsLogger(conn).recent_runs(limit)
    finally:
        conn.close()

    click.echo("Watermarks:")
    for table_name, last_run in watermarks.items():
        click.echo(f"  {table_name}: {last_run}")
    click.echo("Recent runs:")
    for run in runs:
        line = (
            f"  #{run['run_id']} {run['mode']} {run['status']} at {run['started_at']} "
            f"({run['rows_inserted']} inserted, {run['rows_updated']} updated, {run['rows_skipped']} skipped)"
        )
        if run['error_message']:
            line += f" - {run['error_message']}"
        click.echo(line)


if __name__ == "__main__":
    cli()
