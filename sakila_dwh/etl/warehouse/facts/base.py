"""
Generic fact processor (transactional grain, upsert by natural key).

A fact row is written only when every foreign key resolves; otherwise the
source row is skipped with one warning and the table watermark is held below
its change time, so later passes read it again until its dimension row exists.
"""

import logging
from typing import Any, Callable, Dict

from sakila_dwh.storage.warehouse import TargetTable
from ..cache import DimensionCaches, KeyMap, UnresolvedKeyError
from ..context import SyncContext
from ..dimensions import TransformError
from ..upsert import plan_upsert

logger = logging.getLogger(__name__)

RowBuilder = Callable[[Any, DimensionCaches], Dict[str, Any]]


def sync_fact(
    ctx: SyncContext,
    entity: str,
    table: TargetTable,
    build_row: RowBuilder,
    order_by: str,
) -> Dict[str, int]:
    """
    Process one fact table.

    build_row(record, caches) returns the target row or raises
    TransformError / UnresolvedKeyError.

    Returns stats {'inserted', 'updated', 'skipped', 'failed'}.
    """
    stats = {'inserted': 0, 'updated': 0, 'skipped': 0, 'failed': 0}

    df, read_at = ctx.fetch(entity)

    if not df.empty:
        if order_by in df.columns:
            df = df.sort_values(order_by, kind='stable')
        df = df.drop_duplicates(subset=[table.natural_key], keep='last')

    # Existing facts, read once per pass
    fact_keys = KeyMap(table.name, ctx.warehouse.key_map(table))

    actions = []
    held = []
    for _, record in df.iterrows():
        natural_key = record.get(table.natural_key)
        try:
            row = build_row(record, ctx.caches)
        except UnresolvedKeyError as e:
            logger.warning(f"{table.name}: skipped {table.natural_key}={natural_key} - {e}")
            stats['skipped'] += 1
            held.append(ctx.change_time(entity, record))
            continue
        except (TransformError, TypeError, ValueError) as e:
            logger.warning(f"{table.name}: skipped {table.natural_key}={natural_key} - {e}")
            stats['failed'] += 1
            continue
        actions.append(plan_upsert(row[table.natural_key], row, fact_keys))

    result = ctx.warehouse.upsert(table, actions)
    stats['inserted'] = result['inserted']
    stats['updated'] = result['updated']

    ctx.stage_watermark(entity, read_at, held)

    logger.info(
        f"{table.name}: inserted={stats['inserted']}, updated={stats['updated']}, "
        f"skipped={stats['skipped']}, failed={stats['failed']}"
    )
    return stats
