"""
Film bridge processors (film_actor, film_category).

Pairs of surrogate keys, inserted once and never updated. An association
whose film or actor/category is not (yet) in the warehouse is skipped and
retried on later passes (the watermark is held below it).
"""

import logging
from typing import Dict, Tuple

from ..cache import UnresolvedKeyError
from ..context import SyncContext
from ..tables import BRIDGE_TABLES

logger = logging.getLogger(__name__)

# entity -> (left dimension, left source column), (right dimension, right source column)
BRIDGE_SOURCES: Dict[str, Tuple[Tuple[str, str], Tuple[str, str]]] = {
    'film_actor': (('film', 'film_id'), ('actor', 'actor_id')),
    'film_category': (('film', 'film_id'), ('category', 'category_id')),
}


def process_bridge(ctx: SyncContext, entity: str) -> Dict[str, int]:
    """
    Process one bridge table.

    Returns stats {'inserted', 'existing', 'skipped'}.
    """
    stats = {'inserted': 0, 'existing': 0, 'skipped': 0}
    bridge = BRIDGE_TABLES[entity]
    (left_dim, left_col), (right_dim, right_col) = BRIDGE_SOURCES[entity]

    df, read_at = ctx.fetch(entity)

    seen = ctx.warehouse.bridge_pairs(bridge)
    new_pairs = []
    held = []
    for _, record in df.iterrows():
        left_id, right_id = record.get(left_col), record.get(right_col)
        try:
            pair = (
                ctx.caches.resolve(left_dim, left_id),
                ctx.caches.resolve(right_dim, right_id),
            )
        except UnresolvedKeyError as e:
            logger.warning(f"{bridge.name}: skipped ({left_col}={left_id}, {right_col}={right_id}) - {e}")
            stats['skipped'] += 1
            held.append(ctx.change_time(entity, record))
            continue
        if pair in seen:
            stats['existing'] += 1
            continue
        seen.add(pair)
        new_pairs.append(pair)

    stats['inserted'] = ctx.warehouse.insert_pairs(bridge, new_pairs)
    ctx.stage_watermark(entity, read_at, held)

    logger.info(
        f"{bridge.name}: inserted={stats['inserted']}, existing={stats['existing']}, skipped={stats['skipped']}"
    )
    return stats


def process_bridge_film_actor(ctx: SyncContext) -> Dict[str, int]:
    return process_bridge(ctx, 'film_actor')


def process_bridge_film_category(ctx: SyncContext) -> Dict[str, int]:
    return process_bridge(ctx, 'film_category')
