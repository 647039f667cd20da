"""
Generic dimension processor (upsert by natural key).

Full mode inserts everything into an empty dimension. Incremental mode reads
rows changed since the watermark; known natural keys keep their surrogate
key (update in place), unknown ones get a new key from the sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from sakila_dwh.config import SYNC_CONFIG
from sakila_dwh.storage.values import is_missing, to_int, to_python
from sakila_dwh.storage.warehouse import TargetTable
from ..context import SyncContext
from ..upsert import plan_upsert

logger = logging.getLogger(__name__)

UNKNOWN = SYNC_CONFIG["unknown_label"]


class TransformError(Exception):
    """A source row cannot produce a required attribute."""
    pass


@dataclass(frozen=True)
class DimensionSpec:
    """
    How one source entity becomes one dimension.

    Attribute classes:
    - natural key and attributes not listed below: required, row fails if missing
    - nullable: stored as NULL when missing
    - defaults: descriptive attributes with a documented fallback value
    """
    entity: str
    table: TargetTable
    nullable: Tuple[str, ...] = ()
    defaults: Dict[str, Any] = field(default_factory=dict)
    converters: Dict[str, Callable[[Any], Any]] = field(default_factory=dict)

    def transform(self, record: Dict[str, Any]) -> Dict[str, Any]:
        natural_key = record.get(self.table.natural_key)
        if is_missing(natural_key):
            raise TransformError(f"{self.entity}: missing natural key '{self.table.natural_key}'")

        try:
            row = {self.table.natural_key: to_int(natural_key)}
        except (TypeError, ValueError) as e:
            raise TransformError(f"{self.entity}: bad natural key {natural_key!r}") from e
        for column in self.table.attributes:
            value = record.get(column)
            if is_missing(value):
                if column in self.defaults:
                    value = self.defaults[column]
                elif column in self.nullable:
                    value = None
                else:
                    raise TransformError(
                        f"{self.entity} {row[self.table.natural_key]}: missing required attribute '{column}'"
                    )
            elif column in self.converters:
                try:
                    value = self.converters[column](value)
                except (TypeError, ValueError) as e:
                    raise TransformError(
                        f"{self.entity} {row[self.table.natural_key]}: bad value for '{column}': {e}"
                    ) from e
            row[column] = to_python(value)
        return row


def sync_dimension(ctx: SyncContext, spec: DimensionSpec) -> Dict[str, int]:
    """
    Process one dimension (full or incremental).

    Returns stats {'inserted', 'updated', 'failed'}.
    """
    stats = {'inserted': 0, 'updated': 0, 'failed': 0}
    table = spec.table

    df, read_at = ctx.fetch(spec.entity)

    if not df.empty:
        # Latest version wins when a natural key appears twice in one batch
        if 'last_update' in df.columns:
            df = df.sort_values('last_update', kind='stable')
        df = df.drop_duplicates(subset=[table.natural_key], keep='last')

    key_map = ctx.caches[spec.entity]
    actions = []
    for _, record in df.iterrows():
        try:
            row = spec.transform(record)
        except TransformError as e:
            logger.warning(f"{table.name}: skipped row - {e}")
            stats['failed'] += 1
            continue
        actions.append(plan_upsert(row[table.natural_key], row, key_map))

    result = ctx.warehouse.upsert(table, actions)
    stats['inserted'] = result['inserted']
    stats['updated'] = result['updated']

    # Later stages of this pass may reference the new rows
    if stats['inserted']:
        ctx.caches.refresh(spec.entity)

    ctx.stage_watermark(spec.entity, read_at)

    logger.info(f"{table.name}: inserted={stats['inserted']}, updated={stats['updated']}, failed={stats['failed']}")
    return stats
