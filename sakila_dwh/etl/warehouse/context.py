"""
Run context shared by every synchronizer of one pass.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

from sakila_dwh.storage.postgres import CHANGE_FILTERS
from sakila_dwh.storage.values import normalize_timestamp
from sakila_dwh.storage.warehouse import WarehouseRepository
from .cache import DimensionCaches
from .watermark import WatermarkStore

logger = logging.getLogger(__name__)

# Smallest step of a PostgreSQL timestamp
CLOCK_RESOLUTION = timedelta(microseconds=1)


class SyncMode(str, Enum):
    FULL = 'full'
    INCREMENTAL = 'incremental'


@dataclass
class SyncContext:
    """
    Everything a synchronizer needs for one pass.

    `read_at` is the source clock captured once, before the first source read
    of the pass; every table's watermark is staged from it. Watermarks are
    staged in `pending_watermarks` and written by commit_watermarks() only
    after every stage succeeded.
    """
    source: Any
    warehouse: WarehouseRepository
    caches: DimensionCaches
    watermarks: WatermarkStore
    mode: SyncMode
    read_at: Optional[datetime] = None
    pending_watermarks: Dict[str, datetime] = field(default_factory=dict)

    def __post_init__(self):
        if self.read_at is None:
            self.read_at = self.source.now()

    @property
    def is_full(self) -> bool:
        return self.mode == SyncMode.FULL

    def since(self, table_name: str) -> Optional[datetime]:
        """Lower bound for change detection (None in full mode)."""
        if self.is_full:
            return None
        return self.watermarks.get(table_name)

    def fetch(self, entity: str) -> Tuple[pd.DataFrame, datetime]:
        """
        Read changed (or all) rows of a source entity.

        Returns the rows and the pass snapshot time to stage as its watermark.
        """
        since = self.since(entity)
        if since is None:
            df = self.source.find_all(entity)
        else:
            df = self.source.find_changed_since(entity, since)
        logger.info(f"Source {entity}: {len(df)} rows" + (f" changed since {since}" if since else ""))
        return df, self.read_at

    def change_time(self, entity: str, record) -> Optional[datetime]:
        """Latest of the change-detection timestamps of a source row."""
        stamps = [
            normalize_timestamp(record.get(column.split('.')[-1]))
            for column in CHANGE_FILTERS[entity]
        ]
        stamps = [ts for ts in stamps if ts is not None]
        return max(stamps) if stamps else None

    def stage_watermark(self, table_name: str, read_at: datetime, held: Iterable[datetime] = ()):
        """
        Stage the watermark of one table.

        `held` are change times of rows skipped for unresolved keys; the
        watermark stays just below the earliest of them so the next pass
        reads those rows again.
        """
        held = [ts for ts in held if ts is not None]
        if held:
            hold_at = min(held) - CLOCK_RESOLUTION
            if hold_at < read_at:
                logger.info(f"Watermark {table_name}: held at {hold_at} for {len(held)} skipped rows")
                read_at = hold_at
        self.pending_watermarks[table_name] = read_at

    def commit_watermarks(self) -> Dict[str, int]:
        for table_name, read_at in self.pending_watermarks.items():
            self.watermarks.set(table_name, read_at)
        advanced = len(self.pending_watermarks)
        self.pending_watermarks.clear()
        logger.info(f"Watermarks: advanced={advanced}")
        return {'advanced': advanced}
