"""
DimDate dimension processor.
"""

import logging
from typing import Dict

from sakila_dwh.storage.values import is_missing
from ..cache import DATE
from ..calendar import derive_calendar
from ..context import SyncContext

logger = logging.getLogger(__name__)

WATERMARK = 'dim_date'


def process_dim_date(ctx: SyncContext) -> Dict[str, int]:
    """
    Process DimDate based on actual transaction dates.

    Logic:
    - dates = rental_date, return_date, payment_date of transactions changed
      since the dim_date watermark (all of them in full mode)
    - one row per distinct calendar date, never replaced once written
    - runs before facts so their date keys resolve
    """
    stats = {'inserted': 0, 'unchanged': 0}

    since = ctx.since(WATERMARK)
    df = ctx.source.find_transaction_dates(since)

    seen = set(ctx.caches[DATE])
    new_dates = []
    for value in df['ts'] if 'ts' in df.columns else []:
        if is_missing(value):
            continue
        calendar = derive_calendar(value)
        if calendar.date_key in seen:
            stats['unchanged'] += 1
            continue
        seen.add(calendar.date_key)
        new_dates.append(calendar)

    stats['inserted'] = ctx.warehouse.insert_dates(sorted(new_dates, key=lambda c: c.date_key))
    if stats['inserted']:
        ctx.caches.refresh(DATE)

    ctx.stage_watermark(WATERMARK, ctx.read_at)

    logger.info(f"DimDate: inserted={stats['inserted']}, unchanged={stats['unchanged']}")
    return stats
