"""
FactRental processor.

Grain: one rental. Keys: film (via inventory), store (via inventory),
customer, rented date and returned date (only once the rental is returned).
"""

from typing import Any, Dict

from sakila_dwh.storage.values import is_missing, to_int, to_python
from ..cache import DATE, DimensionCaches
from ..calendar import date_key_for, to_calendar_date
from ..context import SyncContext
from ..dimensions import TransformError
from ..tables import FACT_RENTAL
from .base import sync_fact


def build_rental_row(record: Any, caches: DimensionCaches) -> Dict[str, Any]:
    rental_id = record.get('rental_id')
    if is_missing(rental_id):
        raise TransformError("rental: missing rental_id")
    rental_id = to_int(rental_id)

    rental_date = record.get('rental_date')
    if is_missing(rental_date):
        raise TransformError(f"rental {rental_id}: missing rental_date")
    last_update = record.get('last_update')
    if is_missing(last_update):
        raise TransformError(f"rental {rental_id}: missing last_update")
    staff_id = record.get('staff_id')
    if is_missing(staff_id):
        raise TransformError(f"rental {rental_id}: missing staff_id")

    return_date = record.get('return_date')
    returned = not is_missing(return_date)

    keys = {
        'film_key': ('film', record.get('film_id')),
        'store_key': ('store', record.get('store_id')),
        'customer_key': ('customer', record.get('customer_id')),
        'date_key_rented': (DATE, date_key_for(rental_date)),
    }
    if returned:
        keys['date_key_returned'] = (DATE, date_key_for(return_date))

    row = caches.resolve_all(keys)
    row['rental_id'] = rental_id
    row.setdefault('date_key_returned', None)
    row['staff_id'] = to_int(staff_id)
    row['rental_duration_days'] = (
        (to_calendar_date(return_date) - to_calendar_date(rental_date)).days if returned else None
    )
    row['last_update'] = to_python(last_update)
    return row


def process_fact_rental(ctx: SyncContext) -> Dict[str, int]:
    """Process FactRental (last_update or rental_date past the watermark)."""
    return sync_fact(ctx, 'rental', FACT_RENTAL, build_rental_row, order_by='last_update')
