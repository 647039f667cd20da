"""
FactPayment processor.

Grain: one payment. Payments are treated as immutable: payment_date is the
change marker, and the store comes from the staff member who took it.
"""

from typing import Any, Dict

from sakila_dwh.storage.values import is_missing, to_int, to_money
from ..cache import DATE, DimensionCaches
from ..calendar import date_key_for
from ..context import SyncContext
from ..dimensions import TransformError
from ..tables import FACT_PAYMENT
from .base import sync_fact


def build_payment_row(record: Any, caches: DimensionCaches) -> Dict[str, Any]:
    payment_id = record.get('payment_id')
    if is_missing(payment_id):
        raise TransformError("payment: missing payment_id")
    payment_id = to_int(payment_id)

    payment_date = record.get('payment_date')
    if is_missing(payment_date):
        raise TransformError(f"payment {payment_id}: missing payment_date")
    amount = record.get('amount')
    if is_missing(amount):
        raise TransformError(f"payment {payment_id}: missing amount")
    staff_id = record.get('staff_id')
    if is_missing(staff_id):
        raise TransformError(f"payment {payment_id}: missing staff_id")

    row = caches.resolve_all({
        'customer_key': ('customer', record.get('customer_id')),
        'store_key': ('store', record.get('store_id')),
        'date_key_paid': (DATE, date_key_for(payment_date)),
    })
    row['payment_id'] = payment_id
    row['staff_id'] = to_int(staff_id)
    try:
        row['amount'] = to_money(amount)
    except ValueError as e:
        raise TransformError(f"payment {payment_id}: {e}") from e
    return row


def process_fact_payment(ctx: SyncContext) -> Dict[str, int]:
    return sync_fact(ctx, 'payment', FACT_PAYMENT, build_payment_row, order_by='payment_date')
