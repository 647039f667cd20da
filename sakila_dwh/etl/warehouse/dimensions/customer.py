"""
DimCustomer dimension processor.

Customer is denormalized with address city/country. `active` is an integer
flag in the source and is stored as a boolean.
"""

from typing import Dict

from ..context import SyncContext
from ..tables import DIM_CUSTOMER
from .base import UNKNOWN, DimensionSpec, sync_dimension


def _active_flag(value) -> bool:
    if isinstance(value, str):
        value = value.strip().lower()
        if value in ('t', 'true'):
            return True
        if value in ('f', 'false'):
            return False
    return bool(int(value))


CUSTOMER_SPEC = DimensionSpec(
    entity='customer',
    table=DIM_CUSTOMER,
    defaults={'city': UNKNOWN, 'country': UNKNOWN},
    converters={'active': _active_flag},
)


def process_dim_customer(ctx: SyncContext) -> Dict[str, int]:
    """Process DimCustomer (upsert by customer_id)."""
    return sync_dimension(ctx, CUSTOMER_SPEC)
