"""
DimStore dimension processor (store denormalized with address city/country).
"""

from typing import Dict

from ..context import SyncContext
from ..tables import DIM_STORE
from .base import UNKNOWN, DimensionSpec, sync_dimension

STORE_SPEC = DimensionSpec(
    entity='store',
    table=DIM_STORE,
    defaults={'city': UNKNOWN, 'country': UNKNOWN},
)


def process_dim_store(ctx: SyncContext) -> Dict[str, int]:
    return sync_dimension(ctx, STORE_SPEC)
