"""
DimCategory dimension processor.
"""

from typing import Dict

from ..context import SyncContext
from ..tables import DIM_CATEGORY
from .base import DimensionSpec, sync_dimension

CATEGORY_SPEC = DimensionSpec(entity='category', table=DIM_CATEGORY)


def process_dim_category(ctx: SyncContext) -> Dict[str, int]:
    return sync_dimension(ctx, CATEGORY_SPEC)
