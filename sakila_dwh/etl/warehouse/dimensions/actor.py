"""
DimActor dimension processor.
"""

import logging
from typing import Dict

from ..context import SyncContext
from ..tables import DIM_ACTOR
from .base import DimensionSpec, sync_dimension

logger = logging.getLogger(__name__)

ACTOR_SPEC = DimensionSpec(entity='actor', table=DIM_ACTOR)


def process_dim_actor(ctx: SyncContext) -> Dict[str, int]:
    """Process DimActor (first_name, last_name are required)."""
    return sync_dimension(ctx, ACTOR_SPEC)
