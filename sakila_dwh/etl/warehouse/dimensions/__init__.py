"""
Dimension processing modules for DWH ETL.
"""

from .base import DimensionSpec, TransformError, sync_dimension
from .actor import process_dim_actor
from .category import process_dim_category
from .film import process_dim_film
from .store import process_dim_store
from .customer import process_dim_customer
from .date import process_dim_date

__all__ = [
    'DimensionSpec',
    'TransformError',
    'sync_dimension',
    'process_dim_actor',
    'process_dim_category',
    'process_dim_film',
    'process_dim_store',
    'process_dim_customer',
    'process_dim_date',
]
