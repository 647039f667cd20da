"""
DimFilm dimension processor.

Film is denormalized with its language name. Rating, length and release
year are optional in the source and stay NULL; a film whose language
cannot be joined is labelled with the unknown sentinel.
"""

from typing import Dict

from ..context import SyncContext
from ..tables import DIM_FILM
from .base import UNKNOWN, DimensionSpec, sync_dimension


def _release_year(value) -> int:
    year = int(value)
    if year <= 0:
        raise ValueError(f"invalid release year {value}")
    return year


FILM_SPEC = DimensionSpec(
    entity='film',
    table=DIM_FILM,
    nullable=('rating', 'length', 'release_year'),
    defaults={'language': UNKNOWN},
    converters={
        'title': str,
        'rating': str,
        'length': int,
        'language': lambda v: str(v).strip() or UNKNOWN,
        'release_year': _release_year,
    },
)


def process_dim_film(ctx: SyncContext) -> Dict[str, int]:
    """Process DimFilm (upsert by film_id)."""
    return sync_dimension(ctx, FILM_SPEC)
