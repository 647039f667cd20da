"""
Fact and bridge processing modules for DWH ETL.
"""

from .base import sync_fact
from .rental import build_rental_row, process_fact_rental
from .payment import build_payment_row, process_fact_payment
from .bridge import process_bridge, process_bridge_film_actor, process_bridge_film_category

__all__ = [
    'sync_fact',
    'build_rental_row',
    'process_fact_rental',
    'build_payment_row',
    'process_fact_payment',
    'process_bridge',
    'process_bridge_film_actor',
    'process_bridge_film_category',
]
