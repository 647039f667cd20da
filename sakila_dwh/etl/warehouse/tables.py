"""
Star schema table definitions.

Keyed by the source entity name, which is also the watermark name.
"""

from sakila_dwh.storage.warehouse import BridgeTable, TargetTable

DIM_ACTOR = TargetTable(
    name='dim_actor', surrogate_key='actor_key', natural_key='actor_id',
    attributes=('first_name', 'last_name', 'last_update'),
)

DIM_CATEGORY = TargetTable(
    name='dim_category', surrogate_key='category_key', natural_key='category_id',
    attributes=('name', 'last_update'),
)

DIM_FILM = TargetTable(
    name='dim_film', surrogate_key='film_key', natural_key='film_id',
    attributes=('title', 'rating', 'length', 'language', 'release_year', 'last_update'),
)

DIM_STORE = TargetTable(
    name='dim_store', surrogate_key='store_key', natural_key='store_id',
    attributes=('city', 'country', 'last_update'),
)

DIM_CUSTOMER = TargetTable(
    name='dim_customer', surrogate_key='customer_key', natural_key='customer_id',
    attributes=('first_name', 'last_name', 'active', 'city', 'country', 'last_update'),
)

FACT_RENTAL = TargetTable(
    name='fact_rental', surrogate_key='fact_rental_key', natural_key='rental_id',
    attributes=(
        'date_key_rented', 'date_key_returned', 'film_key', 'store_key', 'customer_key',
        'staff_id', 'rental_duration_days', 'last_update',
    ),
)

FACT_PAYMENT = TargetTable(
    name='fact_payment', surrogate_key='fact_payment_key', natural_key='payment_id',
    attributes=('date_key_paid', 'customer_key', 'store_key', 'staff_id', 'amount'),
)

BRIDGE_FILM_ACTOR = BridgeTable(name='bridge_film_actor', left_key='film_key', right_key='actor_key')
BRIDGE_FILM_CATEGORY = BridgeTable(name='bridge_film_category', left_key='film_key', right_key='category_key')

# Order matters only for logging; dimensions are independent of each other
DIMENSION_TABLES = {
    'actor': DIM_ACTOR,
    'category': DIM_CATEGORY,
    'film': DIM_FILM,
    'store': DIM_STORE,
    'customer': DIM_CUSTOMER,
}

FACT_TABLES = {
    'rental': FACT_RENTAL,
    'payment': FACT_PAYMENT,
}

BRIDGE_TABLES = {
    'film_actor': BRIDGE_FILM_ACTOR,
    'film_category': BRIDGE_FILM_CATEGORY,
}

# Tables that must be empty for a full load
SYNC_TABLES = (
    ['dim_date'] + [t.name for t in DIMENSION_TABLES.values()]
    + [t.name for t in BRIDGE_TABLES.values()]
    + [t.name for t in FACT_TABLES.values()]
    + ['sync_state']
)
