"""Shared fixtures: in-memory warehouse and an in-memory Sakila source."""
import pytest
import sys
import os
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import duckdb
import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sakila_dwh.storage.duckdb_store import setup_schema
from sakila_dwh.storage.postgres import CHANGE_FILTERS, ConnectivityError
from sakila_dwh.storage.values import to_money
from sakila_dwh.storage.warehouse import WarehouseRepository
from sakila_dwh.etl.warehouse.cache import DimensionCaches
from sakila_dwh.etl.warehouse.context import SyncContext, SyncMode
from sakila_dwh.etl.warehouse.watermark import WatermarkStore

# Clock of the source at the first pass; all sample rows predate it
FIRST_RUN = datetime(2005, 9, 1, 0, 0)
SECOND_RUN = datetime(2005, 9, 2, 0, 0)
# Between the two runs
CHANGED_AT = datetime(2005, 9, 1, 12, 0)
AS_OF = date(2005, 8, 31)
LOADED_AT = datetime(2005, 8, 1, 9, 0)


class FakeSourceRepository:
    """Same interface as PostgresSourceRepository, backed by DataFrames."""

    def __init__(self, frames, clock=FIRST_RUN):
        self.frames = frames
        self.clock = clock
        self.available = True
        self.closed = False

    def ping(self):
        if not self.available:
            raise ConnectivityError("Source database is not answering: connection refused")
        return True

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def now(self):
        return self.clock

    def find_all(self, entity):
        return self.frames[entity].copy()

    def _changed_mask(self, df, columns, since):
        mask = pd.Series(False, index=df.index)
        for column in columns:
            mask |= df[column] > since
        return mask

    def find_changed_since(self, entity, since):
        df = self.frames[entity]
        columns = [c.split('.')[-1] for c in CHANGE_FILTERS[entity]]
        return df[self._changed_mask(df, columns, since)].copy()

    def find_transaction_dates(self, since=None):
        rentals = self.frames['rental']
        payments = self.frames['payment']
        if since is not None:
            rentals = rentals[self._changed_mask(rentals, ['last_update', 'rental_date'], since)]
            payments = payments[payments['payment_date'] > since]
        stamps = pd.concat([
            rentals['rental_date'], rentals['return_date'].dropna(), payments['payment_date'],
        ])
        return pd.DataFrame({'ts': sorted({ts.date() for ts in stamps})})

    def _window(self, df, column, start):
        return df[df[column] >= datetime.combine(start, time.min)]

    def count_rentals(self, start):
        return len(self._window(self.frames['rental'], 'rental_date', start))

    def count_payments(self, start):
        return len(self._window(self.frames['payment'], 'payment_date', start))

    def sum_payments(self, start):
        amounts = self._window(self.frames['payment'], 'payment_date', start)['amount']
        return to_money(sum(amounts, Decimal('0.00')))

    def count_rentals_by_store(self, start):
        df = self._window(self.frames['rental'], 'rental_date', start)
        grouped = df.groupby('store_id').size()
        return pd.DataFrame({'store_id': grouped.index, 'value': grouped.values})

    def sum_payments_by_store(self, start):
        df = self._window(self.frames['payment'], 'payment_date', start)
        rows = [
            {'store_id': store_id, 'value': sum(group['amount'], Decimal('0.00'))}
            for store_id, group in df.groupby('store_id')
        ]
        return pd.DataFrame(rows, columns=['store_id', 'value'])


def _frame(rows, columns, timestamps=()):
    df = pd.DataFrame(rows, columns=columns)
    for column in timestamps:
        df[column] = pd.to_datetime(df[column])
    return df


def make_sakila_frames():
    """
    Small Sakila sample.

    - 3 actors, 2 categories, 3 films (film 3 has no language and no rating)
    - 2 stores, 4 customers
    - 10 rentals in August 2005 (rental 10 not returned yet)
    - 120 payments in August 2005 totalling 514.80, one of them 0.00
    """
    actor = _frame([
        (1, 'PENELOPE', 'GUINESS', LOADED_AT),
        (2, 'NICK', 'WAHLBERG', LOADED_AT),
        (3, 'ED', 'CHASE', LOADED_AT),
    ], ['actor_id', 'first_name', 'last_name', 'last_update'], ['last_update'])

    category = _frame([
        (1, 'Action', LOADED_AT),
        (2, 'Comedy', LOADED_AT),
    ], ['category_id', 'name', 'last_update'], ['last_update'])

    film = _frame([
        (1, 'ACADEMY DINOSAUR', 'PG', 86, 'English', 2006, LOADED_AT),
        (2, 'ACE GOLDFINGER', 'G', 48, 'English', 2006, LOADED_AT),
        (3, 'ADAPTATION HOLES', None, None, None, None, LOADED_AT),
    ], ['film_id', 'title', 'rating', 'length', 'language', 'release_year', 'last_update'], ['last_update'])

    store = _frame([
        (1, 'Lethbridge', 'Canada', LOADED_AT),
        (2, 'Woodridge', 'Australia', LOADED_AT),
    ], ['store_id', 'city', 'country', 'last_update'], ['last_update'])

    customer = _frame([
        (1, 'MARY', 'SMITH', 1, 'Sasebo', 'Japan', LOADED_AT),
        (2, 'PATRICIA', 'JOHNSON', 1, 'San Bernardino', 'United States', LOADED_AT),
        (3, 'LINDA', 'WILLIAMS', 1, 'Athenai', 'Greece', LOADED_AT),
        (4, 'BARBARA', 'JONES', 0, None, None, LOADED_AT),
    ], ['customer_id', 'first_name', 'last_name', 'active', 'city', 'country', 'last_update'], ['last_update'])

    film_actor = _frame([
        (1, 1, LOADED_AT), (1, 2, LOADED_AT), (2, 3, LOADED_AT), (3, 1, LOADED_AT),
    ], ['film_id', 'actor_id', 'last_update'], ['last_update'])

    film_category = _frame([
        (1, 1, LOADED_AT), (2, 2, LOADED_AT), (3, 1, LOADED_AT),
    ], ['film_id', 'category_id', 'last_update'], ['last_update'])

    rentals = []
    for i in range(1, 11):
        rented = datetime(2005, 8, 1 + i, 10, 30)
        returned = rented + timedelta(days=i % 4 + 1) if i != 10 else None
        rentals.append((
            i, rented, returned, (i % 4) + 1, (i % 2) + 1,
            (i % 3) + 1, (i % 2) + 1, returned or rented,
        ))
    rental = _frame(
        rentals,
        ['rental_id', 'rental_date', 'return_date', 'customer_id', 'staff_id', 'film_id', 'store_id', 'last_update'],
        ['rental_date', 'return_date', 'last_update'],
    )

    # 118 x 4.29 + 8.58 + 0.00 = 514.80
    payments = []
    for i in range(1, 121):
        if i == 119:
            amount = Decimal('8.58')
        elif i == 120:
            amount = Decimal('0.00')
        else:
            amount = Decimal('4.29')
        staff_id = (i % 2) + 1
        paid = datetime(2005, 8, 2 + i % 28, 12, 0) + timedelta(minutes=i)
        payments.append((i, paid, amount, (i % 4) + 1, staff_id, staff_id))
    payment = _frame(
        payments,
        ['payment_id', 'payment_date', 'amount', 'customer_id', 'staff_id', 'store_id'],
        ['payment_date'],
    )

    return {
        'actor': actor,
        'category': category,
        'film': film,
        'store': store,
        'customer': customer,
        'film_actor': film_actor,
        'film_category': film_category,
        'rental': rental,
        'payment': payment,
    }


def append_rows(frames, entity, rows):
    """Append dict rows to a source frame, keeping dtypes."""
    df = frames[entity]
    added = pd.DataFrame(rows, columns=df.columns)
    for column in df.columns:
        if pd.api.types.is_datetime64_any_dtype(df[column]):
            added[column] = pd.to_datetime(added[column])
    frames[entity] = pd.concat([df, added], ignore_index=True)


def update_row(frames, entity, key_column, key, **values):
    df = frames[entity]
    mask = df[key_column] == key
    for column, value in values.items():
        df.loc[mask, column] = value


def apply_second_day_changes(frames):
    """Source changes made between FIRST_RUN and SECOND_RUN."""
    update_row(frames, 'customer', 'customer_id', 2, city='Kamakura', country='Japan', last_update=CHANGED_AT)
    # A late return corrects rental 1
    update_row(
        frames, 'rental', 'rental_id', 1,
        return_date=pd.Timestamp(2005, 8, 9, 8, 0), last_update=pd.Timestamp(CHANGED_AT),
    )
    append_rows(frames, 'actor', [
        {'actor_id': 4, 'first_name': 'JENNIFER', 'last_name': 'DAVIS', 'last_update': CHANGED_AT},
    ])
    append_rows(frames, 'film_actor', [
        {'film_id': 2, 'actor_id': 4, 'last_update': CHANGED_AT},
    ])
    append_rows(frames, 'rental', [{
        'rental_id': 11, 'rental_date': datetime(2005, 9, 1, 5, 0), 'return_date': None,
        'customer_id': 3, 'staff_id': 1, 'film_id': 2, 'store_id': 1, 'last_update': datetime(2005, 9, 1, 5, 0),
    }])
    append_rows(frames, 'payment', [{
        'payment_id': 121, 'payment_date': datetime(2005, 9, 1, 6, 0), 'amount': Decimal('2.99'),
        'customer_id': 3, 'staff_id': 1, 'store_id': 1,
    }])


@pytest.fixture
def frames():
    return make_sakila_frames()


@pytest.fixture
def source(frames):
    return FakeSourceRepository(frames)


@pytest.fixture
def conn():
    connection = duckdb.connect(':memory:')
    setup_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def warehouse(conn):
    return WarehouseRepository(conn)


@pytest.fixture
def make_context(conn, warehouse):
    """Build a SyncContext outside the orchestrator."""
    def _make(source, mode=SyncMode.FULL):
        return SyncContext(
            source=source,
            warehouse=warehouse,
            caches=DimensionCaches.build(warehouse),
            watermarks=WatermarkStore(conn),
            mode=mode,
        )
    return _make
