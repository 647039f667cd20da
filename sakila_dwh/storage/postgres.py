"""PostgreSQL (Sakila/pagila) source operations - read-only"""
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import psycopg2

from sakila_dwh.config import SOURCE_DB_CONFIG
from .values import normalize_timestamp, normalize_timestamps, to_money

logger = logging.getLogger(__name__)


class ConnectivityError(Exception):
    """Raised when a store cannot be reached at the start of a run."""
    pass


# Denormalizing extraction queries. Optional joins are LEFT JOINs so that a
# missing related row reaches the transform step (and its default/skip policy)
# instead of silently dropping the source row.
SOURCE_QUERIES = {
    'actor': """
        SELECT a.actor_id, a.first_name, a.last_name, a.last_update
        FROM actor a
    """,
    'category': """
        SELECT c.category_id, c.name, c.last_update
        FROM category c
    """,
    'film': """
        SELECT f.film_id, f.title, f.rating::text AS rating, f.length,
               l.name AS language, f.release_year, f.last_update
        FROM film f
        LEFT JOIN language l ON l.language_id = f.language_id
    """,
    'store': """
        SELECT s.store_id, ci.city, co.country, s.last_update
        FROM store s
        LEFT JOIN address a ON a.address_id = s.address_id
        LEFT JOIN city ci ON ci.city_id = a.city_id
        LEFT JOIN country co ON co.country_id = ci.country_id
    """,
    'customer': """
        SELECT c.customer_id, c.first_name, c.last_name, c.active,
               ci.city, co.country, c.last_update
        FROM customer c
        LEFT JOIN address a ON a.address_id = c.address_id
        LEFT JOIN city ci ON ci.city_id = a.city_id
        LEFT JOIN country co ON co.country_id = ci.country_id
    """,
    'film_actor': """
        SELECT fa.film_id, fa.actor_id, fa.last_update
        FROM film_actor fa
    """,
    'film_category': """
        SELECT fc.film_id, fc.category_id, fc.last_update
        FROM film_category fc
    """,
    'rental': """
        SELECT r.rental_id, r.rental_date, r.return_date, r.customer_id, r.staff_id,
               i.film_id, i.store_id, r.last_update
        FROM rental r
        LEFT JOIN inventory i ON i.inventory_id = r.inventory_id
    """,
    'payment': """
        SELECT p.payment_id, p.payment_date, p.amount, p.customer_id, p.staff_id,
               st.store_id
        FROM payment p
        LEFT JOIN staff st ON st.staff_id = p.staff_id
    """,
}

# Columns compared against the watermark (OR-ed). Rentals are also picked up by
# their business date so a rental opened before the watermark but only
# recorded after it is not missed. Payments are immutable: payment_date only.
CHANGE_FILTERS = {
    'actor': ('a.last_update',),
    'category': ('c.last_update',),
    'film': ('f.last_update',),
    'store': ('s.last_update',),
    'customer': ('c.last_update',),
    'film_actor': ('fa.last_update',),
    'film_category': ('fc.last_update',),
    'rental': ('r.last_update', 'r.rental_date'),
    'payment': ('p.payment_date',),
}

# Timestamp columns normalized to naive wall-clock time after each read
TIMESTAMP_COLUMNS = {
    'rental': ('rental_date', 'return_date', 'last_update'),
    'payment': ('payment_date',),
}


def get_db_connection(config: Optional[Dict[str, Any]] = None):
    """Get read-only PostgreSQL connection with the configured session timezone"""
    config = config or SOURCE_DB_CONFIG
    conn = psycopg2.connect(
        host=config["host"],
        port=config["port"],
        user=config["user"],
        password=config["password"],
        dbname=config["database"],
        connect_timeout=config["connect_timeout"],
        options=f"-c timezone={config['timezone']}",
    )
    # The operational store is never written to
    conn.set_session(readonly=True, autocommit=True)
    return conn


class PostgresSourceRepository:
    """Source repository: per-entity find_all / find_changed_since plus aggregates."""

    def __init__(self, conn, timezone: str = 'UTC'):
        self.conn = conn
        self.timezone = timezone

    @classmethod
    def connect(cls, config: Optional[Dict[str, Any]] = None) -> 'PostgresSourceRepository':
        config = config or SOURCE_DB_CONFIG
        try:
            conn = get_db_connection(config)
        except psycopg2.OperationalError as e:
            raise ConnectivityError(f"Cannot connect to source database {config['host']}:{config['port']}: {e}") from e
        logger.info(f"Connected to source database {config['database']} at {config['host']}:{config['port']}")
        return cls(conn, timezone=config["timezone"])

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _scalar(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        with self.conn.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchone()[0]

    def _read(self, entity: str, query: str, params: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        df = pd.read_sql(query, self.conn, params=params)
        columns = TIMESTAMP_COLUMNS.get(entity, ()) + ('last_update',)
        for col in set(columns):
            if col in df.columns:
                df[col] = normalize_timestamps(df[col], self.timezone)
        logger.debug(f"Read {len(df)} {entity} rows from source")
        return df

    def ping(self) -> bool:
        try:
            return self._scalar("SELECT 1") == 1
        except psycopg2.Error as e:
            raise ConnectivityError(f"Source database is not answering: {e}") from e

    def now(self) -> datetime:
        """Current time on the source's clock (naive, in the session timezone)."""
        return normalize_timestamp(self._scalar("SELECT CURRENT_TIMESTAMP"), self.timezone)

    def find_all(self, entity: str) -> pd.DataFrame:
        return self._read(entity, SOURCE_QUERIES[entity])

    def find_changed_since(self, entity: str, since: datetime) -> pd.DataFrame:
        where = ' OR '.join(f"{col} > %(since)s" for col in CHANGE_FILTERS[entity])
        query = f"{SOURCE_QUERIES[entity]} WHERE {where}"
        return self._read(entity, query, params={'since': since})

    def find_transaction_dates(self, since: Optional[datetime] = None) -> pd.DataFrame:
        """
        Timestamps that need a date-dimension row: rental, return and payment
        dates of transactions changed since `since` (all when None).
        """
        rental_filter = "TRUE" if since is None else "(r.last_update > %(since)s OR r.rental_date > %(since)s)"
        payment_filter = "TRUE" if since is None else "p.payment_date > %(since)s"
        query = f"""
            SELECT DISTINCT CAST(ts AS DATE) AS ts FROM (
                SELECT r.rental_date AS ts FROM rental r WHERE {rental_filter}
                UNION ALL
                SELECT r.return_date AS ts FROM rental r
                WHERE r.return_date IS NOT NULL AND {rental_filter}
                UNION ALL
                SELECT p.payment_date AS ts FROM payment p WHERE {payment_filter}
            ) t
        """
        return pd.read_sql(query, self.conn, params={'since': since} if since is not None else None)

    # ------------------------------------------------------------------
    # Reconciliation aggregates
    # ------------------------------------------------------------------

    @staticmethod
    def _window_start(start: date) -> datetime:
        return datetime.combine(start, time.min)

    def count_rentals(self, start: date) -> int:
        return self._scalar("""
            SELECT COUNT(*) FROM rental WHERE rental_date >= %(start)s
        """, {'start': self._window_start(start)})

    def count_payments(self, start: date) -> int:
        return self._scalar("""
            SELECT COUNT(*) FROM payment WHERE payment_date >= %(start)s
        """, {'start': self._window_start(start)})

    def sum_payments(self, start: date) -> Decimal:
        return to_money(self._scalar("""
            SELECT COALESCE(SUM(amount), 0) FROM payment WHERE payment_date >= %(start)s
        """, {'start': self._window_start(start)}))

    def count_rentals_by_store(self, start: date) -> pd.DataFrame:
        return pd.read_sql("""
            SELECT i.store_id, COUNT(*) AS value
            FROM rental r
            JOIN inventory i ON i.inventory_id = r.inventory_id
            WHERE r.rental_date >= %(start)s
            GROUP BY i.store_id
            ORDER BY i.store_id
        """, self.conn, params={'start': self._window_start(start)})

    def sum_payments_by_store(self, start: date) -> pd.DataFrame:
        return pd.read_sql("""
            SELECT st.store_id, SUM(p.amount) AS value
            FROM payment p
            JOIN staff st ON st.staff_id = p.staff_id
            WHERE p.payment_date >= %(start)s
            GROUP BY st.store_id
            ORDER BY st.store_id
        """, self.conn, params={'start': self._window_start(start)})


def get_source_repository(config: Optional[Dict[str, Any]] = None) -> PostgresSourceRepository:
    """Open the configured source repository (raises ConnectivityError)."""
    return PostgresSourceRepository.connect(config)
