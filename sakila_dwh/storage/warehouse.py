"""
Warehouse (DuckDB) repository.

Typed, filterable access to the star schema: natural-key lookups, bulk
insert/update, bridge pairs, date rows and aggregates joined against
dim_date by date key.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import duckdb
import pandas as pd

from .values import to_python

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetTable:
    """A dimension or fact table keyed by a generated surrogate key."""
    name: str
    surrogate_key: str
    natural_key: str
    attributes: Tuple[str, ...]

    @property
    def sequence(self) -> str:
        return f"seq_{self.name}_key"

    @property
    def columns(self) -> Tuple[str, ...]:
        """Every column except the surrogate key."""
        return (self.natural_key,) + self.attributes


@dataclass(frozen=True)
class BridgeTable:
    """Many-to-many association between two dimensions' surrogate keys."""
    name: str
    left_key: str
    right_key: str


class WarehouseRepository:
    """Target repository over a DuckDB connection."""

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self.conn = conn

    def ping(self) -> bool:
        return self.conn.execute("SELECT 1").fetchone()[0] == 1

    # ------------------------------------------------------------------
    # Dimension / fact rows
    # ------------------------------------------------------------------

    def find_all(self, table: TargetTable) -> pd.DataFrame:
        return self.conn.execute(f"""
            SELECT * FROM {table.name} ORDER BY {table.surrogate_key}
        """).fetchdf()

    def find_by_natural_key(self, table: TargetTable, key: Any) -> Optional[Dict[str, Any]]:
        cursor = self.conn.execute(f"""
            SELECT * FROM {table.name} WHERE {table.natural_key} = ?
        """, [to_python(key)])
        row = cursor.fetchone()
        if row is None:
            return None
        names = [d[0] for d in cursor.description]
        return dict(zip(names, row))

    def key_map(self, table: TargetTable) -> Dict[int, int]:
        """natural key -> surrogate key for every row of the table."""
        rows = self.conn.execute(f"""
            SELECT {table.natural_key}, {table.surrogate_key} FROM {table.name}
        """).fetchall()
        return {row[0]: row[1] for row in rows}

    def count(self, table_name: str) -> int:
        return self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]

    def insert_many(self, table: TargetTable, rows: Sequence[Dict[str, Any]]) -> int:
        """Insert rows, letting the table's sequence generate surrogate keys."""
        if not rows:
            return 0
        columns = table.columns
        placeholders = ', '.join(['?'] * len(columns))
        self.conn.executemany(f"""
            INSERT INTO {table.name} ({table.surrogate_key}, {', '.join(columns)})
            VALUES (NEXTVAL('{table.sequence}'), {placeholders})
        """, [[to_python(row.get(c)) for c in columns] for row in rows])
        return len(rows)

    def update_many(self, table: TargetTable, updates: Sequence[Tuple[int, Dict[str, Any]]]) -> int:
        """Update attributes in place; surrogate and natural keys never change."""
        if not updates:
            return 0
        attributes = table.attributes
        assignments = ', '.join(f"{c} = ?" for c in attributes)
        self.conn.executemany(f"""
            UPDATE {table.name} SET {assignments} WHERE {table.surrogate_key} = ?
        """, [[to_python(row.get(c)) for c in attributes] + [surrogate_key] for surrogate_key, row in updates])
        return len(updates)

    def upsert(self, table: TargetTable, actions: Iterable[Any]) -> Dict[str, int]:
        """Apply planned Insert/Update actions (see etl.warehouse.upsert)."""
        inserts: List[Dict[str, Any]] = []
        updates: List[Tuple[int, Dict[str, Any]]] = []
        for action in actions:
            if action.is_insert:
                inserts.append(action.row)
            else:
                updates.append((action.surrogate_key, action.row))
        return {
            'inserted': self.insert_many(table, inserts),
            'updated': self.update_many(table, updates),
        }

    # ------------------------------------------------------------------
    # Date dimension
    # ------------------------------------------------------------------

    def date_keys(self) -> Set[int]:
        return {row[0] for row in self.conn.execute("SELECT date_key FROM dim_date").fetchall()}

    def insert_dates(self, calendar_dates: Sequence[Any]) -> int:
        if not calendar_dates:
            return 0
        self.conn.executemany("""
            INSERT INTO dim_date (date_key, calendar_date, year, quarter, month, day_of_month, day_of_week, is_weekend)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            [c.date_key, c.calendar_date, c.year, c.quarter, c.month, c.day_of_month, c.day_of_week, c.is_weekend]
            for c in calendar_dates
        ])
        return len(calendar_dates)

    # ------------------------------------------------------------------
    # Bridges
    # ------------------------------------------------------------------

    def bridge_pairs(self, bridge: BridgeTable) -> Set[Tuple[int, int]]:
        rows = self.conn.execute(f"""
            SELECT {bridge.left_key}, {bridge.right_key} FROM {bridge.name}
        """).fetchall()
        return {(row[0], row[1]) for row in rows}

    def insert_pairs(self, bridge: BridgeTable, pairs: Sequence[Tuple[int, int]]) -> int:
        if not pairs:
            return 0
        self.conn.executemany(f"""
            INSERT INTO {bridge.name} ({bridge.left_key}, {bridge.right_key})
            VALUES (?, ?)
            ON CONFLICT DO NOTHING
        """, [list(pair) for pair in pairs])
        return len(pairs)

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def orphan_counts(self) -> Dict[str, int]:
        """Fact/bridge rows whose foreign keys do not resolve to a dimension row."""
        checks = {
            'fact_rental.film_key': """
                SELECT COUNT(*) FROM fact_rental f
                LEFT JOIN dim_film d ON d.film_key = f.film_key WHERE d.film_key IS NULL
            """,
            'fact_rental.store_key': """
                SELECT COUNT(*) FROM fact_rental f
                LEFT JOIN dim_store d ON d.store_key = f.store_key WHERE d.store_key IS NULL
            """,
            'fact_rental.customer_key': """
                SELECT COUNT(*) FROM fact_rental f
                LEFT JOIN dim_customer d ON d.customer_key = f.customer_key WHERE d.customer_key IS NULL
            """,
            'fact_rental.date_key_rented': """
                SELECT COUNT(*) FROM fact_rental f
                LEFT JOIN dim_date d ON d.date_key = f.date_key_rented WHERE d.date_key IS NULL
            """,
            'fact_rental.date_key_returned': """
                SELECT COUNT(*) FROM fact_rental f
                LEFT JOIN dim_date d ON d.date_key = f.date_key_returned
                WHERE f.date_key_returned IS NOT NULL AND d.date_key IS NULL
            """,
            'fact_payment.customer_key': """
                SELECT COUNT(*) FROM fact_payment f
                LEFT JOIN dim_customer d ON d.customer_key = f.customer_key WHERE d.customer_key IS NULL
            """,
            'fact_payment.store_key': """
                SELECT COUNT(*) FROM fact_payment f
                LEFT JOIN dim_store d ON d.store_key = f.store_key WHERE d.store_key IS NULL
            """,
            'fact_payment.date_key_paid': """
                SELECT COUNT(*) FROM fact_payment f
                LEFT JOIN dim_date d ON d.date_key = f.date_key_paid WHERE d.date_key IS NULL
            """,
            'bridge_film_actor.film_key': """
                SELECT COUNT(*) FROM bridge_film_actor b
                LEFT JOIN dim_film d ON d.film_key = b.film_key WHERE d.film_key IS NULL
            """,
            'bridge_film_actor.actor_key': """
                SELECT COUNT(*) FROM bridge_film_actor b
                LEFT JOIN dim_actor d ON d.actor_key = b.actor_key WHERE d.actor_key IS NULL
            """,
            'bridge_film_category.film_key': """
                SELECT COUNT(*) FROM bridge_film_category b
                LEFT JOIN dim_film d ON d.film_key = b.film_key WHERE d.film_key IS NULL
            """,
            'bridge_film_category.category_key': """
                SELECT COUNT(*) FROM bridge_film_category b
                LEFT JOIN dim_category d ON d.category_key = b.category_key WHERE d.category_key IS NULL
            """,
        }
        counts = {name: self.conn.execute(sql).fetchone()[0] for name, sql in checks.items()}
        return {name: n for name, n in counts.items() if n}

    # ------------------------------------------------------------------
    # Reconciliation aggregates (joined against dim_date by date key)
    # ------------------------------------------------------------------

    def count_rentals(self, start: date) -> int:
        return self.conn.execute("""
            SELECT COUNT(*)
            FROM fact_rental f
            JOIN dim_date d ON d.date_key = f.date_key_rented
            WHERE d.calendar_date >= ?
        """, [start]).fetchone()[0]

    def count_payments(self, start: date) -> int:
        return self.conn.execute("""
            SELECT COUNT(*)
            FROM fact_payment f
            JOIN dim_date d ON d.date_key = f.date_key_paid
            WHERE d.calendar_date >= ?
        """, [start]).fetchone()[0]

    def sum_payments(self, start: date) -> Decimal:
        return self.conn.execute("""
            SELECT COALESCE(SUM(f.amount), 0)
            FROM fact_payment f
            JOIN dim_date d ON d.date_key = f.date_key_paid
            WHERE d.calendar_date >= ?
        """, [start]).fetchone()[0]

    def count_rentals_by_store(self, start: date) -> pd.DataFrame:
        rows = self.conn.execute("""
            SELECT s.store_id, COUNT(*) AS value
            FROM fact_rental f
            JOIN dim_date d ON d.date_key = f.date_key_rented
            JOIN dim_store s ON s.store_key = f.store_key
            WHERE d.calendar_date >= ?
            GROUP BY s.store_id
            ORDER BY s.store_id
        """, [start]).fetchall()
        return pd.DataFrame(rows, columns=['store_id', 'value'])

    def sum_payments_by_store(self, start: date) -> pd.DataFrame:
        rows = self.conn.execute("""
            SELECT s.store_id, SUM(f.amount) AS value
            FROM fact_payment f
            JOIN dim_date d ON d.date_key = f.date_key_paid
            JOIN dim_store s ON s.store_key = f.store_key
            WHERE d.calendar_date >= ?
            GROUP BY s.store_id
            ORDER BY s.store_id
        """, [start]).fetchall()
        return pd.DataFrame(rows, columns=['store_id', 'value'])
