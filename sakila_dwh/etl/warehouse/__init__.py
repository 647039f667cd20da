"""
DWH Sync Module.

Synchronizes the Sakila operational store (PostgreSQL) into a DuckDB star
schema, by full load or incrementally by watermark.

Structure:
├── pipeline.py          - Pass orchestrator (stages, transaction, run log)
├── context.py           - Run context (mode, caches, staged watermarks)
├── cache.py             - Dimension key maps
├── calendar.py          - DimDate derivation
├── upsert.py            - Insert/Update planning by natural key
├── watermark.py         - sync_state access
├── tables.py            - Star schema table definitions
├── dimensions/          - Dimension processors
│   ├── base.py         - Generic upsert processor
│   ├── actor.py, category.py, film.py, store.py, customer.py
│   └── date.py         - DimDate
└── facts/              - Fact and bridge processors
    ├── rental.py       - FactRental
    ├── payment.py      - FactPayment
    └── bridge.py       - film_actor / film_category bridges
"""

from .pipeline import (
    init_warehouse,
    run_full_load,
    run_incremental,
    SchemaNotInitializedError,
    WarehouseNotEmptyError,
    ReferentialIntegrityError,
)
from .cache import DimensionCaches, KeyMap, UnresolvedKeyError, UnresolvedKeysError
from .calendar import CalendarDate, date_key_for, derive_calendar
from .context import SyncContext, SyncMode
from .upsert import Insert, Update, plan_upsert
from .watermark import EPOCH, WatermarkStore
from .dimensions import TransformError

__all__ = [
    'init_warehouse',
    'run_full_load',
    'run_incremental',
    'SchemaNotInitializedError',
    'WarehouseNotEmptyError',
    'ReferentialIntegrityError',
    'DimensionCaches',
    'KeyMap',
    'UnresolvedKeyError',
    'UnresolvedKeysError',
    'CalendarDate',
    'date_key_for',
    'derive_calendar',
    'SyncContext',
    'SyncMode',
    'Insert',
    'Update',
    'plan_upsert',
    'EPOCH',
    'WatermarkStore',
    'TransformError',
]
