"""
Value coercion at the store boundary.

pandas hands back numpy scalars, NaN/NaT and tz-aware Timestamps; DuckDB and
the sync engine work with plain Python values.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

import numpy as np
import pandas as pd

CENT = Decimal('0.01')


def is_missing(value: Any) -> bool:
    """True for None, NaN, NaT and pd.NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-like values are never "missing"
        return False


def to_python(value: Any) -> Any:
    """Convert pandas/numpy scalars to plain Python values (missing -> None)."""
    if is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def to_int(value: Any) -> Optional[int]:
    """Integer identifier or None. Floats such as 12.0 (NaN-widened ints) are accepted."""
    value = to_python(value)
    if value is None:
        return None
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Not an integer identifier: {value}")
    return int(value)


def to_money(value: Any) -> Decimal:
    """
    Canonical monetary representation: Decimal with 2 places, ROUND_HALF_UP.
    Missing values count as 0.00.
    """
    value = to_python(value)
    if value is None:
        return Decimal('0.00')
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_timestamps(series: pd.Series, timezone: str = 'UTC') -> pd.Series:
    """
    Normalize a timestamp column to naive wall-clock time in `timezone`.

    tz-aware values (timestamptz from PostgreSQL) are converted; naive values
    are taken as already being in `timezone`.
    """
    if series.empty:
        return pd.to_datetime(series)
    aware = series.map(lambda v: getattr(v, 'tzinfo', None) is not None).any()
    if aware or isinstance(series.dtype, pd.DatetimeTZDtype):
        converted = pd.to_datetime(series, utc=True)
        return converted.dt.tz_convert(timezone).dt.tz_localize(None)
    return pd.to_datetime(series)


def normalize_timestamp(value: Any, timezone: str = 'UTC') -> Optional[datetime]:
    """Scalar counterpart of normalize_timestamps."""
    value = to_python(value)
    if value is None:
        return None
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(timezone).tz_localize(None)
    return ts.to_pydatetime()
