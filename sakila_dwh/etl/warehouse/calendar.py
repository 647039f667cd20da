"""
Calendar derivation for DimDate.

Day-of-week convention: 0 = Sunday, 1 = Monday, ..., 6 = Saturday.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd

from sakila_dwh.storage.values import is_missing

WEEKEND_DAYS = (0, 6)


@dataclass(frozen=True)
class CalendarDate:
    """One DimDate row."""
    date_key: int
    calendar_date: date
    year: int
    quarter: int
    month: int
    day_of_month: int
    day_of_week: int
    is_weekend: bool


def to_calendar_date(value: Any) -> date:
    """Truncate any supported date/time representation to a civil date."""
    if is_missing(value):
        raise ValueError("Cannot derive a calendar date from a missing value")
    if isinstance(value, datetime):  # includes pd.Timestamp
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).date()
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Unsupported date value: {value!r}")


def date_key_for(value: Any) -> int:
    """YYYYMMDD integer key."""
    d = to_calendar_date(value)
    return d.year * 10000 + d.month * 100 + d.day


def derive_calendar(value: Any) -> CalendarDate:
    d = to_calendar_date(value)
    day_of_week = d.isoweekday() % 7
    return CalendarDate(
        date_key=date_key_for(d),
        calendar_date=d,
        year=d.year,
        quarter=(d.month - 1) // 3 + 1,
        month=d.month,
        day_of_month=d.day,
        day_of_week=day_of_week,
        is_weekend=day_of_week in WEEKEND_DAYS,
    )
