"""Unit tests for value coercion helpers."""
import pytest
import sys
import os
from datetime import datetime
from decimal import Decimal

import numpy as np
import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sakila_dwh.storage.values import (
    is_missing, normalize_timestamp, normalize_timestamps, to_int, to_money, to_python
)


class TestToMoney:
    """Tests for the canonical money representation."""

    def test_two_places(self):
        """Amounts are quantized to cents."""
        assert to_money(4.99) == Decimal('4.99')
        assert str(to_money(5)) == '5.00'

    def test_round_half_up(self):
        """Half cents round away from zero."""
        assert to_money('2.675') == Decimal('2.68')
        assert to_money(Decimal('0.005')) == Decimal('0.01')

    def test_float_noise_removed(self):
        """Binary float sums compare equal to their decimal value."""
        assert to_money(0.1 + 0.2) == Decimal('0.30')

    def test_missing_is_zero(self):
        """NULL amounts count as 0.00."""
        assert to_money(None) == Decimal('0.00')
        assert to_money(np.nan) == Decimal('0.00')

    def test_garbage_raises(self):
        """Non-numeric strings are rejected."""
        with pytest.raises(ValueError):
            to_money('abc')


class TestToPython:
    """Tests for scalar conversion."""

    def test_numpy_scalars(self):
        """numpy scalars become Python scalars."""
        assert type(to_python(np.int64(3))) is int
        assert type(to_python(np.float64(1.5))) is float

    def test_missing(self):
        """NaN/NaT become None."""
        assert to_python(np.nan) is None
        assert to_python(pd.NaT) is None
        assert is_missing(pd.NA)

    def test_timestamp(self):
        """Timestamps become datetimes."""
        value = to_python(pd.Timestamp('2005-05-24 22:53:30'))
        assert isinstance(value, datetime)

    def test_to_int_accepts_widened_floats(self):
        """12.0 from a NaN-widened column is 12."""
        assert to_int(12.0) == 12
        assert to_int(None) is None
        with pytest.raises(ValueError):
            to_int(1.5)


class TestNormalizeTimestamps:
    """Tests for timezone normalization."""

    def test_aware_converted_to_wall_clock(self):
        """timestamptz values are converted to the configured timezone, then made naive."""
        series = pd.Series(pd.to_datetime(['2005-05-24 22:00:00+00:00'], utc=True))
        result = normalize_timestamps(series, 'Europe/Berlin')
        assert result.iloc[0] == pd.Timestamp('2005-05-25 00:00:00')
        assert result.dt.tz is None

    def test_naive_unchanged(self):
        """Naive values are already wall-clock time."""
        series = pd.Series(pd.to_datetime(['2005-05-24 22:00:00']))
        assert normalize_timestamps(series, 'Europe/Berlin').iloc[0] == pd.Timestamp('2005-05-24 22:00:00')

    def test_scalar(self):
        """Scalar variant agrees with the column variant."""
        value = normalize_timestamp(pd.Timestamp('2005-05-24 22:00:00', tz='UTC'), 'Europe/Berlin')
        assert value == datetime(2005, 5, 25, 0, 0)
