"""Unit tests for dimension key maps."""
import pytest
import sys
import os
from datetime import datetime

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sakila_dwh.etl.warehouse.cache import (
    DimensionCaches, KeyMap, UnresolvedKeyError, UnresolvedKeysError
)
from sakila_dwh.etl.warehouse.tables import DIM_ACTOR


class TestKeyMap:
    """Tests for KeyMap."""

    def setup_method(self):
        self.key_map = KeyMap('film', {1: 10, 2: 20})

    def test_resolve_known_key(self):
        """Known natural key returns its surrogate key."""
        assert self.key_map.resolve(2) == 20

    def test_resolve_accepts_numpy_and_float_keys(self):
        """Keys from pandas frames resolve like plain ints."""
        assert self.key_map.resolve(np.int64(1)) == 10
        assert self.key_map.resolve(1.0) == 10

    def test_resolve_unknown_raises(self):
        """Unknown key raises instead of returning a default."""
        with pytest.raises(UnresolvedKeyError) as excinfo:
            self.key_map.resolve(99)
        assert excinfo.value.dimension == 'film'
        assert excinfo.value.natural_key == 99

    def test_missing_key_is_unresolved(self):
        """None/NaN from a failed join never resolve."""
        assert self.key_map.get(None) is None
        assert self.key_map.get(np.nan) is None
        with pytest.raises(UnresolvedKeyError):
            self.key_map.resolve(None)

    def test_add_refuses_remap(self):
        """A natural key keeps its surrogate key."""
        self.key_map.add(1, 10)
        with pytest.raises(ValueError):
            self.key_map.add(1, 11)

    def test_membership_and_len(self):
        """Container protocol."""
        assert 1 in self.key_map
        assert 3 not in self.key_map
        assert len(self.key_map) == 2


class TestDimensionCaches:
    """Tests for DimensionCaches."""

    def test_build_empty_warehouse(self, warehouse):
        """Every dimension and the date map exist, empty."""
        caches = DimensionCaches.build(warehouse)
        for name in ('actor', 'category', 'film', 'store', 'customer', 'date'):
            assert name in caches
            assert len(caches[name]) == 0

    def test_refresh_after_insert(self, warehouse):
        """refresh picks up rows inserted after build."""
        caches = DimensionCaches.build(warehouse)
        warehouse.insert_many(DIM_ACTOR, [
            {'actor_id': 7, 'first_name': 'A', 'last_name': 'B', 'last_update': datetime(2005, 1, 1)},
        ])
        assert caches['actor'].get(7) is None
        caches.refresh('actor')
        assert caches.resolve('actor', 7) == 1

    def test_resolve_all_names_every_missing_dimension(self, warehouse):
        """One error lists all unresolved foreign keys of a row."""
        caches = DimensionCaches.build(warehouse)
        with pytest.raises(UnresolvedKeysError) as excinfo:
            caches.resolve_all({
                'film_key': ('film', 1),
                'customer_key': ('customer', 2),
            })
        assert excinfo.value.dimensions == ['film', 'customer']
        assert 'film=1' in str(excinfo.value)
        assert isinstance(excinfo.value, UnresolvedKeyError)
