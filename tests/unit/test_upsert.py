"""Unit tests for upsert planning."""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from sakila_dwh.etl.warehouse.cache import KeyMap
from sakila_dwh.etl.warehouse.upsert import Insert, Update, plan_upsert


class TestPlanUpsert:
    """Tests for plan_upsert."""

    def test_unknown_key_inserts(self):
        """New natural key becomes an Insert."""
        row = {'actor_id': 5, 'first_name': 'X'}
        action = plan_upsert(5, row, {})
        assert action == Insert(row)
        assert action.is_insert

    def test_known_key_updates_existing_surrogate(self):
        """Known natural key keeps its surrogate key."""
        row = {'actor_id': 5, 'first_name': 'Y'}
        action = plan_upsert(5, row, KeyMap('actor', {5: 42}))
        assert isinstance(action, Update)
        assert action.surrogate_key == 42
        assert action.row == row
        assert not action.is_insert

    def test_plain_dict_key_map(self):
        """Any mapping works as a key map."""
        assert plan_upsert(1, {}, {1: 3}) == Update(3, {})
