"""
Upsert planning by natural key.

A row either becomes Insert(row) - the warehouse sequence generates its
surrogate key - or Update(surrogate_key, row) when the natural key is
already mapped. Planning is a pure lookup, independent of any store.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union


@dataclass(frozen=True)
class Insert:
    row: Dict[str, Any]
    is_insert = True


@dataclass(frozen=True)
class Update:
    surrogate_key: int
    row: Dict[str, Any]
    is_insert = False


UpsertAction = Union[Insert, Update]


def plan_upsert(natural_key: Any, row: Dict[str, Any], key_map: Mapping) -> UpsertAction:
    """Reuse the existing surrogate key if the natural key is known, else insert."""
    surrogate_key = key_map.get(natural_key)
    if surrogate_key is None:
        return Insert(row)
    return Update(surrogate_key, row)
