"""
Dimension key caches.

Run-scoped: built from the warehouse at the start of a pass, refreshed after
each dimension pass inserts rows, discarded when the pass ends.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sakila_dwh.storage.values import to_int
from sakila_dwh.storage.warehouse import WarehouseRepository
from .tables import DIMENSION_TABLES

logger = logging.getLogger(__name__)

DATE = 'date'


class UnresolvedKeyError(KeyError):
    """A natural key has no surrogate key in its dimension (yet)."""

    def __init__(self, dimension: str, natural_key: Any):
        super().__init__(dimension, natural_key)
        self.dimension = dimension
        self.natural_key = natural_key

    def __str__(self):
        return f"unresolved {self.dimension}={self.natural_key}"


class UnresolvedKeysError(UnresolvedKeyError):
    """Several foreign keys of one row failed to resolve."""

    def __init__(self, missing: List[Tuple[str, Any]]):
        dimension, natural_key = missing[0]
        super().__init__(dimension, natural_key)
        self.missing = missing
        self.dimensions = [d for d, _ in missing]

    def __str__(self):
        return "unresolved " + ", ".join(f"{d}={k}" for d, k in self.missing)


class KeyMap:
    """natural key -> surrogate key for one dimension."""

    def __init__(self, dimension: str, mapping: Optional[Dict[int, int]] = None):
        self.dimension = dimension
        self._map: Dict[int, int] = {}
        for natural_key, surrogate_key in (mapping or {}).items():
            self.add(natural_key, surrogate_key)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, natural_key: Any) -> bool:
        return self.get(natural_key) is not None

    def __iter__(self) -> Iterator[int]:
        return iter(self._map)

    def get(self, natural_key: Any) -> Optional[int]:
        try:
            key = to_int(natural_key)
        except (TypeError, ValueError):
            return None
        if key is None:
            return None
        return self._map.get(key)

    def resolve(self, natural_key: Any) -> int:
        """Surrogate key, or UnresolvedKeyError. Never a default value."""
        surrogate_key = self.get(natural_key)
        if surrogate_key is None:
            raise UnresolvedKeyError(self.dimension, natural_key)
        return surrogate_key

    def add(self, natural_key: Any, surrogate_key: int):
        key = to_int(natural_key)
        existing = self._map.get(key)
        if existing is not None and existing != surrogate_key:
            raise ValueError(
                f"{self.dimension}: natural key {key} already mapped to {existing}, refusing {surrogate_key}"
            )
        self._map[key] = int(surrogate_key)

    def as_dict(self) -> Dict[int, int]:
        return dict(self._map)


class DimensionCaches:
    """
    All key maps for one run.

    - actor/category/film/store/customer: natural id -> surrogate key
    - date: date_key -> date_key (membership of dim_date)
    """

    def __init__(self, warehouse: WarehouseRepository):
        self.warehouse = warehouse
        self._maps: Dict[str, KeyMap] = {}

    @classmethod
    def build(cls, warehouse: WarehouseRepository) -> 'DimensionCaches':
        caches = cls(warehouse)
        for name in DIMENSION_TABLES:
            caches.refresh(name)
        caches.refresh(DATE)
        logger.info("Caches initialized: " + ", ".join(f"{k}={len(v)}" for k, v in caches._maps.items()))
        return caches

    def refresh(self, name: str) -> KeyMap:
        if name == DATE:
            mapping = {k: k for k in self.warehouse.date_keys()}
        else:
            mapping = self.warehouse.key_map(DIMENSION_TABLES[name])
        self._maps[name] = KeyMap(name, mapping)
        return self._maps[name]

    def __getitem__(self, name: str) -> KeyMap:
        return self._maps[name]

    def __contains__(self, name: str) -> bool:
        return name in self._maps

    def resolve(self, name: str, natural_key: Any) -> int:
        return self._maps[name].resolve(natural_key)

    def resolve_all(self, keys: Dict[str, Tuple[str, Any]]) -> Dict[str, int]:
        """
        Resolve several foreign keys at once.

        keys: target column -> (dimension, natural key), e.g.
              {'film_key': ('film', 12), 'date_key_rented': ('date', 20050524)}

        Raises UnresolvedKeysError naming every dimension that failed.
        """
        resolved = {}
        missing = []
        for column, (dimension, natural_key) in keys.items():
            surrogate_key = self._maps[dimension].get(natural_key)
            if surrogate_key is None:
                missing.append((dimension, natural_key))
            else:
                resolved[column] = surrogate_key
        if missing:
            raise UnresolvedKeysError(missing)
        return resolved
