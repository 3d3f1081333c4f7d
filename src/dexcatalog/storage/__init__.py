"""Storage components for the token registry and pair list artifacts.

This package provides:
- JsonRegistryStore: registry load/persist with atomic replacement
- write_pairs / read_pairs: JSON or Parquet pair lists
"""

from dexcatalog.storage.pairs import read_pairs, write_pairs
from dexcatalog.storage.registry_store import JsonRegistryStore

__all__ = [
    "JsonRegistryStore",
    "read_pairs",
    "write_pairs",
]
