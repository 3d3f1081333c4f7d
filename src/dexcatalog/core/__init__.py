"""Core data models, configuration, ports and errors.

This package provides:
- Data models (EventLog, pair records, TokenMetadata, TokenRegistry)
- Configuration classes (HarvestConfig, SyncConfig)
- The error taxonomy used across the pipeline
"""

from dexcatalog.core.config import HarvestConfig, SyncConfig
from dexcatalog.core.errors import (
    ConfigurationError,
    DexCatalogError,
    LogFilterError,
    MalformedLog,
    MetadataError,
    PersistenceError,
    TransientFetchError,
)
from dexcatalog.core.models import (
    ClassicPair,
    ConcentratedPool,
    EventLog,
    Meta,
    PairRecord,
    StablePair,
    TokenMetadata,
    TokenRegistry,
    canonical_address,
)

__all__ = [
    "HarvestConfig",
    "SyncConfig",
    "ConfigurationError",
    "DexCatalogError",
    "LogFilterError",
    "MalformedLog",
    "MetadataError",
    "PersistenceError",
    "TransientFetchError",
    "ClassicPair",
    "ConcentratedPool",
    "EventLog",
    "Meta",
    "PairRecord",
    "StablePair",
    "TokenMetadata",
    "TokenRegistry",
    "canonical_address",
]
