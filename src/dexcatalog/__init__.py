from __future__ import annotations

from .core.errors import (
    ConfigurationError,
    MalformedLog,
    MetadataError,
    PersistenceError,
    TransientFetchError,
)
from .core.models import ClassicPair, ConcentratedPool, StablePair, TokenMetadata, TokenRegistry
from .core.use_cases.reconcile_tokens import plan_fetches, reconcile
from .decoding.decoder import decode, decode_logs
from .decoding.specs import LAYOUTS, PairLayout, get_layout, register_layout

__all__ = [
    "decode",
    "decode_logs",
    "reconcile",
    "plan_fetches",
    "LAYOUTS",
    "PairLayout",
    "get_layout",
    "register_layout",
    "ClassicPair",
    "ConcentratedPool",
    "StablePair",
    "TokenMetadata",
    "TokenRegistry",
    "ConfigurationError",
    "MalformedLog",
    "MetadataError",
    "PersistenceError",
    "TransientFetchError",
]
