"""Pair event decoding.

This package provides:
- Layout descriptors (PairLayout) and the built-in layout registry
- A pure decoder translating raw factory logs into pair records
- A batch helper that skips malformed entries
"""

from dexcatalog.decoding.decoder import DecodeBatch, decode, decode_logs
from dexcatalog.decoding.specs import (
    CLASSIC,
    CONCENTRATED,
    LAYOUTS,
    STABLE,
    LayoutRegistry,
    PairLayout,
    get_layout,
    make_layout_registry,
    register_layout,
)

__all__ = [
    "DecodeBatch",
    "decode",
    "decode_logs",
    "CLASSIC",
    "CONCENTRATED",
    "LAYOUTS",
    "STABLE",
    "LayoutRegistry",
    "PairLayout",
    "get_layout",
    "make_layout_registry",
    "register_layout",
]
