"""Core data models.

This module defines:
- `EventLog`: raw RPC log record consumed by the decoder.
- `Meta`: block context carried by decoded records.
- `ConcentratedPool` / `ClassicPair` / `StablePair`: decoded pair records.
- `TokenMetadata`: one registry entry (pydantic, validated on load).
- `TokenRegistry`: append-only, deduplicated sequence of `TokenMetadata`.

Design notes
------------
- Addresses are always stored in canonical text form: lower-case hex with
  a ``0x`` prefix (42 characters). Comparisons never case-fold at use site.
- Pair records compare by their fields only; block context is ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import ClassVar, Literal

from eth_utils import is_hex_address, to_normalized_address
from pydantic import BaseModel, ConfigDict, Field, field_validator

PairKind = Literal["concentrated", "classic", "stable"]


def canonical_address(value: str | bytes) -> str:
    """Return the canonical ``0x`` + 40 lower-case hex form of an address.

    Accepts a hex string (any case, with or without checksum) or 20 raw bytes.
    Raises ValueError for anything else.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"address must be 20 bytes, got {len(value)}")
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not is_hex_address(value.strip()):
        raise ValueError(f"not a 20-byte hex address: {value!r}")
    return to_normalized_address(value.strip())


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x..., 32 bytes each
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int

    def data_bytes(self) -> bytes:
        """Return the data payload as raw bytes."""
        h = self.data_hex[2:] if self.data_hex[:2].lower() == "0x" else self.data_hex
        return bytes.fromhex(h) if h else b""


@dataclass(slots=True, frozen=True)
class Meta:
    """Block context of the log a record was decoded from."""

    block_number: int
    tx_hash: str
    log_index: int

    @classmethod
    def of(cls, log: EventLog) -> Meta:
        return cls(block_number=log.block_number, tx_hash=log.tx_hash, log_index=log.log_index)


# === Pair records ===


@dataclass(slots=True, frozen=True)
class ConcentratedPool:
    """Concentrated-liquidity pool (fee tier in hundredths of a bip)."""

    kind: ClassVar[PairKind] = "concentrated"

    token_a: str
    token_b: str
    fee_tier: int
    pair_address: str
    meta: Meta | None = field(default=None, compare=False)

    def tokens(self) -> tuple[str, str]:
        return (self.token_a, self.token_b)


@dataclass(slots=True, frozen=True)
class ClassicPair:
    """Constant-product pair with two indexed tokens and a pair address."""

    kind: ClassVar[PairKind] = "classic"

    token_a: str
    token_b: str
    pair_address: str
    meta: Meta | None = field(default=None, compare=False)

    def tokens(self) -> tuple[str, str]:
        return (self.token_a, self.token_b)


@dataclass(slots=True, frozen=True)
class StablePair:
    """Classic pair plus the stable/volatile curve flag."""

    kind: ClassVar[PairKind] = "stable"

    token_a: str
    token_b: str
    pair_address: str
    is_stable: bool
    meta: Meta | None = field(default=None, compare=False)

    def tokens(self) -> tuple[str, str]:
        return (self.token_a, self.token_b)


PairRecord = ConcentratedPool | ClassicPair | StablePair


# === Token registry ===


class TokenMetadata(BaseModel):
    """Name, symbol and decimals of one token contract.

    Field names and order are part of the persisted format.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    name: str
    symbol: str
    decimals: int = Field(ge=0, le=255)

    @field_validator("address", mode="before")
    @classmethod
    def _canonical(cls, v: object) -> str:
        if not isinstance(v, (str, bytes, bytearray)):
            raise ValueError("address must be a hex string")
        return canonical_address(v)


class TokenRegistry:
    """Append-only token registry with O(1) membership.

    Entries are never rewritten or removed; `add` refuses duplicates.
    """

    __slots__ = ("_entries", "_known")

    def __init__(self, entries: Iterable[TokenMetadata] = ()) -> None:
        self._entries: list[TokenMetadata] = []
        self._known: set[str] = set()
        for e in entries:
            self.add(e)

    def add(self, meta: TokenMetadata) -> bool:
        """Append `meta` unless its address is already present. Returns True if appended."""
        if meta.address in self._known:
            return False
        self._entries.append(meta)
        self._known.add(meta.address)
        return True

    def __contains__(self, address: object) -> bool:
        return address in self._known

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TokenMetadata]:
        return iter(self._entries)

    @property
    def addresses(self) -> frozenset[str]:
        return frozenset(self._known)

    def entries(self) -> list[TokenMetadata]:
        return list(self._entries)

    def copy(self) -> TokenRegistry:
        return TokenRegistry(self._entries)
