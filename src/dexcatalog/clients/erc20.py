"""ERC-20 metadata reads over raw `eth_call`.

Fetches, for one token address:
  - name()     -> string (bytes32 for legacy tokens)
  - symbol()   -> string (bytes32 for legacy tokens)
  - decimals() -> uint8

If any of the three reads fails, the whole read fails for that address.
"""

from __future__ import annotations

import asyncio

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from dexcatalog.clients.rpc import RPC, JsonRpcError
from dexcatalog.core.errors import MetadataError
from dexcatalog.core.models import TokenMetadata, canonical_address

NAME_CALL = "0x" + function_signature_to_4byte_selector("name()").hex()
SYMBOL_CALL = "0x" + function_signature_to_4byte_selector("symbol()").hex()
DECIMALS_CALL = "0x" + function_signature_to_4byte_selector("decimals()").hex()


def decode_text(raw: bytes) -> str | None:
    """Decode a `string` return value, falling back to a null-padded `bytes32`."""
    if not raw:
        return None
    try:
        (value,) = abi_decode(["string"], raw)
        return value
    except (DecodingError, ValueError):
        pass
    if len(raw) == 32:
        try:
            return raw.rstrip(b"\x00").decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def decode_decimals(raw: bytes) -> int | None:
    """Decode a `decimals()` return value; None unless it fits in 0..255."""
    if len(raw) < 32:
        return None
    try:
        (value,) = abi_decode(["uint256"], raw[:32])
    except DecodingError:
        return None
    return value if 0 <= value <= 255 else None


class Erc20MetadataFetcher:
    """Metadata fetcher backed by an `RPC` client."""

    def __init__(self, rpc: RPC) -> None:
        self._rpc = rpc

    async def _call(self, address: str, data: str, fn: str) -> bytes:
        try:
            return await self._rpc.eth_call(to=address, data=data)
        except JsonRpcError as e:
            raise MetadataError(address, f"{fn} failed: {e.message}") from e

    async def read_token_metadata(self, address: str) -> TokenMetadata:
        address = canonical_address(address)
        raw_name, raw_symbol, raw_decimals = await asyncio.gather(
            self._call(address, NAME_CALL, "name()"),
            self._call(address, SYMBOL_CALL, "symbol()"),
            self._call(address, DECIMALS_CALL, "decimals()"),
        )

        name = decode_text(raw_name)
        if name is None:
            raise MetadataError(address, "name() returned no decodable text")
        symbol = decode_text(raw_symbol)
        if symbol is None:
            raise MetadataError(address, "symbol() returned no decodable text")
        decimals = decode_decimals(raw_decimals)
        if decimals is None:
            raise MetadataError(address, "decimals() returned no value in 0..255")

        return TokenMetadata(address=address, name=name, symbol=symbol, decimals=decimals)
