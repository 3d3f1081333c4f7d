import asyncio
from collections import Counter
from unittest.mock import AsyncMock

import pytest

from dexcatalog.core.errors import MetadataError, TransientFetchError
from dexcatalog.core.models import EventLog, TokenMetadata

TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20
TOKEN_C = "0x" + "cc" * 20
TOKEN_D = "0x" + "dd" * 20
POOL = "0x" + "12" * 20


def topic_for_address(address: str) -> str:
    return "0x" + "0" * 24 + address[2:]


def topic_for_uint(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


def word_uint(value: int) -> bytes:
    return value.to_bytes(32, "big")


def word_address(address: str) -> bytes:
    return bytes(12) + bytes.fromhex(address[2:])


def make_log(topics: list[str], data: bytes, *, block: int = 1, index: int = 0) -> EventLog:
    return EventLog(
        address="0x" + "ff" * 20,
        topics=tuple(topics),
        data_hex="0x" + data.hex(),
        block_number=block,
        tx_hash="0x" + f"{block:064x}",
        log_index=index,
    )


def token(address: str, symbol: str = "TKN", decimals: int = 18) -> TokenMetadata:
    return TokenMetadata(address=address, name=f"{symbol} token", symbol=symbol, decimals=decimals)


class FakeFetcher:
    """In-memory metadata fetcher; `failures` maps address -> exception to raise."""

    def __init__(self, failures: dict[str, Exception] | None = None) -> None:
        self.failures = failures or {}
        self.calls: Counter[str] = Counter()

    async def read_token_metadata(self, address: str) -> TokenMetadata:
        self.calls[address] += 1
        await asyncio.sleep(0)
        exc = self.failures.get(address)
        if exc is not None:
            raise exc
        return token(address, symbol=address[2:6].upper())


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def failing_fetcher() -> FakeFetcher:
    return FakeFetcher(
        failures={
            TOKEN_B: MetadataError(TOKEN_B, "name() reverted"),
            TOKEN_D: TransientFetchError("timeout"),
        }
    )


@pytest.fixture
def mock_source():
    source = AsyncMock()
    source.get_logs = AsyncMock(return_value=[])
    source.latest_block = AsyncMock(return_value=100)
    return source
