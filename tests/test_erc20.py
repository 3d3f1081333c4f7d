import json
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import POOL, TOKEN_A, TOKEN_B
from eth_abi import encode

from dexcatalog.clients.erc20 import DECIMALS_CALL, NAME_CALL, SYMBOL_CALL, Erc20MetadataFetcher, decode_text
from dexcatalog.clients.rpc import RPC, JsonRpcError
from dexcatalog.core.errors import MetadataError, TransientFetchError
from dexcatalog.core.models import ClassicPair, TokenMetadata, TokenRegistry
from dexcatalog.core.use_cases.reconcile_tokens import reconcile


def fake_rpc(answers: dict[str, bytes | Exception]) -> AsyncMock:
    rpc = AsyncMock()

    async def eth_call(*, to: str, data: str, block="latest") -> bytes:
        answer = answers[data]
        if isinstance(answer, Exception):
            raise answer
        return answer

    rpc.eth_call.side_effect = eth_call
    return rpc


def test_selectors() -> None:
    assert NAME_CALL == "0x06fdde03"
    assert SYMBOL_CALL == "0x95d89b41"
    assert DECIMALS_CALL == "0x313ce567"


def test_decode_text_handles_bytes32() -> None:
    assert decode_text(encode(["string"], ["Wrapped Ether"])) == "Wrapped Ether"
    assert decode_text(b"MKR".ljust(32, b"\x00")) == "MKR"
    assert decode_text(b"") is None


@pytest.mark.asyncio
async def test_reads_all_three_fields() -> None:
    rpc = fake_rpc(
        {
            NAME_CALL: encode(["string"], ["USD Coin"]),
            SYMBOL_CALL: encode(["string"], ["USDC"]),
            DECIMALS_CALL: encode(["uint8"], [6]),
        }
    )

    meta = await Erc20MetadataFetcher(rpc).read_token_metadata(TOKEN_A.upper().replace("0X", "0x"))

    assert meta == TokenMetadata(address=TOKEN_A, name="USD Coin", symbol="USDC", decimals=6)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "broken",
    [
        {SYMBOL_CALL: JsonRpcError("eth_call", 3, "execution reverted")},
        {NAME_CALL: b""},
        {DECIMALS_CALL: encode(["uint256"], [1000])},
    ],
)
async def test_any_failed_read_fails_the_token(broken: dict) -> None:
    answers = {
        NAME_CALL: encode(["string"], ["Token"]),
        SYMBOL_CALL: encode(["string"], ["TKN"]),
        DECIMALS_CALL: encode(["uint8"], [18]),
    }
    answers.update(broken)

    with pytest.raises(MetadataError):
        await Erc20MetadataFetcher(fake_rpc(answers)).read_token_metadata(TOKEN_A)


@pytest.mark.asyncio
async def test_network_errors_stay_transient() -> None:
    rpc = fake_rpc(
        {
            NAME_CALL: TransientFetchError("timeout"),
            SYMBOL_CALL: encode(["string"], ["TKN"]),
            DECIMALS_CALL: encode(["uint8"], [18]),
        }
    )
    with pytest.raises(TransientFetchError):
        await Erc20MetadataFetcher(rpc).read_token_metadata(TOKEN_A)


@pytest.mark.asyncio
async def test_garbled_node_answer_fails_only_that_token() -> None:
    answers = {
        NAME_CALL: encode(["string"], ["Token A"]),
        SYMBOL_CALL: encode(["string"], ["TKA"]),
        DECIMALS_CALL: encode(["uint8"], [18]),
    }

    def handle(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        call = payload["params"][0]
        result = "0x" + answers[call["data"]].hex() if call["to"] == TOKEN_A else "0xzz"
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    rpc = RPC("http://node.test", transport=httpx.MockTransport(handle))
    records = [ClassicPair(token_a=TOKEN_A, token_b=TOKEN_B, pair_address=POOL)]

    result = await reconcile(TokenRegistry(), records, Erc20MetadataFetcher(rpc), backoff_s=0)
    await rpc.aclose()

    assert result.added_addresses == {TOKEN_A}
    assert set(result.failed) == {TOKEN_B}
    assert "malformed result" in result.failed[TOKEN_B]
