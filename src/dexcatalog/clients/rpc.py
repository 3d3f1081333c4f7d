"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers and topics
- Error mapping into the transient-vs-fatal taxonomy

It returns `EventLog` records ready for downstream decoding.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from dexcatalog.core.errors import DexCatalogError, LogFilterError, RangeTooLarge, TransientFetchError
from dexcatalog.core.models import EventLog
from dexcatalog.orchestration.utils import to_hex_block

# Substrings providers use when a log query covers too many blocks/results.
_RANGE_LIMIT_HINTS = (
    "query returned more than",
    "block range",
    "limit exceeded",
    "too many",
    "response size",
    "range is too large",
)
_RATE_LIMIT_HINTS = ("rate limit", "too many requests", "capacity")
_RANGE_LIMIT_CODES = (-32005,)


class JsonRpcError(DexCatalogError):
    """The node answered with a JSON-RPC `error` object."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"RPC error in {method}: {code} {message}")


def topics_param(topic0s: Sequence[str]) -> list[list[str]]:
    """Format topic0 signatures for eth_getLogs RPC call."""
    return [[t.lower() for t in topic0s]]


def _is_range_limit(err: JsonRpcError) -> bool:
    msg = err.message.lower()
    return err.code in _RANGE_LIMIT_CODES or any(h in msg for h in _RANGE_LIMIT_HINTS)


def _is_rate_limit(err: JsonRpcError) -> bool:
    msg = err.message.lower()
    return err.code == 429 or any(h in msg for h in _RATE_LIMIT_HINTS)


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: int = 20,
        max_connections: int = 64,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=transport is None,
            transport=transport,
        )
        self._next_id = 0

    async def _request(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC call and return its `result`.

        Raises TransientFetchError for transport failures, HTTP 429/5xx and
        rate-limit answers; JsonRpcError for any other error object, for a
        non-2xx status without one, and for a body that is not a JSON-RPC
        response object.
        """
        self._next_id += 1
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        try:
            r = await self.client.post(self.url, json=payload)
        except httpx.TransportError as e:
            raise TransientFetchError(f"{method}: {type(e).__name__}: {e}") from e

        if r.status_code == 429 or r.status_code >= 500:
            raise TransientFetchError(f"{method}: HTTP {r.status_code}")
        # 4xx bodies often still carry a JSON-RPC error object
        try:
            data = r.json()
        except ValueError as e:
            raise JsonRpcError(method, r.status_code, f"HTTP {r.status_code}: body is not JSON") from e
        if not isinstance(data, dict):
            raise JsonRpcError(method, None, f"unexpected response body of type {type(data).__name__}")

        if "error" in data:
            e = data["error"]
            err = (
                JsonRpcError(method, e.get("code"), str(e.get("message", "")))
                if isinstance(e, dict)
                else JsonRpcError(method, None, str(e))
            )
            if _is_rate_limit(err):
                raise TransientFetchError(str(err)) from err
            raise err
        if r.is_error:
            raise JsonRpcError(method, r.status_code, f"HTTP {r.status_code}")
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        try:
            return int(await self._request("eth_blockNumber", []), 16)
        except JsonRpcError as e:
            raise LogFilterError(str(e)) from e

    async def get_logs(
        self,
        *,
        address: str,
        topic0s: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch logs for an address and a set of topic0 signatures within a block range."""
        params = [
            {
                "address": address.lower(),
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
                "topics": topics_param(topic0s),
            }
        ]
        try:
            result = await self._request("eth_getLogs", params)
        except JsonRpcError as e:
            if _is_range_limit(e):
                raise RangeTooLarge(str(e)) from e
            raise LogFilterError(str(e)) from e

        out: list[EventLog] = []
        for rl in result or []:
            topics = tuple((t if isinstance(t, str) else t.decode()).lower() for t in rl.get("topics", []))
            out.append(
                EventLog(
                    address=rl["address"].lower(),
                    topics=topics,
                    data_hex=str(rl.get("data") or "0x"),
                    block_number=int(rl["blockNumber"], 16),
                    tx_hash=(rl.get("transactionHash") or rl.get("transaction_hash") or "").lower(),
                    log_index=int(rl["logIndex"], 16),
                )
            )
        return out

    async def eth_call(self, *, to: str, data: str, block: int | str = "latest") -> bytes:
        """Execute a read-only call and return the raw return data."""
        result = await self._request("eth_call", [{"to": to, "data": data}, to_hex_block(block)])
        if result is None:
            return b""
        if not isinstance(result, str) or not result.startswith("0x"):
            raise JsonRpcError("eth_call", None, f"malformed result {result!r:.80}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise JsonRpcError("eth_call", None, f"malformed result {result!r:.80}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
