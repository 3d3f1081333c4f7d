"""Network adapters: JSON-RPC log source and ERC-20 metadata fetcher."""

from dexcatalog.clients.erc20 import Erc20MetadataFetcher
from dexcatalog.clients.rpc import RPC, JsonRpcError

__all__ = [
    "Erc20MetadataFetcher",
    "RPC",
    "JsonRpcError",
]
