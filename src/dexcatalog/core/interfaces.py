from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from dexcatalog.core.models import EventLog, TokenMetadata, TokenRegistry


# ---------------------------------------------------------------------------
# ILogSource
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogSource(Protocol):
    """
    Abstract provider of raw EVM logs.

    Domain expectations:
    - It returns EventLog objects already mapped into internal models.
    - Network / timeout failures raise TransientFetchError (retryable).
    - A rejected filter raises LogFilterError (fatal); a range the node
      refuses as too large raises RangeTooLarge so the caller can bisect.
    """

    async def get_logs(
        self,
        *,
        address: str,
        topic0s: list[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Return all logs for (address, topic0s) over the inclusive block range."""
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...


# ---------------------------------------------------------------------------
# IMetadataFetcher
# ---------------------------------------------------------------------------

@runtime_checkable
class IMetadataFetcher(Protocol):
    """
    Resolves a token address into its name, symbol and decimals.

    Domain expectations:
    - Backed by three independent reads; if any of them fails the whole
      read fails (MetadataError, or TransientFetchError for network issues).
    """

    async def read_token_metadata(self, address: str) -> TokenMetadata:
        ...


# ---------------------------------------------------------------------------
# IRegistryStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IRegistryStore(Protocol):
    """
    Durable storage for the token registry.

    Domain expectations:
    - `load` exposes both the raw persisted text and the parsed registry;
      a missing source yields ("", empty registry).
    - `persist` replaces the prior content with no torn writes visible.
    - Failures raise PersistenceError.
    """

    def load(self, source: Path) -> tuple[str, TokenRegistry]:
        ...

    def persist(self, registry: TokenRegistry, destination: Path) -> None:
        ...
