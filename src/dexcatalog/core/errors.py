"""Error taxonomy for the catalog pipeline.

Recovery policy
---------------
- `MalformedLog`: recovered per log entry (skip + continue).
- `TransientFetchError` / `MetadataError`: recovered per token (left
  unresolved, retried on the next run).
- `PersistenceError`, `ConfigurationError`, `LogFilterError`: abort the run.
"""

from __future__ import annotations


class DexCatalogError(Exception):
    """Base class for every error raised by dexcatalog."""


class MalformedLog(DexCatalogError):
    """A raw log entry does not match the layout of its declared variant."""

    def __init__(self, reason: str, *, tx_hash: str = "", log_index: int | None = None) -> None:
        self.reason = reason
        self.tx_hash = tx_hash
        self.log_index = log_index
        where = f" (tx={tx_hash} log_index={log_index})" if tx_hash else ""
        super().__init__(f"{reason}{where}")


class TransientFetchError(DexCatalogError):
    """Network / timeout / rate-limit failure; safe to retry."""


class MetadataError(DexCatalogError):
    """A token contract returned no usable name/symbol/decimals."""

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"{address}: {reason}")


class LogFilterError(DexCatalogError):
    """The node rejected a log filter; retrying the same request cannot help."""


class RangeTooLarge(LogFilterError):
    """The node refused a block range because it would return too many results."""


class PersistenceError(DexCatalogError):
    """Reading or writing the registry store failed."""


class ConfigurationError(DexCatalogError):
    """Invalid address, signature or block range supplied by configuration."""
