from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from dexcatalog.core.errors import ConfigurationError
from dexcatalog.core.models import canonical_address
from dexcatalog.decoding.specs import LAYOUTS

BlockRef = int | str
PairsFormat = Literal["json", "parquet"]

_NAMED_BLOCKS = ("earliest", "genesis", "latest")


def _check_block(name: str, value: BlockRef) -> None:
    if isinstance(value, str):
        if value.lower() in _NAMED_BLOCKS:
            return
        try:
            value = int(value, 0)
        except ValueError:
            raise ConfigurationError(f"{name} must be an integer or one of {_NAMED_BLOCKS}, got {value!r}") from None
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0")


@dataclass(frozen=True)
class HarvestConfig:
    """Configuration for fetching and decoding one factory's creation events."""

    rpc_url: str
    factory: str
    variant: str
    start_block: BlockRef = 0
    end_block: BlockRef = "latest"
    step: int = 50_000
    concurrency: int = 8
    timeout_s: int = 20
    max_attempts: int = 3
    backoff_s: float = 0.8

    def validate(self) -> None:
        """Raise ConfigurationError on any invalid field; performs no I/O."""
        if not self.rpc_url or not self.rpc_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"rpc_url must be an http(s) URL, got {self.rpc_url!r}")
        try:
            canonical_address(self.factory)
        except ValueError as e:
            raise ConfigurationError(f"factory: {e}") from e
        if self.variant.lower() not in LAYOUTS:
            raise ConfigurationError(f"unknown variant {self.variant!r}; known: {sorted(LAYOUTS)}")
        _check_block("start_block", self.start_block)
        _check_block("end_block", self.end_block)
        if isinstance(self.start_block, int) and isinstance(self.end_block, int) and self.start_block > self.end_block:
            raise ConfigurationError("start_block must be <= end_block")
        if self.step <= 0:
            raise ConfigurationError("step must be positive")
        if not 1 <= self.concurrency <= 64:
            raise ConfigurationError("concurrency must be in 1..64")
        if self.max_attempts <= 0:
            raise ConfigurationError("max_attempts must be positive")


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for a full harvest + token registry sync run."""

    harvest: HarvestConfig
    registry_path: Path
    pairs_path: Path | None = None
    pairs_format: PairsFormat = "json"
    fetch_concurrency: int = 8
    legacy_text_match: bool = False  # also treat addresses found in the raw registry text as known

    def validate(self) -> None:
        self.harvest.validate()
        if self.pairs_format not in ("json", "parquet"):
            raise ConfigurationError(f"unknown pairs format {self.pairs_format!r}")
        if not 1 <= self.fetch_concurrency <= 64:
            raise ConfigurationError("fetch_concurrency must be in 1..64")
        if self.registry_path.exists() and self.registry_path.is_dir():
            raise ConfigurationError(f"registry path {self.registry_path} is a directory")
