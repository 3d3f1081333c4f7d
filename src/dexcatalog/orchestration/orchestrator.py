"""Run orchestrator: harvest pairs → reconcile tokens → persist.

This module provides two layers:

1) Port-only functions (`harvest`, `sync_tokens`):
   - Depend ONLY on interfaces (ILogSource, IMetadataFetcher, IRegistryStore).
   - Do NOT instantiate RPC clients or stores, do NOT manage lifecycle.

2) `run(...)` (convenience wrapper):
   - Wires concrete implementations (RPC, Erc20MetadataFetcher,
     JsonRegistryStore) for typical CLI usage and closes them afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from dexcatalog.clients.erc20 import Erc20MetadataFetcher
from dexcatalog.clients.rpc import RPC
from dexcatalog.core.config import HarvestConfig, SyncConfig
from dexcatalog.core.errors import ConfigurationError
from dexcatalog.core.interfaces import ILogSource, IMetadataFetcher, IRegistryStore
from dexcatalog.core.models import PairRecord, canonical_address
from dexcatalog.core.use_cases.harvest_pairs import HarvestOutput, HarvestPairsService, HarvestRequest
from dexcatalog.core.use_cases.reconcile_tokens import PlanHook, ProgressHook, reconcile
from dexcatalog.decoding.specs import get_layout
from dexcatalog.orchestration.utils import parse_block_ref
from dexcatalog.storage.pairs import write_pairs
from dexcatalog.storage.registry_store import JsonRegistryStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_RPC_CONNECTIONS = 32

Outcome = Literal["success", "partial"]


async def _resolve_block_range(
    source: ILogSource,
    start_block: int | str,
    end_block: int | str,
) -> tuple[int, int]:
    """Resolve start and end blocks, handling special values like 'latest'."""
    start_ref = parse_block_ref(start_block)
    end_ref = parse_block_ref(end_block)

    if isinstance(start_ref, str):
        start = await source.latest_block() if start_ref == "latest" else 0
    else:
        start = start_ref

    if isinstance(end_ref, str):
        end = await source.latest_block() if end_ref == "latest" else 0
    else:
        end = end_ref

    if start > end:
        raise ConfigurationError(f"start_block {start} is after end_block {end}")

    return start, end


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class SyncReport:
    """User-visible outcome of a token sync."""

    pairs: int
    scheduled: int
    already_known: int
    added: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    registry_size: int = 0
    persisted: bool = False

    @property
    def outcome(self) -> Outcome:
        return "partial" if self.failed else "success"


@dataclass(kw_only=True)
class RunReport:
    harvest: HarvestOutput
    sync: SyncReport
    pairs_path: Path | None = None


# ---------------------------------------------------------------------------
# 1) Port-only functions
# ---------------------------------------------------------------------------


async def harvest(config: HarvestConfig, source: ILogSource) -> HarvestOutput:
    """Fetch and decode the factory's full creation-event history."""
    config.validate()
    start, end = await _resolve_block_range(source, config.start_block, config.end_block)
    req = HarvestRequest(
        factory=canonical_address(config.factory),
        layout=get_layout(config.variant),
        start_block=start,
        end_block=end,
        step=config.step,
        concurrency=config.concurrency,
        max_attempts=config.max_attempts,
        backoff_s=config.backoff_s,
    )
    return await HarvestPairsService(source).run(req)


async def sync_tokens(
    records: list[PairRecord],
    *,
    store: IRegistryStore,
    fetcher: IMetadataFetcher,
    registry_path: Path,
    concurrency: int = 8,
    max_attempts: int = 3,
    backoff_s: float = 0.8,
    legacy_text_match: bool = False,
    on_progress: ProgressHook | None = None,
    on_plan: PlanHook | None = None,
) -> SyncReport:
    """
    Load the registry, reconcile it against `records`, and persist it.

    The registry is written once, in full, and only if entries were added;
    if anything fails before that, the previously persisted file is untouched.
    """
    raw_text, registry = store.load(registry_path)
    result = await reconcile(
        registry,
        records,
        fetcher,
        raw_text=raw_text if legacy_text_match else None,
        concurrency=concurrency,
        max_attempts=max_attempts,
        backoff_s=backoff_s,
        on_progress=on_progress,
        on_plan=on_plan,
    )

    persisted = False
    if result.added:
        store.persist(result.registry, registry_path)
        persisted = True

    return SyncReport(
        pairs=len(records),
        scheduled=len(result.scheduled),
        already_known=result.already_known,
        added=[m.address for m in result.added],
        failed=dict(result.failed),
        registry_size=len(result.registry),
        persisted=persisted,
    )


# ---------------------------------------------------------------------------
# 2) Convenience wrapper
# ---------------------------------------------------------------------------


def make_rpc(config: HarvestConfig, concurrency: int) -> RPC:
    return RPC(
        config.rpc_url,
        timeout_s=config.timeout_s,
        max_connections=max(MIN_RPC_CONNECTIONS, 2 * concurrency),
    )


async def run(
    config: SyncConfig,
    *,
    on_progress: ProgressHook | None = None,
    on_plan: PlanHook | None = None,
) -> RunReport:
    """Harvest one factory, write its pair list, and sync the token registry."""
    config.validate()
    hc = config.harvest
    rpc = make_rpc(hc, max(hc.concurrency, config.fetch_concurrency))
    try:
        harvested = await harvest(hc, rpc)
        if config.pairs_path is not None:
            n = write_pairs(harvested.records, config.pairs_path, config.pairs_format)
            logger.info("wrote %d pair(s) to %s", n, config.pairs_path)

        report = await sync_tokens(
            harvested.records,
            store=JsonRegistryStore(),
            fetcher=Erc20MetadataFetcher(rpc),
            registry_path=config.registry_path,
            concurrency=config.fetch_concurrency,
            max_attempts=hc.max_attempts,
            backoff_s=hc.backoff_s,
            legacy_text_match=config.legacy_text_match,
            on_progress=on_progress,
            on_plan=on_plan,
        )
    finally:
        await rpc.aclose()

    return RunReport(harvest=harvested, sync=report, pairs_path=config.pairs_path)
