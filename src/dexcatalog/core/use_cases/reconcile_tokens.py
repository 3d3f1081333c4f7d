from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from dexcatalog.core.errors import MetadataError, TransientFetchError
from dexcatalog.core.interfaces import IMetadataFetcher
from dexcatalog.core.models import PairRecord, TokenMetadata, TokenRegistry

logger = logging.getLogger(__name__)

# Called once per scheduled address when its fetch settles: (address, ok).
ProgressHook = Callable[[str, bool], None]
# Called once, before any fetch starts, with the number of scheduled addresses.
PlanHook = Callable[[int], None]


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def extract_tokens(records: Iterable[PairRecord]) -> list[str]:
    """Return every token address of `records`, in first-seen order, without repeats."""
    seen: set[str] = set()
    out: list[str] = []
    for rec in records:
        for token in rec.tokens():
            if token not in seen:
                seen.add(token)
                out.append(token)
    return out


@dataclass(slots=True)
class FetchPlan:
    """Addresses that need a metadata fetch, and how many were already known."""

    scheduled: list[str] = field(default_factory=list)
    already_known: int = 0


def plan_fetches(
    registry: TokenRegistry,
    records: Iterable[PairRecord],
    *,
    raw_text: str | None = None,
) -> FetchPlan:
    """
    Decide which token addresses of `records` require a metadata fetch.

    An address is skipped when it is already in `registry`, or, if
    `raw_text` is given, when its canonical text occurs anywhere in the
    persisted registry text. Every other address is scheduled once.
    """
    haystack = raw_text.lower() if raw_text else ""
    plan = FetchPlan()

    for address in extract_tokens(records):
        if address in registry or (haystack and address in haystack):
            plan.already_known += 1
            continue
        plan.scheduled.append(address)
    return plan


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ReconcileResult:
    """
    Outcome of one reconciliation.

    - `registry`: the updated registry (input registry + appended entries)
    - `added`: entries appended this run, in append order
    - `failed`: scheduled addresses left unresolved, with the reason
    """

    registry: TokenRegistry
    scheduled: list[str]
    already_known: int
    added: list[TokenMetadata] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def added_addresses(self) -> set[str]:
        return {m.address for m in self.added}


# ---------------------------------------------------------------------------
# Fetch phase
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class FetchContext:
    """Shared state of the concurrent fetch phase."""

    fetcher: IMetadataFetcher
    registry: TokenRegistry
    sem: asyncio.Semaphore
    lock: asyncio.Lock
    result: ReconcileResult
    max_attempts: int
    backoff_s: float
    on_progress: ProgressHook | None


async def _read_with_retries(ctx: FetchContext, address: str) -> TokenMetadata:
    attempt = 0
    while True:
        attempt += 1
        try:
            async with ctx.sem:
                return await ctx.fetcher.read_token_metadata(address)
        except TransientFetchError as e:
            if attempt >= ctx.max_attempts:
                raise
            logger.debug("metadata read for %s failed (attempt %d/%d): %s", address, attempt, ctx.max_attempts, e)
            await asyncio.sleep(ctx.backoff_s * attempt)


async def _resolve_one(ctx: FetchContext, address: str) -> None:
    """Fetch one token's metadata and append it; failures leave the address unresolved."""
    try:
        meta = await _read_with_retries(ctx, address)
        if meta.address != address:
            raise MetadataError(address, f"fetcher answered for {meta.address}")
    except (TransientFetchError, MetadataError) as e:
        logger.warning("token %s left unresolved: %s", address, e)
        async with ctx.lock:
            ctx.result.failed[address] = str(e)
        if ctx.on_progress:
            ctx.on_progress(address, False)
        return

    async with ctx.lock:
        if ctx.registry.add(meta):
            ctx.result.added.append(meta)
    if ctx.on_progress:
        ctx.on_progress(address, True)


async def reconcile(
    registry: TokenRegistry,
    records: Iterable[PairRecord],
    fetcher: IMetadataFetcher,
    *,
    raw_text: str | None = None,
    concurrency: int = 8,
    max_attempts: int = 3,
    backoff_s: float = 0.8,
    on_progress: ProgressHook | None = None,
    on_plan: PlanHook | None = None,
) -> ReconcileResult:
    """
    Reconcile `registry` against a batch of decoded pair records.

    Steps
    -----
    1) Plan: collect token addresses in first-seen order and schedule each
       unknown address exactly once (see `plan_fetches`).
    2) Fetch: read metadata for every scheduled address, at most
       `concurrency` reads in flight, retrying transient failures.
    3) Append: successful reads are appended in completion order; failed
       addresses are reported and never enter the registry.

    The input registry is not mutated. Re-running with the same records
    against the returned registry schedules nothing.
    """
    records = list(records)
    updated = registry.copy()
    plan = plan_fetches(updated, records, raw_text=raw_text)
    result = ReconcileResult(registry=updated, scheduled=plan.scheduled, already_known=plan.already_known)

    logger.info(
        "%d pairs: %d token(s) to fetch, %d already known",
        len(records),
        len(plan.scheduled),
        plan.already_known,
    )
    if on_plan:
        on_plan(len(plan.scheduled))
    if not plan.scheduled:
        return result

    ctx = FetchContext(
        fetcher=fetcher,
        registry=updated,
        sem=asyncio.Semaphore(concurrency),
        lock=asyncio.Lock(),
        result=result,
        max_attempts=max_attempts,
        backoff_s=backoff_s,
        on_progress=on_progress,
    )
    await asyncio.gather(*(_resolve_one(ctx, address) for address in plan.scheduled))

    logger.info("added %d token(s), %d unresolved", result.added_count, len(result.failed))
    return result
