from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from dexcatalog.core.errors import LogFilterError, MalformedLog, RangeTooLarge, TransientFetchError
from dexcatalog.core.interfaces import ILogSource
from dexcatalog.core.models import EventLog, PairRecord
from dexcatalog.decoding.decoder import decode_logs
from dexcatalog.decoding.specs import PairLayout
from dexcatalog.orchestration.utils import iter_chunks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HarvestRequest:
    """
    Domain-level parameters for harvesting one factory.

    Free of infrastructure concerns (no RPC URL, no filesystem paths).
    Block bounds are already resolved to integers.
    """

    factory: str
    layout: PairLayout
    start_block: int
    end_block: int
    step: int = 50_000
    concurrency: int = 8
    max_attempts: int = 3
    backoff_s: float = 0.8


# ---------------------------------------------------------------------------
# Stats / output
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class HarvestStats:
    """Counters for the fetch phase."""

    executed_subranges: int = 0
    split_ranges: int = 0
    retried: int = 0
    total_logs: int = 0


@dataclass(kw_only=True)
class HarvestOutput:
    records: list[PairRecord]
    skipped: list[MalformedLog] = field(default_factory=list)
    stats: HarvestStats = field(default_factory=HarvestStats)


@dataclass(frozen=True)
class WorkSeed:
    """Inclusive block interval to fetch."""
    start: int
    end: int

    def split(self) -> tuple[WorkSeed, WorkSeed]:
        mid = (self.start + self.end) // 2
        return (
            WorkSeed(self.start, mid),
            WorkSeed(mid + 1, self.end)
        )


def build_work_seeds(start: int, end: int, step: int) -> list[WorkSeed]:
    return [WorkSeed(a, b) for a, b in iter_chunks(start, end, step)]


# ---------------------------------------------------------------------------
# Fetch phase
# ---------------------------------------------------------------------------


async def _fetch_seed(
    source: ILogSource,
    req: HarvestRequest,
    seed: WorkSeed,
    sem: asyncio.Semaphore,
    stats: HarvestStats,
) -> list[EventLog]:
    """Fetch one interval, bisecting ranges the node refuses and retrying transient errors."""
    out: list[EventLog] = []
    stack: list[WorkSeed] = [seed]
    topic0 = req.layout.topic0

    while stack:
        current = stack.pop()
        attempt = 0
        while True:
            attempt += 1
            try:
                async with sem:
                    logs = await source.get_logs(
                        address=req.factory,
                        topic0s=[topic0],
                        from_block=current.start,
                        to_block=current.end,
                    )
                break
            except RangeTooLarge as e:
                if current.start == current.end:
                    raise LogFilterError(f"block {current.start} alone exceeds the node's log limit") from e
                left, right = current.split()
                stack.extend([right, left])
                stats.split_ranges += 1
                logger.debug("range %d-%d too large, splitting", current.start, current.end)
                logs = None
                break
            except TransientFetchError as e:
                if attempt >= req.max_attempts:
                    raise
                stats.retried += 1
                logger.debug("get_logs %d-%d failed (attempt %d): %s", current.start, current.end, attempt, e)
                await asyncio.sleep(req.backoff_s * attempt)

        if logs is None:
            continue
        stats.executed_subranges += 1
        stats.total_logs += len(logs)
        out.extend(logs)
    return out


async def fetch_factory_logs(
    source: ILogSource,
    req: HarvestRequest,
    stats: HarvestStats | None = None,
) -> list[EventLog]:
    """Fetch every creation log of `req.factory` over the full block range, ordered by position."""
    stats = stats if stats is not None else HarvestStats()
    seeds = build_work_seeds(req.start_block, req.end_block, req.step)
    sem = asyncio.Semaphore(req.concurrency)

    tasks = [asyncio.create_task(_fetch_seed(source, req, seed, sem, stats)) for seed in seeds]
    try:
        chunks = await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        raise

    logs = [log for chunk in chunks for log in chunk]
    logs.sort(key=lambda lg: (lg.block_number, lg.log_index))
    return logs


# ---------------------------------------------------------------------------
# Domain service
# ---------------------------------------------------------------------------


class HarvestPairsService:
    """
    Fetch a factory's creation logs and decode them into pair records.

    Depends only on the ILogSource port.
    """

    def __init__(self, source: ILogSource) -> None:
        self._source = source

    async def run(self, req: HarvestRequest) -> HarvestOutput:
        stats = HarvestStats()
        logs = await fetch_factory_logs(self._source, req, stats)
        logger.info(
            "%s: %d log(s) in blocks %d-%d (%d subranges)",
            req.factory,
            len(logs),
            req.start_block,
            req.end_block,
            stats.executed_subranges,
        )

        batch = decode_logs(req.layout, logs)
        if batch.skipped:
            logger.warning("%d malformed log(s) skipped", len(batch.skipped))
        logger.info("decoded %d %s pair(s)", len(batch.records), req.layout.name)
        return HarvestOutput(records=batch.records, skipped=batch.skipped, stats=stats)
