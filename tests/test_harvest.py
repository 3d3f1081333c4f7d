from typing import Any

import pytest
from conftest import POOL, TOKEN_A, TOKEN_B, make_log, topic_for_address, word_address, word_uint

from dexcatalog.core.errors import LogFilterError, RangeTooLarge, TransientFetchError
from dexcatalog.core.use_cases.harvest_pairs import (
    HarvestPairsService,
    HarvestRequest,
    HarvestStats,
    WorkSeed,
    build_work_seeds,
    fetch_factory_logs,
)
from dexcatalog.decoding.specs import CLASSIC

FACTORY = "0x" + "fa" * 20


def _request(**kw: Any) -> HarvestRequest:
    base = dict(factory=FACTORY, layout=CLASSIC, start_block=0, end_block=99, step=50, concurrency=2, backoff_s=0)
    base.update(kw)
    return HarvestRequest(**base)


def _classic_log(block: int, index: int = 0):
    topics = [CLASSIC.topic0, topic_for_address(TOKEN_A), topic_for_address(TOKEN_B)]
    return make_log(topics, word_address(POOL) + word_uint(block), block=block, index=index)


def test_build_work_seeds_covers_range() -> None:
    assert build_work_seeds(0, 99, 40) == [WorkSeed(0, 39), WorkSeed(40, 79), WorkSeed(80, 99)]
    assert WorkSeed(0, 9).split() == (WorkSeed(0, 4), WorkSeed(5, 9))


@pytest.mark.asyncio
async def test_full_range_is_paginated_and_ordered(mock_source) -> None:
    async def get_logs(*, address, topic0s, from_block, to_block):
        assert address == FACTORY
        assert topic0s == [CLASSIC.topic0]
        return [_classic_log(to_block), _classic_log(from_block)]

    mock_source.get_logs.side_effect = get_logs
    stats = HarvestStats()

    logs = await fetch_factory_logs(mock_source, _request(), stats)

    calls = sorted((c.kwargs["from_block"], c.kwargs["to_block"]) for c in mock_source.get_logs.call_args_list)
    assert calls == [(0, 49), (50, 99)]
    assert [lg.block_number for lg in logs] == [0, 49, 50, 99]
    assert stats.executed_subranges == 2
    assert stats.total_logs == 4


@pytest.mark.asyncio
async def test_too_large_range_is_bisected(mock_source) -> None:
    async def get_logs(*, address, topic0s, from_block, to_block):
        if to_block - from_block >= 25:
            raise RangeTooLarge("query returned more than 10000 results")
        return [_classic_log(from_block)]

    mock_source.get_logs.side_effect = get_logs
    stats = HarvestStats()

    logs = await fetch_factory_logs(mock_source, _request(end_block=49), stats)

    assert [lg.block_number for lg in logs] == [0, 25]
    assert stats.split_ranges == 1


@pytest.mark.asyncio
async def test_single_block_over_limit_is_fatal(mock_source) -> None:
    mock_source.get_logs.side_effect = RangeTooLarge("too many")
    with pytest.raises(LogFilterError):
        await fetch_factory_logs(mock_source, _request(start_block=5, end_block=5))


@pytest.mark.asyncio
async def test_transient_errors_are_retried(mock_source) -> None:
    mock_source.get_logs.side_effect = [TransientFetchError("timeout"), [_classic_log(3)]]
    stats = HarvestStats()

    logs = await fetch_factory_logs(mock_source, _request(end_block=10), stats)

    assert len(logs) == 1
    assert stats.retried == 1


@pytest.mark.asyncio
async def test_exhausted_retries_abort(mock_source) -> None:
    mock_source.get_logs.side_effect = TransientFetchError("timeout")
    with pytest.raises(TransientFetchError):
        await fetch_factory_logs(mock_source, _request(end_block=10, max_attempts=2))
    assert mock_source.get_logs.await_count == 2


@pytest.mark.asyncio
async def test_service_decodes_and_skips_malformed(mock_source) -> None:
    broken = make_log([CLASSIC.topic0, topic_for_address(TOKEN_A)], b"", block=7)
    mock_source.get_logs.return_value = [_classic_log(5), broken]

    out = await HarvestPairsService(mock_source).run(_request(end_block=10))

    assert len(out.records) == 1
    assert out.records[0].pair_address == POOL
    assert len(out.skipped) == 1
    assert out.stats.total_logs == 2
