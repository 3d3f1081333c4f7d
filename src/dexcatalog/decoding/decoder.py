"""Layout-driven pair event decoder.

This module translates raw factory logs into pair records using a
`PairLayout` (see `specs`). Decoding is pure: no I/O, no state, and the same
log always yields the same record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from dexcatalog.core.errors import MalformedLog
from dexcatalog.core.models import ClassicPair, ConcentratedPool, EventLog, Meta, PairRecord, StablePair
from dexcatalog.decoding.specs import PairLayout
from dexcatalog.decoding.utils import WORD, address_from_word, topic_bytes, uint_from_low_bytes, word_at

logger = logging.getLogger(__name__)


# ---------- helper functions ----------


def _topics_as_bytes(log: EventLog, layout: PairLayout) -> list[bytes]:
    """Validate the topic count and signature, return topics as 32-byte words."""
    if len(log.topics) != layout.topic_count:
        raise MalformedLog(
            f"{layout.name}: expected {layout.topic_count} topics, got {len(log.topics)}",
            tx_hash=log.tx_hash,
            log_index=log.log_index,
        )
    try:
        words = [topic_bytes(t) for t in log.topics]
    except ValueError as e:
        raise MalformedLog(f"{layout.name}: bad topic ({e})", tx_hash=log.tx_hash, log_index=log.log_index) from e

    if "0x" + words[0].hex() != layout.topic0:
        raise MalformedLog(
            f"{layout.name}: topic0 {log.topics[0]} is not {layout.signature}",
            tx_hash=log.tx_hash,
            log_index=log.log_index,
        )
    return words


def _payload(log: EventLog, layout: PairLayout) -> bytes:
    """Return the data payload, checking it carries every word the layout reads."""
    try:
        data = log.data_bytes()
    except ValueError as e:
        raise MalformedLog(f"{layout.name}: data is not hex ({e})", tx_hash=log.tx_hash, log_index=log.log_index) from e

    need = WORD * layout.data_words
    if len(data) < need:
        raise MalformedLog(
            f"{layout.name}: payload is {len(data)} bytes, need at least {need}",
            tx_hash=log.tx_hash,
            log_index=log.log_index,
        )
    return data


def _stable_flag(word: bytes, log: EventLog, layout: PairLayout) -> bool:
    v = int.from_bytes(word, "big")
    if v not in (0, 1):
        raise MalformedLog(f"{layout.name}: stable flag is not a bool", tx_hash=log.tx_hash, log_index=log.log_index)
    return v == 1


# ---------- main decoder ----------


def decode(layout: PairLayout, log: EventLog) -> PairRecord:
    """Decode one raw log into the pair record described by `layout`.

    Raises `MalformedLog` when the topic count, topic0, payload length or
    field values do not fit the layout, or when both tokens are equal.
    """
    topics = _topics_as_bytes(log, layout)
    data = _payload(log, layout)

    ia, ib = layout.token_topics
    token_a = address_from_word(topics[ia])
    token_b = address_from_word(topics[ib])
    if token_a == token_b:
        raise MalformedLog(f"{layout.name}: token_a == token_b ({token_a})", tx_hash=log.tx_hash, log_index=log.log_index)

    pair_address = address_from_word(word_at(data, layout.pair_word))
    meta = Meta.of(log)

    if layout.kind == "concentrated":
        assert layout.fee_topic is not None
        fee = uint_from_low_bytes(topics[layout.fee_topic], layout.fee_bytes)
        return ConcentratedPool(token_a=token_a, token_b=token_b, fee_tier=fee, pair_address=pair_address, meta=meta)

    if layout.kind == "stable":
        assert layout.stable_word is not None
        is_stable = _stable_flag(word_at(data, layout.stable_word), log, layout)
        return StablePair(token_a=token_a, token_b=token_b, pair_address=pair_address, is_stable=is_stable, meta=meta)

    return ClassicPair(token_a=token_a, token_b=token_b, pair_address=pair_address, meta=meta)


# ---------- batch helper ----------


@dataclass(slots=True)
class DecodeBatch:
    """Records decoded from a batch of logs plus the entries that were skipped."""

    records: list[PairRecord] = field(default_factory=list)
    skipped: list[MalformedLog] = field(default_factory=list)


def decode_logs(layout: PairLayout, logs: Iterable[EventLog]) -> DecodeBatch:
    """Decode every log, skipping (and logging) malformed entries."""
    out = DecodeBatch()
    for log in logs:
        try:
            out.records.append(decode(layout, log))
        except MalformedLog as e:
            logger.warning("skipping malformed log: %s", e)
            out.skipped.append(e)
    return out
