"""Pair-creation event layouts and the layout registry.

A `PairLayout` describes where every field of a factory's creation event
lives:
- `token_topics`: topic indices holding the two token addresses
- `fee_topic`: optional topic index whose low `fee_bytes` bytes hold the fee tier
- `pair_word`: 0-based data word index holding the pair address
- `stable_word`: optional data word index holding the stable flag

`LayoutRegistry` maps a variant name to its layout. Supporting another
protocol only requires adding a layout, no decoder changes.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from dexcatalog.core.models import PairKind
from dexcatalog.decoding.utils import topic0_of


@dataclass(frozen=True)
class PairLayout:
    """One factory event layout."""

    name: str
    kind: PairKind
    signature: str  # canonical event signature, e.g. "PairCreated(address,address,address,uint256)"
    topic_count: int
    pair_word: int
    token_topics: tuple[int, int] = (1, 2)
    fee_topic: int | None = None
    fee_bytes: int = 3
    stable_word: int | None = None

    def __post_init__(self) -> None:
        if self.topic_count < 3:
            raise ValueError(f"{self.name}: a pair event needs at least 3 topics")
        for idx in self.token_topics:
            if not 1 <= idx < self.topic_count:
                raise ValueError(f"{self.name}: token topic {idx} is out of range")
        if self.kind == "concentrated":
            if self.fee_topic is None or not 1 <= self.fee_topic < self.topic_count:
                raise ValueError(f"{self.name}: concentrated layouts need a fee topic")
            if not 1 <= self.fee_bytes <= 32:
                raise ValueError(f"{self.name}: fee_bytes must be in 1..32")
        if self.kind == "stable" and self.stable_word is None:
            raise ValueError(f"{self.name}: stable layouts need a stable word")

    @property
    def topic0(self) -> str:
        return topic0_of(self.signature)

    @property
    def data_words(self) -> int:
        """Minimum number of 32-byte data words the payload must carry."""
        words = [self.pair_word]
        if self.stable_word is not None:
            words.append(self.stable_word)
        return max(words) + 1


# Built-in layouts, offsets verified against each event's ABI.
CONCENTRATED = PairLayout(
    name="concentrated",
    kind="concentrated",
    signature="PoolCreated(address,address,uint24,int24,address)",
    topic_count=4,
    fee_topic=3,
    pair_word=1,  # data: [tickSpacing, pool] -> pool at bytes 44..64
)

CLASSIC = PairLayout(
    name="classic",
    kind="classic",
    signature="PairCreated(address,address,address,uint256)",
    topic_count=3,
    pair_word=0,  # data: [pair, allPairsLength] -> pair at bytes 12..32
)

STABLE = PairLayout(
    name="stable",
    kind="stable",
    signature="PairCreated(address,address,bool,address,uint256)",
    topic_count=3,
    stable_word=0,
    pair_word=1,  # data: [stable, pair, allPairsLength] -> pair at bytes 44..64
)


# Keyed by variant name.
LayoutRegistry = dict[str, PairLayout]


def make_layout_registry(extra: Iterable[PairLayout] = ()) -> LayoutRegistry:
    """Return the built-in layouts plus any `extra` ones."""
    reg: LayoutRegistry = {}
    for layout in (CONCENTRATED, CLASSIC, STABLE, *extra):
        register_layout(reg, layout)
    return reg


def register_layout(registry: LayoutRegistry, layout: PairLayout) -> None:
    """Insert one layout keyed by its lower-cased name."""
    registry[layout.name.lower()] = layout


LAYOUTS: LayoutRegistry = make_layout_registry()


def get_layout(name: str, registry: LayoutRegistry | None = None) -> PairLayout:
    """Look a layout up by variant name; raises KeyError if unknown."""
    reg = LAYOUTS if registry is None else registry
    return reg[name.lower()]
