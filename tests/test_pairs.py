import json
from pathlib import Path

import pytest
from conftest import POOL, TOKEN_A, TOKEN_B

from dexcatalog.core.errors import PersistenceError
from dexcatalog.core.models import ClassicPair, ConcentratedPool, StablePair
from dexcatalog.storage.pairs import pair_to_row, read_pairs, row_to_pair, write_pairs

RECORDS = [
    ConcentratedPool(token_a=TOKEN_A, token_b=TOKEN_B, fee_tier=3000, pair_address=POOL),
    ClassicPair(token_a=TOKEN_A, token_b=TOKEN_B, pair_address=POOL),
    StablePair(token_a=TOKEN_A, token_b=TOKEN_B, pair_address=POOL, is_stable=True),
]


def test_row_layouts() -> None:
    assert pair_to_row(RECORDS[0]) == {
        "kind": "concentrated",
        "token_1": TOKEN_A,
        "token_2": TOKEN_B,
        "fee": "3000",
        "pair": POOL,
    }
    assert pair_to_row(RECORDS[1]) == {"kind": "classic", "token_0": TOKEN_A, "token_1": TOKEN_B, "pair_address": POOL}
    assert pair_to_row(RECORDS[2])["stable"] is True


@pytest.mark.parametrize("fmt,name", [("json", "pairs.json"), ("parquet", "pairs.parquet")])
def test_write_and_read_back(tmp_path: Path, fmt: str, name: str) -> None:
    path = tmp_path / name

    assert write_pairs(RECORDS, path, fmt) == 3
    assert read_pairs(path) == RECORDS


def test_rows_without_kind_are_inferred() -> None:
    legacy_uniswap = {"token_1": TOKEN_A, "token_2": TOKEN_B, "fee": "500", "pair": POOL}
    legacy_camelot = {"token_0": TOKEN_A, "token_1": TOKEN_B, "pair_address": POOL}
    legacy_velo = {"token_1": TOKEN_A, "token_2": TOKEN_B, "pair": POOL}

    assert row_to_pair(legacy_uniswap) == ConcentratedPool(token_a=TOKEN_A, token_b=TOKEN_B, fee_tier=500, pair_address=POOL)
    assert row_to_pair(legacy_camelot) == RECORDS[1]
    assert row_to_pair(legacy_velo).tokens() == (TOKEN_A, TOKEN_B)


def test_unreadable_pair_list(tmp_path: Path) -> None:
    path = tmp_path / "pairs.json"
    path.write_text(json.dumps([{"kind": "weird"}]))
    with pytest.raises(PersistenceError):
        read_pairs(path)
