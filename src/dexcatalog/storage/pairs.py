"""Pair list artifacts (one file per network/protocol).

Row layout per record kind (field names match previously published lists):
- concentrated: kind, token_1, token_2, fee (decimal text), pair
- classic:      kind, token_0, token_1, pair_address
- stable:       kind, token_1, token_2, pair, stable

Formats: JSON array (default) or Parquet (zstd). Writes are atomic.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from dexcatalog.core.config import PairsFormat
from dexcatalog.core.errors import PersistenceError
from dexcatalog.core.models import ClassicPair, ConcentratedPool, PairRecord, StablePair, canonical_address
from dexcatalog.storage.files import atomic_write, atomic_write_bytes


def pair_to_row(rec: PairRecord) -> dict[str, Any]:
    """Flatten one record into its published row layout."""
    match rec:
        case ConcentratedPool():
            return {
                "kind": rec.kind,
                "token_1": rec.token_a,
                "token_2": rec.token_b,
                "fee": str(rec.fee_tier),
                "pair": rec.pair_address,
            }
        case StablePair():
            return {
                "kind": rec.kind,
                "token_1": rec.token_a,
                "token_2": rec.token_b,
                "pair": rec.pair_address,
                "stable": rec.is_stable,
            }
        case ClassicPair():
            return {
                "kind": rec.kind,
                "token_0": rec.token_a,
                "token_1": rec.token_b,
                "pair_address": rec.pair_address,
            }
    raise TypeError(f"unsupported pair record {type(rec).__name__}")


def row_to_pair(row: dict[str, Any]) -> PairRecord:
    """Rebuild a record from a row; rows without `kind` are inferred from their fields."""
    kind = row.get("kind")
    if kind is None:
        if "fee" in row:
            kind = "concentrated"
        elif "pair_address" in row:
            kind = "classic"
        elif "stable" in row:
            kind = "stable"
        else:
            # token_1/token_2/pair without a flag: only the tokens are known
            return ClassicPair(
                token_a=canonical_address(row["token_1"]),
                token_b=canonical_address(row["token_2"]),
                pair_address=canonical_address(row["pair"]),
            )

    if kind == "concentrated":
        return ConcentratedPool(
            token_a=canonical_address(row["token_1"]),
            token_b=canonical_address(row["token_2"]),
            fee_tier=int(row["fee"]),
            pair_address=canonical_address(row["pair"]),
        )
    if kind == "classic":
        return ClassicPair(
            token_a=canonical_address(row["token_0"]),
            token_b=canonical_address(row["token_1"]),
            pair_address=canonical_address(row["pair_address"]),
        )
    if kind == "stable":
        return StablePair(
            token_a=canonical_address(row["token_1"]),
            token_b=canonical_address(row["token_2"]),
            pair_address=canonical_address(row["pair"]),
            is_stable=bool(row["stable"]),
        )
    raise ValueError(f"unknown pair kind {kind!r}")


def _to_arrow_table(rows: list[dict[str, Any]]) -> pa.Table:
    """Build a table over the union of row keys (first-seen order), padding with nulls."""
    columns: list[str] = ["kind"]
    for row in rows:
        for k in row:
            if k not in columns:
                columns.append(k)
    arrays = {}
    for name in columns:
        typ = pa.bool_() if name == "stable" else pa.string()
        arrays[name] = pa.array([row.get(name) for row in rows], type=typ)
    return pa.table(arrays)


def write_pairs(records: Iterable[PairRecord], path: Path, fmt: PairsFormat = "json") -> int:
    """Write the pair list to `path`; returns the number of rows written."""
    rows = [pair_to_row(r) for r in records]
    try:
        if fmt == "json":
            atomic_write_bytes(path, json.dumps(rows, separators=(",", ":")).encode("utf-8"))
        elif fmt == "parquet":
            table = _to_arrow_table(rows)
            atomic_write(path, lambda tmp: pq.write_table(table, tmp, compression="zstd"))
        else:
            raise ValueError(f"unknown pairs format {fmt!r}")
    except OSError as e:
        raise PersistenceError(f"cannot write pair list {path}: {e}") from e
    return len(rows)


def read_pairs(path: Path) -> list[PairRecord]:
    """Load a pair list written by `write_pairs` (format chosen by file suffix)."""
    try:
        if path.suffix == ".parquet":
            rows = pq.read_table(path).to_pylist()
            rows = [{k: v for k, v in row.items() if v is not None} for row in rows]
        else:
            rows = json.loads(path.read_text(encoding="utf-8"))
        return [row_to_pair(row) for row in rows]
    except (OSError, ValueError, KeyError, TypeError, pa.ArrowException) as e:
        raise PersistenceError(f"cannot read pair list {path}: {e}") from e
