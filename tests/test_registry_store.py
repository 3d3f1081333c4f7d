import json
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import TOKEN_A, TOKEN_B, token

from dexcatalog.core.errors import PersistenceError
from dexcatalog.core.models import TokenMetadata, TokenRegistry
from dexcatalog.storage.registry_store import JsonRegistryStore


@pytest.fixture
def store() -> JsonRegistryStore:
    return JsonRegistryStore()


def test_missing_file_loads_empty(store: JsonRegistryStore, tmp_path: Path) -> None:
    raw, registry = store.load(tmp_path / "tokens.json")
    assert raw == ""
    assert len(registry) == 0


def test_persist_then_load(store: JsonRegistryStore, tmp_path: Path) -> None:
    path = tmp_path / "nested" / "tokens.json"
    registry = TokenRegistry([token(TOKEN_A, "AAA", 6), token(TOKEN_B, "BBB", 18)])

    store.persist(registry, path)
    raw, loaded = store.load(path)

    assert loaded.entries() == registry.entries()
    assert raw == path.read_text()


def test_field_names_and_order_are_stable(store: JsonRegistryStore, tmp_path: Path) -> None:
    path = tmp_path / "tokens.json"
    store.persist(TokenRegistry([token(TOKEN_A, "AAA", 6)]), path)

    text = path.read_text()

    assert text == f'[{{"address":"{TOKEN_A}","name":"AAA token","symbol":"AAA","decimals":6}}]'


def test_loads_existing_file_and_canonicalizes(store: JsonRegistryStore, tmp_path: Path) -> None:
    path = tmp_path / "tokens.json"
    rows = [
        {"address": "0x" + "AA" * 20, "name": "A", "symbol": "A", "decimals": 18},
        {"address": TOKEN_A, "name": "dup", "symbol": "D", "decimals": 6},
    ]
    path.write_text(json.dumps(rows))

    _, registry = store.load(path)

    assert registry.entries() == [TokenMetadata(address=TOKEN_A, name="A", symbol="A", decimals=18)]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        '[{"address":"0x1234","name":"x","symbol":"x","decimals":1}]',
        '[{"address":"' + TOKEN_A + '","name":"x","symbol":"x","decimals":256}]',
    ],
)
def test_invalid_file_raises_persistence_error(store: JsonRegistryStore, tmp_path: Path, content: str) -> None:
    path = tmp_path / "tokens.json"
    path.write_text(content)
    with pytest.raises(PersistenceError):
        store.load(path)


def test_failed_write_keeps_previous_file(store: JsonRegistryStore, tmp_path: Path) -> None:
    path = tmp_path / "tokens.json"
    store.persist(TokenRegistry([token(TOKEN_A)]), path)
    before = path.read_text()

    with patch("dexcatalog.storage.files.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(PersistenceError):
            store.persist(TokenRegistry([token(TOKEN_A), token(TOKEN_B)]), path)

    assert path.read_text() == before
    assert [p.name for p in tmp_path.iterdir()] == ["tokens.json"]
