from pathlib import Path

import pytest

from dexcatalog.core.config import HarvestConfig, SyncConfig
from dexcatalog.core.constants import PRESETS
from dexcatalog.core.errors import ConfigurationError
from dexcatalog.core.models import canonical_address
from dexcatalog.decoding.specs import LAYOUTS

GOOD = dict(rpc_url="https://node.test", factory="0x" + "ab" * 20, variant="concentrated")


def test_valid_config_passes() -> None:
    HarvestConfig(**GOOD).validate()
    HarvestConfig(**GOOD, start_block="0x10", end_block=100).validate()


@pytest.mark.parametrize(
    "override",
    [
        {"rpc_url": "node.test"},
        {"factory": "0xnothex"},
        {"variant": "orderbook"},
        {"start_block": 10, "end_block": 5},
        {"start_block": "yesterday"},
        {"step": 0},
        {"concurrency": 0},
        {"concurrency": 65},
    ],
)
def test_invalid_config_is_rejected(override: dict) -> None:
    with pytest.raises(ConfigurationError):
        HarvestConfig(**{**GOOD, **override}).validate()


def test_sync_config_checks_registry_path(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        SyncConfig(harvest=HarvestConfig(**GOOD), registry_path=tmp_path).validate()
    SyncConfig(harvest=HarvestConfig(**GOOD), registry_path=tmp_path / "tokens.json").validate()


def test_presets_are_valid() -> None:
    for preset in PRESETS.values():
        assert canonical_address(preset.factory) == preset.factory
        assert preset.variant in LAYOUTS


def test_canonical_address() -> None:
    assert canonical_address("0x1F98431c8aD98523631AE4a59f267346ea31F984") == "0x1f98431c8ad98523631ae4a59f267346ea31f984"
    assert canonical_address(bytes(range(20))) == "0x" + bytes(range(20)).hex()
    with pytest.raises(ValueError):
        canonical_address("0x1234")
