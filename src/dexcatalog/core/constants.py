from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolPreset:
    """A known factory deployment: where it lives and how its events are laid out."""

    network: str
    factory: str
    variant: str
    rpc_env: str  # environment variable holding the network's RPC URL


PRESETS: dict[str, ProtocolPreset] = {
    "uniswap-v3-arbitrum": ProtocolPreset(
        network="arbitrum",
        factory="0x1f98431c8ad98523631ae4a59f267346ea31f984",
        variant="concentrated",
        rpc_env="ARBITRUM_RPC_URL",
    ),
    "camelot-arbitrum": ProtocolPreset(
        network="arbitrum",
        factory="0x6eccab422d763ac031210895c81787e87b43a652",
        variant="classic",
        rpc_env="ARBITRUM_RPC_URL",
    ),
    "sushiswap-arbitrum": ProtocolPreset(
        network="arbitrum",
        factory="0xc35dadb65012ec5796536bd9864ed8773abc74c4",
        variant="classic",
        rpc_env="ARBITRUM_RPC_URL",
    ),
    "velodrome-optimism": ProtocolPreset(
        network="optimism",
        factory="0x25cbddb98b35ab1ff77413456b31ec81a6b6b746",
        variant="stable",
        rpc_env="OPTIMISM_RPC_URL",
    ),
}
