import asyncio
import os
from pathlib import Path

from dotenv import load_dotenv

from dexcatalog.core.config import HarvestConfig, SyncConfig
from dexcatalog.core.constants import PRESETS
from dexcatalog.orchestration.orchestrator import run
from dexcatalog.storage.pairs import read_pairs

EXAMPLES_ROOT = Path(__file__).parent
OUT_ROOT = EXAMPLES_ROOT.parent / "data_examples" / "optimism"

load_dotenv()
preset = PRESETS["velodrome-optimism"]
config = SyncConfig(
    harvest=HarvestConfig(
        rpc_url=os.environ.get(preset.rpc_env, "https://mainnet.optimism.io"),
        factory=preset.factory,
        variant=preset.variant,
        start_block=0,
        end_block="latest",
        step=100_000,
    ),
    registry_path=OUT_ROOT / "VeloTokens.json",
    pairs_path=OUT_ROOT / "VeloPairs.json",
)


async def main():
    report = await run(config)
    print(f"{len(report.harvest.records)} pairs, {len(report.sync.added)} new tokens, {len(report.sync.failed)} failed")

    stable = [p for p in read_pairs(config.pairs_path) if p.is_stable]
    print(f"{len(stable)} stable pairs")
    print(stable[:3])


asyncio.run(main())
