"""Run orchestration: wiring concrete adapters around the use cases.

This package provides:
- Block-range utilities for paginated log fetching (`utils`)
- The run orchestrator (`orchestrator`): harvest, sync_tokens, run
"""

from dexcatalog.orchestration.utils import iter_chunks, parse_block_ref, to_hex_block

__all__ = [
    "iter_chunks",
    "parse_block_ref",
    "to_hex_block",
]
