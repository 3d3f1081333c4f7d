"""JSON file store for the token registry.

Format: a JSON array of objects with the fields `address`, `name`,
`symbol`, `decimals` (in that order). Addresses are canonical lower-case
0x-hex. Existing files written by earlier tooling load unchanged.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from dexcatalog.core.errors import PersistenceError
from dexcatalog.core.models import TokenMetadata, TokenRegistry
from dexcatalog.storage.files import atomic_write_bytes

logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(list[TokenMetadata])


def parse_registry(text: str) -> TokenRegistry:
    """Parse registry text; duplicate addresses keep their first entry."""
    if not text.strip():
        return TokenRegistry()
    entries = _ENTRIES.validate_json(text)
    registry = TokenRegistry(entries)
    if len(registry) != len(entries):
        logger.warning("registry holds %d duplicate address(es); keeping first entries", len(entries) - len(registry))
    return registry


def dump_registry(registry: TokenRegistry) -> bytes:
    """Serialize the registry as a compact JSON array."""
    return _ENTRIES.dump_json(registry.entries())


class JsonRegistryStore:
    """Registry store backed by a single JSON file, replaced atomically on persist."""

    def load(self, source: Path) -> tuple[str, TokenRegistry]:
        """Return (raw text, parsed registry); a missing file is an empty registry."""
        if not source.exists():
            logger.info("no registry at %s, starting empty", source)
            return "", TokenRegistry()
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"cannot read registry {source}: {e}") from e
        try:
            registry = parse_registry(text)
        except ValidationError as e:
            raise PersistenceError(f"registry {source} is not a valid token list: {e}") from e
        logger.info("loaded %d token(s) from %s", len(registry), source)
        return text, registry

    def persist(self, registry: TokenRegistry, destination: Path) -> None:
        """Write the full registry, replacing prior content without torn writes."""
        try:
            atomic_write_bytes(destination, dump_registry(registry))
        except OSError as e:
            raise PersistenceError(f"cannot write registry {destination}: {e}") from e
        logger.info("persisted %d token(s) to %s", len(registry), destination)
