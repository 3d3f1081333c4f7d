"""Decoding utilities: ABI word access and fixed-offset field extraction."""

from __future__ import annotations

from eth_utils import keccak

WORD = 32


def topic0_of(signature: str) -> str:
    """Return the 0x-prefixed keccak hash of a canonical event signature."""
    return "0x" + keccak(text=signature.replace(" ", "")).hex()


def topic_bytes(topic_hex: str) -> bytes:
    """Decode one topic into exactly 32 bytes; raises ValueError otherwise."""
    h = topic_hex[2:] if topic_hex[:2].lower() == "0x" else topic_hex
    raw = bytes.fromhex(h)
    if len(raw) != WORD:
        raise ValueError(f"topic must be 32 bytes, got {len(raw)}")
    return raw


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word. Callers check the payload length first."""
    start = WORD * i
    return data[start : start + WORD]


def address_from_word(word: bytes) -> str:
    """Return the right-aligned address held in a 32-byte word (low 20 bytes)."""
    return "0x" + word[-20:].hex()


def uint_from_low_bytes(word: bytes, n: int) -> int:
    """Interpret the low `n` bytes of a word as an unsigned big-endian integer."""
    return int.from_bytes(word[-n:], "big", signed=False)
