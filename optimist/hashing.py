"""
optimist.hashing: Keccak-256 and 32-byte word packing.

Goals
-----
- Strictly bytes-in, bytes-out (no implicit text/encoding).
- Word packing that matches the ABI `encode` layout: every value occupies one
  32-byte big-endian word, addresses are left-padded.
- Over-width or negative integers are rejected, never wrapped.

Provided APIs
-------------
- keccak256(data: bytes) -> bytes
- hash_concat_keccak256(*chunks: bytes) -> bytes
- uint_word(value: int, *, bits: int = 256) -> bytes
- address_word(address: str) -> bytes
- words(data: bytes) -> list[int]           # inverse of uint_word concatenation
"""

from __future__ import annotations

from typing import Iterable, List

from Crypto.Hash import keccak as _keccak

WORD = 32
UINT256_MAX = (1 << 256) - 1


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def _new_keccak256():
    return _keccak.new(digest_bits=256)


def keccak256(data: bytes | bytearray | memoryview) -> bytes:
    """Keccak-256 (pre-SHA3 padding) as used by Ethereum-style ledgers."""
    h = _new_keccak256()
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def _hash_concat(chunks: Iterable[bytes | bytearray | memoryview], h) -> bytes:
    for i, c in enumerate(chunks):
        h.update(_ensure_bytes(c, f"chunk[{i}]"))
    return h.digest()


def hash_concat_keccak256(*chunks: bytes | bytearray | memoryview) -> bytes:
    return _hash_concat(chunks, _new_keccak256())


# ------------------------------- Word packing -------------------------------- #

def uint_word(value: int, *, bits: int = 256) -> bytes:
    """
    Encode `value` as one 32-byte big-endian word after checking it fits `bits`.

    Raises:
        OverflowError: negative or wider than `bits`.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected int, got {type(value).__name__}")
    if value < 0 or value >> bits:
        raise OverflowError(f"{value} does not fit uint{bits}")
    return value.to_bytes(WORD, "big")


def address_word(address: str) -> bytes:
    """Left-pad a 0x-prefixed 20-byte hex address to one word."""
    raw = bytes.fromhex(address[2:] if address[:2].lower() == "0x" else address)
    if len(raw) != 20:
        raise ValueError(f"address must be 20 bytes (got {len(raw)})")
    return raw.rjust(WORD, b"\x00")


def words(data: bytes | bytearray | memoryview) -> List[int]:
    """Split a word-packed payload back into unsigned integers."""
    raw = _ensure_bytes(data, "data")
    if len(raw) % WORD:
        raise ValueError(f"payload length {len(raw)} is not a multiple of {WORD}")
    return [int.from_bytes(raw[i:i + WORD], "big") for i in range(0, len(raw), WORD)]


__all__ = [
    "WORD",
    "UINT256_MAX",
    "keccak256",
    "hash_concat_keccak256",
    "uint_word",
    "address_word",
    "words",
]
