from __future__ import annotations
"""
Deterministic identifiers for the oracle ledgers.

- Addresses: lowercase 0x-prefixed 20-byte hex strings.
- RateId: unsigned 256-bit integer. Token-backed feeds use the token address
  read as an integer, so `token_for(rate_id_for(t)) == t`.
- Proposal digest: keccak256 over the word-packed tuple
  (rate_id, proposer, value, nonce). The ledger stores only this digest.
- NO_PROPOSAL: 32 zero bytes, the digest slot of a RateId that has no live
  proposal. A real digest equals it only with negligible probability.
"""


import re

from .hashing import UINT256_MAX, address_word, hash_concat_keccak256, uint_word

ZERO_ADDRESS = "0x" + "00" * 20
NO_PROPOSAL = b"\x00" * 32

_ADDR_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate and lowercase an address."""
    if not isinstance(address, str) or not _ADDR_RE.match(address):
        raise ValueError(f"not a 0x-prefixed 20-byte address: {address!r}")
    return address.lower()


def check_rate_id(rate_id: int) -> int:
    if isinstance(rate_id, bool) or not isinstance(rate_id, int) or not 0 <= rate_id <= UINT256_MAX:
        raise ValueError(f"rate_id must be a uint256 (got {rate_id!r})")
    return rate_id


def rate_id_for(token: str) -> int:
    return int(normalize_address(token), 16)


def token_for(rate_id: int) -> str:
    """Registry-facing identity for a RateId; only 160-bit ids map to a token."""
    check_rate_id(rate_id)
    if rate_id >> 160:
        raise ValueError(f"rate_id {hex(rate_id)} does not map to an address")
    return "0x" + rate_id.to_bytes(20, "big").hex()


def is_zero_proposal(proposer: str, value: int, nonce: int) -> bool:
    """The tuple a caller supplies to name the empty NO_PROPOSAL slot."""
    return int(proposer, 16) == 0 and value == 0 and nonce == 0


def proposal_id(rate_id: int, proposer: str, value: int, nonce: int) -> bytes:
    return hash_concat_keccak256(
        uint_word(check_rate_id(rate_id)),
        address_word(normalize_address(proposer)),
        uint_word(value),
        uint_word(nonce),
    )


__all__ = [
    "ZERO_ADDRESS",
    "NO_PROPOSAL",
    "normalize_address",
    "check_rate_id",
    "rate_id_for",
    "token_for",
    "is_zero_proposal",
    "proposal_id",
]
