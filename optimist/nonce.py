from __future__ import annotations
"""
optimist.nonce
==============

Freshness tokens ("nonces") binding a proposal to the feed rounds it was
computed from.

A nonce is a 256-bit integer, not a random number:

    bits 255..128   fingerprint   identity of the rounds used (128 bits)
    bits 127..64    as_of         minimum `updated_at` across those rounds
    bits  63..0     proposed_at   wall-clock second the nonce was minted

`prefix = nonce >> 64` (fingerprint + as_of) is what validation re-derives from
the round data; `proposed_at` is what the dispute window runs from.

Fingerprints
------------
- One source: the round id itself (must fit 80 bits).
- Several sources: the low 128 bits of keccak256 over the word-packed round ids.
  Truncation is part of the layout, not an error.

Round data payload
------------------
`data` is word-packed (32-byte big-endian words): all round ids first, then all
round timestamps, in source order. One source: (round_id, updated_at).

Minting rules (`encode(prev_nonce, data, now)`)
-----------------------------------------------
- prev_nonce == 0 starts a chain; nothing to compare against.
- otherwise the new as_of must be strictly greater than the previous one
  (`StaleProposal`) and more than `dispute_window` seconds must have passed since
  the previous `proposed_at` (`ActiveDisputeWindow`).
- any field wider than its slot raises `NonceOverflow`.
"""


from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .errors import ActiveDisputeWindow, InvalidData, NonceOverflow, StaleProposal
from .feeds import ROUND_ID_BITS
from .hashing import WORD, hash_concat_keccak256, uint_word, words

FINGERPRINT_BITS = 128
TIMESTAMP_BITS = 64

_TS_MASK = (1 << TIMESTAMP_BITS) - 1
_FP_MASK = (1 << FINGERPRINT_BITS) - 1

# (round_id, updated_at) as committed in round data
Round = Tuple[int, int]


def _fit(field: str, value: int, bits: int) -> int:
    if value < 0 or value >> bits:
        raise NonceOverflow(field=field, value=value, bits=bits)
    return value


@dataclass(frozen=True)
class Nonce:
    fingerprint: int
    as_of: int
    proposed_at: int

    @property
    def prefix(self) -> int:
        return (self.fingerprint << TIMESTAMP_BITS) | self.as_of

    def pack(self) -> int:
        fp = _fit("fingerprint", self.fingerprint, FINGERPRINT_BITS)
        as_of = _fit("as_of", self.as_of, TIMESTAMP_BITS)
        at = _fit("proposed_at", self.proposed_at, TIMESTAMP_BITS)
        return (fp << (2 * TIMESTAMP_BITS)) | (as_of << TIMESTAMP_BITS) | at

    @classmethod
    def unpack(cls, nonce: int) -> "Nonce":
        if nonce < 0 or nonce >> 256:
            raise NonceOverflow(field="nonce", value=nonce, bits=256)
        return cls(
            fingerprint=(nonce >> (2 * TIMESTAMP_BITS)) & _FP_MASK,
            as_of=(nonce >> TIMESTAMP_BITS) & _TS_MASK,
            proposed_at=nonce & _TS_MASK,
        )


def decode(nonce: int) -> Tuple[int, int]:
    """(prefix, proposed_at). Pure bit extraction; no validation of either half."""
    return nonce >> TIMESTAMP_BITS, nonce & _TS_MASK


class NonceCodec:
    """
    Nonce rules for one adapter family.

    Args:
      sources: number of feeds whose rounds make up `data` (1 or more)
      dispute_window: seconds a proposal stays challengeable
    """

    def __init__(self, *, sources: int, dispute_window: int) -> None:
        if sources < 1:
            raise ValueError("sources must be >= 1")
        if not 0 < dispute_window <= _TS_MASK:
            raise ValueError("dispute_window must be a positive 64-bit number of seconds")
        self.sources = int(sources)
        self.dispute_window = int(dispute_window)

    # --- round data payload ---

    @property
    def data_length(self) -> int:
        return 2 * self.sources * WORD

    def encode_data(self, rounds: Sequence[Round]) -> bytes:
        if len(rounds) != self.sources:
            raise InvalidData(f"expected {self.sources} rounds, got {len(rounds)}")
        ids = [uint_word(_fit("round_id", int(rid), ROUND_ID_BITS)) for rid, _ in rounds]
        tss = [uint_word(_fit("round_ts", int(ts), TIMESTAMP_BITS)) for _, ts in rounds]
        return b"".join(ids + tss)

    def decode_data(self, data: bytes) -> List[Round]:
        if not isinstance(data, (bytes, bytearray, memoryview)) or len(data) != self.data_length:
            raise InvalidData(
                "round data has wrong length",
                details={"expected": self.data_length, "got": len(data) if hasattr(data, "__len__") else None},
            )
        ws = words(data)
        ids, tss = ws[: self.sources], ws[self.sources:]
        for rid in ids:
            _fit("round_id", rid, ROUND_ID_BITS)
        for ts in tss:
            _fit("round_ts", ts, TIMESTAMP_BITS)
        return list(zip(ids, tss))

    # --- nonce fields ---

    def fingerprint(self, round_ids: Sequence[int]) -> int:
        if self.sources == 1:
            return _fit("round_id", int(round_ids[0]), ROUND_ID_BITS)
        digest = hash_concat_keccak256(*(uint_word(_fit("round_id", int(r), ROUND_ID_BITS)) for r in round_ids))
        return int.from_bytes(digest, "big") & _FP_MASK

    def prefix(self, data: bytes) -> int:
        """Fingerprint + weakest-link as-of time committed by `data`."""
        rounds = self.decode_data(data)
        fp = self.fingerprint([rid for rid, _ in rounds])
        as_of = min(ts for _, ts in rounds)
        return (fp << TIMESTAMP_BITS) | as_of

    def encode(self, prev_nonce: int, data: bytes, now: int) -> int:
        pfx = self.prefix(data)
        as_of = pfx & _TS_MASK
        now = _fit("proposed_at", int(now), TIMESTAMP_BITS)
        if prev_nonce != 0:
            prev_prefix, prev_at = decode(prev_nonce)
            prev_as_of = prev_prefix & _TS_MASK
            if as_of <= prev_as_of:
                raise StaleProposal(previous_as_of=prev_as_of, as_of=as_of)
            if now - prev_at <= self.dispute_window:
                raise ActiveDisputeWindow(proposed_at=prev_at, now=now, dispute_window=self.dispute_window)
        return (pfx << TIMESTAMP_BITS) | now

    def decode(self, nonce: int) -> Tuple[int, int]:
        return decode(nonce)

    def can_dispute(self, nonce: int, now: int) -> bool:
        _, proposed_at = decode(nonce)
        return int(now) - proposed_at < self.dispute_window


__all__ = [
    "FINGERPRINT_BITS",
    "TIMESTAMP_BITS",
    "Round",
    "Nonce",
    "decode",
    "NonceCodec",
]
