from __future__ import annotations
"""
Proposal ledger: one committed digest per RateId.

The plaintext (proposer, value, nonce) is never stored; callers resupply it and
the ledger recomputes `proposal_id` to compare. A RateId without a live
proposal holds NO_PROPOSAL, which is named by the all-zero tuple
(zero address, 0, 0).
"""


from threading import RLock
from typing import Dict

from .ids import NO_PROPOSAL, check_rate_id, is_zero_proposal, proposal_id


class ProposalLedger:
    def __init__(self) -> None:
        self._lock = RLock()
        self._slots: Dict[int, bytes] = {}

    def get(self, rate_id: int) -> bytes:
        return self._slots.get(check_rate_id(rate_id), NO_PROPOSAL)

    def matches(self, rate_id: int, proposer: str, value: int, nonce: int) -> bool:
        """True iff (proposer, value, nonce) names the stored proposal of `rate_id`."""
        stored = self.get(rate_id)
        if is_zero_proposal(proposer, value, nonce):
            return stored == NO_PROPOSAL
        return proposal_id(rate_id, proposer, value, nonce) == stored

    def record(self, rate_id: int, proposer: str, value: int, nonce: int) -> bytes:
        pid = proposal_id(rate_id, proposer, value, nonce)
        with self._lock:
            self._slots[rate_id] = pid
        return pid

    def clear(self, rate_id: int) -> None:
        with self._lock:
            self._slots.pop(check_rate_id(rate_id), None)

    # --- snapshot (transaction rollback) ---

    def snapshot(self) -> Dict[int, bytes]:
        return dict(self._slots)

    def restore(self, snap: Dict[int, bytes]) -> None:
        with self._lock:
            self._slots = dict(snap)


__all__ = ["ProposalLedger"]
