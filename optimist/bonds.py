from __future__ import annotations

"""
Bond vault: proposer collateral per RateId
------------------------------------------

A bond is the pair (proposer, rate_id) meaning `bond_size` units of the bond
token sit in the vault on the proposer's behalf. There is no partial bond: a
proposer is either bonded for a RateId or not.

Bonding pulls collateral in; it leaves the vault on three paths:
  • unbond   the proposer withdraws after its last proposal can no longer be disputed
  • claim    a successful dispute hands the bond to the disputer's receiver
  • recover  the RateId was deactivated/locked; bonds are released unconditionally

Token movements are never best-effort: a token that returns False or raises
fails the call with `TransferFailed`. Every method checks all preconditions and
moves tokens before touching the bond set, so a failing call changes nothing.

Concurrency: a coarse `threading.RLock` protects mutating methods.
"""

import logging
import time
from threading import RLock
from typing import Callable, FrozenSet, Iterable, Optional, Set, Tuple

from . import metrics
from .auth import SIG_BOND, Guard, require
from .errors import (BondedProposer, InvalidProposal, IsProposing, NotLocked,
                     TransferFailed, Unauthorized, UnbondedProposer)
from .events import EventLog, EventType
from .ids import check_rate_id, normalize_address
from .ledger import ProposalLedger
from .rates import RateRegistry
from .token import Token

log = logging.getLogger(__name__)

Bond = Tuple[str, int]


class BondVault:
    """
    Args:
      address: the vault's own address (custodian of bonded tokens)
      token: bond token collaborator
      bond_size: base units locked per bond
      registry: rate activation state
      proposals: live proposal digests (unbond must name the live proposal)
      can_dispute: window predicate over a nonce, evaluated at call time
    """

    def __init__(
        self,
        *,
        address: str,
        token: Token,
        bond_size: int,
        guard: Guard,
        registry: RateRegistry,
        proposals: ProposalLedger,
        can_dispute: Callable[[int], bool],
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        if bond_size < 0:
            raise ValueError("bond_size must be non-negative")
        self.address = normalize_address(address)
        self.bond_size = int(bond_size)
        self._token = token
        self._guard = guard
        self._registry = registry
        self._proposals = proposals
        self._can_dispute = can_dispute
        self._events = events if events is not None else EventLog()
        self._clock = clock
        self._lock = RLock()
        self._bonds: Set[Bond] = set()

    # --- views ---

    def is_bonded(self, proposer: str, rate_id: int) -> bool:
        return (proposer.lower(), rate_id) in self._bonds

    def require_bonded(self, proposer: str, rate_id: int) -> None:
        if not self.is_bonded(proposer, rate_id):
            raise UnbondedProposer("proposer is not bonded", rate_id=rate_id, details={"proposer": proposer.lower()})

    # --- token movements ---

    def _pull(self, owner: str, amount: int) -> None:
        try:
            ok = self._token.transfer_from(self.address, owner, self.address, amount)
        except Exception as exc:
            raise TransferFailed(op="transfer_from", src=owner, dst=self.address, amount=amount) from exc
        if not ok:
            raise TransferFailed(op="transfer_from", src=owner, dst=self.address, amount=amount)

    def _pay(self, to: str, amount: int) -> None:
        try:
            ok = self._token.transfer(self.address, to, amount)
        except Exception as exc:
            raise TransferFailed(op="transfer", src=self.address, dst=to, amount=amount) from exc
        if not ok:
            raise TransferFailed(op="transfer", src=self.address, dst=to, amount=amount)

    # --- mutations ---

    def bond(self, caller: str, rate_ids: Iterable[int]) -> None:
        """Bond `caller` for every RateId in the batch (all or nothing)."""
        require(self._guard, SIG_BOND, caller)
        proposer = normalize_address(caller)
        if proposer == self.address:
            # proposals attributed to the vault address are treated as already disputed
            raise Unauthorized(sig=SIG_BOND, caller=proposer, message="oracle address cannot bond")
        ids = [check_rate_id(r) for r in rate_ids]
        with self._lock:
            seen: Set[int] = set()
            for rate_id in ids:
                self._registry.require_active(rate_id)
                if rate_id in seen or (proposer, rate_id) in self._bonds:
                    raise BondedProposer("proposer already bonded", rate_id=rate_id, details={"proposer": proposer})
                seen.add(rate_id)
            total = self.bond_size * len(ids)
            if total:
                self._pull(proposer, total)
            self._bonds.update((proposer, r) for r in ids)
        metrics.record_bond("bond", total)
        now = self._clock()
        for rate_id in ids:
            log.debug("bonded proposer=%s rate_id=%s", proposer, hex(rate_id))
            self._events.emit(EventType.BOND, ts=now, rate_id=rate_id, caller=proposer, amount=self.bond_size)

    def unbond(
        self,
        caller: str,
        rate_id: int,
        last_proposer: str,
        last_value: int,
        last_nonce: int,
        receiver: str,
    ) -> None:
        """
        Return the caller's bond once the live proposal can no longer be disputed.

        (last_proposer, last_value, last_nonce) must name the stored proposal so
        the caller proves it has seen the live state.
        """
        proposer = normalize_address(caller)
        receiver = normalize_address(receiver)
        with self._lock:
            self.require_bonded(proposer, rate_id)
            if not self._proposals.matches(rate_id, last_proposer, last_value, last_nonce):
                raise InvalidProposal("tuple does not match live proposal", rate_id=rate_id)
            if last_nonce != 0 and self._can_dispute(last_nonce):
                raise IsProposing("live proposal is still disputable", rate_id=rate_id)
            self._pay(receiver, self.bond_size)
            self._bonds.discard((proposer, rate_id))
        metrics.record_bond("unbond", self.bond_size)
        log.debug("unbonded proposer=%s rate_id=%s receiver=%s", proposer, hex(rate_id), receiver)
        self._events.emit(EventType.UNBOND, ts=self._clock(), rate_id=rate_id, caller=proposer,
                          receiver=receiver, amount=self.bond_size)

    def recover(self, caller: str, rate_id: int, receiver: str) -> None:
        """Release the caller's bond after the RateId was deactivated or locked."""
        proposer = normalize_address(caller)
        receiver = normalize_address(receiver)
        with self._lock:
            if self._registry.is_active(check_rate_id(rate_id)):
                raise NotLocked("rate id is still active", rate_id=rate_id)
            self.require_bonded(proposer, rate_id)
            self._pay(receiver, self.bond_size)
            self._bonds.discard((proposer, rate_id))
        metrics.record_bond("recover", self.bond_size)
        log.info("bond recovered proposer=%s rate_id=%s receiver=%s", proposer, hex(rate_id), receiver)
        self._events.emit(EventType.RECOVER, ts=self._clock(), rate_id=rate_id, caller=proposer,
                          receiver=receiver, amount=self.bond_size)

    def claim_bond(self, proposer: str, rate_id: int, receiver: str) -> None:
        """Hand `proposer`'s bond to `receiver`; only reachable from a successful dispute."""
        proposer = normalize_address(proposer)
        receiver = normalize_address(receiver)
        with self._lock:
            self.require_bonded(proposer, rate_id)
            self._pay(receiver, self.bond_size)
            self._bonds.discard((proposer, rate_id))
        metrics.record_bond("claim", self.bond_size)
        log.info("bond claimed proposer=%s rate_id=%s receiver=%s", proposer, hex(rate_id), receiver)
        self._events.emit(EventType.CLAIM_BOND, ts=self._clock(), rate_id=rate_id, caller=proposer,
                          receiver=receiver, amount=self.bond_size)

    # --- snapshot (transaction rollback) ---

    def bonds(self) -> FrozenSet[Bond]:
        return frozenset(self._bonds)

    def snapshot(self) -> FrozenSet[Bond]:
        return frozenset(self._bonds)

    def restore(self, snap: FrozenSet[Bond]) -> None:
        with self._lock:
            self._bonds = set(snap)


__all__ = ["BondVault"]
