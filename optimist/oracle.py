from __future__ import annotations
"""
optimist.oracle
===============

The proposal/dispute state machine.

Per RateId the ledger holds one committed digest:

    NO_PROPOSAL ──shift──▶ Proposed(p, v, n) ──shift──▶ Proposed(p', v', n')
         ▲                      │   │
         └────────push──────────┘   └──dispute──▶ Proposed(oracle, true_v, n)

* `shift` extends the chain link it names. The caller must be bonded, must name
  the stored proposal exactly (or the all-zero tuple when nothing is stored),
  and mints the new nonce from `data`. If the named proposal is past its dispute
  window it is final and its value is pushed to the spot registry first.
* `dispute` challenges the stored proposal inside its window. If the adapter
  finds the value wrong, the proposal is re-attributed to the oracle at the
  true value (same nonce) and the proposer's bond, if it still holds one,
  goes to `receiver`. The oracle address itself can never bond or propose,
  so oracle-attributed proposals only come from disputes and are final.
* `push` forwards the live feed value and retires any pending proposal.

Atomicity
---------
Every public call runs under one re-entrant lock inside a transaction scope that
snapshots the rate registry, bond set, proposal ledger and event log, and puts
them back if anything raises. Spot pushes cannot be undone, so they happen only
after every check that could still fail; their own failures are logged and
swallowed.

Time is whatever `clock()` returns at call time; windows lapse passively and
are acted on the next time a caller touches the RateId.
"""


import logging
import time
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple, Type

from . import metrics
from .adapters import MinimumFeedAdapter, SingleFeedAdapter, ValidateResult, ValueAdapter
from .auth import Guard
from .bonds import BondVault
from .config import OptimistConfig
from .errors import (AlreadyDisputed, DisputeWindowClosed, InvalidDispute,
                     InvalidPreviousProposal, Unauthorized, UnknownProposal)
from .events import EventLog, EventType
from .hashing import UINT256_MAX
from .ids import check_rate_id, is_zero_proposal, normalize_address
from .ledger import ProposalLedger
from .rates import RateRegistry
from .spot import SpotRegistry
from .token import Token

log = logging.getLogger(__name__)

ADAPTERS: Dict[str, Type] = {
    "single": SingleFeedAdapter,
    "minimum": MinimumFeedAdapter,
}


def _check_value(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT256_MAX:
        raise ValueError(f"value must be a uint256 (got {value!r})")
    return value


class OptimisticOracle:
    def __init__(
        self,
        *,
        adapter: ValueAdapter,
        guard: Guard,
        token: Token,
        config: Optional[OptimistConfig] = None,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        cfg = config or OptimistConfig()
        cfg.validate()
        if adapter.codec.dispute_window != cfg.params.dispute_window:
            raise ValueError(
                f"adapter dispute window {adapter.codec.dispute_window} != configured {cfg.params.dispute_window}"
            )
        self.config = cfg
        self.address = normalize_address(cfg.oracle_address)
        self.adapter = adapter
        self.codec = adapter.codec
        self.events = events if events is not None else EventLog()
        self._clock = clock
        self._lock = RLock()

        self.rates = RateRegistry(guard=guard, events=self.events, clock=clock)
        self.proposals = ProposalLedger()
        self.bonds = BondVault(
            address=self.address,
            token=token,
            bond_size=cfg.params.bond_size,
            guard=guard,
            registry=self.rates,
            proposals=self.proposals,
            can_dispute=self.can_dispute,
            events=self.events,
            clock=clock,
        )

    @classmethod
    def create(
        cls,
        family: str,
        *,
        guard: Guard,
        token: Token,
        spot: SpotRegistry,
        config: Optional[OptimistConfig] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
        max_events: Optional[int] = None,
    ) -> "OptimisticOracle":
        """Wire an oracle and its adapter (`family`: "single" | "minimum") on one event log."""
        try:
            adapter_cls = ADAPTERS[family]
        except KeyError:
            raise ValueError(f"unknown adapter family {family!r}; expected one of {sorted(ADAPTERS)}") from None
        cfg = config or OptimistConfig()
        events = EventLog(maxlen=max_events)
        adapter = adapter_cls(
            guard=guard, spot=spot, dispute_window=cfg.params.dispute_window, events=events, clock=clock
        )
        return cls(adapter=adapter, guard=guard, token=token, config=cfg, events=events, clock=clock)

    # ────────────────────────────────────────────────────────────────────
    # Transaction scope
    # ────────────────────────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, op: str) -> Iterator[None]:
        with self._lock, self.events.hold():
            snap = (self.rates.snapshot(), self.bonds.snapshot(), self.proposals.snapshot())
            mark = self.events.mark()
            try:
                yield
            except Exception as exc:
                self.rates.restore(snap[0])
                self.bonds.restore(snap[1])
                self.proposals.restore(snap[2])
                self.events.truncate(mark)
                code = getattr(exc, "code", type(exc).__name__)
                metrics.record_rejection(op, code)
                log.debug("%s rejected: %s", op, exc)
                raise

    # ────────────────────────────────────────────────────────────────────
    # Views
    # ────────────────────────────────────────────────────────────────────

    def now(self) -> int:
        return int(self._clock())

    def is_active(self, rate_id: int) -> bool:
        return self.rates.is_active(rate_id)

    def is_bonded(self, proposer: str, rate_id: int) -> bool:
        return self.bonds.is_bonded(proposer, rate_id)

    def proposal(self, rate_id: int) -> bytes:
        return self.proposals.get(rate_id)

    def can_dispute(self, nonce: int) -> bool:
        return self.codec.can_dispute(nonce, self.now())

    def encode_nonce(self, prev_nonce: int, data: bytes) -> int:
        return self.codec.encode(prev_nonce, data, self.now())

    def decode_nonce(self, nonce: int) -> Tuple[int, int]:
        return self.codec.decode(nonce)

    def value(self, rate_id: int) -> Tuple[int, bytes]:
        return self.adapter.value(rate_id)

    def validate(self, value: int, rate_id: int, nonce: int, data: bytes) -> Tuple[ValidateResult, int, bytes]:
        return self.adapter.validate(value, rate_id, nonce, data)

    # ────────────────────────────────────────────────────────────────────
    # Rate registry
    # ────────────────────────────────────────────────────────────────────

    def activate_rate_id(self, caller: str, rate_id: int) -> None:
        with self._transaction("activate_rate_id"):
            self.rates.activate(caller, rate_id)

    def deactivate_rate_id(self, caller: str, rate_id: int) -> None:
        with self._transaction("deactivate_rate_id"):
            self.rates.deactivate(caller, rate_id)

    def lock(self, caller: str, rate_ids: Iterable[int]) -> None:
        with self._transaction("lock"):
            self.rates.lock(caller, rate_ids)

    # ────────────────────────────────────────────────────────────────────
    # Bonds
    # ────────────────────────────────────────────────────────────────────

    def bond(self, caller: str, rate_ids: Iterable[int]) -> None:
        with self._transaction("bond"):
            self.bonds.bond(caller, rate_ids)

    def unbond(
        self,
        caller: str,
        rate_id: int,
        last_proposer: str,
        last_value: int,
        last_nonce: int,
        receiver: str,
    ) -> None:
        with self._transaction("unbond"):
            self.bonds.unbond(caller, rate_id, last_proposer, last_value, last_nonce, receiver)

    def recover(self, caller: str, rate_id: int, receiver: str) -> None:
        with self._transaction("recover"):
            self.bonds.recover(caller, rate_id, receiver)

    # ────────────────────────────────────────────────────────────────────
    # Proposals
    # ────────────────────────────────────────────────────────────────────

    def shift(
        self,
        caller: str,
        rate_id: int,
        prev_proposer: str,
        prev_value: int,
        prev_nonce: int,
        value: int,
        data: bytes,
    ) -> int:
        """Propose `value` for `rate_id` on top of the named previous proposal; returns the new nonce."""
        proposer = normalize_address(caller)
        with self._transaction("shift"):
            check_rate_id(rate_id)
            _check_value(value)
            if proposer == self.address:
                raise Unauthorized(sig="shift", caller=proposer, message="oracle address cannot propose")
            self.rates.require_active(rate_id)
            self.bonds.require_bonded(proposer, rate_id)
            if not self.proposals.matches(rate_id, prev_proposer, prev_value, prev_nonce):
                raise InvalidPreviousProposal("previous proposal does not match", rate_id=rate_id)

            now = self.now()
            nonce = self.codec.encode(prev_nonce, data, now)

            if not is_zero_proposal(prev_proposer, prev_value, prev_nonce) and not self.codec.can_dispute(prev_nonce, now):
                self._push_value(rate_id, prev_value, path="shift", caller=proposer)

            pid = self.proposals.record(rate_id, proposer, value, nonce)
            self.events.emit(EventType.PROPOSE, ts=now, rate_id=rate_id, caller=proposer,
                             proposal_id=pid, value=value, nonce=nonce)
        metrics.record_proposal()
        log.debug("proposed rate_id=%s proposer=%s value=%s", hex(rate_id), proposer, value)
        return nonce

    def dispute(
        self,
        caller: str,
        rate_id: int,
        proposer: str,
        receiver: str,
        value: int,
        nonce: int,
        data: bytes,
    ) -> Tuple[ValidateResult, int]:
        """
        Challenge the stored proposal (proposer, value, nonce) with round `data`.

        Returns the validation result and the value now on record.
        """
        disputer = normalize_address(caller)
        with self._transaction("dispute"):
            self.rates.require_active(rate_id)
            if normalize_address(proposer) == self.address:
                raise AlreadyDisputed("proposal already replaced by a dispute", rate_id=rate_id)
            if is_zero_proposal(proposer, value, nonce) or not self.proposals.matches(rate_id, proposer, value, nonce):
                raise UnknownProposal("no such live proposal", rate_id=rate_id)
            if not self.codec.can_dispute(nonce, self.now()):
                raise DisputeWindowClosed("dispute window has elapsed", rate_id=rate_id)

            result, true_value, used_data = self.adapter.validate(value, rate_id, nonce, data)
            if result.ok:
                metrics.record_dispute("rejected")
                raise InvalidDispute("proposed value is correct", rate_id=rate_id)

            self.proposals.record(rate_id, self.address, true_value, nonce)
            # the proposer may have recovered its bond through a lock; the value is corrected regardless
            claimed = self.bonds.is_bonded(proposer, rate_id)
            if claimed:
                self.bonds.claim_bond(proposer, rate_id, receiver)
            self.events.emit(EventType.DISPUTE, ts=self.now(), rate_id=rate_id, caller=disputer,
                             proposer=proposer.lower(), receiver=receiver.lower(), result=result,
                             proposed_value=value, value=true_value, nonce=nonce, data=used_data,
                             bond_claimed=claimed)
        metrics.record_dispute("accepted")
        log.info("dispute accepted rate_id=%s proposer=%s result=%s value=%s",
                 hex(rate_id), proposer.lower(), result.value, true_value)
        return result, true_value

    def push(self, caller: str, rate_id: int) -> int:
        """Finalize the live feed value for `rate_id` and retire any pending proposal."""
        with self._transaction("push"):
            self.rates.require_active(rate_id)
            value, _ = self.adapter.value(rate_id)
            self.proposals.clear(rate_id)
            self._push_value(rate_id, value, path="push", caller=caller)
        return value

    def _push_value(self, rate_id: int, value: int, *, path: str, caller: Optional[str]) -> bool:
        ok = self.adapter.push_value(rate_id, value)
        metrics.record_push(path, ok)
        self.events.emit(EventType.PUSH, ts=self.now(), rate_id=rate_id, caller=caller,
                         value=value, ok=ok, path=path)
        return ok


__all__ = ["ADAPTERS", "OptimisticOracle"]
