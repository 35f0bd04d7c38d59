from __future__ import annotations
"""
Rate registry: which RateIds are open for bonding and proposing.

Lifecycle per RateId: inactive (default) -> active -> inactive. Activation and
deactivation are capability-gated and strict: activating an active id raises
`ActiveRateId`, deactivating an inactive one raises `InactiveRateId`.

`lock(rate_ids)` is the emergency brake: a batch deactivation that halts
proposing while leaving bonds recoverable through `BondVault.recover`. It is
all-or-nothing; if any id in the batch is already inactive nothing changes.
Repeated ids in one batch are locked once.
"""


import logging
import time
from threading import RLock
from typing import Callable, FrozenSet, Iterable, Optional, Set

from .auth import SIG_ACTIVATE_RATE_ID, SIG_DEACTIVATE_RATE_ID, SIG_LOCK, Guard, require
from .errors import ActiveRateId, InactiveRateId
from .events import EventLog, EventType
from .ids import check_rate_id

log = logging.getLogger(__name__)


class RateRegistry:
    def __init__(
        self,
        *,
        guard: Guard,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        self._guard = guard
        self._events = events if events is not None else EventLog()
        self._clock = clock
        self._lock = RLock()
        self._active: Set[int] = set()

    # --- views ---

    def is_active(self, rate_id: int) -> bool:
        return rate_id in self._active

    def require_active(self, rate_id: int) -> None:
        if check_rate_id(rate_id) not in self._active:
            raise InactiveRateId("rate id is not active", rate_id=rate_id)

    def active(self) -> FrozenSet[int]:
        return frozenset(self._active)

    # --- mutations ---

    def activate(self, caller: str, rate_id: int) -> None:
        require(self._guard, SIG_ACTIVATE_RATE_ID, caller)
        with self._lock:
            if check_rate_id(rate_id) in self._active:
                raise ActiveRateId("rate id already active", rate_id=rate_id)
            self._active.add(rate_id)
        log.info("rate id activated rate_id=%s", hex(rate_id))
        self._events.emit(EventType.ACTIVATE_RATE_ID, ts=self._clock(), rate_id=rate_id, caller=caller)

    def deactivate(self, caller: str, rate_id: int) -> None:
        require(self._guard, SIG_DEACTIVATE_RATE_ID, caller)
        with self._lock:
            self.require_active(rate_id)
            self._active.discard(rate_id)
        log.info("rate id deactivated rate_id=%s", hex(rate_id))
        self._events.emit(EventType.DEACTIVATE_RATE_ID, ts=self._clock(), rate_id=rate_id, caller=caller)

    def lock(self, caller: str, rate_ids: Iterable[int]) -> None:
        require(self._guard, SIG_LOCK, caller)
        ids = list(dict.fromkeys(rate_ids))
        with self._lock:
            for rate_id in ids:
                self.require_active(rate_id)
            self._active.difference_update(ids)
        now = self._clock()
        for rate_id in ids:
            log.info("rate id locked rate_id=%s", hex(rate_id))
            self._events.emit(EventType.LOCK, ts=now, rate_id=rate_id, caller=caller)

    # --- snapshot (transaction rollback) ---

    def snapshot(self) -> FrozenSet[int]:
        return frozenset(self._active)

    def restore(self, snap: FrozenSet[int]) -> None:
        with self._lock:
            self._active = set(snap)


__all__ = ["RateRegistry"]
