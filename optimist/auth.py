from __future__ import annotations
"""
optimist.auth
=============

Capability gate consulted by the oracle before privileged operations.

The oracle only depends on the `Guard` protocol (`is_authorized(sig, caller)`).
`CapabilityStore` is the in-process implementation used by tests and devnets:
a per-(signature, address) allow flag plus the `ANY_SIG` wildcard.

Signatures
----------
- `activate_rate_id`, `deactivate_rate_id`, `lock`  (rate registry)
- `bond`                                          (proposer allow-list)
- `set_feed`, `unset_feed`                        (adapter configuration)

Granting and revoking are themselves gated: only holders of `ANY_SIG` may call
`allow_caller` / `block_caller`. The `root` address passed at construction holds
`ANY_SIG`.
"""


import logging
import time
from threading import RLock
from typing import Callable, Dict, Optional, Protocol, Set, Tuple

from .errors import Unauthorized
from .events import EventLog, EventType
from .ids import normalize_address

log = logging.getLogger(__name__)

ANY_SIG = "*"

SIG_ACTIVATE_RATE_ID = "activate_rate_id"
SIG_DEACTIVATE_RATE_ID = "deactivate_rate_id"
SIG_LOCK = "lock"
SIG_BOND = "bond"
SIG_SET_FEED = "set_feed"
SIG_UNSET_FEED = "unset_feed"


class Guard(Protocol):
    def is_authorized(self, sig: str, caller: str) -> bool: ...


def require(guard: Guard, sig: str, caller: str) -> None:
    """Raise `Unauthorized` unless `guard` admits `caller` for `sig`."""
    if not guard.is_authorized(sig, caller):
        raise Unauthorized(sig=sig, caller=caller)


class CapabilityStore:
    def __init__(
        self,
        root: str,
        *,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        self._lock = RLock()
        self._allowed: Set[Tuple[str, str]] = {(ANY_SIG, normalize_address(root))}
        self._events = events
        self._clock = clock

    def is_authorized(self, sig: str, caller: str) -> bool:
        who = caller.lower()
        with self._lock:
            return (sig, who) in self._allowed or (ANY_SIG, who) in self._allowed

    def allow_caller(self, caller: str, sig: str, who: str) -> None:
        require(self, ANY_SIG, caller)
        who = normalize_address(who)
        with self._lock:
            self._allowed.add((sig, who))
        log.debug("allow_caller sig=%s who=%s by=%s", sig, who, caller)
        if self._events is not None:
            self._events.emit(EventType.ALLOW_CALLER, ts=self._clock(), caller=caller, sig=sig, who=who)

    def block_caller(self, caller: str, sig: str, who: str) -> None:
        require(self, ANY_SIG, caller)
        who = normalize_address(who)
        with self._lock:
            self._allowed.discard((sig, who))
        log.debug("block_caller sig=%s who=%s by=%s", sig, who, caller)
        if self._events is not None:
            self._events.emit(EventType.BLOCK_CALLER, ts=self._clock(), caller=caller, sig=sig, who=who)

    def grants(self) -> Dict[str, Set[str]]:
        """Snapshot of signature -> addresses (for tooling)."""
        out: Dict[str, Set[str]] = {}
        with self._lock:
            for sig, who in self._allowed:
                out.setdefault(sig, set()).add(who)
        return out


__all__ = [
    "ANY_SIG",
    "SIG_ACTIVATE_RATE_ID",
    "SIG_DEACTIVATE_RATE_ID",
    "SIG_LOCK",
    "SIG_BOND",
    "SIG_SET_FEED",
    "SIG_UNSET_FEED",
    "Guard",
    "require",
    "CapabilityStore",
]
