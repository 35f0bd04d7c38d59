from __future__ import annotations
"""
Oracle event records.

Every state change of the rate registry, bond vault, proposal ledger and feed
configuration appends one immutable record to an `EventLog`. Records are pure
dataclasses with JSON-safe `to_dict()` (256-bit integers and digests as hex).

Events:
  - ActivateRateId / DeactivateRateId / Lock
  - Bond / Unbond / ClaimBond / Recover
  - Propose:  a shift recorded a new proposal digest
  - Dispute:  a proposal was replaced by the validated value
  - Push:     a value was forwarded to the spot registry (ok=False if it failed)
  - SetFeed / UnsetFeed / AllowCaller / BlockCaller
"""


from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from enum import Enum
from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Tuple


class EventType(str, Enum):
    ACTIVATE_RATE_ID = "ActivateRateId"
    DEACTIVATE_RATE_ID = "DeactivateRateId"
    LOCK = "Lock"
    BOND = "Bond"
    UNBOND = "Unbond"
    CLAIM_BOND = "ClaimBond"
    RECOVER = "Recover"
    PROPOSE = "Propose"
    DISPUTE = "Dispute"
    PUSH = "Push"
    SET_FEED = "SetFeed"
    UNSET_FEED = "UnsetFeed"
    ALLOW_CALLER = "AllowCaller"
    BLOCK_CALLER = "BlockCaller"


def _jsonable(v: Any) -> Any:
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v >= 1 << 53:
        return hex(v)
    if isinstance(v, tuple):
        return [_jsonable(x) for x in v]
    return v


@dataclass(frozen=True)
class OracleEvent:
    etype: EventType
    ts: int
    rate_id: Optional[int] = None
    caller: Optional[str] = None
    args: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def arg(self, name: str, default: Any = None) -> Any:
        for k, v in self.args:
            if k == name:
                return v
        return default

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["etype"] = self.etype.value
        d["rate_id"] = hex(self.rate_id) if self.rate_id is not None else None
        d["args"] = {k: _jsonable(v) for k, v in self.args}
        return d


class EventLog:
    """
    Append-only, thread-safe event list with simple filtering.

    `maxlen` caps the number of retained events; the oldest are dropped first.
    Without a cap the log grows for the life of the process, so long-running
    embedders should either set one or `drain()` periodically.
    """

    def __init__(self, maxlen: Optional[int] = None) -> None:
        if maxlen is not None and maxlen < 1:
            raise ValueError("maxlen must be positive")
        self.maxlen = maxlen
        self._lock = RLock()
        self._events: List[OracleEvent] = []
        self._dropped = 0

    def emit(
        self,
        etype: EventType,
        *,
        ts: int,
        rate_id: Optional[int] = None,
        caller: Optional[str] = None,
        **args: Any,
    ) -> OracleEvent:
        ev = OracleEvent(etype=etype, ts=int(ts), rate_id=rate_id, caller=caller,
                         args=tuple(sorted(args.items())))
        with self._lock:
            self._events.append(ev)
            if self.maxlen is not None and len(self._events) > self.maxlen:
                excess = len(self._events) - self.maxlen
                del self._events[:excess]
                self._dropped += excess
        return ev

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[OracleEvent]:
        with self._lock:
            return iter(list(self._events))

    def of_type(self, etype: EventType) -> List[OracleEvent]:
        with self._lock:
            return [e for e in self._events if e.etype is etype]

    def last(self, etype: Optional[EventType] = None) -> Optional[OracleEvent]:
        with self._lock:
            for e in reversed(self._events):
                if etype is None or e.etype is etype:
                    return e
        return None

    def drain(self) -> List[OracleEvent]:
        """Return and forget every retained event."""
        with self._lock:
            out, self._events = self._events, []
            self._dropped += len(out)
            return out

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Block other emitters so a `mark`/`truncate` pair only covers the holder's events."""
        with self._lock:
            yield

    def mark(self) -> int:
        """Position of the next event; pair with `truncate` to drop events of a failed call."""
        with self._lock:
            return self._dropped + len(self._events)

    def truncate(self, mark: int) -> None:
        with self._lock:
            del self._events[max(0, mark - self._dropped):]


__all__ = ["EventType", "OracleEvent", "EventLog"]
