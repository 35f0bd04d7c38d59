from __future__ import annotations
"""
Minimum-of-three-feeds value adapter.

Three feeds per token, possibly with different native precisions. Each answer
is rescaled to WAD and the smallest one wins. Freshness is weakest-link: the
nonce as-of time is the oldest of the three round timestamps, and the
fingerprint is the truncated keccak of the three round ids.
"""


import logging
import time
from threading import RLock
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..auth import SIG_SET_FEED, SIG_UNSET_FEED, Guard, require
from ..errors import FeedNotFound
from ..events import EventLog, EventType
from ..feeds import Feed
from ..ids import check_rate_id, rate_id_for
from ..nonce import NonceCodec
from ..spot import SpotRegistry
from .base import ValidateResult, latest_value, push_spot, validate_rounds

log = logging.getLogger(__name__)

FEEDS_PER_RATE = 3


class MinimumFeedAdapter:
    def __init__(
        self,
        *,
        guard: Guard,
        spot: SpotRegistry,
        dispute_window: int,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        self.codec = NonceCodec(sources=FEEDS_PER_RATE, dispute_window=dispute_window)
        self._guard = guard
        self._spot = spot
        self._events = events if events is not None else EventLog()
        self._clock = clock
        self._lock = RLock()
        self._feeds: Dict[int, Tuple[Feed, ...]] = {}

    # --- configuration ---

    def set_feed(self, caller: str, token: str, feeds: Sequence[Feed]) -> int:
        require(self._guard, SIG_SET_FEED, caller)
        feeds = tuple(feeds)
        if len(feeds) != FEEDS_PER_RATE:
            raise ValueError(f"expected {FEEDS_PER_RATE} feeds, got {len(feeds)}")
        rate_id = rate_id_for(token)
        with self._lock:
            self._feeds[rate_id] = feeds
        log.info("feeds set rate_id=%s decimals=%s", hex(rate_id), [f.decimals() for f in feeds])
        self._events.emit(EventType.SET_FEED, ts=self._clock(), rate_id=rate_id, caller=caller, token=token.lower())
        return rate_id

    def unset_feed(self, caller: str, token: str) -> None:
        require(self._guard, SIG_UNSET_FEED, caller)
        rate_id = rate_id_for(token)
        with self._lock:
            if self._feeds.pop(rate_id, None) is None:
                raise FeedNotFound("no feeds configured", rate_id=rate_id)
        log.info("feeds unset rate_id=%s", hex(rate_id))
        self._events.emit(EventType.UNSET_FEED, ts=self._clock(), rate_id=rate_id, caller=caller, token=token.lower())

    def feeds(self, rate_id: int) -> Tuple[Feed, ...]:
        try:
            return self._feeds[check_rate_id(rate_id)]
        except KeyError:
            raise FeedNotFound("no feeds configured", rate_id=rate_id) from None

    # --- adapter surface ---

    def value(self, rate_id: int) -> Tuple[int, bytes]:
        return latest_value(self.codec, self.feeds(rate_id), min)

    def validate(self, proposed_value: int, rate_id: int, nonce: int, data: bytes) -> Tuple[ValidateResult, int, bytes]:
        return validate_rounds(self.codec, self.feeds(rate_id), min, proposed_value, nonce, data)

    def push_value(self, rate_id: int, value: int) -> bool:
        return push_spot(self._spot, rate_id, value)


__all__ = ["FEEDS_PER_RATE", "MinimumFeedAdapter"]
