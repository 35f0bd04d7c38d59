from __future__ import annotations
"""
Single-feed value adapter.

One feed per token; the value is that feed's latest answer rescaled to WAD.
Round data is (round_id, updated_at) and the nonce fingerprint is the round id.
"""


import logging
import time
from threading import RLock
from typing import Callable, Dict, Optional, Tuple

from ..auth import SIG_SET_FEED, SIG_UNSET_FEED, Guard, require
from ..errors import FeedNotFound
from ..events import EventLog, EventType
from ..feeds import Feed
from ..ids import check_rate_id, rate_id_for
from ..nonce import NonceCodec
from ..spot import SpotRegistry
from .base import ValidateResult, latest_value, push_spot, validate_rounds

log = logging.getLogger(__name__)


def _identity(values):
    (only,) = tuple(values)
    return only


class SingleFeedAdapter:
    def __init__(
        self,
        *,
        guard: Guard,
        spot: SpotRegistry,
        dispute_window: int,
        events: Optional[EventLog] = None,
        clock: Callable[[], int] = lambda: int(time.time()),
    ) -> None:
        self.codec = NonceCodec(sources=1, dispute_window=dispute_window)
        self._guard = guard
        self._spot = spot
        self._events = events if events is not None else EventLog()
        self._clock = clock
        self._lock = RLock()
        self._feeds: Dict[int, Feed] = {}

    # --- configuration ---

    def set_feed(self, caller: str, token: str, feed: Feed) -> int:
        require(self._guard, SIG_SET_FEED, caller)
        rate_id = rate_id_for(token)
        with self._lock:
            self._feeds[rate_id] = feed
        log.info("feed set rate_id=%s decimals=%s", hex(rate_id), feed.decimals())
        self._events.emit(EventType.SET_FEED, ts=self._clock(), rate_id=rate_id, caller=caller, token=token.lower())
        return rate_id

    def unset_feed(self, caller: str, token: str) -> None:
        require(self._guard, SIG_UNSET_FEED, caller)
        rate_id = rate_id_for(token)
        with self._lock:
            if self._feeds.pop(rate_id, None) is None:
                raise FeedNotFound("no feed configured", rate_id=rate_id)
        log.info("feed unset rate_id=%s", hex(rate_id))
        self._events.emit(EventType.UNSET_FEED, ts=self._clock(), rate_id=rate_id, caller=caller, token=token.lower())

    def feed(self, rate_id: int) -> Feed:
        try:
            return self._feeds[check_rate_id(rate_id)]
        except KeyError:
            raise FeedNotFound("no feed configured", rate_id=rate_id) from None

    # --- adapter surface ---

    def value(self, rate_id: int) -> Tuple[int, bytes]:
        return latest_value(self.codec, [self.feed(rate_id)], _identity)

    def validate(self, proposed_value: int, rate_id: int, nonce: int, data: bytes) -> Tuple[ValidateResult, int, bytes]:
        return validate_rounds(self.codec, [self.feed(rate_id)], _identity, proposed_value, nonce, data)

    def push_value(self, rate_id: int, value: int) -> bool:
        return push_spot(self._spot, rate_id, value)


__all__ = ["SingleFeedAdapter"]
