"""
Feeds: authoritative round-based price sources read by the value adapters.

A feed reports fixed-point answers in its own native precision (`decimals()`)
and keeps a history of rounds, each addressable by round id. Adapters read the
latest round when computing a value and re-read a *historical* round by id when
validating one, so a feed that serves different data for the same round through
the two calls is caught.

Key ideas
---------
- **Protocol-first**: adapters depend on `Feed` only; any object with
  `decimals`, `latest_round_data` and `get_round_data` works.
- **WAD normalization**: every answer is rescaled to 18 decimals before values
  from different feeds are compared or combined.
- **Unknown rounds raise**: `get_round_data` may raise for a round it never
  produced; adapters turn that into a failed validation, not a crash.

Typical usage
-------------
    feed = MemoryFeed(decimals=8)
    feed.report(1_00000000, ts=1_700_000_000)
    rd = feed.latest_round_data()
    wad = scale_to_wad(rd.answer, feed.decimals())   # 10**18
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Dict, Optional, Protocol

from .config import WAD_DECIMALS
from .errors import InvalidFeedAnswer

WAD = 10**WAD_DECIMALS

# Round ids are 80 bits wide in the feeds we read; 77 decimals is the largest
# scale whose power of ten still fits 256 bits.
ROUND_ID_BITS = 80
MAX_FEED_DECIMALS = 77


# --------------------------------------------------------------------------------------
# Data types
# --------------------------------------------------------------------------------------

@dataclass(frozen=True)
class RoundData:
    """
    One feed round.

    Attributes:
        round_id: Feed-assigned round identifier.
        answer: Fixed-point answer in the feed's native decimals (signed).
        started_at: UNIX seconds the round opened.
        updated_at: UNIX seconds the answer was last updated (the round's as-of time).
        answered_in_round: Round in which the answer was computed.
    """
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


class Feed(Protocol):
    def decimals(self) -> int: ...
    def latest_round_data(self) -> RoundData: ...
    def get_round_data(self, round_id: int) -> RoundData: ...


def scale_to_wad(answer: int, decimals: int) -> int:
    """`answer * 10**18 / 10**decimals` in integer math (floors when decimals > 18)."""
    if answer < 0:
        raise InvalidFeedAnswer("negative feed answer", details={"answer": int(answer)})
    if not 0 <= decimals <= MAX_FEED_DECIMALS:
        raise InvalidFeedAnswer("feed decimals out of range", details={"decimals": int(decimals)})
    return answer * WAD // 10**decimals


# --------------------------------------------------------------------------------------
# In-memory feed
# --------------------------------------------------------------------------------------

class MemoryFeed:
    """
    Deterministic in-process feed.

    Round ids start at `first_round_id` and increase by one per `report`. Reading
    the latest round before any report raises `LookupError`, as does asking for a
    round id that was never produced.
    """

    def __init__(self, decimals: int = 8, *, first_round_id: int = 1) -> None:
        self._decimals = int(decimals)
        self._next_id = int(first_round_id)
        self._rounds: Dict[int, RoundData] = {}
        self._latest: Optional[int] = None
        self._lock = RLock()

    def decimals(self) -> int:
        return self._decimals

    def report(self, answer: int, *, ts: int, started_at: Optional[int] = None) -> RoundData:
        with self._lock:
            rid = self._next_id
            rd = RoundData(
                round_id=rid,
                answer=int(answer),
                started_at=int(ts if started_at is None else started_at),
                updated_at=int(ts),
                answered_in_round=rid,
            )
            self._rounds[rid] = rd
            self._latest = rid
            self._next_id += 1
            return rd

    def latest_round_data(self) -> RoundData:
        if self._latest is None:
            raise LookupError("feed has no rounds")
        return self._rounds[self._latest]

    def get_round_data(self, round_id: int) -> RoundData:
        try:
            return self._rounds[int(round_id)]
        except KeyError:
            raise LookupError(f"unknown round {round_id}") from None


__all__ = [
    "WAD",
    "ROUND_ID_BITS",
    "MAX_FEED_DECIMALS",
    "RoundData",
    "Feed",
    "scale_to_wad",
    "MemoryFeed",
]
