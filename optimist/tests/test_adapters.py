from __future__ import annotations

import pytest

from optimist.adapters import FEEDS_PER_RATE, MinimumFeedAdapter, SingleFeedAdapter, ValidateResult
from optimist.auth import CapabilityStore
from optimist.errors import FeedNotFound, InvalidFeedAnswer, Unauthorized
from optimist.events import EventLog, EventType
from optimist.feeds import WAD, MemoryFeed, scale_to_wad
from optimist.ids import rate_id_for
from optimist.spot import MemorySpotRegistry

from .conftest import ASSET, ROOT, START, STRANGER, WINDOW


def _single(feed: MemoryFeed, spot=None, events=None) -> SingleFeedAdapter:
    adapter = SingleFeedAdapter(
        guard=CapabilityStore(ROOT), spot=spot or MemorySpotRegistry(), dispute_window=WINDOW,
        events=events, clock=lambda: START,
    )
    adapter.set_feed(ROOT, ASSET, feed)
    return adapter


def _minimum(feeds) -> MinimumFeedAdapter:
    adapter = MinimumFeedAdapter(
        guard=CapabilityStore(ROOT), spot=MemorySpotRegistry(), dispute_window=WINDOW, clock=lambda: START,
    )
    adapter.set_feed(ROOT, ASSET, feeds)
    return adapter


# ---- scaling -------------------------------------------------------------------

def test_scale_to_wad():
    assert scale_to_wad(10**8, 8) == WAD
    assert scale_to_wad(10**6, 6) == WAD
    assert scale_to_wad(5, 0) == 5 * WAD
    assert scale_to_wad(123456789012345678901, 20) == 1234567890123456789
    with pytest.raises(InvalidFeedAnswer):
        scale_to_wad(-1, 8)
    with pytest.raises(InvalidFeedAnswer):
        scale_to_wad(1, 78)


def test_memory_feed_rounds():
    feed = MemoryFeed(decimals=8, first_round_id=100)
    with pytest.raises(LookupError):
        feed.latest_round_data()
    rd = feed.report(42, ts=START)
    assert rd.round_id == 100
    assert feed.get_round_data(100) == rd
    assert feed.latest_round_data() == rd
    with pytest.raises(LookupError):
        feed.get_round_data(101)


# ---- single feed ---------------------------------------------------------------

def test_single_feed_value_is_wad_normalized():
    feed = MemoryFeed(decimals=8)
    feed.report(1_00000000, ts=START - 10)
    adapter = _single(feed)
    value, data = adapter.value(rate_id_for(ASSET))
    assert value == 10**18
    assert adapter.codec.decode_data(data) == [(1, START - 10)]


def test_single_feed_validate_results():
    feed = MemoryFeed(decimals=8)
    feed.report(2_00000000, ts=START - 100)
    rid = rate_id_for(ASSET)
    adapter = _single(feed)
    value, data = adapter.value(rid)
    nonce = adapter.codec.encode(0, data, START)

    assert adapter.validate(value, rid, nonce, data) == (ValidateResult.SUCCESS, value, data)

    result, true_value, echoed = adapter.validate(value + 1, rid, nonce, data)
    assert result is ValidateResult.INVALID_VALUE
    assert (true_value, echoed) == (value, data)

    # a newer round exists, but a historical round still validates
    feed.report(3_00000000, ts=START - 5)
    assert adapter.validate(value, rid, nonce, data)[0] is ValidateResult.SUCCESS

    result, true_value, latest = adapter.validate(value, rid, nonce, b"\x01")
    assert result is ValidateResult.INVALID_DATA
    assert true_value == 3 * WAD
    assert adapter.codec.decode_data(latest) == [(2, START - 5)]

    other = adapter.codec.encode_data([(2, START - 5)])
    assert adapter.validate(value, rid, nonce, other)[0] is ValidateResult.INVALID_NONCE


def test_single_feed_unknown_or_mismatched_round():
    feed = MemoryFeed(decimals=8)
    feed.report(1_00000000, ts=START - 100)
    rid = rate_id_for(ASSET)
    adapter = _single(feed)
    codec = adapter.codec

    ghost = codec.encode_data([(99, START - 50)])
    assert adapter.validate(WAD, rid, codec.encode(0, ghost, START), ghost)[0] is ValidateResult.INVALID_ROUND

    # right round id, wrong timestamp
    forged = codec.encode_data([(1, START - 99)])
    assert adapter.validate(WAD, rid, codec.encode(0, forged, START), forged)[0] is ValidateResult.INVALID_ROUND


def test_set_feed_is_gated_and_evented():
    events = EventLog()
    feed = MemoryFeed()
    feed.report(1, ts=START)
    adapter = _single(feed, events=events)
    assert events.last(EventType.SET_FEED).rate_id == rate_id_for(ASSET)

    with pytest.raises(Unauthorized):
        adapter.set_feed(STRANGER, ASSET, feed)
    with pytest.raises(Unauthorized):
        adapter.unset_feed(STRANGER, ASSET)

    adapter.unset_feed(ROOT, ASSET)
    assert events.last().etype is EventType.UNSET_FEED
    with pytest.raises(FeedNotFound):
        adapter.value(rate_id_for(ASSET))
    with pytest.raises(FeedNotFound):
        adapter.unset_feed(ROOT, ASSET)


def test_push_value_is_best_effort():
    feed = MemoryFeed()
    feed.report(1, ts=START)
    spot = MemorySpotRegistry()
    adapter = _single(feed, spot=spot)
    rid = rate_id_for(ASSET)

    assert adapter.push_value(rid, 7) is True
    assert spot.spot(ASSET) == 7

    spot.fail = True
    assert adapter.push_value(rid, 8) is False
    assert spot.spot(ASSET) == 7

    # ids wider than an address have no registry identity
    spot.fail = False
    assert adapter.push_value(1 << 200, 9) is False


# ---- minimum of three -----------------------------------------------------------

def _three(answers, decimals=(8, 8, 8), ts=(START - 30, START - 20, START - 10)):
    feeds = [MemoryFeed(decimals=d) for d in decimals]
    for f, a, t in zip(feeds, answers, ts):
        f.report(a, ts=t)
    return feeds


def test_minimum_of_three_feeds():
    adapter = _minimum(_three([1_00000000, 2_00000000, 3_00000000]))
    value, data = adapter.value(rate_id_for(ASSET))
    assert value == 10**18
    assert adapter.codec.decode_data(data) == [(1, START - 30), (1, START - 20), (1, START - 10)]


def test_minimum_mixed_decimals():
    # 2.0 @ 8, 1.5 @ 6, 3.0 @ 18
    adapter = _minimum(_three([2_00000000, 1_500000, 3 * WAD], decimals=(8, 6, 18)))
    assert adapter.value(rate_id_for(ASSET))[0] == 15 * 10**17


def test_minimum_validate():
    feeds = _three([5_00000000, 4_00000000, 6_00000000])
    adapter = _minimum(feeds)
    rid = rate_id_for(ASSET)
    value, data = adapter.value(rid)
    nonce = adapter.codec.encode(0, data, START)
    assert adapter.validate(value, rid, nonce, data)[0] is ValidateResult.SUCCESS
    assert adapter.validate(5 * WAD, rid, nonce, data)[:2] == (ValidateResult.INVALID_VALUE, 4 * WAD)
    assert adapter.validate(value, rid, nonce, data[:-32])[0] is ValidateResult.INVALID_DATA


def test_minimum_requires_three_feeds():
    feeds = _three([1, 1, 1])
    adapter = MinimumFeedAdapter(guard=CapabilityStore(ROOT), spot=MemorySpotRegistry(), dispute_window=WINDOW)
    with pytest.raises(ValueError):
        adapter.set_feed(ROOT, ASSET, feeds[:2])
    assert FEEDS_PER_RATE == 3
