from __future__ import annotations

import pytest

from optimist.auth import ANY_SIG, SIG_LOCK, CapabilityStore
from optimist.errors import ActiveRateId, InactiveRateId, Unauthorized
from optimist.events import EventLog, EventType
from optimist.rates import RateRegistry

from .conftest import ROOT, STRANGER

A, B, C = 1, 2, 3


def _registry(events=None) -> RateRegistry:
    return RateRegistry(guard=CapabilityStore(ROOT), events=events, clock=lambda: 100)


def test_activate_and_deactivate_are_strict():
    reg = _registry()
    reg.activate(ROOT, A)
    assert reg.is_active(A)
    with pytest.raises(ActiveRateId):
        reg.activate(ROOT, A)

    with pytest.raises(InactiveRateId):
        reg.deactivate(ROOT, B)
    reg.deactivate(ROOT, A)
    assert not reg.is_active(A)


def test_rate_id_bounds():
    reg = _registry()
    with pytest.raises(ValueError):
        reg.activate(ROOT, -1)
    with pytest.raises(ValueError):
        reg.activate(ROOT, 1 << 256)
    reg.activate(ROOT, (1 << 256) - 1)


def test_lock_is_all_or_nothing():
    events = EventLog()
    reg = _registry(events)
    reg.activate(ROOT, A)
    reg.activate(ROOT, B)

    with pytest.raises(InactiveRateId):
        reg.lock(ROOT, [A, C])
    assert reg.active() == frozenset({A, B})

    reg.lock(ROOT, [A, B])
    assert reg.active() == frozenset()
    assert [e.rate_id for e in events.of_type(EventType.LOCK)] == [A, B]


def test_lock_collapses_repeated_ids():
    events = EventLog()
    reg = _registry(events)
    reg.activate(ROOT, A)
    reg.lock(ROOT, [A, A])
    assert not reg.is_active(A)
    assert [e.rate_id for e in events.of_type(EventType.LOCK)] == [A]


def test_registry_calls_are_gated():
    reg = _registry()
    with pytest.raises(Unauthorized) as ei:
        reg.activate(STRANGER, A)
    assert ei.value.details == {"sig": "activate_rate_id", "caller": STRANGER}
    reg.activate(ROOT, A)
    with pytest.raises(Unauthorized):
        reg.deactivate(STRANGER, A)
    with pytest.raises(Unauthorized):
        reg.lock(STRANGER, [A])


def test_capability_grants():
    events = EventLog()
    store = CapabilityStore(ROOT, events=events, clock=lambda: 7)
    assert store.is_authorized("anything", ROOT)
    assert not store.is_authorized(SIG_LOCK, STRANGER)

    store.allow_caller(ROOT, SIG_LOCK, STRANGER)
    assert store.is_authorized(SIG_LOCK, STRANGER)
    assert not store.is_authorized("bond", STRANGER)
    assert STRANGER in store.grants()[SIG_LOCK]

    # only wildcard holders may grant
    with pytest.raises(Unauthorized):
        store.allow_caller(STRANGER, ANY_SIG, STRANGER)

    store.block_caller(ROOT, SIG_LOCK, STRANGER)
    assert not store.is_authorized(SIG_LOCK, STRANGER)
    assert [e.etype for e in events] == [EventType.ALLOW_CALLER, EventType.BLOCK_CALLER]


def test_snapshot_restore():
    reg = _registry()
    reg.activate(ROOT, A)
    snap = reg.snapshot()
    reg.activate(ROOT, B)
    reg.restore(snap)
    assert reg.active() == frozenset({A})
