from __future__ import annotations

import json

import pytest

from optimist import metrics
from optimist.errors import (FreshnessError, NonceOverflow, OptimistError, PreconditionError,
                             StaleProposal, TransferFailed, UnknownProposal)
from optimist.events import EventLog, EventType
from optimist.hashing import keccak256
from optimist.ids import NO_PROPOSAL, ZERO_ADDRESS, proposal_id, rate_id_for, token_for
from optimist.oracle import OptimisticOracle

from .conftest import ASSET, PROPOSER_A, RATE_ID, ROOT


def test_error_shape():
    err = UnknownProposal("no such live proposal", rate_id=1 << 200)
    assert isinstance(err, PreconditionError) and isinstance(err, OptimistError)
    d = err.to_dict()
    assert d["code"] == "OPTIMIST_UNKNOWN_PROPOSAL"
    assert d["details"]["rate_id"] == hex(1 << 200)
    json.dumps(d)

    stale = StaleProposal(previous_as_of=10, as_of=9)
    assert isinstance(stale, FreshnessError)
    assert stale.details == {"previous_as_of": 10, "as_of": 9}

    assert NonceOverflow(field="round_id", value=1 << 80, bits=80).details["bits"] == 80
    assert TransferFailed(op="transfer", src="a", dst="b", amount=1).code == "OPTIMIST_TRANSFER_FAILED"


def test_event_log_mark_and_truncate():
    log = EventLog()
    log.emit(EventType.BOND, ts=1, rate_id=2, caller=ASSET, amount=3)
    mark = log.mark()
    log.emit(EventType.UNBOND, ts=2, rate_id=2, caller=ASSET, amount=3)
    assert len(log) == 2
    log.truncate(mark)
    assert [e.etype for e in log] == [EventType.BOND]


def test_event_to_dict_is_json_safe():
    log = EventLog()
    ev = log.emit(EventType.PROPOSE, ts=5, rate_id=1 << 100, caller=ASSET,
                  proposal_id=b"\x01" * 32, nonce=1 << 200, value=7)
    d = ev.to_dict()
    assert d["etype"] == "Propose"
    assert d["rate_id"] == hex(1 << 100)
    assert d["args"] == {"nonce": hex(1 << 200), "proposal_id": "0x" + "01" * 32, "value": 7}
    json.dumps(d)


def test_identity_helpers():
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert token_for(rate_id_for(ASSET)) == ASSET
    assert NO_PROPOSAL == bytes(32)
    assert proposal_id(1, ZERO_ADDRESS, 0, 0) != NO_PROPOSAL
    assert proposal_id(1, ASSET, 2, 3) != proposal_id(1, ASSET, 2, 4)


def test_render_latest_exposes_counters():
    metrics.record_proposal()
    text = metrics.render_latest().decode()
    assert "optimist_proposals_total" in text


def test_event_log_cap_keeps_newest_and_marks_stay_valid():
    log = EventLog(maxlen=2)
    for ts in range(3):
        log.emit(EventType.BOND, ts=ts)
    assert [e.ts for e in log] == [1, 2]

    mark = log.mark()
    log.emit(EventType.UNBOND, ts=3)
    log.emit(EventType.UNBOND, ts=4)
    assert [e.ts for e in log] == [3, 4]
    log.truncate(mark)
    assert len(log) == 0

    log.emit(EventType.BOND, ts=5)
    mark = log.mark()
    log.emit(EventType.UNBOND, ts=6)
    log.truncate(mark)
    assert [e.ts for e in log] == [5]


def test_event_log_drain():
    log = EventLog()
    log.emit(EventType.BOND, ts=1)
    log.emit(EventType.UNBOND, ts=2)
    assert [e.etype for e in log.drain()] == [EventType.BOND, EventType.UNBOND]
    assert len(log) == 0 and log.last() is None

    # positions keep counting across a drain
    mark = log.mark()
    assert mark == 2
    log.emit(EventType.LOCK, ts=3)
    log.emit(EventType.LOCK, ts=4)
    log.truncate(mark + 1)
    assert [e.ts for e in log] == [3]


@pytest.mark.parametrize("maxlen", [0, -1])
def test_event_log_rejects_empty_cap(maxlen):
    with pytest.raises(ValueError):
        EventLog(maxlen=maxlen)


def test_oracle_event_cap(guard, bond_token, spot, config, clock):
    oracle = OptimisticOracle.create("single", guard=guard, token=bond_token, spot=spot, config=config,
                                     clock=clock, max_events=1)
    assert oracle.events.maxlen == 1
    oracle.activate_rate_id(ROOT, RATE_ID)
    oracle.bond(PROPOSER_A, [RATE_ID])
    assert [e.etype for e in oracle.events] == [EventType.BOND]
