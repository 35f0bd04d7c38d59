from __future__ import annotations

import pytest

from optimist.auth import SIG_BOND, CapabilityStore
from optimist.config import OptimistConfig, OracleParams
from optimist.feeds import WAD, MemoryFeed
from optimist.ids import rate_id_for
from optimist.oracle import OptimisticOracle
from optimist.spot import MemorySpotRegistry
from optimist.token import MemoryToken

ROOT = "0x" + "aa" * 20
PROPOSER_A = "0x" + "00" * 19 + "b0"
PROPOSER_B = "0x" + "00" * 19 + "b1"
DISPUTER = "0x" + "00" * 19 + "c0"
STRANGER = "0x" + "00" * 19 + "d0"
ASSET = "0x" + "00" * 19 + "10"
RATE_ID = rate_id_for(ASSET)

START = 1_700_000_000
WINDOW = 600
BOND = WAD


class ManualClock:
    """Deterministic clock; tests move it forward explicitly."""

    def __init__(self, start: int = START) -> None:
        self.t = int(start)

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int) -> int:
        self.t += int(seconds)
        return self.t


class FailingToken(MemoryToken):
    """MemoryToken whose outgoing `transfer` can be made to raise."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_transfers = False

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        if self.fail_transfers:
            raise RuntimeError("token paused")
        return super().transfer(caller, to, amount)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def config() -> OptimistConfig:
    return OptimistConfig(params=OracleParams(bond_size=BOND, dispute_window=WINDOW))


@pytest.fixture
def guard() -> CapabilityStore:
    store = CapabilityStore(ROOT)
    for who in (PROPOSER_A, PROPOSER_B):
        store.allow_caller(ROOT, SIG_BOND, who)
    return store


@pytest.fixture
def bond_token(config) -> FailingToken:
    token = FailingToken()
    for who in (PROPOSER_A, PROPOSER_B):
        token.mint(who, 10 * BOND)
        token.approve(who, config.oracle_address, 10 * BOND)
    return token


@pytest.fixture
def spot() -> MemorySpotRegistry:
    return MemorySpotRegistry()


@pytest.fixture
def feed(clock) -> MemoryFeed:
    f = MemoryFeed(decimals=8)
    f.report(1_00000000, ts=clock() - 60)
    return f


@pytest.fixture
def oracle(guard, bond_token, spot, config, clock, feed) -> OptimisticOracle:
    """Single-feed oracle with ASSET active and wired to `feed`."""
    o = OptimisticOracle.create("single", guard=guard, token=bond_token, spot=spot, config=config, clock=clock)
    o.adapter.set_feed(ROOT, ASSET, feed)
    o.activate_rate_id(ROOT, RATE_ID)
    return o


@pytest.fixture
def bonded(oracle) -> OptimisticOracle:
    oracle.bond(PROPOSER_A, [RATE_ID])
    return oracle
