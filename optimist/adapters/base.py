from __future__ import annotations
"""
optimist.adapters.base
----------------------

The contract every value adapter satisfies, plus the feed-reading steps the
concrete adapters share.

An adapter owns the nonce codec of its family and answers three questions for
the oracle:

* `value(rate_id)`      -> (current WAD value, round data) from the latest rounds
* `validate(v, rate_id, nonce, data)`
                        -> (ValidateResult, true value, round data)
* `push_value(rate_id, v)`
                        -> forward `v` to the spot registry; never raises

Validation order
----------------
1. `data` must decode into one (round_id, updated_at) pair per source   INVALID_DATA
2. the prefix re-derived from `data` must equal the nonce prefix        INVALID_NONCE
3. each round must resolve through `get_round_data(round_id)` and report
   the committed `updated_at`                                           INVALID_ROUND
4. the proposed value must equal the value recomputed from those rounds INVALID_VALUE

For INVALID_VALUE the true value comes from the historical rounds and `data`
is echoed back. For the earlier failures there are no trustworthy rounds, so
the true value and data come from the latest rounds instead.
"""


import logging
from enum import Enum
from typing import Callable, Iterable, Protocol, Sequence, Tuple

from ..feeds import Feed, RoundData, scale_to_wad
from ..errors import InvalidData, InvalidFeedAnswer, NonceOverflow
from ..ids import token_for
from ..nonce import NonceCodec, decode
from ..spot import SpotRegistry

log = logging.getLogger(__name__)

Combine = Callable[[Iterable[int]], int]


class ValidateResult(str, Enum):
    SUCCESS = "success"
    INVALID_DATA = "invalid_data"
    INVALID_NONCE = "invalid_nonce"
    INVALID_ROUND = "invalid_round"
    INVALID_VALUE = "invalid_value"

    @property
    def ok(self) -> bool:
        return self is ValidateResult.SUCCESS


class ValueAdapter(Protocol):
    codec: NonceCodec

    def value(self, rate_id: int) -> Tuple[int, bytes]: ...

    def validate(
        self, proposed_value: int, rate_id: int, nonce: int, data: bytes
    ) -> Tuple[ValidateResult, int, bytes]: ...

    def push_value(self, rate_id: int, value: int) -> bool: ...


# ────────────────────────────────────────────────────────────────────────────────
# Shared steps
# ────────────────────────────────────────────────────────────────────────────────


def _combine_rounds(feeds: Sequence[Feed], rounds: Sequence[RoundData], combine: Combine) -> int:
    return combine(scale_to_wad(rd.answer, feed.decimals()) for feed, rd in zip(feeds, rounds))


def latest_value(codec: NonceCodec, feeds: Sequence[Feed], combine: Combine) -> Tuple[int, bytes]:
    """Combine the latest round of every feed and pack the rounds as `data`."""
    rounds = [feed.latest_round_data() for feed in feeds]
    value = _combine_rounds(feeds, rounds, combine)
    data = codec.encode_data([(rd.round_id, rd.updated_at) for rd in rounds])
    return value, data


def validate_rounds(
    codec: NonceCodec,
    feeds: Sequence[Feed],
    combine: Combine,
    proposed_value: int,
    nonce: int,
    data: bytes,
) -> Tuple[ValidateResult, int, bytes]:
    try:
        committed = codec.decode_data(data)
        prefix = codec.prefix(data)
    except (InvalidData, NonceOverflow):
        return _fallback(ValidateResult.INVALID_DATA, codec, feeds, combine)

    if prefix != decode(nonce)[0]:
        return _fallback(ValidateResult.INVALID_NONCE, codec, feeds, combine)

    rounds = []
    for feed, (round_id, updated_at) in zip(feeds, committed):
        try:
            rd = feed.get_round_data(round_id)
        except Exception as exc:  # feeds may raise anything for rounds they never produced
            log.debug("round %s did not resolve: %r", round_id, exc)
            return _fallback(ValidateResult.INVALID_ROUND, codec, feeds, combine)
        if rd.round_id != round_id or rd.updated_at != updated_at:
            return _fallback(ValidateResult.INVALID_ROUND, codec, feeds, combine)
        rounds.append(rd)

    try:
        true_value = _combine_rounds(feeds, rounds, combine)
    except InvalidFeedAnswer:
        return _fallback(ValidateResult.INVALID_ROUND, codec, feeds, combine)

    if proposed_value == true_value:
        return ValidateResult.SUCCESS, true_value, data
    return ValidateResult.INVALID_VALUE, true_value, data


def _fallback(
    result: ValidateResult, codec: NonceCodec, feeds: Sequence[Feed], combine: Combine
) -> Tuple[ValidateResult, int, bytes]:
    value, data = latest_value(codec, feeds, combine)
    return result, value, data


def push_spot(spot: SpotRegistry, rate_id: int, value: int) -> bool:
    """
    Forward a finalized value to the spot registry.

    Failures are logged and reported as False; the value is already committed
    in the oracle ledger, so the push is never allowed to abort the caller.
    """
    try:
        token = token_for(rate_id)
        spot.update_spot(token, value)
    except Exception:
        log.warning("spot push failed rate_id=%s value=%s", hex(rate_id), value, exc_info=True)
        return False
    log.info("spot pushed rate_id=%s value=%s", hex(rate_id), value)
    return True


__all__ = [
    "ValidateResult",
    "ValueAdapter",
    "latest_value",
    "validate_rounds",
    "push_spot",
]
