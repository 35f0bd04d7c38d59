from __future__ import annotations
# optimist/errors.py
"""
Error types for the optimistic oracle. These are lightweight, serializable, and
safe to surface over logs and tooling.

Every failure is synchronous and all-or-nothing: an operation that raises one
of these leaves the oracle ledgers unchanged.

Hierarchy
---------
OptimistError (base)
 ├─ AuthorizationError      : caller lacks the capability
 │   └─ Unauthorized
 ├─ PreconditionError       : ledger is in the wrong state for the call
 │   ├─ ActiveRateId / InactiveRateId / NotLocked
 │   ├─ BondedProposer / UnbondedProposer / IsProposing
 │   ├─ InvalidProposal / InvalidPreviousProposal / UnknownProposal
 │   ├─ AlreadyDisputed / InvalidDispute / DisputeWindowClosed
 │   └─ FeedNotFound
 ├─ FreshnessError          : stale data, open window, over-wide fields
 │   ├─ StaleProposal / ActiveDisputeWindow
 │   └─ NonceOverflow / InvalidData / InvalidFeedAnswer
 └─ ExternalCallError       : a collaborator failed while moving value
     └─ TransferFailed
"""


from typing import Any, Dict, Mapping, Optional
import json


class OptimistError(Exception):
    """Base class for oracle domain errors."""

    code: str = "OPTIMIST_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


def _with_rate(details: Optional[Mapping[str, Any]], rate_id: Optional[int]) -> Dict[str, Any]:
    d = dict(details or {})
    if rate_id is not None:
        # hex keeps 256-bit ids readable and JSON-safe
        d.setdefault("rate_id", hex(rate_id))
    return d


# ────────────────────────────────────────────────────────────────────────────────
# Authorization
# ────────────────────────────────────────────────────────────────────────────────


class AuthorizationError(OptimistError):
    code = "OPTIMIST_AUTHORIZATION"


class Unauthorized(AuthorizationError):
    """Caller is not allowed to invoke `sig`."""
    code = "OPTIMIST_UNAUTHORIZED"

    def __init__(
        self,
        *,
        sig: str,
        caller: str,
        message: str = "caller not authorized",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"sig": sig, "caller": caller})
        super().__init__(message, details=d)


# ────────────────────────────────────────────────────────────────────────────────
# State preconditions
# ────────────────────────────────────────────────────────────────────────────────


class PreconditionError(OptimistError):
    """The ledger is not in a state that admits the call; re-read and retry."""
    code = "OPTIMIST_PRECONDITION"

    def __init__(
        self,
        message: str = "",
        *,
        rate_id: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=_with_rate(details, rate_id))


class ActiveRateId(PreconditionError):
    code = "OPTIMIST_ACTIVE_RATE_ID"


class InactiveRateId(PreconditionError):
    code = "OPTIMIST_INACTIVE_RATE_ID"


class NotLocked(PreconditionError):
    """Bond recovery requested while the RateId is still active."""
    code = "OPTIMIST_NOT_LOCKED"


class BondedProposer(PreconditionError):
    code = "OPTIMIST_BONDED_PROPOSER"


class UnbondedProposer(PreconditionError):
    code = "OPTIMIST_UNBONDED_PROPOSER"


class IsProposing(PreconditionError):
    """Unbond attempted while the live proposal may still be disputed."""
    code = "OPTIMIST_IS_PROPOSING"


class InvalidProposal(PreconditionError):
    """Supplied (proposer, value, nonce) does not match the live proposal on unbond."""
    code = "OPTIMIST_INVALID_PROPOSAL"


class InvalidPreviousProposal(PreconditionError):
    """A shift named a chain link that is not the stored proposal."""
    code = "OPTIMIST_INVALID_PREVIOUS_PROPOSAL"


class UnknownProposal(PreconditionError):
    """A dispute named a proposal that is not the stored one."""
    code = "OPTIMIST_UNKNOWN_PROPOSAL"


class AlreadyDisputed(PreconditionError):
    """The proposal is attributed to the oracle itself and cannot be disputed."""
    code = "OPTIMIST_ALREADY_DISPUTED"


class InvalidDispute(PreconditionError):
    """The challenged value validated successfully; no penalty applies."""
    code = "OPTIMIST_INVALID_DISPUTE"


class DisputeWindowClosed(PreconditionError):
    code = "OPTIMIST_DISPUTE_WINDOW_CLOSED"


class FeedNotFound(PreconditionError):
    code = "OPTIMIST_FEED_NOT_FOUND"


# ────────────────────────────────────────────────────────────────────────────────
# Freshness / encoding
# ────────────────────────────────────────────────────────────────────────────────


class FreshnessError(OptimistError):
    """Data is stale, a window is still open, or a packed field does not fit."""
    code = "OPTIMIST_FRESHNESS"


class StaleProposal(FreshnessError):
    code = "OPTIMIST_STALE_PROPOSAL"

    def __init__(
        self,
        *,
        previous_as_of: int,
        as_of: int,
        message: str = "as-of timestamp did not advance",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"previous_as_of": int(previous_as_of), "as_of": int(as_of)})
        super().__init__(message, details=d)


class ActiveDisputeWindow(FreshnessError):
    code = "OPTIMIST_ACTIVE_DISPUTE_WINDOW"

    def __init__(
        self,
        *,
        proposed_at: int,
        now: int,
        dispute_window: int,
        message: str = "previous proposal is still disputable",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"proposed_at": int(proposed_at), "now": int(now), "dispute_window": int(dispute_window)})
        super().__init__(message, details=d)


class NonceOverflow(FreshnessError):
    """A round id or timestamp is wider than its packed nonce field."""
    code = "OPTIMIST_NONCE_OVERFLOW"

    def __init__(
        self,
        *,
        field: str,
        value: int,
        bits: int,
        message: str = "value does not fit nonce field",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"field": field, "value": int(value), "bits": int(bits)})
        super().__init__(message, details=d)


class InvalidData(FreshnessError):
    """Round data payload is malformed (wrong length or shape)."""
    code = "OPTIMIST_INVALID_DATA"


class InvalidFeedAnswer(FreshnessError):
    code = "OPTIMIST_INVALID_FEED_ANSWER"


# ────────────────────────────────────────────────────────────────────────────────
# External calls
# ────────────────────────────────────────────────────────────────────────────────


class ExternalCallError(OptimistError):
    code = "OPTIMIST_EXTERNAL_CALL"


class TransferFailed(ExternalCallError):
    """The bond token reported failure (False) or raised; never best-effort."""
    code = "OPTIMIST_TRANSFER_FAILED"

    def __init__(
        self,
        *,
        op: str,
        src: str,
        dst: str,
        amount: int,
        message: str = "bond token transfer failed",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"op": op, "from": src, "to": dst, "amount": int(amount)})
        super().__init__(message, details=d)


__all__ = [
    "OptimistError",
    "AuthorizationError",
    "Unauthorized",
    "PreconditionError",
    "ActiveRateId",
    "InactiveRateId",
    "NotLocked",
    "BondedProposer",
    "UnbondedProposer",
    "IsProposing",
    "InvalidProposal",
    "InvalidPreviousProposal",
    "UnknownProposal",
    "AlreadyDisputed",
    "InvalidDispute",
    "DisputeWindowClosed",
    "FeedNotFound",
    "FreshnessError",
    "StaleProposal",
    "ActiveDisputeWindow",
    "NonceOverflow",
    "InvalidData",
    "InvalidFeedAnswer",
    "ExternalCallError",
    "TransferFailed",
]
