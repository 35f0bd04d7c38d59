from __future__ import annotations

"""
Prometheus metrics for the optimistic oracle.

We expose counters covering:
- proposals: shifts recorded per RateId lifecycle
- disputes: challenges by result (accepted / rejected)
- pushes: registry updates by path (shift / push) and outcome (ok / failed)
- bonds: collateral movements by kind (bond / unbond / claim / recover)
- rejections: failed calls by operation and error code

The embedding process decides how to expose `REGISTRY` (HTTP endpoint, push
gateway, or a one-off dump through `render_latest()`).
"""


from prometheus_client import CollectorRegistry, Counter, generate_latest

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   result:  "accepted" | "rejected"
#   path:    "shift" | "push"
#   outcome: "ok" | "failed"
#   kind:    "bond" | "unbond" | "claim" | "recover"
# ────────────────────────────────────────────────────────────────────────────────

PROPOSALS = Counter(
    "optimist_proposals_total",
    "Total proposals recorded by shift.",
    registry=REGISTRY,
)

DISPUTES = Counter(
    "optimist_disputes_total",
    "Total disputes by result.",
    labelnames=("result",),
    registry=REGISTRY,
)

PUSHES = Counter(
    "optimist_pushes_total",
    "Total spot registry pushes by path and outcome.",
    labelnames=("path", "outcome"),
    registry=REGISTRY,
)

BOND_MOVEMENTS = Counter(
    "optimist_bond_movements_total",
    "Total bond collateral movements by kind.",
    labelnames=("kind",),
    registry=REGISTRY,
)

BOND_VOLUME = Counter(
    "optimist_bond_volume_units_total",
    "Bond token base units moved, by kind.",
    labelnames=("kind",),
    registry=REGISTRY,
)

REJECTIONS = Counter(
    "optimist_rejections_total",
    "Failed oracle calls by operation and error code.",
    labelnames=("op", "code"),
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_proposal() -> None:
    PROPOSALS.inc()


def record_dispute(result: str) -> None:
    """Increment disputes by result: 'accepted' | 'rejected'."""
    DISPUTES.labels(result=result).inc()


def record_push(path: str, ok: bool) -> None:
    PUSHES.labels(path=path, outcome="ok" if ok else "failed").inc()


def record_bond(kind: str, amount: int) -> None:
    """Record a bond movement and its volume in token base units."""
    BOND_MOVEMENTS.labels(kind=kind).inc()
    if amount > 0:
        BOND_VOLUME.labels(kind=kind).inc(amount)


def record_rejection(op: str, code: str) -> None:
    REJECTIONS.labels(op=op, code=code).inc()


def render_latest() -> bytes:
    """Prometheus text exposition of `REGISTRY`."""
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "PROPOSALS",
    "DISPUTES",
    "PUSHES",
    "BOND_MOVEMENTS",
    "BOND_VOLUME",
    "REJECTIONS",
    "record_proposal",
    "record_dispute",
    "record_push",
    "record_bond",
    "record_rejection",
    "render_latest",
]
