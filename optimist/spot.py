from __future__ import annotations
"""
Spot registry collaborator: the downstream consumer of finalized values.

The oracle calls `update_spot(token, spot)` on a best-effort basis; a failure
there never aborts the oracle call. `MemorySpotRegistry` keeps the latest spot
per token and the full update history, and can be switched into a failing mode
to exercise the best-effort path.
"""


from dataclasses import dataclass
from threading import RLock
from typing import Dict, List, Optional, Protocol


class SpotRegistry(Protocol):
    def update_spot(self, token: str, spot: int) -> None: ...


class SpotUpdateRejected(RuntimeError):
    """Raised by `MemorySpotRegistry` while `fail` is set."""


@dataclass(frozen=True)
class SpotUpdate:
    token: str
    spot: int


class MemorySpotRegistry:
    def __init__(self) -> None:
        self._lock = RLock()
        self._spots: Dict[str, int] = {}
        self.history: List[SpotUpdate] = []
        self.fail = False

    def update_spot(self, token: str, spot: int) -> None:
        if self.fail:
            raise SpotUpdateRejected(f"spot update rejected for {token}")
        with self._lock:
            self._spots[token.lower()] = int(spot)
            self.history.append(SpotUpdate(token=token.lower(), spot=int(spot)))

    def spot(self, token: str) -> Optional[int]:
        return self._spots.get(token.lower())


__all__ = ["SpotRegistry", "SpotUpdateRejected", "SpotUpdate", "MemorySpotRegistry"]
