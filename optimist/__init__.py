from __future__ import annotations
"""
Optimist - optimistic value oracle.

Bonded proposers post candidate values for a keyed data feed; anyone may
challenge a posted value inside the dispute window by proving the correct value
from the authoritative feed. Unchallenged values become final and are pushed to
the downstream spot registry.

Public surface (lazily loaded):
- config, errors, metrics, events
- ids, nonce, feeds, adapters
- rates, ledger, bonds, oracle
- auth, token, spot (in-memory collaborators)
- cli
"""


import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "events",
    "hashing",
    "ids",
    "nonce",
    "feeds",
    "adapters",
    "rates",
    "ledger",
    "bonds",
    "oracle",
    "auth",
    "token",
    "spot",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------

_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)
