from __future__ import annotations

"""
optimist.version: semantic version string.

Rules:
- BASE_VERSION is the semver for this package.
- If OPTIMIST_VERSION is set in the environment, that wins (release builds
  stamp it from CI).
"""


import os

# Bump this on intentional releases.
BASE_VERSION = "0.1.0"


def get_version() -> str:
    override = os.environ.get("OPTIMIST_VERSION", "").strip()
    return override or BASE_VERSION


__version__ = get_version()

__all__ = ["BASE_VERSION", "get_version", "__version__"]
