from __future__ import annotations
"""
optimist.config: configuration for the optimistic oracle

Covers:
- Bond size (token base units locked per (proposer, RateId))
- Dispute window (seconds a proposal stays challengeable)
- The oracle's own address (attribution of disputed proposals, bond custody)

Environment overrides (all optional; sensible defaults provided):

  OPTIMIST_BOND_SIZE=1000000000000000000
  OPTIMIST_DISPUTE_WINDOW=30m            # plain seconds or 250ms/30s/5m/3h/1d
  OPTIMIST_ORACLE_ADDRESS=0x00000000000000000000000000000000000000a1

You can also load from a JSON or YAML file via `OPTIMIST_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file; explicit
keyword overrides passed to `load()` win over everything.
"""


from dataclasses import dataclass, asdict, field, replace
from typing import Any, Dict, Optional
import json
import os
import re
from pathlib import Path

import yaml


WAD_DECIMALS = 18
DEFAULT_ORACLE_ADDRESS = "0x" + "00" * 19 + "a1"


# -------------------------- Data classes --------------------------


@dataclass
class OracleParams:
    """Economic and timing parameters fixed at oracle construction."""
    bond_size: int = 10**18          # one token with 18 decimals
    dispute_window: int = 30 * 60    # seconds

    def validate(self) -> None:
        if self.bond_size < 0:
            raise ValueError("bond_size must be non-negative.")
        if self.dispute_window <= 0:
            raise ValueError("dispute_window must be positive seconds.")
        if self.dispute_window >= 1 << 64:
            raise ValueError("dispute_window must fit 64 bits.")


@dataclass
class OptimistConfig:
    """Top-level configuration container."""
    params: OracleParams = field(default_factory=OracleParams)
    oracle_address: str = DEFAULT_ORACLE_ADDRESS
    wad_decimals: int = WAD_DECIMALS  # informational (normalization base)

    def validate(self) -> None:
        self.params.validate()
        if not re.fullmatch(r"0x[0-9a-fA-F]{40}", self.oracle_address or ""):
            raise ValueError(f"oracle_address must be a 0x-prefixed 20-byte hex address (got {self.oracle_address!r}).")
        if int(self.oracle_address, 16) == 0:
            raise ValueError("oracle_address must not be the zero address.")
        if self.wad_decimals != WAD_DECIMALS:
            raise ValueError(f"wad_decimals is fixed at {WAD_DECIMALS}.")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)


def parse_duration(value: str) -> int:
    """
    Parse a tiny duration language into whole seconds.
      "30" -> 30, "2s" -> 2, "5m" -> 300, "3h" -> 10800, "1d" -> 86400
      "1500ms" -> 1 (truncated)
    """
    v = str(value).strip().lower()
    if v.endswith("ms"):
        return int(v[:-2].strip()) // 1000
    m = _DURATION_RE.match(v)
    if not m:
        raise ValueError(f"Invalid duration: {value!r}")
    mult = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}[m.group(2).lower()]
    return int(m.group(1)) * mult


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""), 0)
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_duration(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return parse_duration(v)


def from_env(base: Optional[OptimistConfig] = None, prefix: str = "OPTIMIST_") -> OptimistConfig:
    """
    Build an OptimistConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or OptimistConfig()
    new_cfg = OptimistConfig(
        params=OracleParams(
            bond_size=_getenv_int(f"{prefix}BOND_SIZE", cfg.params.bond_size),
            dispute_window=_getenv_duration(f"{prefix}DISPUTE_WINDOW", cfg.params.dispute_window),
        ),
        oracle_address=os.getenv(f"{prefix}ORACLE_ADDRESS") or cfg.oracle_address,
        wad_decimals=cfg.wad_decimals,
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> OptimistConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")

    params = data.get("params", {})
    window = params.get("dispute_window", OracleParams().dispute_window)
    if isinstance(window, str):
        window = parse_duration(window)

    cfg = OptimistConfig(
        params=OracleParams(
            bond_size=int(params.get("bond_size", OracleParams().bond_size)),
            dispute_window=int(window),
        ),
        oracle_address=data.get("oracle_address", DEFAULT_ORACLE_ADDRESS),
        wad_decimals=int(data.get("wad_decimals", WAD_DECIMALS)),
    )
    cfg.validate()
    return cfg


def load(**overrides: Any) -> OptimistConfig:
    """
    Load configuration using the following precedence:
      1) Explicit keyword overrides (`bond_size`, `dispute_window`, `oracle_address`)
      2) Environment variables (OPTIMIST_*)
      3) File at $OPTIMIST_CONFIG_FILE (JSON/YAML)
      4) Built-in defaults
    """
    file_path = os.getenv("OPTIMIST_CONFIG_FILE")
    base = from_file(file_path) if file_path else OptimistConfig()
    cfg = from_env(base=base)

    params = cfg.params
    if "bond_size" in overrides:
        params = replace(params, bond_size=int(overrides.pop("bond_size")))
    if "dispute_window" in overrides:
        params = replace(params, dispute_window=int(overrides.pop("dispute_window")))
    cfg = replace(cfg, params=params, oracle_address=overrides.pop("oracle_address", cfg.oracle_address))
    if overrides:
        raise TypeError(f"unknown config overrides: {sorted(overrides)}")
    cfg.validate()
    return cfg


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[OptimistConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "WAD_DECIMALS",
    "DEFAULT_ORACLE_ADDRESS",
    "OracleParams",
    "OptimistConfig",
    "parse_duration",
    "from_env",
    "from_file",
    "load",
    "pretty",
]
