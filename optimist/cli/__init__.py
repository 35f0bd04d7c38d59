from __future__ import annotations

"""
optimist.cli
------------

Off-chain helper for proposers and disputers: build round data, mint and
inspect nonces, compute proposal digests, and print the effective config.
Every command prints JSON; integers accept decimal or 0x-hex.

Examples
--------
# Round data for one feed round, then the nonce a first proposal would get
python -m optimist.cli encode-data --round 42:1700000000
python -m optimist.cli pack-nonce --fingerprint 42 --as-of 1700000000 --proposed-at 1700000060

# Split a nonce back into its fields
python -m optimist.cli decode-nonce 0x2a000000006553f100000000006553f13c

# Digest the ledger stores for a proposal
python -m optimist.cli proposal-id 0x10 0x00000000000000000000000000000000000000b0 \
  1000000000000000000 0x2a000000006553f100000000006553f13c

# 8-decimal feed answer normalized to 18 decimals
python -m optimist.cli scale 100000000 --decimals 8

# Configuration after env/file overrides (OPTIMIST_*)
python -m optimist.cli config
"""

import json
import logging
from typing import Any, Dict, List, Optional

import typer

from ..config import load
from ..errors import OptimistError
from ..feeds import scale_to_wad
from ..ids import proposal_id
from ..nonce import Nonce, NonceCodec

app = typer.Typer(
    name="optimist",
    add_completion=False,
    no_args_is_help=True,
    help="Nonce, digest and round-data tooling for the optimistic oracle.",
)

# -------------------- utils --------------------

def _int(value: str, name: str) -> int:
    try:
        return int(str(value).replace("_", ""), 0)
    except ValueError:
        raise typer.BadParameter(f"{name} must be an integer (decimal or 0x-hex), got {value!r}") from None


def _emit(obj: Dict[str, Any]) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _fail(exc: Exception) -> None:
    if isinstance(exc, OptimistError):
        _emit({"error": exc.to_dict()})
    else:
        _emit({"error": {"code": type(exc).__name__, "message": str(exc)}})
    raise typer.Exit(code=1)


def _parse_round(text: str) -> tuple:
    rid, sep, ts = text.partition(":")
    if not sep:
        raise typer.BadParameter(f"round must be ROUND_ID:UPDATED_AT, got {text!r}")
    return _int(rid, "round id"), _int(ts, "updated_at")


# -------------------- commands --------------------

@app.command("decode-nonce")
def cmd_decode_nonce(nonce: str = typer.Argument(..., help="Packed 256-bit nonce.")) -> None:
    """Split a nonce into fingerprint, as-of and proposed-at."""
    try:
        n = Nonce.unpack(_int(nonce, "nonce"))
    except OptimistError as exc:
        _fail(exc)
        return
    _emit({
        "fingerprint": hex(n.fingerprint),
        "as_of": n.as_of,
        "proposed_at": n.proposed_at,
        "prefix": hex(n.prefix),
    })


@app.command("pack-nonce")
def cmd_pack_nonce(
    fingerprint: str = typer.Option(..., "--fingerprint", help="Round id, or truncated keccak of round ids."),
    as_of: str = typer.Option(..., "--as-of", help="Oldest round updated_at (UNIX seconds)."),
    proposed_at: str = typer.Option(..., "--proposed-at", help="Proposal time (UNIX seconds)."),
) -> None:
    try:
        packed = Nonce(
            fingerprint=_int(fingerprint, "fingerprint"),
            as_of=_int(as_of, "as_of"),
            proposed_at=_int(proposed_at, "proposed_at"),
        ).pack()
    except OptimistError as exc:
        _fail(exc)
        return
    _emit({"nonce": hex(packed), "decimal": str(packed)})


@app.command("encode-data")
def cmd_encode_data(
    rounds: List[str] = typer.Option(..., "--round", help="ROUND_ID:UPDATED_AT, once per feed in feed order."),
    window: Optional[str] = typer.Option(None, "--dispute-window", help="Overrides the configured window."),
) -> None:
    """Pack feed rounds into round data and show the nonce prefix they commit to."""
    parsed = [_parse_round(r) for r in rounds]
    try:
        dispute_window = _int(window, "dispute window") if window else load().params.dispute_window
        codec = NonceCodec(sources=len(parsed), dispute_window=dispute_window)
        data = codec.encode_data(parsed)
        prefix = codec.prefix(data)
    except (OptimistError, ValueError) as exc:
        _fail(exc)
        return
    _emit({"data": "0x" + data.hex(), "prefix": hex(prefix), "sources": len(parsed)})


@app.command("proposal-id")
def cmd_proposal_id(
    rate_id: str = typer.Argument(...),
    proposer: str = typer.Argument(...),
    value: str = typer.Argument(...),
    nonce: str = typer.Argument(...),
) -> None:
    """Digest committed for (rate_id, proposer, value, nonce)."""
    try:
        pid = proposal_id(_int(rate_id, "rate_id"), proposer, _int(value, "value"), _int(nonce, "nonce"))
    except (OverflowError, ValueError) as exc:
        _fail(exc)
        return
    _emit({"proposal_id": "0x" + pid.hex()})


@app.command("scale")
def cmd_scale(
    answer: str = typer.Argument(..., help="Feed answer in native precision."),
    decimals: int = typer.Option(8, "--decimals", help="Feed decimals."),
) -> None:
    try:
        wad = scale_to_wad(_int(answer, "answer"), decimals)
    except OptimistError as exc:
        _fail(exc)
        return
    _emit({"wad": str(wad)})


@app.command("config")
def cmd_config() -> None:
    """Effective configuration (defaults < $OPTIMIST_CONFIG_FILE < OPTIMIST_* env)."""
    try:
        cfg = load()
    except (OSError, ValueError) as exc:
        _fail(exc)
        return
    _emit(cfg.to_dict())


@app.callback()
def _main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def get_app() -> typer.Typer:
    return app


__all__ = ["app", "get_app"]
