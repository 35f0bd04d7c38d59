from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from optimist.cli import app
from optimist.config import OptimistConfig, OracleParams, from_file, load, parse_duration
from optimist.nonce import Nonce

runner = CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("OPTIMIST_BOND_SIZE", "OPTIMIST_DISPUTE_WINDOW", "OPTIMIST_ORACLE_ADDRESS", "OPTIMIST_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)


# ---- config ----------------------------------------------------------------------

def test_defaults():
    cfg = load()
    assert cfg.params == OracleParams(bond_size=10**18, dispute_window=1800)
    assert cfg.oracle_address.endswith("a1")


def test_parse_duration():
    assert parse_duration("45") == 45
    assert parse_duration("5m") == 300
    assert parse_duration("2h") == 7200
    assert parse_duration("1d") == 86400
    assert parse_duration("1500ms") == 1
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_env_over_file_over_defaults(monkeypatch, tmp_path):
    path = tmp_path / "optimist.yaml"
    path.write_text("params:\n  bond_size: 5\n  dispute_window: 10m\n", encoding="utf-8")
    assert from_file(path).params == OracleParams(bond_size=5, dispute_window=600)

    monkeypatch.setenv("OPTIMIST_CONFIG_FILE", str(path))
    monkeypatch.setenv("OPTIMIST_DISPUTE_WINDOW", "1h")
    cfg = load()
    assert (cfg.params.bond_size, cfg.params.dispute_window) == (5, 3600)

    assert load(bond_size=7).params.bond_size == 7


def test_json_file(tmp_path):
    path = tmp_path / "optimist.json"
    path.write_text(json.dumps({"oracle_address": "0x" + "0b" * 20}), encoding="utf-8")
    assert from_file(path).oracle_address == "0x" + "0b" * 20


def test_invalid_config():
    with pytest.raises(TypeError):
        load(bond_sizes=1)
    with pytest.raises(ValueError):
        load(dispute_window=0)
    with pytest.raises(ValueError):
        OptimistConfig(oracle_address="0x" + "00" * 20).validate()
    with pytest.raises(ValueError):
        OptimistConfig(oracle_address="oracle").validate()


# ---- cli -------------------------------------------------------------------------

def _run(*args):
    result = runner.invoke(app, list(args))
    return result.exit_code, result.stdout


def test_cli_pack_and_decode_nonce():
    code, out = _run("pack-nonce", "--fingerprint", "42", "--as-of", "1700000000", "--proposed-at", "1700000060")
    assert code == 0
    packed = json.loads(out)["nonce"]
    assert int(packed, 16) == Nonce(42, 1700000000, 1700000060).pack()

    code, out = _run("decode-nonce", packed)
    assert code == 0
    assert json.loads(out) == {
        "fingerprint": "0x2a",
        "as_of": 1700000000,
        "proposed_at": 1700000060,
        "prefix": hex((42 << 64) | 1700000000),
    }


def test_cli_encode_data():
    code, out = _run("encode-data", "--round", "42:1700000000", "--dispute-window", "600")
    assert code == 0
    doc = json.loads(out)
    assert doc["prefix"] == hex((42 << 64) | 1700000000)
    assert len(bytes.fromhex(doc["data"][2:])) == 64


def test_cli_scale_and_proposal_id():
    code, out = _run("scale", "100000000", "--decimals", "8")
    assert (code, json.loads(out)) == (0, {"wad": str(10**18)})

    code, out = _run("proposal-id", "0x10", "0x" + "00" * 19 + "b0", "1", "1")
    assert code == 0
    assert len(json.loads(out)["proposal_id"]) == 66


def test_cli_reports_errors_as_json():
    code, out = _run("pack-nonce", "--fingerprint", hex(1 << 128), "--as-of", "0", "--proposed-at", "0")
    assert code == 1
    assert json.loads(out)["error"]["code"] == "OPTIMIST_NONCE_OVERFLOW"

    code, _ = _run("scale", "not-a-number")
    assert code != 0


def test_cli_config(monkeypatch):
    monkeypatch.setenv("OPTIMIST_BOND_SIZE", "123")
    code, out = _run("config")
    assert code == 0
    assert json.loads(out)["params"]["bond_size"] == 123
