from __future__ import annotations

import json
import os

import pytest

from auditboard.runtime.node_config import (
    apply_node_config_to_env,
    default_node_config,
    load_node_config,
    read_node_config_file,
)


def _write(tmp_path, obj) -> str:
    p = tmp_path / "node.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return str(p)


def test_defaults_are_strict_and_valid(monkeypatch) -> None:
    monkeypatch.delenv("AUDITBOARD_NODE_CONFIG_PATH", raising=False)
    cfg = load_node_config()
    assert cfg == default_node_config()
    assert cfg.mode == "prod"
    assert cfg.contract_account == "auditor.bos"


def test_file_overrides_defaults(tmp_path) -> None:
    path = _write(
        tmp_path,
        {
            "chain_id": "auditboard-testnet",
            "node_id": "n7",
            "mode": "testnet",
            "db_path": str(tmp_path / "b.db"),
            "api_port": "9001",
            "check_invariants": "yes",
            "log_level": "debug",
        },
    )
    cfg = read_node_config_file(path)
    assert cfg.chain_id == "auditboard-testnet"
    assert cfg.api_port == 9001
    assert cfg.check_invariants is True
    assert cfg.log_level == "DEBUG"
    assert cfg.api_host == "0.0.0.0"


@pytest.mark.parametrize(
    "override",
    [
        {"mode": "staging"},
        {"api_port": 70000},
        {"log_level": "chatty"},
        {"genesis_path": "/definitely/not/here.yaml"},
    ],
)
def test_invalid_values_fail_fast(tmp_path, override) -> None:
    with pytest.raises(ValueError):
        read_node_config_file(_write(tmp_path, override))


def test_non_object_file_is_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        read_node_config_file(_write(tmp_path, ["nope"]))


def test_apply_to_env(tmp_path, monkeypatch) -> None:
    for k in ("AUDITBOARD_CHAIN_ID", "AUDITBOARD_DB_PATH", "AUDITBOARD_CHECK_INVARIANTS", "AUDITBOARD_GENESIS_PATH"):
        monkeypatch.delenv(k, raising=False)
    path = _write(tmp_path, {"chain_id": "c1", "db_path": "x.db", "mode": "dev", "check_invariants": True})
    monkeypatch.setenv("AUDITBOARD_NODE_CONFIG_PATH", path)

    apply_node_config_to_env(load_node_config())
    assert os.environ["AUDITBOARD_CHAIN_ID"] == "c1"
    assert os.environ["AUDITBOARD_DB_PATH"] == "x.db"
    assert os.environ["AUDITBOARD_MODE"] == "dev"
    assert os.environ["AUDITBOARD_CHECK_INVARIANTS"] == "1"
    assert "AUDITBOARD_GENESIS_PATH" not in os.environ
