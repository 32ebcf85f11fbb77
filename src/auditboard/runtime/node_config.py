# src/auditboard/runtime/node_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from auditboard.ledger.constants import DEFAULT_CONTRACT_ACCOUNT

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class NodeConfig:
    chain_id: str
    node_id: str
    mode: str  # "dev" | "testnet" | "prod"

    db_path: str
    contract_account: str

    # Optional YAML genesis: board config, token balances, members.
    genesis_path: str

    api_host: str
    api_port: int

    check_invariants: bool

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_node_config(cfg: NodeConfig) -> None:
    """Fail-fast validation of operator config."""

    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")

    if not isinstance(cfg.node_id, str) or not cfg.node_id.strip():
        raise ValueError("node_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    if not isinstance(cfg.contract_account, str) or not cfg.contract_account.strip():
        raise ValueError("contract_account must be a non-empty string")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_ALLOWED_LOG_LEVELS}; got: {cfg.log_level!r}")

    if cfg.genesis_path and not Path(cfg.genesis_path).is_file():
        raise ValueError(f"genesis_path does not exist or is not a file: {cfg.genesis_path!r}")


def default_node_config() -> NodeConfig:
    return NodeConfig(
        chain_id="auditboard-dev",
        node_id="local-node",
        # Without an explicit config file the node runs in the strict posture.
        mode="prod",
        db_path="./data/auditboard.db",
        contract_account=DEFAULT_CONTRACT_ACCOUNT,
        genesis_path="",
        api_host="0.0.0.0",
        api_port=8000,
        check_invariants=False,
        log_level="INFO",
    )


def read_node_config_file(path: str) -> NodeConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("node config must be a JSON object")

    d = default_node_config()

    cfg = NodeConfig(
        chain_id=_as_str(raw.get("chain_id"), d.chain_id),
        node_id=_as_str(raw.get("node_id"), d.node_id),
        mode=_as_str(raw.get("mode"), d.mode),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        contract_account=_as_str(raw.get("contract_account"), d.contract_account),
        genesis_path=str(raw.get("genesis_path") or d.genesis_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        check_invariants=_as_bool(raw.get("check_invariants"), d.check_invariants),
        log_level=_as_str(raw.get("log_level"), d.log_level).upper(),
    )

    validate_node_config(cfg)
    return cfg


def load_node_config(*, config_path: Optional[str] = None) -> NodeConfig:
    p = config_path or os.environ.get("AUDITBOARD_NODE_CONFIG_PATH")
    if p:
        return read_node_config_file(p)

    cfg = default_node_config()
    validate_node_config(cfg)
    return cfg


def apply_node_config_to_env(cfg: NodeConfig) -> None:
    validate_node_config(cfg)
    os.environ["AUDITBOARD_CHAIN_ID"] = cfg.chain_id
    os.environ["AUDITBOARD_NODE_ID"] = cfg.node_id
    os.environ["AUDITBOARD_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["AUDITBOARD_DB_PATH"] = cfg.db_path
    os.environ["AUDITBOARD_CONTRACT_ACCOUNT"] = cfg.contract_account
    if cfg.genesis_path:
        os.environ["AUDITBOARD_GENESIS_PATH"] = cfg.genesis_path
    os.environ["AUDITBOARD_CHECK_INVARIANTS"] = "1" if cfg.check_invariants else "0"
    os.environ["AUDITBOARD_LOG_LEVEL"] = cfg.log_level
