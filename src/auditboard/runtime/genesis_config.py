# src/auditboard/runtime/genesis_config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from auditboard.ledger.board_schema import BoardConfig, default_board_config, ensure_board_schema

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class GenesisConfig:
    """Initial node contents, read from YAML.

    Example:

        contract_account: auditor.bos
        board_config:
          lockup_asset: "10.0000 TOK"
          maxvotes: 3
          numelected: 5
        token:
          max_supply: 1000000000
          balances: {alice: 70000, bob: 30000}
        members: [alice, bob]
    """

    contract_account: str = ""
    board_config: Optional[BoardConfig] = None
    max_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    members: List[str] = field(default_factory=list)


def parse_genesis(obj: Any) -> GenesisConfig:
    if obj is None:
        return GenesisConfig()
    if not isinstance(obj, dict):
        raise ValueError("genesis config must be a mapping")

    cfg_raw = obj.get("board_config")
    board_cfg = BoardConfig.from_json(cfg_raw) if isinstance(cfg_raw, dict) else None

    token = obj.get("token") if isinstance(obj.get("token"), dict) else {}
    balances_raw = token.get("balances") if isinstance(token.get("balances"), dict) else {}
    balances: Dict[str, int] = {}
    for acct, amount in balances_raw.items():
        a = str(acct or "").strip()
        if not a:
            continue
        v = int(amount)
        if v < 0:
            raise ValueError(f"negative genesis balance for {a!r}")
        balances[a] = v

    max_supply = int(token.get("max_supply") or 0)
    if max_supply < 0:
        raise ValueError("max_supply must be >= 0")
    if max_supply and sum(balances.values()) > max_supply:
        raise ValueError("genesis balances exceed max_supply")

    members_raw = obj.get("members")
    members = [str(m).strip() for m in members_raw if str(m).strip()] if isinstance(members_raw, list) else []

    return GenesisConfig(
        contract_account=str(obj.get("contract_account") or "").strip(),
        board_config=board_cfg,
        max_supply=max_supply,
        balances=balances,
        members=members,
    )


def load_genesis(path: str) -> GenesisConfig:
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(str(p))
    with p.open("r", encoding="utf-8") as f:
        obj = yaml.safe_load(f)
    return parse_genesis(obj)


def apply_genesis_to_state(state: Json, cfg: GenesisConfig) -> Tuple[bool, Json]:
    """Seed board config and contract account into a fresh state.

    Returns (changed, state). Only applies while no action has been committed
    (action_seq == 0), so restarting a node with the same genesis is a no-op.
    """
    try:
        seq = int(state.get("action_seq", 0) or 0)
    except Exception:
        seq = 0
    if seq != 0:
        return False, state

    ensure_board_schema(state)
    changed = False

    if cfg.contract_account:
        params = state.setdefault("params", {})
        if params.get("contract_account") != cfg.contract_account:
            params["contract_account"] = cfg.contract_account
            changed = True

    board_cfg = (cfg.board_config or default_board_config()).to_json()
    if state.get("board_config") != board_cfg:
        state["board_config"] = board_cfg
        changed = True

    return changed, state
