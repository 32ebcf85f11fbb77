# src/auditboard/runtime/apply/config.py
from __future__ import annotations

"""Configuration store.

UPDATECONFIG replaces the board_config singleton wholesale. It is the only
writer of the config and may only be signed by the contract account.

A new config must stay consistent with what is already held:
- nonzero stakes keep the lockup symbol
- queued pending pay keeps the pay symbol
- a lower `numelected` trims the board to the new size in ranking order
"""

from typing import Any, Dict, Optional

from auditboard.ledger.asset import Asset
from auditboard.ledger.board_schema import BoardConfig, ensure_board_schema
from auditboard.runtime.apply.tenure import trim_board
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import ASSET_SYMBOL_MISMATCH, ApplyError
from auditboard.runtime.gates import require_self
from auditboard.runtime.tx_admission_types import TxEnvelope
from auditboard.runtime.tx_schema import UpdateConfigPayload, parse_payload

Json = Dict[str, Any]


def _held_symbols(root: Any, field: str) -> Dict[str, str]:
    """{symbol: first account holding a nonzero `field` asset in it}."""
    out: Dict[str, str] = {}
    if not isinstance(root, dict):
        return out
    for acct in sorted(root.keys()):
        rec = root.get(acct)
        if not isinstance(rec, dict) or rec.get(field) is None:
            continue
        held = Asset.from_json(rec.get(field))
        if held.amount != 0:
            out.setdefault(held.symbol, str(acct))
    return out


def _apply_updateconfig(ctx: ApplyContext, env: TxEnvelope) -> Json:
    require_self(ctx, env)
    p = parse_payload(UpdateConfigPayload, env.tx_type, env.payload)

    new_cfg = BoardConfig.from_json(p.config.model_dump())
    state = ensure_board_schema(ctx.state)

    for symbol, holder in _held_symbols(state["candidates"], "locked_tokens").items():
        if symbol != new_cfg.lockup_asset.symbol:
            raise ApplyError(
                "conflict",
                ASSET_SYMBOL_MISMATCH,
                {"lockup_asset": new_cfg.lockup_asset.to_json(), "staked_symbol": symbol, "candidate": holder},
            )

    # New pay is added onto queued pending_pay, so both share one symbol.
    if new_cfg.pay_schedule:
        pay_symbol = new_cfg.pay_schedule[0].symbol
        for symbol, holder in _held_symbols(state["pending_pay"], "amount").items():
            if symbol != pay_symbol:
                raise ApplyError(
                    "conflict",
                    ASSET_SYMBOL_MISMATCH,
                    {"pay_schedule": pay_symbol, "pending_symbol": symbol, "auditor": holder},
                )

    state["board_config"] = new_cfg.to_json()
    trimmed = trim_board(state, new_cfg, int(ctx.now_s))

    return {
        "applied": "UPDATECONFIG",
        "config": new_cfg.to_json(),
        "dropped_auditors": trimmed["dropped"],
        "auth_outbox_id": trimmed["auth_outbox_id"],
    }


def apply_config(ctx: ApplyContext, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t == "UPDATECONFIG":
        return _apply_updateconfig(ctx, env)
    return None
