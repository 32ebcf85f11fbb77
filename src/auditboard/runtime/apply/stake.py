# src/auditboard/runtime/apply/stake.py
from __future__ import annotations

"""Stake ledger.

- TOKEN_TRANSFER_NOTIFY: the token collaborator reports a transfer. Transfers
  into the contract account become candidate collateral; everything else is
  a no-op.
- UNSTAKE: an inactive candidate past its lockup gets the whole stake back.
"""

from typing import Any, Dict, Optional

from auditboard.ledger.asset import Asset
from auditboard.ledger.board_schema import (
    candidate_stake,
    ensure_board_schema,
    new_candidate,
    read_config,
)
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import (
    LOCKED_UP,
    NOT_PREVIOUSLY_CANDIDATE,
    STILL_ACTIVE,
    ApplyError,
)
from auditboard.runtime.gates import require_signer, require_system
from auditboard.runtime.outbox import KIND_TOKEN_SEND, enqueue_outbound
from auditboard.runtime.tx_admission_types import TxEnvelope
from auditboard.runtime.tx_schema import CandPayload, TransferNotifyPayload, parse_payload

Json = Dict[str, Any]

UNSTAKE_MEMO = "auditor stake returned"


def _apply_token_transfer_notify(ctx: ApplyContext, env: TxEnvelope) -> Json:
    require_system(env)
    p = parse_payload(TransferNotifyPayload, env.tx_type, env.payload)

    if p.to != ctx.contract_account:
        return {"applied": "TOKEN_TRANSFER_NOTIFY", "ignored": True, "to": p.to}

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    quantity = Asset.from_json(p.quantity)
    unlock_ts = int(ctx.now_s) + int(cfg.lockup_release_time_delay)

    cands = state["candidates"]
    rec = cands.get(p.from_)
    created = not isinstance(rec, dict)
    if created:
        rec = new_candidate(p.from_, locked=quantity, unlock_ts=unlock_ts)
    else:
        stake = candidate_stake(rec, fallback=quantity)
        rec["locked_tokens"] = (stake + quantity).to_json()
        rec["unstaking_end_time_stamp"] = unlock_ts
    cands[p.from_] = rec

    return {
        "applied": "TOKEN_TRANSFER_NOTIFY",
        "candidate": p.from_,
        "created": created,
        "locked_tokens": rec["locked_tokens"],
        "unstaking_end_time_stamp": unlock_ts,
    }


def _apply_unstake(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(CandPayload, env.tx_type, env.payload)
    require_signer(env, p.cand)

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    rec = state["candidates"].get(p.cand)
    if not isinstance(rec, dict):
        raise ApplyError("not_found", NOT_PREVIOUSLY_CANDIDATE, {"cand": p.cand})
    if bool(rec.get("is_active", False)):
        raise ApplyError("forbidden", STILL_ACTIVE, {"cand": p.cand})

    unlock_ts = int(rec.get("unstaking_end_time_stamp", 0) or 0)
    if int(ctx.now_s) < unlock_ts:
        raise ApplyError(
            "time_locked",
            LOCKED_UP,
            {"cand": p.cand, "now": int(ctx.now_s), "unstaking_end_time_stamp": unlock_ts},
        )

    stake = candidate_stake(rec, fallback=cfg.lockup_asset)
    send_id = ""
    if stake.amount > 0:
        send_id = enqueue_outbound(
            state,
            kind=KIND_TOKEN_SEND,
            body={"to": p.cand, "quantity": stake.to_json(), "memo": UNSTAKE_MEMO},
        )
    rec["locked_tokens"] = Asset.zero(stake.code, stake.precision).to_json()

    return {"applied": "UNSTAKE", "cand": p.cand, "returned": stake.to_json(), "outbox_id": send_id}


_STAKE_HANDLERS = {
    "TOKEN_TRANSFER_NOTIFY": _apply_token_transfer_notify,
    "UNSTAKE": _apply_unstake,
}


def apply_stake(ctx: ApplyContext, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    fn = _STAKE_HANDLERS.get(t)
    if fn is None:
        return None
    return fn(ctx, env)
