# src/auditboard/runtime/apply/tenure.py
from __future__ import annotations

"""
Tenure rotation and auditor seat changes.

Handled here:
- NEWTENURE    (any signer) timing gate, quorum gate, full board rotation,
               pay queueing and the authorization hand-off
- RESIGN       (auditor) single-seat replacement
- FIREAUDITOR  (auth account @ mid tier) single-seat replacement
- CLAIMPAY     (auditor) pay out queued pending pay

`trim_board` is shared with UPDATECONFIG, which may shrink the board.

The hand-off is an outbound set_auth command carrying the whole new signer
set; it is emitted once per board change and delivered after commit.
"""

from typing import Any, Dict, List, Optional

from auditboard.ledger.asset import Asset, median_asset
from auditboard.ledger.board_schema import BoardConfig, auditor_names, ensure_board_schema, read_config
from auditboard.ledger.constants import AUDITORS_PERMISSION
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import NOT_AUDITOR, QUORUM_NOT_MET, TOO_SOON, ApplyError
from auditboard.runtime.gates import require_mid_tier, require_signer
from auditboard.runtime.outbox import KIND_SET_AUTH, KIND_TOKEN_SEND, enqueue_outbound
from auditboard.runtime.ranking import best_replacement, select_board
from auditboard.runtime.tx_admission_types import TxEnvelope
from auditboard.runtime.tx_schema import AuditorPayload, NewTenurePayload, parse_payload

Json = Dict[str, Any]

PAY_MEMO = "auditor pay"


def _i(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _relock(state: Json, acct: str, cfg: BoardConfig, now_s: int) -> None:
    rec = state["candidates"].get(acct)
    if isinstance(rec, dict):
        rec["unstaking_end_time_stamp"] = int(now_s) + int(cfg.lockup_release_time_delay)


def _emit_auditor_auths(state: Json, cfg: BoardConfig, board: List[str]) -> str:
    """Queue the signer-set request for the auth account.

    An empty board would leave the permission unsatisfiable, so no request is
    emitted for it. The threshold never exceeds the number of signers.
    """
    if not board:
        return ""
    accounts = sorted(board)
    threshold = max(1, min(int(cfg.auth_threshold_auditors), len(accounts)))
    return enqueue_outbound(
        state,
        kind=KIND_SET_AUTH,
        body={
            "account": cfg.authaccount,
            "permission": AUDITORS_PERMISSION,
            "accounts": accounts,
            "threshold": threshold,
        },
    )


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------


def _check_timing(tenure: Json, cfg: BoardConfig, now_s: int) -> None:
    if _i(tenure.get("count"), 0) <= 0:
        return
    last = _i(tenure.get("last_run_ts"), 0)
    due = last + int(cfg.period_length)
    if int(now_s) < due:
        raise ApplyError("time_locked", TOO_SOON, {"now": int(now_s), "last_run_ts": last, "next_allowed_ts": due})


def _check_quorum(ctx: ApplyContext, tenure: Json, cfg: BoardConfig) -> Json:
    first = _i(tenure.get("count"), 0) <= 0
    percent = int(cfg.initial_vote_quorum_percent if first else cfg.vote_quorum_percent)
    cast = _i(tenure.get("total_vote_weight"), 0)
    supply = _i(ctx.token.max_supply(), 0)

    # cast / supply >= percent / 100, compared exactly in integers
    info = {"cast_weight": cast, "max_supply": supply, "quorum_percent": percent, "initial": first}
    if supply <= 0 or cast * 100 < percent * supply:
        raise ApplyError("forbidden", QUORUM_NOT_MET, info)
    return info


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _apply_newtenure(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(NewTenurePayload, env.tx_type, env.payload)

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    tenure = state["tenure"]
    now_s = int(ctx.now_s)

    _check_timing(tenure, cfg, now_s)
    quorum = _check_quorum(ctx, tenure, cfg)

    previous = auditor_names(state)
    board = select_board(state["candidates"], cfg.numelected)
    board_set = set(board)

    departed = [a for a in previous if a not in board_set]
    for acct in departed:
        _relock(state, acct, cfg, now_s)

    old_auditors = state["auditors"]
    new_auditors: Json = {}
    for acct in board:
        prev = old_auditors.get(acct)
        elected_at = _i(prev.get("elected_at"), now_s) if isinstance(prev, dict) else now_s
        new_auditors[acct] = {"auditor_name": acct, "elected_at": elected_at}
    state["auditors"] = new_auditors

    pay: Optional[Asset] = None
    if cfg.pay_schedule and board:
        pay = median_asset(cfg.pay_schedule)
        pending = state["pending_pay"]
        for acct in board:
            cur = pending.get(acct)
            amount = pay
            if isinstance(cur, dict) and cur.get("amount") is not None:
                amount = Asset.from_json(cur.get("amount")) + pay
            pending[acct] = {"account": acct, "amount": amount.to_json()}

    auth_id = _emit_auditor_auths(state, cfg, board)

    tenure["last_run_ts"] = now_s
    tenure["count"] = _i(tenure.get("count"), 0) + 1
    tenure["last_message"] = p.message

    return {
        "applied": "NEWTENURE",
        "auditors": board,
        "departed": departed,
        "pay": pay.to_json() if pay is not None else None,
        "quorum": quorum,
        "auth_outbox_id": auth_id,
        "advisory_candidates": list(p.candidates),
        "message": p.message,
    }


def _remove_and_replace(ctx: ApplyContext, env: TxEnvelope, auditor: str) -> Json:
    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    auditors = state["auditors"]
    if auditor not in auditors:
        raise ApplyError("not_found", NOT_AUDITOR, {"auditor": auditor})

    now_s = int(ctx.now_s)
    del auditors[auditor]
    rec = state["candidates"].get(auditor)
    if isinstance(rec, dict):
        rec["is_active"] = False
    _relock(state, auditor, cfg, now_s)

    replacement = ""
    if len(auditors) < int(cfg.numelected):
        replacement = best_replacement(state["candidates"], exclude=[*auditors.keys(), auditor])
        if replacement:
            auditors[replacement] = {"auditor_name": replacement, "elected_at": now_s}

    board = auditor_names(state)
    auth_id = _emit_auditor_auths(state, cfg, board)

    return {
        "applied": str(env.tx_type).strip().upper(),
        "auditor": auditor,
        "replacement": replacement or None,
        "auditors": board,
        "auth_outbox_id": auth_id,
    }


def trim_board(state: Json, cfg: BoardConfig, now_s: int) -> Json:
    """Drop the lowest-ranked seats until the board fits `cfg.numelected`.

    Seats are ranked like a tenure run: total_votes desc, account asc. Dropped
    auditors are relocked and a new hand-off is queued. No-op when the board
    already fits.
    """
    auditors = state["auditors"]
    seats = int(cfg.numelected)
    if len(auditors) <= seats:
        return {"dropped": [], "auth_outbox_id": ""}

    cands = state["candidates"]

    def _votes(acct: str) -> int:
        rec = cands.get(acct)
        return _i(rec.get("total_votes"), 0) if isinstance(rec, dict) else 0

    ranked = sorted(auditors.keys(), key=lambda a: (-_votes(a), a))
    dropped = sorted(ranked[seats:])
    for acct in dropped:
        del auditors[acct]
        _relock(state, acct, cfg, now_s)

    auth_id = _emit_auditor_auths(state, cfg, auditor_names(state))
    return {"dropped": dropped, "auth_outbox_id": auth_id}


def _apply_resign(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(AuditorPayload, env.tx_type, env.payload)
    require_signer(env, p.auditor)
    return _remove_and_replace(ctx, env, p.auditor)


def _apply_fireauditor(ctx: ApplyContext, env: TxEnvelope) -> Json:
    require_mid_tier(ctx, env)
    p = parse_payload(AuditorPayload, env.tx_type, env.payload)
    return _remove_and_replace(ctx, env, p.auditor)


def _apply_claimpay(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(AuditorPayload, env.tx_type, env.payload)
    require_signer(env, p.auditor)

    state = ensure_board_schema(ctx.state)
    pending = state["pending_pay"]
    cur = pending.get(p.auditor)
    amount = Asset.from_json(cur.get("amount")) if isinstance(cur, dict) and cur.get("amount") is not None else None
    if amount is None or amount.amount <= 0:
        raise ApplyError("not_found", "nothing_to_claim", {"auditor": p.auditor})

    send_id = enqueue_outbound(
        state,
        kind=KIND_TOKEN_SEND,
        body={"to": p.auditor, "quantity": amount.to_json(), "memo": PAY_MEMO},
    )
    del pending[p.auditor]
    return {"applied": "CLAIMPAY", "auditor": p.auditor, "amount": amount.to_json(), "outbox_id": send_id}


_TENURE_HANDLERS = {
    "NEWTENURE": _apply_newtenure,
    "RESIGN": _apply_resign,
    "FIREAUDITOR": _apply_fireauditor,
    "CLAIMPAY": _apply_claimpay,
}


def apply_tenure(ctx: ApplyContext, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    fn = _TENURE_HANDLERS.get(t)
    if fn is None:
        return None
    return fn(ctx, env)
