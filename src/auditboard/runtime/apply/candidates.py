# src/auditboard/runtime/apply/candidates.py
from __future__ import annotations

"""
Candidate registry apply semantics.

Handled here:
- NOMINATECAND  (cand; member; stake >= lockup_asset)
- WITHDRAWCAND  (cand)
- FIRECAND      (auth account @ mid tier; optional stake relock)
- UPDATEBIO     (cand; <= MAX_BIO_LENGTH characters)

Candidate records are never deleted. Deactivation only flips is_active; the
stake stays locked until UNSTAKE.
"""

from typing import Any, Dict, Optional

from auditboard.ledger.asset import Asset
from auditboard.ledger.board_schema import candidate_stake, ensure_board_schema, new_candidate, read_config
from auditboard.ledger.constants import MAX_BIO_LENGTH
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import (
    ALREADY_ACTIVE,
    INSUFFICIENT_STAKE,
    NOT_ACTIVE,
    TOO_LONG,
    ApplyError,
)
from auditboard.runtime.gates import require_member, require_mid_tier, require_signer
from auditboard.runtime.tx_admission_types import TxEnvelope
from auditboard.runtime.tx_schema import CandPayload, FireCandPayload, UpdateBioPayload, parse_payload

Json = Dict[str, Any]


def _candidate(state: Json, acct: str) -> Optional[Json]:
    rec = state["candidates"].get(acct)
    return rec if isinstance(rec, dict) else None


def _require_active(rec: Optional[Json], acct: str) -> Json:
    if rec is None or not bool(rec.get("is_active", False)):
        raise ApplyError("conflict", NOT_ACTIVE, {"cand": acct})
    return rec


def _apply_nominatecand(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(CandPayload, env.tx_type, env.payload)
    require_signer(env, p.cand)
    require_member(ctx, env, p.cand)

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    rec = _candidate(state, p.cand)
    if rec is not None and bool(rec.get("is_active", False)):
        raise ApplyError("conflict", ALREADY_ACTIVE, {"cand": p.cand})

    lockup = cfg.lockup_asset
    stake = (
        candidate_stake(rec, fallback=lockup)
        if rec is not None
        else Asset.zero(lockup.code, lockup.precision)
    )
    if not stake.same_symbol(lockup) or stake < lockup:
        raise ApplyError(
            "forbidden",
            INSUFFICIENT_STAKE,
            {"cand": p.cand, "locked_tokens": stake.to_json(), "required": lockup.to_json()},
        )

    if rec is None:
        # Only reachable with a zero lockup: nomination registers the candidate.
        rec = new_candidate(p.cand, locked=stake, unlock_ts=int(ctx.now_s))
        state["candidates"][p.cand] = rec

    rec["is_active"] = True
    return {"applied": "NOMINATECAND", "cand": p.cand}


def _apply_withdrawcand(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(CandPayload, env.tx_type, env.payload)
    require_signer(env, p.cand)

    state = ensure_board_schema(ctx.state)
    rec = _require_active(_candidate(state, p.cand), p.cand)
    rec["is_active"] = False
    return {
        "applied": "WITHDRAWCAND",
        "cand": p.cand,
        "unstaking_end_time_stamp": int(rec.get("unstaking_end_time_stamp", 0) or 0),
    }


def _apply_firecand(ctx: ApplyContext, env: TxEnvelope) -> Json:
    require_mid_tier(ctx, env)
    p = parse_payload(FireCandPayload, env.tx_type, env.payload)

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    rec = _require_active(_candidate(state, p.cand), p.cand)
    rec["is_active"] = False
    if bool(p.lockupStake):
        rec["unstaking_end_time_stamp"] = int(ctx.now_s) + int(cfg.lockup_release_time_delay)
    return {
        "applied": "FIRECAND",
        "cand": p.cand,
        "lockup": bool(p.lockupStake),
        "unstaking_end_time_stamp": int(rec.get("unstaking_end_time_stamp", 0) or 0),
    }


def _apply_updatebio(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(UpdateBioPayload, env.tx_type, env.payload)
    require_signer(env, p.cand)

    if len(p.bio) > MAX_BIO_LENGTH:
        raise ApplyError("invalid_payload", TOO_LONG, {"cand": p.cand, "length": len(p.bio), "max": MAX_BIO_LENGTH})

    state = ensure_board_schema(ctx.state)
    state["bios"][p.cand] = {"candidate_name": p.cand, "bio": p.bio}
    return {"applied": "UPDATEBIO", "cand": p.cand, "length": len(p.bio)}


_CANDIDATE_HANDLERS = {
    "NOMINATECAND": _apply_nominatecand,
    "WITHDRAWCAND": _apply_withdrawcand,
    "FIRECAND": _apply_firecand,
    "UPDATEBIO": _apply_updatebio,
}


def apply_candidates(ctx: ApplyContext, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    fn = _CANDIDATE_HANDLERS.get(t)
    if fn is None:
        return None
    return fn(ctx, env)
