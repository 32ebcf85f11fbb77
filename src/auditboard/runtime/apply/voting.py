# src/auditboard/runtime/apply/voting.py
from __future__ import annotations

"""Voting engine.

VOTEAUDITOR replaces a voter's ballot and patches the tallies of exactly the
candidates whose membership in the ballot (or whose weight) changed:

    old \\ new   -= old_weight
    new \\ old   += new_weight
    old & new   += new_weight - old_weight

Weight is the voter's token balance read at vote time and stored with the
ballot, so a later ballot change subtracts what was actually added.
tenure.total_vote_weight tracks the sum of stored weights for the quorum gate.
"""

from typing import Any, Dict, List, Optional

from auditboard.ledger.board_schema import ensure_board_schema, read_config
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import (
    DUPLICATE_CANDIDATE,
    INVALID_CANDIDATE,
    TOO_MANY_VOTES,
    ApplyError,
)
from auditboard.runtime.gates import require_member, require_signer
from auditboard.runtime.tx_admission_types import TxEnvelope
from auditboard.runtime.tx_schema import VotePayload, parse_payload

Json = Dict[str, Any]


def _i(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _validate_ballot(state: Json, voter: str, newvotes: List[str], maxvotes: int) -> None:
    if len(newvotes) > int(maxvotes):
        raise ApplyError(
            "invalid_payload",
            TOO_MANY_VOTES,
            {"voter": voter, "count": len(newvotes), "max": int(maxvotes)},
        )

    seen: set[str] = set()
    for c in newvotes:
        if c in seen:
            raise ApplyError("invalid_payload", DUPLICATE_CANDIDATE, {"voter": voter, "candidate": c})
        seen.add(c)

    cands = state["candidates"]
    for c in newvotes:
        rec = cands.get(c)
        if not isinstance(rec, dict) or not bool(rec.get("is_active", False)):
            raise ApplyError("invalid_payload", INVALID_CANDIDATE, {"voter": voter, "candidate": c})


def _bump(state: Json, acct: str, delta: int) -> None:
    if delta == 0:
        return
    rec = state["candidates"].get(acct)
    if not isinstance(rec, dict):
        return
    rec["total_votes"] = _i(rec.get("total_votes"), 0) + int(delta)


def _apply_voteauditor(ctx: ApplyContext, env: TxEnvelope) -> Json:
    p = parse_payload(VotePayload, env.tx_type, env.payload)
    require_signer(env, p.voter)
    require_member(ctx, env, p.voter)

    state = ensure_board_schema(ctx.state)
    cfg = read_config(state)
    newvotes = list(p.newvotes)
    _validate_ballot(state, p.voter, newvotes, cfg.maxvotes)

    votes = state["votes"]
    old = votes.get(p.voter)
    old_list: List[str] = []
    old_weight = 0
    if isinstance(old, dict):
        old_list = [str(c) for c in (old.get("candidates") or [])]
        old_weight = _i(old.get("weight"), 0)

    new_weight = max(0, _i(ctx.token.balance_of(p.voter), 0)) if newvotes else 0

    old_set = set(old_list)
    new_set = set(newvotes)
    for c in old_list:
        if c not in new_set:
            _bump(state, c, -old_weight)
    for c in newvotes:
        if c in old_set:
            _bump(state, c, new_weight - old_weight)
        else:
            _bump(state, c, new_weight)

    tenure = state["tenure"]
    tenure["total_vote_weight"] = _i(tenure.get("total_vote_weight"), 0) - old_weight + new_weight

    if newvotes:
        votes[p.voter] = {"voter": p.voter, "weight": new_weight, "candidates": newvotes}
    else:
        votes.pop(p.voter, None)

    return {
        "applied": "VOTEAUDITOR",
        "voter": p.voter,
        "weight": new_weight,
        "candidates": newvotes,
        "removed": sorted(old_set - new_set),
        "added": sorted(new_set - old_set),
    }


def apply_voting(ctx: ApplyContext, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t == "VOTEAUDITOR":
        return _apply_voteauditor(ctx, env)
    return None
