# src/auditboard/api/routes_public_parts/board.py
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Request

from auditboard.api.errors import ApiError
from auditboard.api.routes_public_parts.common import _executor, _int_param, _view
from auditboard.runtime.ranking import rank_candidates

router = APIRouter()

Json = Dict[str, Any]


@router.get("/board/config")
def board_config(request: Request) -> Json:
    return {"ok": True, "config": _view(request).config.to_json()}


@router.get("/board/candidates")
def board_candidates(request: Request) -> Json:
    """Candidates in ranking order.

    ?active=1 limits the list to active candidates; `rank` is set only for
    candidates that could currently win a seat.
    """
    view = _view(request)
    qp = request.query_params
    only_active = _int_param(qp.get("active"), 0) == 1

    ranked = [acct for acct, _ in rank_candidates(view.candidates)]
    rank_of = {acct: i + 1 for i, acct in enumerate(ranked)}

    items: List[Json] = []
    for acct in ranked + sorted(a for a in view.candidates if a not in rank_of):
        rec = view.get_candidate(acct)
        if rec is None:
            continue
        if only_active and not bool(rec.get("is_active", False)):
            continue
        rec["rank"] = rank_of.get(acct)
        items.append(rec)
    return {"ok": True, "items": items}


@router.get("/board/candidates/{account}")
def board_candidate(request: Request, account: str) -> Json:
    view = _view(request)
    rec = view.get_candidate(account)
    if rec is None:
        raise ApiError.not_found("not_found", "candidate not found", {"account": account})
    return {"ok": True, "candidate": rec, "bio": view.get_bio(account)}


@router.get("/board/auditors")
def board_auditors(request: Request) -> Json:
    view = _view(request)
    items = [view.auditors[a] for a in view.auditor_set()]
    return {"ok": True, "items": items}


@router.get("/board/votes/{voter}")
def board_vote(request: Request, voter: str) -> Json:
    rec = _view(request).get_vote(voter)
    if rec is None:
        raise ApiError.not_found("not_found", "no ballot for voter", {"voter": voter})
    return {"ok": True, "vote": rec}


@router.get("/board/pending-pay")
def board_pending_pay(request: Request) -> Json:
    view = _view(request)
    return {"ok": True, "items": [view.pending_pay[a] for a in sorted(view.pending_pay)]}


@router.get("/board/tenure")
def board_tenure(request: Request) -> Json:
    view = _view(request)
    cfg = view.config
    tenure = dict(view.tenure)
    count = int(tenure.get("count", 0) or 0)
    last = view.last_tenure_ts()
    tenure["next_allowed_ts"] = last + int(cfg.period_length) if count > 0 else 0
    tenure["quorum_percent"] = int(cfg.vote_quorum_percent if count > 0 else cfg.initial_vote_quorum_percent)
    return {"ok": True, "tenure": tenure}


@router.get("/board/actions")
def board_actions(request: Request) -> Json:
    limit = max(1, min(500, _int_param(request.query_params.get("limit"), 50)))
    return {"ok": True, "items": _executor(request).action_log(limit=limit)}
