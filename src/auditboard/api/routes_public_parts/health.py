from __future__ import annotations

import os
import time

from fastapi import APIRouter, Request

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/health")
def v1_health(request: Request) -> dict[str, object]:
    # Telemetry only; never fails because the executor is missing.
    ex = getattr(request.app.state, "executor", None)
    action_seq = None
    auditors = None
    if ex is not None:
        view = ex.view()
        auditors = len(view.auditor_set())
        action_seq = int(ex.read_state().get("action_seq", 0) or 0)

    return {
        "ok": True,
        "service": "auditboard-node",
        "version": "v1",
        "ts_ms": _now_ms(),
        "chain_id": os.environ.get("AUDITBOARD_CHAIN_ID") or None,
        "node_id": os.environ.get("AUDITBOARD_NODE_ID") or None,
        "executor": ex is not None,
        "action_seq": action_seq,
        "auditors": auditors,
    }
