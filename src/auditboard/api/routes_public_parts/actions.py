from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from auditboard.api.errors import ApiError
from auditboard.api.routes_public_parts.common import _submit
from auditboard.api.schemas import ActionRequest
from auditboard.ledger.constants import SYSTEM_SIGNER

router = APIRouter()

Json = Dict[str, Any]


@router.post("/actions/submit")
def actions_submit(request: Request, body: ActionRequest) -> Json:
    """Apply one user action.

    System envelopes never come through here; incoming transfers use
    /v1/token/notify.
    """
    if body.signer == SYSTEM_SIGNER:
        raise ApiError.forbidden(
            "system_tx_forbidden",
            "system actions cannot be submitted through the public endpoint",
            {"tx_type": body.tx_type},
        )

    env = {
        "tx_type": body.tx_type,
        "signer": body.signer,
        "permission": body.permission,
        "payload": body.payload,
        "nonce": body.nonce,
        "system": False,
    }
    meta = _submit(request, env)
    return {"ok": True, "seq": meta.get("seq"), "result": meta.get("result"), "delivered": meta.get("delivered", [])}
