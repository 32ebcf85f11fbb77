from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from auditboard.api.routes_public_parts.common import _submit
from auditboard.api.schemas import TransferNotifyRequest
from auditboard.ledger.constants import SYSTEM_SIGNER

router = APIRouter()

Json = Dict[str, Any]


@router.post("/token/notify")
def token_notify(request: Request, body: TransferNotifyRequest) -> Json:
    """Webhook for the token collaborator: an incoming transfer happened.

    Transfers not addressed to the contract account are acknowledged and
    ignored by the stake handler.
    """
    env = {
        "tx_type": "TOKEN_TRANSFER_NOTIFY",
        "signer": SYSTEM_SIGNER,
        "permission": "active",
        "payload": {"from": body.from_, "to": body.to, "quantity": body.quantity, "memo": body.memo},
        "system": True,
    }
    meta = _submit(request, env, allow_system=True)
    return {"ok": True, "seq": meta.get("seq"), "result": meta.get("result")}
