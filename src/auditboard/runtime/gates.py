# src/auditboard/runtime/gates.py
from __future__ import annotations

"""Authority gates for board actions.

The host ledger authenticates envelopes; these checks only decide whether the
authenticated signer/permission pair may perform a given action:

- signer gate:     signer must be the named account (cand, voter, auditor)
- self gate:       signer must be the contract account
- mid-tier gate:   signer must be the configured auth account acting with a
                   mid-tier permission
- member gate:     the account must satisfy the membership registry
- system gate:     envelope must be collaborator-originated
"""

from typing import Any, Dict

from auditboard.ledger.board_schema import read_config
from auditboard.ledger.constants import MID_TIER_PERMISSIONS, SYSTEM_SIGNER
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import UNAUTHORIZED, ApplyError
from auditboard.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_str(v: Any) -> str:
    return str(v).strip() if v is not None else ""


def require_signer(env: TxEnvelope, account: str) -> None:
    signer = _as_str(env.signer)
    if not signer or signer != _as_str(account):
        raise ApplyError(
            "forbidden",
            UNAUTHORIZED,
            {"tx_type": env.tx_type, "signer": signer, "required": account},
        )


def require_self(ctx: ApplyContext, env: TxEnvelope) -> None:
    require_signer(env, ctx.contract_account)


def require_mid_tier(ctx: ApplyContext, env: TxEnvelope) -> None:
    cfg = read_config(ctx.state)
    signer = _as_str(env.signer)
    perm = _as_str(env.permission).lower()
    if signer != cfg.authaccount or perm not in MID_TIER_PERMISSIONS:
        raise ApplyError(
            "forbidden",
            UNAUTHORIZED,
            {
                "tx_type": env.tx_type,
                "signer": signer,
                "permission": perm,
                "required": f"{cfg.authaccount}@{MID_TIER_PERMISSIONS[0]}",
            },
        )


def require_member(ctx: ApplyContext, env: TxEnvelope, account: str) -> None:
    if not bool(ctx.membership.is_member(account)):
        raise ApplyError(
            "forbidden",
            UNAUTHORIZED,
            {"tx_type": env.tx_type, "account": account, "reason": "not_member"},
        )


def require_system(env: TxEnvelope) -> None:
    if bool(env.system) and _as_str(env.signer) == SYSTEM_SIGNER:
        return
    raise ApplyError("forbidden", "system_only", {"tx_type": env.tx_type, "signer": env.signer})
