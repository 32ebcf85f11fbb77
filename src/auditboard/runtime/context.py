from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from auditboard.ledger.constants import DEFAULT_CONTRACT_ACCOUNT
from auditboard.runtime.collaborators import MembershipRegistry, TokenLedger

Json = Dict[str, Any]


@dataclass
class ApplyContext:
    """Everything a board action may touch.

    `state` is the working copy for this action only; the executor discards it
    if the handler raises. `now_s` is read once per action and is the only
    clock handlers may consult.
    """

    state: Json
    now_s: int
    token: TokenLedger
    membership: MembershipRegistry

    @property
    def contract_account(self) -> str:
        params = self.state.get("params")
        if isinstance(params, dict):
            v = str(params.get("contract_account") or "").strip()
            if v:
                return v
        return DEFAULT_CONTRACT_ACCOUNT
