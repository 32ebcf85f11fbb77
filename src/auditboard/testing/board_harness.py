from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Optional

from auditboard.ledger.constants import DEFAULT_CONTRACT_ACCOUNT, SYSTEM_SIGNER
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.domain_dispatch import apply_tx
from auditboard.runtime.local_collaborators import LocalMembershipRegistry, LocalTokenLedger
from auditboard.runtime.state_invariants import ensure_state
from auditboard.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]

AUTH = "auditor.bos"


def env(
    tx_type: str,
    payload: Json,
    signer: str = "alice",
    *,
    permission: str = "active",
    system: bool = False,
) -> TxEnvelope:
    return TxEnvelope(tx_type=tx_type, signer=signer, payload=payload, permission=permission, system=system)


def board_config(**overrides: Any) -> Json:
    """A board_config payload with small test-friendly defaults. TEST ONLY."""
    cfg: Json = {
        "lockup_asset": "100.0000 TOK",
        "maxvotes": 1,
        "numelected": 2,
        "authaccount": AUTH,
        "auth_threshold_auditors": 2,
        "lockup_release_time_delay": 50,
        "period_length": 100,
        "initial_vote_quorum_percent": 15,
        "vote_quorum_percent": 4,
        "pay_schedule": ["2.0000 TOK"],
    }
    cfg.update(overrides)
    return cfg


class BoardHarness:
    """Apply board actions against an in-memory state. TEST ONLY.

    Mirrors the executor's commit rule: each action runs on a deep copy that
    replaces `state` only if the handler returned.
    """

    def __init__(
        self,
        *,
        now_s: int = 1_000,
        balances: Optional[Dict[str, int]] = None,
        max_supply: int = 1_000,
        members: Optional[Iterable[str]] = None,
        contract_account: str = DEFAULT_CONTRACT_ACCOUNT,
    ) -> None:
        self.now_s = int(now_s)
        self.token = LocalTokenLedger(balances=balances or {}, max_supply=max_supply)
        self.membership = LocalMembershipRegistry(members or (), open_membership=members is None)
        self.contract_account = contract_account
        self.state: Json = {"params": {"contract_account": contract_account}}
        ensure_state(self.state)

    def ctx(self, state: Optional[Json] = None) -> ApplyContext:
        return ApplyContext(
            state=self.state if state is None else state,
            now_s=self.now_s,
            token=self.token,
            membership=self.membership,
        )

    def apply(self, tx_type: str, payload: Json, signer: str = "alice", **kw: Any) -> Json:
        work = copy.deepcopy(self.state)
        meta = apply_tx(self.ctx(work), env(tx_type, payload, signer, **kw))
        self.state = work
        return meta

    def configure(self, **overrides: Any) -> Json:
        return self.apply("UPDATECONFIG", {"config": board_config(**overrides)}, signer=self.contract_account)

    def stake(self, account: str, quantity: str) -> Json:
        payload = {"from": account, "to": self.contract_account, "quantity": quantity, "memo": ""}
        return self.apply("TOKEN_TRANSFER_NOTIFY", payload, signer=SYSTEM_SIGNER, system=True)

    def nominate(self, account: str, quantity: str = "100.0000 TOK") -> Json:
        self.stake(account, quantity)
        return self.apply("NOMINATECAND", {"cand": account}, signer=account)

    def vote(self, voter: str, candidates: Iterable[str]) -> Json:
        return self.apply("VOTEAUDITOR", {"voter": voter, "newvotes": list(candidates)}, signer=voter)

    def newtenure(self, message: str = "") -> Json:
        return self.apply("NEWTENURE", {"candidates": [], "message": message}, signer="anyone")

    def candidate(self, account: str) -> Json:
        return self.state["candidates"][account]

    def outbox(self, kind: str) -> list:
        return [o for o in self.state["outbox"] if o.get("kind") == kind]
