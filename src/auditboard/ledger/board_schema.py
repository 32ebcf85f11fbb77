# src/auditboard/ledger/board_schema.py
from __future__ import annotations

"""Canonical board state roots and typed accessors.

State layout (all keyed by account id):

    board_config   singleton election parameters (BoardConfig.to_json())
    candidates     {acct: {candidate_name, locked_tokens, total_votes, is_active,
                           unstaking_end_time_stamp}}
    auditors       {acct: {auditor_name, elected_at}}
    votes          {voter: {voter, weight, candidates}}
    pending_pay    {acct: {account, amount}}
    bios           {acct: {candidate_name, bio}}
    tenure         {last_run_ts, count, total_vote_weight}
    outbox         [outbound collaborator commands]
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from auditboard.ledger.asset import Asset
from auditboard.ledger.constants import (
    DEFAULT_AUTH_ACCOUNT,
    DEFAULT_MAX_VOTES,
    DEFAULT_NUM_ELECTED,
    DEFAULT_TOKEN_PRECISION,
    DEFAULT_TOKEN_SYMBOL,
)

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_list(x: Any) -> List[Any]:
    return x if isinstance(x, list) else []


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


@dataclass(frozen=True)
class BoardConfig:
    lockup_asset: Asset
    maxvotes: int = DEFAULT_MAX_VOTES
    numelected: int = DEFAULT_NUM_ELECTED
    authaccount: str = DEFAULT_AUTH_ACCOUNT
    auth_threshold_auditors: int = 3
    lockup_release_time_delay: int = 0
    period_length: int = 7 * 24 * 60 * 60
    initial_vote_quorum_percent: int = 15
    vote_quorum_percent: int = 4
    pay_schedule: List[Asset] = field(default_factory=list)

    @staticmethod
    def from_json(obj: Any) -> "BoardConfig":
        d = _as_dict(obj)
        lockup = d.get("lockup_asset")
        return BoardConfig(
            lockup_asset=(
                Asset.from_json(lockup)
                if lockup is not None
                else Asset.zero(DEFAULT_TOKEN_SYMBOL, DEFAULT_TOKEN_PRECISION)
            ),
            maxvotes=_as_int(d.get("maxvotes"), DEFAULT_MAX_VOTES),
            numelected=_as_int(d.get("numelected"), DEFAULT_NUM_ELECTED),
            authaccount=str(d.get("authaccount") or DEFAULT_AUTH_ACCOUNT).strip(),
            auth_threshold_auditors=_as_int(d.get("auth_threshold_auditors"), 3),
            lockup_release_time_delay=_as_int(d.get("lockup_release_time_delay"), 0),
            period_length=_as_int(d.get("period_length"), 7 * 24 * 60 * 60),
            initial_vote_quorum_percent=_as_int(d.get("initial_vote_quorum_percent"), 15),
            vote_quorum_percent=_as_int(d.get("vote_quorum_percent"), 4),
            pay_schedule=[Asset.from_json(x) for x in _as_list(d.get("pay_schedule"))],
        )

    def to_json(self) -> Json:
        return {
            "lockup_asset": self.lockup_asset.to_json(),
            "maxvotes": int(self.maxvotes),
            "numelected": int(self.numelected),
            "authaccount": self.authaccount,
            "auth_threshold_auditors": int(self.auth_threshold_auditors),
            "lockup_release_time_delay": int(self.lockup_release_time_delay),
            "period_length": int(self.period_length),
            "initial_vote_quorum_percent": int(self.initial_vote_quorum_percent),
            "vote_quorum_percent": int(self.vote_quorum_percent),
            "pay_schedule": [a.to_json() for a in self.pay_schedule],
        }


def default_board_config() -> BoardConfig:
    return BoardConfig(lockup_asset=Asset.zero(DEFAULT_TOKEN_SYMBOL, DEFAULT_TOKEN_PRECISION))


def ensure_board_schema(state: Json) -> Json:
    """Ensure every board root exists. Non-destructive."""
    for key in ("candidates", "auditors", "votes", "pending_pay", "bios"):
        if not isinstance(state.get(key), dict):
            state[key] = {}
    if not isinstance(state.get("board_config"), dict):
        state["board_config"] = default_board_config().to_json()
    tenure = state.get("tenure")
    if not isinstance(tenure, dict):
        tenure = {}
        state["tenure"] = tenure
    tenure.setdefault("last_run_ts", 0)
    tenure.setdefault("count", 0)
    tenure.setdefault("total_vote_weight", 0)
    if not isinstance(state.get("outbox"), list):
        state["outbox"] = []
    return state


def read_config(state: Json) -> BoardConfig:
    return BoardConfig.from_json(state.get("board_config"))


def candidate_stake(rec: Json, *, fallback: Asset) -> Asset:
    raw = rec.get("locked_tokens")
    if raw is None:
        return Asset.zero(fallback.code, fallback.precision)
    return Asset.from_json(raw)


def new_candidate(account: str, *, locked: Asset, unlock_ts: int) -> Json:
    return {
        "candidate_name": account,
        "locked_tokens": locked.to_json(),
        "total_votes": 0,
        "is_active": False,
        "unstaking_end_time_stamp": int(unlock_ts),
    }


def auditor_names(state: Json) -> List[str]:
    return sorted(str(k) for k in _as_dict(state.get("auditors")).keys())
