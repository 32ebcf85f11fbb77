from __future__ import annotations

from dataclasses import dataclass, field
import copy
from typing import Any, Dict, List, Optional

from auditboard.ledger.board_schema import BoardConfig, read_config


Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class BoardView:
    """
    Immutable read-only view of the board state used by the API and tests.
    """

    board_config: Dict[str, Any] = field(default_factory=dict)
    candidates: Dict[str, Any] = field(default_factory=dict)
    auditors: Dict[str, Any] = field(default_factory=dict)
    votes: Dict[str, Any] = field(default_factory=dict)
    pending_pay: Dict[str, Any] = field(default_factory=dict)
    bios: Dict[str, Any] = field(default_factory=dict)
    tenure: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_ledger(cls, state: Dict[str, Any]) -> "BoardView":
        def _dict(key: str) -> Dict[str, Any]:
            v = state.get(key)
            return copy.deepcopy(v) if isinstance(v, dict) else {}

        return cls(
            board_config=_dict("board_config"),
            candidates=_dict("candidates"),
            auditors=_dict("auditors"),
            votes=_dict("votes"),
            pending_pay=_dict("pending_pay"),
            bios=_dict("bios"),
            tenure=_dict("tenure"),
        )

    @property
    def config(self) -> BoardConfig:
        return read_config({"board_config": self.board_config})

    def get_candidate(self, account: str) -> Optional[Dict[str, Any]]:
        rec = self.candidates.get(account)
        return dict(rec) if isinstance(rec, dict) else None

    def get_vote(self, voter: str) -> Optional[Dict[str, Any]]:
        rec = self.votes.get(voter)
        return dict(rec) if isinstance(rec, dict) else None

    def get_bio(self, account: str) -> str:
        rec = self.bios.get(account)
        if not isinstance(rec, dict):
            return ""
        return str(rec.get("bio") or "")

    def auditor_set(self) -> List[str]:
        return sorted(str(k) for k in self.auditors.keys())

    def active_candidates(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for acct in sorted(self.candidates.keys()):
            rec = self.candidates.get(acct)
            if isinstance(rec, dict) and bool(rec.get("is_active", False)):
                out.append(dict(rec))
        return out

    def last_tenure_ts(self) -> int:
        try:
            return int(self.tenure.get("last_run_ts", 0) or 0)
        except Exception:
            return 0

    def total_vote_weight(self) -> int:
        try:
            return int(self.tenure.get("total_vote_weight", 0) or 0)
        except Exception:
            return 0
