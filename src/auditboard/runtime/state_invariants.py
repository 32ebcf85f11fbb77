# src/auditboard/runtime/state_invariants.py
from __future__ import annotations

"""State invariants / normalization helpers.

`ensure_state` makes sure the top-level containers every apply module relies on
exist. `check_board_invariants` recomputes, by full scan, the values the apply
layer maintains incrementally; it is used by tests and by the executor when
AUDITBOARD_CHECK_INVARIANTS is set.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, List

from auditboard.ledger.board_schema import ensure_board_schema, read_config

Json = Dict[str, Any]


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Raises:
        TypeError: if st is not a MutableMapping
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    params = st.get("params")
    if params is None:
        st["params"] = {}
    elif not isinstance(params, dict):
        raise TypeError(f"state['params'] must be dict, got {type(params)}")

    ensure_board_schema(st)  # type: ignore[arg-type]
    return st  # type: ignore[return-value]


def check_board_invariants(st: Json) -> List[str]:
    """Return a list of violated invariants (empty when the state is sound)."""
    problems: List[str] = []
    candidates = st.get("candidates") if isinstance(st.get("candidates"), dict) else {}
    votes = st.get("votes") if isinstance(st.get("votes"), dict) else {}
    auditors = st.get("auditors") if isinstance(st.get("auditors"), dict) else {}

    expected: Dict[str, int] = {}
    total_weight = 0
    for voter, rec in votes.items():
        if not isinstance(rec, dict):
            problems.append(f"vote_not_object:{voter}")
            continue
        w = int(rec.get("weight", 0) or 0)
        total_weight += w
        cands = rec.get("candidates") if isinstance(rec.get("candidates"), list) else []
        if not cands:
            problems.append(f"empty_vote_record:{voter}")
        for c in cands:
            expected[str(c)] = expected.get(str(c), 0) + w

    for acct, rec in candidates.items():
        if not isinstance(rec, dict):
            continue
        have = int(rec.get("total_votes", 0) or 0)
        want = expected.get(str(acct), 0)
        if have != want:
            problems.append(f"tally_mismatch:{acct}:{have}!={want}")

    for acct in expected:
        if acct not in candidates:
            problems.append(f"vote_for_unknown_candidate:{acct}")

    tenure = st.get("tenure") if isinstance(st.get("tenure"), dict) else {}
    if int(tenure.get("total_vote_weight", 0) or 0) != total_weight:
        problems.append("total_vote_weight_mismatch")

    cfg = read_config(st)
    if len(auditors) > int(cfg.numelected):
        problems.append(f"board_oversized:{len(auditors)}>{cfg.numelected}")

    return problems


__all__ = ["ensure_state", "check_board_invariants"]
