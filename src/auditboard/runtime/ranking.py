from __future__ import annotations

"""Candidate ranking.

Pure functions over a snapshot of candidate records. Storage iteration order
never leaks into the result: the order is (total_votes desc, account asc).
"""

from typing import Any, Dict, Iterable, List, Mapping, Tuple

Json = Dict[str, Any]


def _votes(rec: Mapping[str, Any]) -> int:
    try:
        return int(rec.get("total_votes", 0) or 0)
    except Exception:
        return 0


def eligible(rec: Any) -> bool:
    return isinstance(rec, dict) and bool(rec.get("is_active", False)) and _votes(rec) > 0


def rank_candidates(candidates: Mapping[str, Any]) -> List[Tuple[str, int]]:
    """Return [(account, total_votes)] for eligible candidates, best first."""
    rows = [(str(acct), _votes(rec)) for acct, rec in candidates.items() if eligible(rec)]
    rows.sort(key=lambda r: (-r[1], r[0]))
    return rows


def select_board(candidates: Mapping[str, Any], seats: int) -> List[str]:
    n = max(0, int(seats))
    return [acct for acct, _ in rank_candidates(candidates)[:n]]


def best_replacement(candidates: Mapping[str, Any], exclude: Iterable[str]) -> str:
    """Highest ranked eligible candidate not in `exclude`, or "" if none."""
    skip = {str(x) for x in exclude}
    for acct, _ in rank_candidates(candidates):
        if acct not in skip:
            return acct
    return ""
