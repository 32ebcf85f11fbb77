# tests/test_state_invariants.py
from __future__ import annotations

import pytest

from auditboard.runtime.state_invariants import check_board_invariants, ensure_state


def test_ensure_state_creates_roots() -> None:
    st: dict = {}
    ensure_state(st)
    for key in ("params", "candidates", "auditors", "votes", "pending_pay", "bios", "tenure", "outbox", "board_config"):
        assert key in st
    assert check_board_invariants(st) == []


def test_ensure_state_rejects_non_mapping() -> None:
    with pytest.raises(TypeError):
        ensure_state([])


def test_detects_tally_drift() -> None:
    st: dict = {}
    ensure_state(st)
    st["candidates"]["alice"] = {"total_votes": 9, "is_active": True}
    st["votes"]["v"] = {"voter": "v", "weight": 7, "candidates": ["alice"]}
    st["tenure"]["total_vote_weight"] = 7

    assert check_board_invariants(st) == ["tally_mismatch:alice:9!=7"]
