# tests/test_apply_tenure.py
from __future__ import annotations

import pytest

from auditboard.runtime.errors import ApplyError
from auditboard.runtime.outbox import KIND_SET_AUTH, KIND_TOKEN_SEND
from auditboard.testing.board_harness import AUTH, BoardHarness


def _board(weights: dict, *, max_supply: int = 100, **cfg) -> BoardHarness:
    h = BoardHarness(balances=dict(weights), max_supply=max_supply)
    h.configure(**cfg)
    return h


def test_quorum_boundary_exact_threshold_passes() -> None:
    h = _board({"v": 15})
    h.nominate("alice")
    h.vote("v", ["alice"])

    meta = h.newtenure()
    assert meta["quorum"]["cast_weight"] == 15
    assert meta["quorum"]["quorum_percent"] == 15
    assert meta["quorum"]["initial"] is True
    assert meta["auditors"] == ["alice"]


def test_quorum_boundary_one_unit_below_fails() -> None:
    h = _board({"v": 14})
    h.nominate("alice")
    h.vote("v", ["alice"])

    with pytest.raises(ApplyError) as ei:
        h.newtenure()
    assert ei.value.code == "forbidden"
    assert ei.value.reason == "quorum_not_met"
    assert h.state["auditors"] == {}
    assert h.state["tenure"]["count"] == 0


def test_quorum_fails_without_supply() -> None:
    h = _board({"v": 15}, max_supply=0)
    h.nominate("alice")
    h.vote("v", ["alice"])
    with pytest.raises(ApplyError) as ei:
        h.newtenure()
    assert ei.value.reason == "quorum_not_met"


def test_later_runs_use_period_and_regular_quorum() -> None:
    h = _board({"v1": 15, "v2": 1}, numelected=1)
    h.nominate("alice")
    h.nominate("bob")
    h.vote("v1", ["alice"])
    h.newtenure()

    h.now_s += 99
    with pytest.raises(ApplyError) as ei:
        h.newtenure()
    assert ei.value.code == "time_locked"
    assert ei.value.reason == "too_soon"
    assert ei.value.details["next_allowed_ts"] == h.now_s + 1

    # Drop participation to 4 of 100, exactly the regular quorum.
    h.token.credit("v2", 3)
    h.vote("v1", [])
    h.vote("v2", ["bob"])
    h.now_s += 1
    meta = h.newtenure()
    assert meta["quorum"]["initial"] is False
    assert meta["auditors"] == ["bob"]
    assert meta["departed"] == ["alice"]
    assert h.candidate("alice")["unstaking_end_time_stamp"] == h.now_s + 50
    assert h.state["tenure"]["count"] == 2


def test_continuing_auditor_keeps_elected_at_and_accumulates_pay() -> None:
    h = _board({"v": 20}, pay_schedule=["1.0000 TOK", "3.0000 TOK", "2.0000 TOK"])
    h.nominate("alice")
    h.vote("v", ["alice"])
    h.newtenure()
    first = h.state["auditors"]["alice"]["elected_at"]

    h.now_s += 100
    h.newtenure()
    assert h.state["auditors"]["alice"]["elected_at"] == first
    assert h.state["pending_pay"]["alice"]["amount"] == "4.0000 TOK"


def test_even_pay_schedule_uses_floor_of_middle_average() -> None:
    h = _board({"v": 20}, pay_schedule=["1.0000 TOK", "2.0001 TOK"])
    h.nominate("alice")
    h.vote("v", ["alice"])
    meta = h.newtenure()
    assert meta["pay"] == "1.5000 TOK"


def test_empty_pay_schedule_queues_nothing() -> None:
    h = _board({"v": 20}, pay_schedule=[])
    h.nominate("alice")
    h.vote("v", ["alice"])
    meta = h.newtenure()
    assert meta["pay"] is None
    assert h.state["pending_pay"] == {}


def test_threshold_capped_at_board_size() -> None:
    h = _board({"v": 20}, auth_threshold_auditors=3)
    h.nominate("alice")
    h.vote("v", ["alice"])
    h.newtenure()
    body = h.outbox(KIND_SET_AUTH)[-1]["body"]
    assert body["accounts"] == ["alice"]
    assert body["threshold"] == 1


def test_empty_board_emits_no_auth_request() -> None:
    h = _board({"v": 20})
    h.nominate("alice")
    h.vote("v", ["alice"])
    h.apply("WITHDRAWCAND", {"cand": "alice"}, signer="alice")

    meta = h.newtenure()
    assert meta["auditors"] == []
    assert meta["auth_outbox_id"] == ""
    assert h.outbox(KIND_SET_AUTH) == []


def test_fireauditor_requires_mid_tier_and_replaces() -> None:
    h = _board({"v1": 10, "v2": 5, "v3": 3}, maxvotes=1, numelected=2)
    for c in ("alice", "bob", "carol"):
        h.nominate(c)
    h.vote("v1", ["alice"])
    h.vote("v2", ["bob"])
    h.vote("v3", ["carol"])
    h.newtenure()

    with pytest.raises(ApplyError) as ei:
        h.apply("FIREAUDITOR", {"auditor": "bob"}, signer="alice", permission="med")
    assert ei.value.reason == "unauthorized"

    meta = h.apply("FIREAUDITOR", {"auditor": "bob"}, signer=AUTH, permission="med")
    assert meta["replacement"] == "carol"
    assert sorted(h.state["auditors"].keys()) == ["alice", "carol"]
    assert h.candidate("bob")["is_active"] is False


def test_resign_by_non_auditor_fails() -> None:
    h = _board({"v": 20})
    h.nominate("alice")
    with pytest.raises(ApplyError) as ei:
        h.apply("RESIGN", {"auditor": "alice"}, signer="alice")
    assert ei.value.code == "not_found"
    assert ei.value.reason == "not_auditor"


def test_resign_without_replacement_shrinks_board() -> None:
    h = _board({"v": 20})
    h.nominate("alice")
    h.vote("v", ["alice"])
    h.newtenure()

    meta = h.apply("RESIGN", {"auditor": "alice"}, signer="alice")
    assert meta["replacement"] is None
    assert h.state["auditors"] == {}


def test_claimpay_sends_and_clears_pending() -> None:
    h = _board({"v": 20})
    h.nominate("alice")
    h.vote("v", ["alice"])
    h.newtenure()

    meta = h.apply("CLAIMPAY", {"auditor": "alice"}, signer="alice")
    assert meta["amount"] == "2.0000 TOK"
    assert "alice" not in h.state["pending_pay"]
    sends = h.outbox(KIND_TOKEN_SEND)
    assert sends[-1]["body"] == {"to": "alice", "quantity": "2.0000 TOK", "memo": "auditor pay"}

    with pytest.raises(ApplyError) as ei:
        h.apply("CLAIMPAY", {"auditor": "alice"}, signer="alice")
    assert ei.value.reason == "nothing_to_claim"
