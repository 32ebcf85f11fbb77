# tests/test_apply_config.py
from __future__ import annotations

import pytest

from auditboard.runtime.errors import ApplyError
from auditboard.runtime.outbox import KIND_SET_AUTH
from auditboard.runtime.state_invariants import check_board_invariants
from auditboard.testing.board_harness import BoardHarness, board_config


def test_updateconfig_requires_contract_account() -> None:
    h = BoardHarness()
    with pytest.raises(ApplyError) as ei:
        h.apply("UPDATECONFIG", {"config": board_config()}, signer="alice")
    assert ei.value.code == "forbidden"
    assert ei.value.reason == "unauthorized"


def test_updateconfig_replaces_whole_config() -> None:
    h = BoardHarness()
    h.configure(numelected=7, pay_schedule=["1.0000 TOK", "5.0000 TOK"])
    cfg = h.state["board_config"]
    assert cfg["numelected"] == 7
    assert cfg["pay_schedule"] == ["1.0000 TOK", "5.0000 TOK"]
    assert cfg["lockup_asset"] == "100.0000 TOK"


def test_updateconfig_rejects_unknown_keys_and_bad_assets() -> None:
    h = BoardHarness()
    with pytest.raises(ApplyError) as ei:
        h.configure(bogus=1)
    assert ei.value.code == "invalid_payload"

    with pytest.raises(ApplyError):
        h.configure(lockup_asset="lots of tokens")


def test_updateconfig_cannot_change_symbol_under_existing_stake() -> None:
    h = BoardHarness()
    h.configure()
    h.stake("alice", "5.0000 TOK")

    with pytest.raises(ApplyError) as ei:
        h.configure(lockup_asset="100.0000 EOS")
    assert ei.value.reason == "asset_symbol_mismatch"
    assert h.state["board_config"]["lockup_asset"] == "100.0000 TOK"

    # same symbol, different amount is fine
    h.configure(lockup_asset="50.0000 TOK")
    assert h.state["board_config"]["lockup_asset"] == "50.0000 TOK"


@pytest.mark.parametrize(
    "overrides",
    [
        {"lockup_asset": "-1.0000 TOK"},
        {"pay_schedule": ["-5.0000 TOK"]},
        {"pay_schedule": ["1.0000 TOK", "2.0000 EOS"]},
    ],
)
def test_updateconfig_rejects_negative_or_mixed_assets(overrides) -> None:
    h = BoardHarness()
    h.configure()
    before = dict(h.state["board_config"])
    with pytest.raises(ApplyError) as ei:
        h.configure(**overrides)
    assert ei.value.code == "invalid_payload"
    assert h.state["board_config"] == before


def test_zero_lockup_is_allowed() -> None:
    h = BoardHarness()
    h.configure(lockup_asset="0.0000 TOK")
    assert h.state["board_config"]["lockup_asset"] == "0.0000 TOK"


def _seated_board() -> BoardHarness:
    h = BoardHarness(balances={"v1": 10, "v2": 5}, max_supply=100)
    h.configure()
    h.nominate("alice")
    h.nominate("bob")
    h.vote("v1", ["alice"])
    h.vote("v2", ["bob"])
    h.newtenure()
    return h


def test_pay_symbol_cannot_change_while_pay_is_pending() -> None:
    h = _seated_board()
    assert h.state["pending_pay"]["alice"]["amount"] == "2.0000 TOK"

    with pytest.raises(ApplyError) as ei:
        h.configure(pay_schedule=["2.0000 EOS"])
    assert ei.value.code == "conflict"
    assert ei.value.reason == "asset_symbol_mismatch"
    assert ei.value.details["pending_symbol"] == "4,TOK"

    # Once the old pay is claimed the schedule can move and rotation keeps working.
    h.apply("CLAIMPAY", {"auditor": "alice"}, signer="alice")
    h.apply("CLAIMPAY", {"auditor": "bob"}, signer="bob")
    h.configure(pay_schedule=["2.0000 EOS"])

    h.now_s += 100
    meta = h.newtenure()
    assert meta["pay"] == "2.0000 EOS"
    assert h.state["pending_pay"]["alice"]["amount"] == "2.0000 EOS"


def test_lowering_numelected_trims_lowest_ranked_seats() -> None:
    h = _seated_board()
    assert sorted(h.state["auditors"]) == ["alice", "bob"]

    h.now_s += 30
    meta = h.configure(numelected=1)
    assert meta["dropped_auditors"] == ["bob"]
    assert sorted(h.state["auditors"]) == ["alice"]
    assert h.candidate("bob")["unstaking_end_time_stamp"] == h.now_s + 50
    assert check_board_invariants(h.state) == []

    auth = h.outbox(KIND_SET_AUTH)[-1]
    assert auth["outbox_id"] == meta["auth_outbox_id"]
    assert auth["body"]["accounts"] == ["alice"]
    assert auth["body"]["threshold"] == 1


def test_config_change_within_board_size_keeps_seats() -> None:
    h = _seated_board()
    before = len(h.outbox(KIND_SET_AUTH))
    meta = h.configure(numelected=3)
    assert meta["dropped_auditors"] == []
    assert meta["auth_outbox_id"] == ""
    assert len(h.outbox(KIND_SET_AUTH)) == before
