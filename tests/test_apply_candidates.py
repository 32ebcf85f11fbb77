# tests/test_apply_candidates.py
from __future__ import annotations

import pytest

from auditboard.runtime.errors import ApplyError
from auditboard.testing.board_harness import AUTH, BoardHarness


def _h(**kw) -> BoardHarness:
    h = BoardHarness(**kw)
    h.configure()
    return h


def test_nominate_twice_fails_with_already_active() -> None:
    h = _h()
    h.nominate("alice")
    assert h.candidate("alice")["is_active"] is True

    with pytest.raises(ApplyError) as ei:
        h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert ei.value.code == "conflict"
    assert ei.value.reason == "already_active"


def test_nominate_requires_full_lockup() -> None:
    h = _h()
    h.stake("alice", "99.9999 TOK")
    with pytest.raises(ApplyError) as ei:
        h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert ei.value.reason == "insufficient_stake"
    assert h.candidate("alice")["is_active"] is False


def test_nominate_without_stake_record_fails() -> None:
    h = _h()
    with pytest.raises(ApplyError) as ei:
        h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert ei.value.reason == "insufficient_stake"


def test_nominate_with_zero_lockup_registers_candidate() -> None:
    h = _h()
    h.configure(lockup_asset="0.0000 TOK")
    meta = h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert meta["applied"] == "NOMINATECAND"
    assert h.candidate("alice")["is_active"] is True
    assert h.candidate("alice")["locked_tokens"] == "0.0000 TOK"


def test_nominate_requires_membership() -> None:
    h = _h(members=["bob"])
    h.stake("alice", "100.0000 TOK")
    with pytest.raises(ApplyError) as ei:
        h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert ei.value.reason == "unauthorized"


def test_withdraw_then_renominate() -> None:
    h = _h()
    h.nominate("alice")
    h.apply("WITHDRAWCAND", {"cand": "alice"}, signer="alice")
    assert h.candidate("alice")["is_active"] is False

    with pytest.raises(ApplyError) as ei:
        h.apply("WITHDRAWCAND", {"cand": "alice"}, signer="alice")
    assert ei.value.reason == "not_active"

    h.apply("NOMINATECAND", {"cand": "alice"}, signer="alice")
    assert h.candidate("alice")["is_active"] is True


def test_firecand_needs_mid_tier_auth_account() -> None:
    h = _h()
    h.nominate("alice")

    with pytest.raises(ApplyError) as ei:
        h.apply("FIRECAND", {"cand": "alice", "lockupStake": False}, signer=AUTH, permission="active")
    assert ei.value.reason == "unauthorized"

    with pytest.raises(ApplyError):
        h.apply("FIRECAND", {"cand": "alice", "lockupStake": False}, signer="bob", permission="med")

    unlock = h.candidate("alice")["unstaking_end_time_stamp"]
    h.now_s += 30
    meta = h.apply("FIRECAND", {"cand": "alice", "lockupStake": False}, signer=AUTH, permission="med")
    assert meta["lockup"] is False
    assert h.candidate("alice")["is_active"] is False
    assert h.candidate("alice")["unstaking_end_time_stamp"] == unlock


def test_firecand_with_lockup_relocks_stake() -> None:
    h = _h()
    h.nominate("alice")
    h.now_s += 30
    h.apply("FIRECAND", {"cand": "alice", "lockupStake": True}, signer=AUTH, permission="high")
    assert h.candidate("alice")["unstaking_end_time_stamp"] == h.now_s + 50


def test_updatebio_bounds() -> None:
    h = _h()
    h.apply("UPDATEBIO", {"cand": "alice", "bio": "x" * 256}, signer="alice")
    assert h.state["bios"]["alice"]["bio"] == "x" * 256

    with pytest.raises(ApplyError) as ei:
        h.apply("UPDATEBIO", {"cand": "alice", "bio": "x" * 257}, signer="alice")
    assert ei.value.reason == "too_long"
    assert h.state["bios"]["alice"]["bio"] == "x" * 256


def test_updatebio_requires_candidate_signature() -> None:
    h = _h()
    with pytest.raises(ApplyError) as ei:
        h.apply("UPDATEBIO", {"cand": "alice", "bio": "hi"}, signer="bob")
    assert ei.value.reason == "unauthorized"
