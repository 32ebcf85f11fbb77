# tests/test_sqlite_store.py
from __future__ import annotations

import sqlite3

import pytest

from auditboard.runtime.sqlite_db import SqliteDB, SqliteLedgerStore


def _store(tmp_path) -> SqliteLedgerStore:
    return SqliteLedgerStore(db=SqliteDB(path=str(tmp_path / "board.db")))


def test_read_missing_snapshot_raises(tmp_path) -> None:
    s = _store(tmp_path)
    assert s.exists() is False
    with pytest.raises(FileNotFoundError):
        s.read()


def test_write_read_update(tmp_path) -> None:
    s = _store(tmp_path)
    s.write({"action_seq": 0, "candidates": {}})
    assert s.exists()

    s.update(lambda st: st.__setitem__("action_seq", 3))
    assert s.read()["action_seq"] == 3

    with s.db.connection() as con:
        row = con.execute("SELECT action_seq FROM ledger_state WHERE id=1;").fetchone()
    assert int(row["action_seq"]) == 3


def test_commit_action_logs_rejections_without_touching_state(tmp_path) -> None:
    s = _store(tmp_path)
    s.write({"action_seq": 1, "x": "old"})

    s.commit_action({"action_seq": 2, "x": "new"}, ts_s=10, tx_type="VOTEAUDITOR", signer="v", ok=False, reason="too_many_votes")
    assert s.read()["x"] == "old"

    seq = s.commit_action({"action_seq": 2, "x": "new"}, ts_s=11, tx_type="VOTEAUDITOR", signer="v", ok=True, meta={"a": 1})
    assert s.read()["x"] == "new"

    log = s.action_log(limit=10)
    assert [r["seq"] for r in log] == [seq, seq - 1]
    assert log[0]["ok"] is True and log[0]["meta"] == {"a": 1}
    assert log[1]["ok"] is False and log[1]["reason"] == "too_many_votes"


def test_delivery_receipts_are_unique(tmp_path) -> None:
    s = _store(tmp_path)
    assert s.record_delivery(outbox_id="abc", kind="token_send", body={"to": "a"}) is True
    assert s.record_delivery(outbox_id="abc", kind="token_send", body={"to": "a"}) is False
    assert s.is_delivered("abc")
    assert not s.is_delivered("def")


def test_failed_write_tx_rolls_back(tmp_path) -> None:
    s = _store(tmp_path)
    s.write({"action_seq": 0, "v": 1})

    def _boom(st):
        st["v"] = 2
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        s.update(_boom)
    assert s.read()["v"] == 1


def test_schema_version_mismatch_refuses_start(tmp_path) -> None:
    path = str(tmp_path / "board.db")
    SqliteLedgerStore(db=SqliteDB(path=path))
    con = sqlite3.connect(path)
    con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")
    con.commit()
    con.close()

    with pytest.raises(RuntimeError):
        SqliteLedgerStore(db=SqliteDB(path=path))


def test_sqlite_operational_pragmas_are_applied(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("AUDITBOARD_MODE", "prod")
    monkeypatch.delenv("AUDITBOARD_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("AUDITBOARD_SQLITE_BUSY_TIMEOUT_MS", "1234")
    monkeypatch.setenv("AUDITBOARD_SQLITE_WAL_AUTOCHECKPOINT", "777")

    db = SqliteDB(path=str(tmp_path / "board.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(con.execute("PRAGMA journal_mode;").fetchone()[0]).lower() == "wal"
        # FULL is the prod default.
        assert int(con.execute("PRAGMA synchronous;").fetchone()[0]) == 2
        assert int(con.execute("PRAGMA busy_timeout;").fetchone()[0]) == 1234
        assert int(con.execute("PRAGMA wal_autocheckpoint;").fetchone()[0]) == 777
