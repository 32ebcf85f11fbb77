# src/auditboard/runtime/sqlite_db.py
from __future__ import annotations

import os
import json
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding for persisted structures.

    No default= coercion: a non-JSON value leaking into state is a bug and must
    fail here instead of being stored as a string.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


def _env_flag(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


class SqliteDB:
    """SQLite manager for the board node.

    One durable file holds the state snapshot, delivery receipts and the action
    log. Connections are never shared between threads; every call opens its own.

    SQLite admits a single writer. BEGIN IMMEDIATE can fail transiently with
    "database is locked" when another process writes, so write_tx() retries
    with bounded backoff before giving up.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """PRAGMA synchronous value.

        prod defaults to FULL, anything else to NORMAL. AUDITBOARD_SQLITE_SYNCHRONOUS
        overrides with one of OFF, NORMAL, FULL or EXTRA.
        """
        mode = (os.environ.get("AUDITBOARD_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("AUDITBOARD_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("AUDITBOARD_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # BEGIN/COMMIT are issued explicitly
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        # Refuse rollback-journal mode unless explicitly allowed.
        allow_non_wal = _env_flag("AUDITBOARD_SQLITE_ALLOW_NON_WAL")
        try:
            row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
            mode = str(row[0]).strip().lower() if row is not None else ""
            if mode and mode != "wal" and not allow_non_wal:
                raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")
        except Exception:
            if not allow_non_wal:
                con.close()
                raise

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")

        wal_ckpt = max(1, _env_int("AUDITBOARD_SQLITE_WAL_AUTOCHECKPOINT", 1000))
        con.execute(f"PRAGMA wal_autocheckpoint={wal_ckpt};")

        busy_ms = max(0, _env_int("AUDITBOARD_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  action_seq INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS outbox (
                  outbox_id TEXT PRIMARY KEY,
                  kind TEXT NOT NULL,
                  body_json TEXT NOT NULL,
                  delivered_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS action_log (
                  seq INTEGER PRIMARY KEY AUTOINCREMENT,
                  ts_s INTEGER NOT NULL,
                  tx_type TEXT NOT NULL,
                  signer TEXT NOT NULL,
                  ok INTEGER NOT NULL,
                  reason TEXT NOT NULL,
                  meta_json TEXT NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_action_log_signer ON action_log(signer);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except Exception:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refusing to start."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @staticmethod
    def _backoff(attempt: int, base_s: float, max_s: float) -> None:
        sleep_s = min(max_s, base_s * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction, retrying lock contention until a deadline.

        BEGIN IMMEDIATE and COMMIT are both retried with jittered exponential
        backoff. Past AUDITBOARD_SQLITE_WRITE_DEADLINE_MS the OperationalError
        propagates and the transaction is rolled back.
        """
        deadline_ts = _now_ms() + max(250, _env_int("AUDITBOARD_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_s = max(0.001, _env_int("AUDITBOARD_SQLITE_WRITE_BACKOFF_BASE_MS", 5) / 1000.0)
        max_s = max(base_s, _env_int("AUDITBOARD_SQLITE_WRITE_BACKOFF_MAX_MS", 250) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    self._backoff(attempt, base_s, max_s)
                    attempt += 1

            try:
                yield con

                attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        self._backoff(attempt, base_s, max_s)
                        attempt += 1
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except sqlite3.Error:
                    pass
                raise


def _load_state_row(con: sqlite3.Connection) -> Json:
    row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
    if row is None:
        raise FileNotFoundError("sqlite ledger_state is missing")
    st = json.loads(str(row["state_json"]))
    if not isinstance(st, dict):
        raise ValueError("ledger_state is not a JSON object")
    return st


def _store_state_row(con: sqlite3.Connection, st: Json) -> None:
    con.execute(
        """
        INSERT INTO ledger_state(id, action_seq, state_json, updated_ts_ms)
        VALUES(1, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          action_seq=excluded.action_seq,
          state_json=excluded.state_json,
          updated_ts_ms=excluded.updated_ts_ms;
        """,
        (int(st.get("action_seq", 0) or 0), _canon_json(st), _now_ms()),
    )


class SqliteLedgerStore:
    """Board state snapshot persisted in SQLite.

      - read(): latest snapshot
      - write(st): overwrite the snapshot atomically
      - update(mut): read-modify-write inside one write transaction
      - commit_action(st, ...): snapshot plus action_log row in one transaction

    The authoritative snapshot is a single row.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            return _load_state_row(con)

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._db.write_tx() as con:
            _store_state_row(con, st)

    def update(self, mut: Callable[[Json], Any]) -> None:
        with self._db.write_tx() as con:
            st = _load_state_row(con)
            mut(st)
            _store_state_row(con, st)

    def commit_action(
        self,
        st: Json,
        *,
        ts_s: int,
        tx_type: str,
        signer: str,
        ok: bool,
        reason: str = "",
        meta: Optional[Json] = None,
    ) -> int:
        """Persist the new snapshot (when ok) and log the action atomically.

        Rejected actions are logged without touching the snapshot. Returns the
        action_log sequence number.
        """
        with self._db.write_tx() as con:
            if ok:
                _store_state_row(con, st)
            cur = con.execute(
                "INSERT INTO action_log(ts_s, tx_type, signer, ok, reason, meta_json) VALUES(?, ?, ?, ?, ?, ?);",
                (int(ts_s), str(tx_type), str(signer), 1 if ok else 0, str(reason or ""), _canon_json(meta or {})),
            )
            return int(cur.lastrowid or 0)

    def record_delivery(self, *, outbox_id: str, kind: str, body: Json) -> bool:
        """Write a delivery receipt. Returns False if one already existed."""
        with self._db.write_tx() as con:
            cur = con.execute(
                "INSERT OR IGNORE INTO outbox(outbox_id, kind, body_json, delivered_ts_ms) VALUES(?, ?, ?, ?);",
                (str(outbox_id), str(kind), _canon_json(body), _now_ms()),
            )
            return int(cur.rowcount or 0) > 0

    def is_delivered(self, outbox_id: str) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM outbox WHERE outbox_id=?;", (str(outbox_id),)).fetchone() is not None

    def action_log(self, *, limit: int = 100) -> List[Json]:
        lim = max(1, min(int(limit), 1000))
        with self._db.connection() as con:
            rows = con.execute(
                "SELECT seq, ts_s, tx_type, signer, ok, reason, meta_json FROM action_log ORDER BY seq DESC LIMIT ?;",
                (lim,),
            ).fetchall()
        out: List[Json] = []
        for r in rows:
            out.append(
                {
                    "seq": int(r["seq"]),
                    "ts_s": int(r["ts_s"]),
                    "tx_type": str(r["tx_type"]),
                    "signer": str(r["signer"]),
                    "ok": bool(r["ok"]),
                    "reason": str(r["reason"]),
                    "meta": json.loads(str(r["meta_json"])),
                }
            )
        return out
