from __future__ import annotations

import copy
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from auditboard.api.structured_logging import log_event
from auditboard.ledger.state import BoardView
from auditboard.runtime.collaborators import AuthorizationSink, AuthRequest, MembershipRegistry, TokenLedger, TokenSend
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.domain_dispatch import apply_tx
from auditboard.runtime.errors import ApplyError
from auditboard.runtime.genesis_config import GenesisConfig, apply_genesis_to_state
from auditboard.runtime.metrics import inc_counter, set_gauge
from auditboard.runtime.outbox import KIND_SET_AUTH, KIND_TOKEN_SEND, OutboxItem, mark_delivered, pending_outbound, prune_delivered_outbox
from auditboard.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from auditboard.runtime.state_invariants import check_board_invariants, ensure_state
from auditboard.runtime.tx_admission import admit_action
from auditboard.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]

logger = logging.getLogger("auditboard.executor")


def _ensure_parent(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def _safe_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _env_bool(name: str) -> bool:
    return (os.environ.get(name) or "").strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class DeliveryReport:
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class ExecutorError(RuntimeError):
    pass


class BoardExecutor:
    """Single-writer board executor with SQLite persistence.

    Every action is applied to a deep copy of the committed state. The copy
    replaces the committed state only after it has been persisted together
    with its action_log row, so a failed action leaves no trace in the board
    roots. Outbound commands produced by the action are delivered after that
    commit.
    """

    def __init__(
        self,
        *,
        db_path: str,
        node_id: str,
        chain_id: str,
        token: TokenLedger,
        membership: MembershipRegistry,
        auth: AuthorizationSink,
        contract_account: str = "",
        genesis: Optional[GenesisConfig] = None,
        clock: Optional[Callable[[], int]] = None,
        check_invariants: Optional[bool] = None,
    ) -> None:
        self.node_id = str(node_id)
        self.chain_id = str(chain_id)
        self.token = token
        self.membership = membership
        self.auth = auth
        self._clock = clock or (lambda: int(time.time()))
        self._check_invariants = _env_bool("AUDITBOARD_CHECK_INVARIANTS") if check_invariants is None else bool(check_invariants)
        self._lock = threading.RLock()

        self.db_path = str(db_path)
        _ensure_parent(self.db_path)
        self._db = SqliteDB(path=self.db_path)
        self._store = SqliteLedgerStore(db=self._db)

        if self._store.exists():
            self.state = self._store.read()
        else:
            self.state = self._initial_state()

        st_chain_id = str(self.state.get("chain_id") or "").strip()
        if st_chain_id and st_chain_id != self.chain_id:
            raise ExecutorError(f"chain_id mismatch: db={st_chain_id!r} executor={self.chain_id!r}. Refuse to start.")
        self.state["chain_id"] = self.chain_id

        ensure_state(self.state)
        if contract_account and not self.state["params"].get("contract_account"):
            self.state["params"]["contract_account"] = str(contract_account)
        if genesis is not None:
            changed, _ = apply_genesis_to_state(self.state, genesis)
            if changed:
                log_event(logger, "genesis_applied", chain_id=self.chain_id)
        self._store.write(self.state)
        self._refresh_gauges()

        # Commands committed before a restart are still owed to collaborators.
        if pending_outbound(self.state):
            self.deliver_outbox()

    def _initial_state(self) -> Json:
        return {
            "chain_id": self.chain_id,
            "action_seq": 0,
            "created_s": int(self._clock()),
        }

    # ----------------------------
    # Public accessors
    # ----------------------------

    @property
    def store(self) -> SqliteLedgerStore:
        return self._store

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    def view(self) -> BoardView:
        with self._lock:
            return BoardView.from_ledger(self.state)

    # ----------------------------
    # Action submission
    # ----------------------------

    def submit_action(self, env: Any, *, allow_system: bool = False) -> Json:
        """Admit, apply and commit one action.

        Returns {"ok": True, "seq", "result", "delivered"} on success or
        {"ok": False, "error", "reason", "details"} on rejection.
        """
        ok, rej = admit_action(env, allow_system=allow_system)
        if not ok:
            inc_counter("actions_rejected_total")
            raw_type = env.get("tx_type") if isinstance(env, dict) else getattr(env, "tx_type", "")
            tx_type = str(raw_type or "").strip().upper()
            log_event(logger, "action_rejected", tx_type=tx_type, error=rej.code, reason=rej.reason, stage="admission")
            return rej.to_json()

        e = TxEnvelope.from_json(env)
        t = e.tx_type.strip().upper()

        with self._lock:
            now_s = int(self._clock())
            work = copy.deepcopy(self.state)
            ctx = ApplyContext(state=work, now_s=now_s, token=self.token, membership=self.membership)
            try:
                result = apply_tx(ctx, e)
                if self._check_invariants:
                    problems = check_board_invariants(work)
                    if problems:
                        raise ApplyError("invariant_violation", "board_invariants_broken", {"problems": problems})
            except ApplyError as err:
                self._store.commit_action(
                    self.state,
                    ts_s=now_s,
                    tx_type=t,
                    signer=e.signer,
                    ok=False,
                    reason=err.reason,
                    meta={"code": err.code, "details": err.details},
                )
                inc_counter("actions_rejected_total")
                log_event(
                    logger,
                    "action_rejected",
                    tx_type=t,
                    signer=e.signer,
                    error=err.code,
                    reason=err.reason,
                    details=err.details,
                )
                return {"ok": False, "error": err.code, "reason": err.reason, "details": err.details}

            work["action_seq"] = _safe_int(work.get("action_seq"), 0) + 1
            seq = self._store.commit_action(work, ts_s=now_s, tx_type=t, signer=e.signer, ok=True, meta=result)
            self.state = work

            inc_counter("actions_applied_total")
            log_event(logger, "action_applied", tx_type=t, signer=e.signer, seq=seq, action_seq=work["action_seq"])
            if t == "NEWTENURE":
                log_event(
                    logger,
                    "newtenure",
                    auditors=result.get("auditors"),
                    departed=result.get("departed"),
                    quorum=result.get("quorum"),
                    advisory_candidates=result.get("advisory_candidates"),
                    message=result.get("message"),
                )

            report = self.deliver_outbox()
            self._refresh_gauges()

        return {"ok": True, "seq": seq, "result": result, "delivered": report.delivered}

    # ----------------------------
    # Outbox delivery
    # ----------------------------

    def _deliver_one(self, item: OutboxItem) -> None:
        if item.kind == KIND_TOKEN_SEND:
            self.token.send(TokenSend.from_json(item.outbox_id, item.body))
        elif item.kind == KIND_SET_AUTH:
            self.auth.set_auth(AuthRequest.from_json(item.outbox_id, item.body))
        else:
            raise ExecutorError(f"unknown outbox kind: {item.kind!r}")

    def deliver_outbox(self) -> DeliveryReport:
        """Hand committed outbound commands to collaborators, oldest first.

        A receipt row is written per delivered id; an id that already has a
        receipt is not sent again. A failing item stays pending and stops the
        pass so later items keep their order.
        """
        report = DeliveryReport()
        with self._lock:
            items = pending_outbound(self.state)
            if not items:
                return report

            for item in items:
                if not self._store.is_delivered(item.outbox_id):
                    try:
                        self._deliver_one(item)
                    except Exception as exc:
                        inc_counter("outbox_delivery_failed_total")
                        log_event(
                            logger,
                            "outbox_delivery_failed",
                            level=logging.WARNING,
                            outbox_id=item.outbox_id,
                            kind=item.kind,
                            error=f"{type(exc).__name__}: {exc}",
                        )
                        report.failed.append(item.outbox_id)
                        break
                    self._store.record_delivery(outbox_id=item.outbox_id, kind=item.kind, body=item.body)
                    inc_counter("outbox_delivered_total")
                    log_event(logger, "outbox_delivered", outbox_id=item.outbox_id, kind=item.kind, body=item.body)
                mark_delivered(self.state, item.outbox_id)
                report.delivered.append(item.outbox_id)

            prune_delivered_outbox(self.state)
            self._store.write(self.state)
        return report

    def _refresh_gauges(self) -> None:
        st = self.state
        auditors = st.get("auditors") if isinstance(st.get("auditors"), dict) else {}
        candidates = st.get("candidates") if isinstance(st.get("candidates"), dict) else {}
        set_gauge("auditors", len(auditors))
        set_gauge("active_candidates", sum(1 for c in candidates.values() if isinstance(c, dict) and c.get("is_active")))
        set_gauge("pending_outbox", len(pending_outbound(st)))
        set_gauge("action_seq", _safe_int(st.get("action_seq"), 0))

    def action_log(self, *, limit: int = 100) -> List[Json]:
        return self._store.action_log(limit=limit)
