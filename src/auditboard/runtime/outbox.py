# src/auditboard/runtime/outbox.py
from __future__ import annotations

"""Outbound collaborator commands.

Handlers never call the token ledger or the authorization system directly.
They append a command to state["outbox"] inside the same working copy as the
rest of the action, so the command exists if and only if the action commits.

Command ids are content hashes over (kind, body, seq). `seq` is a per-state
counter, so two identical sends in different actions stay distinct while a
replay of the same committed item keeps its id. Collaborators receive the id
and must treat it as an idempotency key.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

Json = Dict[str, Any]

KIND_TOKEN_SEND = "token_send"
KIND_SET_AUTH = "set_auth"

_KINDS = {KIND_TOKEN_SEND, KIND_SET_AUTH}


def _as_str(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


@dataclass(frozen=True)
class OutboxItem:
    outbox_id: str
    kind: str
    body: Json
    seq: int
    delivered: bool = False

    def to_ledger_obj(self) -> Json:
        return {
            "outbox_id": self.outbox_id,
            "kind": self.kind,
            "body": self.body,
            "seq": self.seq,
            "delivered": bool(self.delivered),
        }

    @staticmethod
    def from_ledger_obj(obj: Any) -> "OutboxItem":
        if not isinstance(obj, dict):
            raise ValueError("bad_outbox_item")
        return OutboxItem(
            outbox_id=_as_str(obj.get("outbox_id")).strip(),
            kind=_as_str(obj.get("kind")).strip(),
            body=obj.get("body") if isinstance(obj.get("body"), dict) else {},
            seq=_as_int(obj.get("seq"), 0),
            delivered=bool(obj.get("delivered", False)),
        )


def _outbox_root(state: Json) -> List[Json]:
    root = state.get("outbox")
    if not isinstance(root, list):
        root = []
        state["outbox"] = root
    return root


def enqueue_outbound(state: Json, *, kind: str, body: Json) -> str:
    k = _as_str(kind).strip()
    if k not in _KINDS:
        raise ValueError(f"unknown outbox kind: {kind!r}")

    seq = _as_int(state.get("outbox_seq"), 0) + 1
    state["outbox_seq"] = seq

    base = {"kind": k, "body": dict(body or {}), "seq": seq}
    raw = json.dumps(base, sort_keys=True, separators=(",", ":")).encode("utf-8")
    oid = hashlib.sha256(raw).hexdigest()

    item = OutboxItem(outbox_id=oid, kind=k, body=base["body"], seq=seq)
    _outbox_root(state).append(item.to_ledger_obj())
    return oid


def pending_outbound(state: Json) -> List[OutboxItem]:
    out: List[OutboxItem] = []
    for obj in _outbox_root(state):
        try:
            item = OutboxItem.from_ledger_obj(obj)
        except ValueError:
            continue
        if not item.delivered and item.outbox_id:
            out.append(item)
    out.sort(key=lambda it: it.seq)
    return out


def find_outbound(state: Json, outbox_id: str) -> Optional[OutboxItem]:
    for obj in _outbox_root(state):
        if isinstance(obj, dict) and _as_str(obj.get("outbox_id")) == outbox_id:
            return OutboxItem.from_ledger_obj(obj)
    return None


def mark_delivered(state: Json, outbox_id: str) -> bool:
    for obj in _outbox_root(state):
        if isinstance(obj, dict) and _as_str(obj.get("outbox_id")) == outbox_id:
            if bool(obj.get("delivered", False)):
                return False
            obj["delivered"] = True
            return True
    return False


def prune_delivered_outbox(state: Json) -> int:
    root = _outbox_root(state)
    keep = [o for o in root if isinstance(o, dict) and not bool(o.get("delivered", False))]
    removed = len(root) - len(keep)
    state["outbox"] = keep
    return removed
