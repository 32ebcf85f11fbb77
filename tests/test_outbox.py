# tests/test_outbox.py
from __future__ import annotations

import pytest

from auditboard.runtime.outbox import (
    KIND_SET_AUTH,
    KIND_TOKEN_SEND,
    enqueue_outbound,
    find_outbound,
    mark_delivered,
    pending_outbound,
    prune_delivered_outbox,
)


def test_identical_commands_get_distinct_ids() -> None:
    st: dict = {}
    body = {"to": "alice", "quantity": "1.0000 TOK", "memo": "auditor pay"}
    a = enqueue_outbound(st, kind=KIND_TOKEN_SEND, body=body)
    b = enqueue_outbound(st, kind=KIND_TOKEN_SEND, body=body)
    assert a != b
    assert [it.outbox_id for it in pending_outbound(st)] == [a, b]


def test_delivery_marking_and_prune() -> None:
    st: dict = {}
    a = enqueue_outbound(st, kind=KIND_SET_AUTH, body={"account": "x", "accounts": ["a"], "threshold": 1})
    b = enqueue_outbound(st, kind=KIND_TOKEN_SEND, body={"to": "a", "quantity": "1 TOK"})

    assert mark_delivered(st, a) is True
    assert mark_delivered(st, a) is False
    assert [it.outbox_id for it in pending_outbound(st)] == [b]
    assert find_outbound(st, a).delivered is True

    assert prune_delivered_outbox(st) == 1
    assert find_outbound(st, a) is None


def test_unknown_kind_rejected() -> None:
    with pytest.raises(ValueError):
        enqueue_outbound({}, kind="mint", body={})
