from __future__ import annotations

from fastapi.testclient import TestClient

from auditboard.api.app import create_app


def test_request_size_limit_returns_413(monkeypatch):
    monkeypatch.setenv("AUDITBOARD_MAX_REQUEST_BYTES", "128")
    monkeypatch.delenv("AUDITBOARD_SIZE_LIMIT_DISABLE", raising=False)

    app = create_app(boot_runtime=False)
    c = TestClient(app)

    payload = {"tx_type": "UPDATEBIO", "signer": "alice", "payload": {"cand": "alice", "bio": "x" * 500}}
    r = c.post("/v1/actions/submit", json=payload)
    assert r.status_code == 413

    j = r.json()
    assert j.get("ok") is False
    assert j["error"].get("code") == "request_too_large"


def test_health_is_exempt_from_size_limit(monkeypatch):
    monkeypatch.setenv("AUDITBOARD_MAX_REQUEST_BYTES", "1")

    c = TestClient(create_app(boot_runtime=False))
    assert c.get("/v1/health").status_code == 200


def test_size_limit_can_be_disabled(monkeypatch):
    monkeypatch.setenv("AUDITBOARD_MAX_REQUEST_BYTES", "16")
    monkeypatch.setenv("AUDITBOARD_SIZE_LIMIT_DISABLE", "1")

    c = TestClient(create_app(boot_runtime=False))
    r = c.post("/v1/token/notify", json={"from": "a", "to": "b", "quantity": "1.0000 TOK"})
    # Passes the middleware and fails later for lack of an executor.
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "not_ready"
