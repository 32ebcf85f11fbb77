from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from auditboard.api.errors import ApiError
from auditboard.ledger.state import BoardView

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _view(request: Request) -> BoardView:
    return _executor(request).view()


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        return int(s) if s else int(default)
    except ValueError:
        return int(default)


def _submit(request: Request, env: Json, *, allow_system: bool = False) -> Json:
    """Run an envelope through the executor and raise ApiError on rejection."""
    meta = _executor(request).submit_action(env, allow_system=allow_system)
    if not isinstance(meta, dict) or not meta.get("ok"):
        m = meta if isinstance(meta, dict) else {}
        raise ApiError.from_rejection(
            str(m.get("error") or "submit_failed"),
            str(m.get("reason") or "rejected"),
            m.get("details"),
        )
    return meta
