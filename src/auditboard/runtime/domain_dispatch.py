# src/auditboard/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from auditboard.runtime.apply.candidates import apply_candidates
from auditboard.runtime.apply.config import apply_config
from auditboard.runtime.apply.stake import apply_stake
from auditboard.runtime.apply.tenure import apply_tenure
from auditboard.runtime.apply.voting import apply_voting
from auditboard.runtime.context import ApplyContext
from auditboard.runtime.errors import ApplyError
from auditboard.runtime.state_invariants import ensure_state
from auditboard.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[ApplyContext, TxEnvelope], Optional[Json]]


def _get(env: Any, key: str, default: Any = None) -> Any:
    """Read a field from either a TxEnvelope-like object or a dict.

    Tests and the HTTP layer pass raw dict envelopes directly into apply_tx(),
    while the executor passes TxEnvelope objects.
    """

    if isinstance(env, dict):
        return env.get(key, default)
    return getattr(env, key, default)


def _tx_type(env: Any) -> str:
    return str(_get(env, "tx_type", "") or "").strip().upper()


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_config,
    apply_stake,
    apply_candidates,
    apply_voting,
    apply_tenure,
)


def apply_tx(ctx: ApplyContext, env: Any) -> Json:
    """Dispatch an action envelope to the first domain applier that claims it.

    Mutates ctx.state in place. Callers that need all-or-nothing semantics pass
    a working copy and drop it when this raises.
    """

    ensure_state(ctx.state)

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    t = _tx_type(env_norm)
    if not t:
        raise ApplyError("invalid_tx", "missing_tx_type", {"tx_type": t})

    for fn in _APPLIERS:
        try:
            out = fn(ctx, env_norm)
        except ApplyError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            reason = getattr(e, "reason", None)
            details = getattr(e, "details", None)

            if code is not None or reason is not None:
                raise ApplyError(
                    str(code or "domain_error"),
                    str(reason or type(e).__name__),
                    details if details is not None else {"tx_type": t, "domain": fn.__name__},
                ) from e

            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})
