# src/auditboard/runtime/tx_admission.py
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from auditboard.ledger.constants import SYSTEM_SIGNER
from auditboard.runtime.errors import ApplyError
from auditboard.runtime.tx_admission_types import TxEnvelope, TxVerdict
from auditboard.runtime.tx_schema import PAYLOAD_SCHEMAS, validate_payload

Json = Dict[str, Any]

SYSTEM_TX_TYPES = {"TOKEN_TRANSFER_NOTIFY"}


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return int(default)
    try:
        return int(str(v).strip())
    except Exception:
        return int(default)


def _validate_payload_limits(payload: Any) -> Optional[TxVerdict]:
    """Shape and size caps, checked before any schema work."""
    if not isinstance(payload, dict):
        return TxVerdict.reject("invalid_payload", "payload_must_be_object", {"type": type(payload).__name__})

    max_bytes = _env_int("AUDITBOARD_MAX_PAYLOAD_BYTES", 16 * 1024)
    max_keys = _env_int("AUDITBOARD_MAX_PAYLOAD_KEYS", 64)

    if len(payload) > max_keys:
        return TxVerdict.reject("invalid_payload", "payload_too_many_keys", {"keys": len(payload), "max_keys": max_keys})

    try:
        size = len(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    except (TypeError, ValueError):
        return TxVerdict.reject("invalid_payload", "payload_not_json", {})
    if size > max_bytes:
        return TxVerdict.reject("payload_too_large", "payload_exceeds_size_limit", {"bytes": size, "max_bytes": max_bytes})
    return None


def admit_action(env: Any, *, allow_system: bool = False) -> TxVerdict:
    """Stateless admission: envelope shape, known action, schema, system gating.

    Authority and state-dependent checks happen in the apply layer.
    """
    if not isinstance(env, (dict, TxEnvelope)):
        return TxVerdict.reject("invalid_tx", "envelope_not_object", {})
    try:
        e = TxEnvelope.from_json(env)
    except (TypeError, ValueError) as exc:
        return TxVerdict.reject("invalid_tx", "bad_envelope", {"error": str(exc)})

    t = e.tx_type.strip().upper()
    if not t:
        return TxVerdict.reject("invalid_tx", "missing_tx_type", {})
    if t not in PAYLOAD_SCHEMAS:
        return TxVerdict.reject("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})
    if not e.signer.strip():
        return TxVerdict.reject("invalid_tx", "missing_signer", {"tx_type": t})

    is_system = bool(e.system) or e.signer == SYSTEM_SIGNER
    if is_system and not allow_system:
        return TxVerdict.reject("forbidden", "system_tx_forbidden", {"tx_type": t, "signer": e.signer})
    if t in SYSTEM_TX_TYPES and not is_system:
        return TxVerdict.reject("forbidden", "system_only", {"tx_type": t, "signer": e.signer})

    bad = _validate_payload_limits(e.payload)
    if bad is not None:
        return bad

    try:
        validate_payload(t, e.payload)
    except ApplyError as exc:
        return TxVerdict.from_error(exc)

    return TxVerdict.admit()
