from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator

from auditboard.runtime.errors import ApplyError

Json = Dict[str, Any]


@dataclass(frozen=True)
class TxReject:
    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def to_json(self) -> Json:
        # Same shape as an executor rejection result.
        return {"ok": False, "error": self.code, "reason": self.reason, "details": self.details}


@dataclass(frozen=True)
class TxVerdict:
    """Outcome of stateless admission; `rejection` is None when admitted."""

    rejection: TxReject | None = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    def __iter__(self) -> Iterator[Any]:
        # ok, rej = admit_action(...)
        yield self.ok
        yield self.rejection

    @staticmethod
    def admit() -> "TxVerdict":
        return TxVerdict()

    @staticmethod
    def reject(code: str, reason: str, details: Json | None = None) -> "TxVerdict":
        return TxVerdict(TxReject(code, reason, dict(details or {})))

    @staticmethod
    def from_error(err: ApplyError) -> "TxVerdict":
        d = err.details if isinstance(err.details, dict) else {"details": err.details}
        return TxVerdict.reject(err.code, err.reason, d)


@dataclass(frozen=True)
class TxEnvelope:
    """One board action as submitted by a caller.

    `signer` is the account whose authority the host ledger already verified;
    `permission` is the permission level it was exercised with ("active",
    "med", ...). `system` marks collaborator-originated actions such as token
    transfer notifications.
    """

    tx_type: str
    signer: str
    payload: Json
    nonce: int = 0
    permission: str = "active"
    system: bool = False

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return TxEnvelope(
            tx_type=str(j.get("tx_type", "")),
            signer=str(j.get("signer", "")),
            payload=dict(j.get("payload", {}) or {}),
            nonce=int(j.get("nonce", 0) or 0),
            permission=str(j.get("permission", "") or "active"),
            system=bool(j.get("system", False)),
        )
