from __future__ import annotations

"""Action payload schemas.

Shape checks (types, required keys, unknown keys) for every board action,
run by the dispatcher before the apply handler sees the payload. Apply-layer
code still enforces semantics; these schemas only keep malformed payloads from
reaching it.
"""

from typing import Annotated, Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from auditboard.ledger.asset import Asset, AssetError
from auditboard.ledger.constants import DEFAULT_MAX_VOTES, DEFAULT_NUM_ELECTED
from auditboard.runtime.errors import ApplyError

Json = Dict[str, Any]


def _parse_asset(v: Any) -> Asset:
    try:
        return Asset.from_json(v)
    except AssetError as e:
        raise ValueError(f"bad asset: {v!r}") from e


def _check_asset(v: Any) -> str:
    a = _parse_asset(v)
    if a.amount < 0:
        raise ValueError(f"asset must not be negative: {v!r}")
    return a.to_json()


def _check_positive_asset(v: Any) -> str:
    a = _parse_asset(v)
    if a.amount <= 0:
        raise ValueError(f"asset must be positive: {v!r}")
    return a.to_json()


def _check_account(v: Any) -> Any:
    if isinstance(v, str):
        s = v.strip()
        if not s:
            raise ValueError("account id must be non-empty")
        return s
    return v


AssetStr = Annotated[str, BeforeValidator(_check_asset)]
PositiveAssetStr = Annotated[str, BeforeValidator(_check_positive_asset)]
AccountId = Annotated[str, BeforeValidator(_check_account)]


# ---------------------------------------------------------------------------
# Base Models
# ---------------------------------------------------------------------------


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class BoardConfigPayload(_StrictModel):
    lockup_asset: AssetStr
    maxvotes: int = Field(default=DEFAULT_MAX_VOTES, ge=1)
    numelected: int = Field(default=DEFAULT_NUM_ELECTED, ge=1)
    authaccount: AccountId
    auth_threshold_auditors: int = Field(ge=1)
    lockup_release_time_delay: int = Field(default=0, ge=0)
    period_length: int = Field(default=7 * 24 * 60 * 60, ge=0)
    initial_vote_quorum_percent: int = Field(default=15, ge=0, le=100)
    vote_quorum_percent: int = Field(default=4, ge=0, le=100)
    pay_schedule: List[AssetStr] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_pay_symbol(self) -> "BoardConfigPayload":
        symbols = {Asset.parse(a).symbol for a in self.pay_schedule}
        if len(symbols) > 1:
            raise ValueError(f"pay_schedule mixes symbols: {sorted(symbols)}")
        return self


class UpdateConfigPayload(_StrictModel):
    config: BoardConfigPayload


class TransferNotifyPayload(_StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: AccountId = Field(alias="from")
    to: AccountId
    quantity: PositiveAssetStr
    memo: str = ""


class CandPayload(_StrictModel):
    cand: AccountId


class FireCandPayload(_StrictModel):
    cand: AccountId
    lockupStake: bool = False


class AuditorPayload(_StrictModel):
    auditor: AccountId


class UpdateBioPayload(_StrictModel):
    cand: AccountId
    bio: str = ""


class VotePayload(_StrictModel):
    voter: AccountId
    newvotes: List[AccountId] = Field(default_factory=list)


class NewTenurePayload(_StrictModel):
    candidates: List[str] = Field(default_factory=list)
    message: str = ""


PAYLOAD_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "UPDATECONFIG": UpdateConfigPayload,
    "TOKEN_TRANSFER_NOTIFY": TransferNotifyPayload,
    "NOMINATECAND": CandPayload,
    "WITHDRAWCAND": CandPayload,
    "FIRECAND": FireCandPayload,
    "RESIGN": AuditorPayload,
    "FIREAUDITOR": AuditorPayload,
    "UPDATEBIO": UpdateBioPayload,
    "VOTEAUDITOR": VotePayload,
    "NEWTENURE": NewTenurePayload,
    "UNSTAKE": CandPayload,
    "CLAIMPAY": AuditorPayload,
}


M = TypeVar("M", bound=BaseModel)


def parse_payload(model: Type[M], tx_type: str, payload: Any) -> M:
    t = str(tx_type or "").strip().upper()
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ApplyError("invalid_payload", "payload_not_object", {"tx_type": t})
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ApplyError(
            "invalid_payload",
            "schema_validation_failed",
            {"tx_type": t, "errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


def validate_payload(tx_type: str, payload: Any) -> BaseModel:
    t = str(tx_type or "").strip().upper()
    model = PAYLOAD_SCHEMAS.get(t)
    if model is None:
        raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})
    return parse_payload(model, t, payload)
