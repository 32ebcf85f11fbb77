from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class ActionRequest(BaseModel):
    """A signed-off board action as accepted by POST /v1/actions/submit.

    The host has already verified that `signer` authorized the action with
    `permission`.
    """

    model_config = ConfigDict(extra="forbid")

    tx_type: str = Field(min_length=1, max_length=64)
    signer: str = Field(min_length=1, max_length=64)
    permission: str = Field(default="active", max_length=32)
    payload: Dict[str, Any] = Field(default_factory=dict)
    nonce: int = 0


class TransferNotifyRequest(BaseModel):
    """Incoming transfer reported by the token collaborator."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: str = Field(alias="from", min_length=1, max_length=64)
    to: str = Field(min_length=1, max_length=64)
    quantity: str = Field(min_length=1, max_length=64)
    memo: str = Field(default="", max_length=256)
