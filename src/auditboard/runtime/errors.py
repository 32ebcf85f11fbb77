from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for board action failures.

    `reason` names the precondition that failed (e.g. "locked_up",
    "quorum_not_met"); `code` groups reasons by category for API mapping.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


# Precondition reasons surfaced by the apply layer.
UNAUTHORIZED = "unauthorized"
ALREADY_ACTIVE = "already_active"
NOT_ACTIVE = "not_active"
INSUFFICIENT_STAKE = "insufficient_stake"
STILL_ACTIVE = "still_active"
LOCKED_UP = "locked_up"
TOO_LONG = "too_long"
TOO_MANY_VOTES = "too_many_votes"
DUPLICATE_CANDIDATE = "duplicate_candidate"
INVALID_CANDIDATE = "invalid_candidate"
TOO_SOON = "too_soon"
QUORUM_NOT_MET = "quorum_not_met"
NOT_AUDITOR = "not_auditor"
ASSET_SYMBOL_MISMATCH = "asset_symbol_mismatch"
NOT_PREVIOUSLY_CANDIDATE = "not_previously_candidate"
