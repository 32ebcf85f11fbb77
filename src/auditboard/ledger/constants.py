# src/auditboard/ledger/constants.py
from __future__ import annotations

"""Board contract constants.

Defaults for the election parameters live here so genesis loading, the
updateconfig schema and the apply layer agree on one set of numbers.
"""

# Account that owns the contract and custodies candidate stake.
DEFAULT_CONTRACT_ACCOUNT: str = "auditor.bos"

# Account whose permission is rewritten on every board change.
DEFAULT_AUTH_ACCOUNT: str = "auditor.bos"

# Permission rewritten with the auditor signer set.
AUDITORS_PERMISSION: str = "active"

# Permissions that count as the mid authority tier of the auth account.
MID_TIER_PERMISSIONS = ("med", "high")

# Token the stake and pay are denominated in.
DEFAULT_TOKEN_SYMBOL: str = "TOK"
DEFAULT_TOKEN_PRECISION: int = 4

# Election defaults
DEFAULT_MAX_VOTES: int = 3
DEFAULT_NUM_ELECTED: int = 5

# Bio text cap (characters)
MAX_BIO_LENGTH: int = 256

# Signer used for collaborator-originated actions (token notifications).
SYSTEM_SIGNER: str = "SYSTEM"
