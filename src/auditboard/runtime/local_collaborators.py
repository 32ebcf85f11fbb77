# src/auditboard/runtime/local_collaborators.py
from __future__ import annotations

"""In-process collaborators for single-node deployments and tests.

A real deployment points these at the host ledger. The local versions keep
balances and members in memory, seeded from genesis, and record every
delivered request so repeated delivery of the same id is a no-op.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from auditboard.api.structured_logging import log_event
from auditboard.ledger.asset import Asset
from auditboard.runtime.collaborators import AuthRequest, TokenSend
from auditboard.runtime.genesis_config import GenesisConfig

logger = logging.getLogger("auditboard.collaborators")


class LocalTokenLedger:
    def __init__(
        self,
        *,
        balances: Optional[Dict[str, int]] = None,
        max_supply: int = 0,
    ) -> None:
        self._lock = threading.Lock()
        self._balances: Dict[str, int] = {str(k): int(v) for k, v in (balances or {}).items()}
        self._max_supply = int(max_supply)
        self._seen: Dict[str, TokenSend] = {}
        self.sent: List[TokenSend] = []

    def balance_of(self, account: str) -> int:
        with self._lock:
            return int(self._balances.get(str(account), 0))

    def max_supply(self) -> int:
        return int(self._max_supply)

    def credit(self, account: str, amount: int) -> None:
        with self._lock:
            self._balances[str(account)] = int(self._balances.get(str(account), 0)) + int(amount)

    def send(self, req: TokenSend) -> None:
        with self._lock:
            if req.request_id in self._seen:
                return
            amount = Asset.parse(req.quantity).amount
            self._balances[req.to] = int(self._balances.get(req.to, 0)) + amount
            self._seen[req.request_id] = req
            self.sent.append(req)
        log_event(logger, "token_send", request_id=req.request_id, to=req.to, quantity=req.quantity, memo=req.memo)


class LocalMembershipRegistry:
    """Allowlist of accounts that accepted the current terms.

    With `open_membership` every account counts as a member.
    """

    def __init__(self, members: Iterable[str] = (), *, open_membership: bool = False) -> None:
        self._members = {str(m) for m in members}
        self._open = bool(open_membership)

    def add(self, account: str) -> None:
        self._members.add(str(account))

    def is_member(self, account: str) -> bool:
        return self._open or str(account) in self._members


class LoggingAuthorizationSink:
    """Records signer-set requests and logs them; the latest one wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seen: Dict[str, AuthRequest] = {}
        self.requests: List[AuthRequest] = []

    @property
    def current(self) -> Optional[AuthRequest]:
        with self._lock:
            return self.requests[-1] if self.requests else None

    def set_auth(self, req: AuthRequest) -> None:
        with self._lock:
            if req.request_id in self._seen:
                return
            self._seen[req.request_id] = req
            self.requests.append(req)
        log_event(
            logger,
            "set_auth",
            request_id=req.request_id,
            account=req.account,
            permission=req.permission,
            accounts=list(req.accounts),
            threshold=req.threshold,
        )


def collaborators_from_genesis(
    cfg: GenesisConfig,
) -> "tuple[LocalTokenLedger, LocalMembershipRegistry, LoggingAuthorizationSink]":
    token = LocalTokenLedger(balances=cfg.balances, max_supply=cfg.max_supply)
    membership = LocalMembershipRegistry(cfg.members, open_membership=not cfg.members)
    return token, membership, LoggingAuthorizationSink()
