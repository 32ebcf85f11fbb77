from __future__ import annotations

"""Interfaces of the systems the board consumes but does not implement.

- TokenLedger: balances (vote weight), max supply (quorum) and outbound sends
  (unstake / claimpay).
- AuthorizationSink: receives the auditor signer-set requests.
- MembershipRegistry: "has this account agreed to the current terms".

Handlers only *read* through these interfaces. Every write to an external
system is expressed as an outbound command in the state outbox and handed to
the collaborator by the executor after the action commits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol

Json = Dict[str, Any]


@dataclass(frozen=True)
class AuthRequest:
    request_id: str
    account: str
    permission: str
    accounts: List[str] = field(default_factory=list)
    threshold: int = 1

    @staticmethod
    def from_json(request_id: str, body: Json) -> "AuthRequest":
        return AuthRequest(
            request_id=str(request_id),
            account=str(body.get("account") or ""),
            permission=str(body.get("permission") or ""),
            accounts=[str(a) for a in (body.get("accounts") or [])],
            threshold=int(body.get("threshold") or 0),
        )


@dataclass(frozen=True)
class TokenSend:
    request_id: str
    to: str
    quantity: str
    memo: str = ""

    @staticmethod
    def from_json(request_id: str, body: Json) -> "TokenSend":
        return TokenSend(
            request_id=str(request_id),
            to=str(body.get("to") or ""),
            quantity=str(body.get("quantity") or ""),
            memo=str(body.get("memo") or ""),
        )


class TokenLedger(Protocol):
    def balance_of(self, account: str) -> int:
        """Voting weight source: balance in smallest units."""
        ...

    def max_supply(self) -> int:
        ...

    def send(self, req: TokenSend) -> None:
        ...


class AuthorizationSink(Protocol):
    def set_auth(self, req: AuthRequest) -> None:
        ...


class MembershipRegistry(Protocol):
    def is_member(self, account: str) -> bool:
        ...
