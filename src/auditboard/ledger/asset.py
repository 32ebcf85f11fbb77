# src/auditboard/ledger/asset.py
from __future__ import annotations

"""Fixed-precision token quantities.

An asset is an integer amount of smallest units plus a symbol (code and
precision), rendered the way the token ledger prints it:

    Asset.parse("100.0000 TOK") == Asset(1_000_000, "TOK", 4)

Ledger state stores assets in their string form so snapshots stay plain JSON.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

Json = Dict[str, Any]

_ASSET_RE = re.compile(r"^\s*(-?)(\d+)(?:\.(\d+))?\s+([A-Z]{1,7})\s*$")


@dataclass
class AssetError(ValueError):
    code: str
    reason: str
    details: Json

    def __str__(self) -> str:
        return f"{self.code}:{self.reason}:{self.details}"


@dataclass(frozen=True, slots=True)
class Asset:
    amount: int
    code: str
    precision: int

    @staticmethod
    def parse(text: str) -> "Asset":
        m = _ASSET_RE.match(str(text or ""))
        if m is None:
            raise AssetError("invalid_payload", "bad_asset", {"asset": text})
        sign, whole, frac, code = m.groups()
        frac = frac or ""
        amount = int(whole + frac) if frac else int(whole)
        if sign:
            amount = -amount
        return Asset(amount=amount, code=code, precision=len(frac))

    @staticmethod
    def from_json(obj: Any) -> "Asset":
        if isinstance(obj, Asset):
            return obj
        if isinstance(obj, str):
            return Asset.parse(obj)
        if isinstance(obj, dict):
            try:
                return Asset(
                    amount=int(obj.get("amount", 0)),
                    code=str(obj.get("code") or obj.get("symbol") or "").strip().upper(),
                    precision=int(obj.get("precision", 0)),
                )
            except (TypeError, ValueError) as e:
                raise AssetError("invalid_payload", "bad_asset", {"asset": obj}) from e
        raise AssetError("invalid_payload", "bad_asset", {"asset": obj})

    @staticmethod
    def zero(code: str, precision: int) -> "Asset":
        return Asset(amount=0, code=code, precision=int(precision))

    @property
    def symbol(self) -> str:
        return f"{self.precision},{self.code}"

    def same_symbol(self, other: "Asset") -> bool:
        return self.code == other.code and self.precision == other.precision

    def _check(self, other: "Asset") -> None:
        if not self.same_symbol(other):
            raise AssetError(
                "conflict",
                "asset_symbol_mismatch",
                {"left": self.symbol, "right": other.symbol},
            )

    def __add__(self, other: "Asset") -> "Asset":
        self._check(other)
        return Asset(self.amount + other.amount, self.code, self.precision)

    def __lt__(self, other: "Asset") -> bool:
        self._check(other)
        return self.amount < other.amount

    def to_string(self) -> str:
        digits = str(abs(int(self.amount)))
        sign = "-" if self.amount < 0 else ""
        if self.precision <= 0:
            return f"{sign}{digits} {self.code}"
        digits = digits.rjust(self.precision + 1, "0")
        return f"{sign}{digits[:-self.precision]}.{digits[-self.precision:]} {self.code}"

    def to_json(self) -> str:
        return self.to_string()

    def __str__(self) -> str:
        return self.to_string()


def median_asset(values: Iterable[Asset]) -> Asset:
    """Median of a non-empty list of same-symbol assets.

    Even-length lists average the two middle entries, rounding down to the
    smallest unit.
    """
    items: List[Asset] = list(values)
    if not items:
        raise AssetError("invalid_payload", "empty_pay_schedule", {})
    first = items[0]
    for a in items[1:]:
        first._check(a)
    amounts = sorted(int(a.amount) for a in items)
    n = len(amounts)
    mid = n // 2
    if n % 2 == 1:
        amt = amounts[mid]
    else:
        amt = (amounts[mid - 1] + amounts[mid]) // 2
    return Asset(amt, first.code, first.precision)
