from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .price import to_decimal

ZERO = Decimal("0")
ONE = Decimal("1")
CURRENCY_CODE_RE = re.compile(r"[A-Z]{3}")


def normalize_currency_code(code: str) -> str:
    """Trim and upper-case an ISO 4217 code; anything but three letters is a ValueError."""
    normalized = str(code).strip().upper()
    if not CURRENCY_CODE_RE.fullmatch(normalized):
        raise ValueError(f"Not a three-letter currency code: {code!r}")
    return normalized


class TierKind(str, Enum):
    FIXED_AMOUNT = "fixed_amount"
    PERCENTAGE = "percentage"


def _format(value: Decimal) -> str:
    return format(value, "f")


@dataclass(frozen=True)
class Tier:
    threshold: Decimal
    kind: TierKind
    value: Decimal
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    def applies_from(self, amount: Decimal) -> bool:
        return amount >= self.threshold

    def to_row(self) -> list[str]:
        row = [_format(self.threshold), self.kind.value, _format(self.value)]
        if self.kind is TierKind.PERCENTAGE:
            if self.min_amount is not None or self.max_amount is not None:
                row.append(_format(self.min_amount) if self.min_amount is not None else "")
            if self.max_amount is not None:
                row.append(_format(self.max_amount))
        return row

    def to_dict(self) -> dict[str, str]:
        data = {
            "threshold": _format(self.threshold),
            "type": self.kind.value,
            "value": _format(self.value),
        }
        if self.min_amount is not None:
            data["min"] = _format(self.min_amount)
        if self.max_amount is not None:
            data["max"] = _format(self.max_amount)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tier":
        return cls(
            threshold=to_decimal(data["threshold"]),
            kind=TierKind(data["type"]),
            value=to_decimal(data["value"]),
            min_amount=to_decimal(data["min"]) if data.get("min") not in (None, "") else None,
            max_amount=to_decimal(data["max"]) if data.get("max") not in (None, "") else None,
        )


@dataclass(frozen=True)
class Matrix:
    """An ordered set of pricing tiers denominated in one currency.

    Tier order is threshold order: the first tier starts at zero and every
    following tier starts strictly above the previous one, so the tiers
    partition ``[0, inf)`` into right-open intervals.
    """

    currency_code: Optional[str]
    tiers: tuple[Tier, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tiers", tuple(self.tiers))
        if self.currency_code is not None:
            object.__setattr__(self, "currency_code", normalize_currency_code(self.currency_code))
        self.validate_tiers()

    def validate_tiers(self) -> None:
        if not self.tiers:
            raise ValueError("A price matrix needs at least one tier")
        if self.tiers[0].threshold != ZERO:
            raise ValueError("The first price matrix threshold must be 0")
        previous: Optional[Decimal] = None
        for idx, tier in enumerate(self.tiers):
            if previous is not None and tier.threshold <= previous:
                raise ValueError(f"Tier {idx + 1} threshold {tier.threshold} is not greater than {previous}")
            if tier.kind == TierKind.PERCENTAGE and not (ZERO <= tier.value <= ONE):
                raise ValueError(f"Tier {idx + 1} percentage {tier.value} is outside [0, 1]")
            previous = tier.threshold

    def upper_bound(self, index: int) -> Optional[Decimal]:
        """Exclusive upper bound of the tier at ``index``; ``None`` for the last tier."""
        if index + 1 < len(self.tiers):
            return self.tiers[index + 1].threshold
        return None

    def to_rows(self) -> list[list[str]]:
        return [t.to_row() for t in self.tiers]

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency_code": self.currency_code,
            "values": [t.to_dict() for t in self.tiers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Matrix":
        return cls(
            currency_code=data.get("currency_code"),
            tiers=tuple(Tier.from_dict(t) for t in data["values"]),
        )
