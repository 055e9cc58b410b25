from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import total_ordering
from typing import Any

from .errors import CurrencyMismatchError


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal number: {value!r}") from exc


@total_ordering
@dataclass(frozen=True)
class Price:
    amount: Decimal
    currency_code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))

    def _check_currency(self, other: "Price") -> None:
        if other.currency_code != self.currency_code:
            raise CurrencyMismatchError(self.currency_code, other.currency_code)

    def __add__(self, other: "Price") -> "Price":
        self._check_currency(other)
        return Price(self.amount + other.amount, self.currency_code)

    def __sub__(self, other: "Price") -> "Price":
        self._check_currency(other)
        return Price(self.amount - other.amount, self.currency_code)

    def __mul__(self, factor: Any) -> "Price":
        return Price(self.amount * to_decimal(factor), self.currency_code)

    def __lt__(self, other: "Price") -> bool:
        if not isinstance(other, Price):
            return NotImplemented
        self._check_currency(other)
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency_code}"
