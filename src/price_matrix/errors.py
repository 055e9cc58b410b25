from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .parser import RowError


class MatrixValidationError(ValueError):
    """Raised when a submitted matrix has one or more invalid rows."""

    def __init__(self, errors: list["RowError"]) -> None:
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors[:10])
        super().__init__(f"{len(self.errors)} matrix error(s): {summary}")


class ResolutionError(ValueError):
    pass


class CurrencyMismatchError(ResolutionError):
    def __init__(self, expected: str | None, actual: str | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"The shipping price matrix must be in the same currency as the order subtotal "
            f"(matrix={expected}, subtotal={actual})"
        )


class UnsupportedTierKindError(ResolutionError):
    def __init__(self, kind: object) -> None:
        self.kind = kind
        super().__init__(f"Unsupported price matrix item {kind!r}, 'fixed_amount' or 'percentage' expected")


class NegativePriceError(ResolutionError):
    def __init__(self, amount: object) -> None:
        self.amount = amount
        super().__init__(f"No price matrix tier covers negative amount {amount}")


class IngestError(ValueError):
    pass


class ConfigurationError(ValueError):
    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = list(problems or [])
        super().__init__(message if not self.problems else f"{message}: {'; '.join(self.problems)}")


class MatrixNotConfiguredError(RuntimeError):
    pass
