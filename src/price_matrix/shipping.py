from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from .errors import MatrixNotConfiguredError
from .ingest import import_matrix_file
from .matrix import Matrix
from .parser import ParseResult, RowError, parse_rows
from .price import Price
from .resolver import resolve

logger = logging.getLogger(__name__)

MATRIX_TABLE_HEADER = ["Threshold", "Type", "Value", "Minimum", "Maximum"]


@dataclass(frozen=True)
class ShippingService:
    id: str
    label: str


@dataclass(frozen=True)
class ShippingRate:
    rate_id: int
    service: ShippingService
    amount: Price


@dataclass(frozen=True)
class OrderItem:
    category: Optional[str]
    total: Price


@dataclass
class Order:
    items: list[OrderItem]
    currency_code: str

    def subtotal(self, excluded_categories: Iterable[str] = ()) -> Price:
        excluded = {c.strip().lower() for c in excluded_categories}
        total = Price(0, self.currency_code)
        for item in self.items:
            if item.category and item.category.strip().lower() in excluded:
                continue
            total = total + item.total
        return total


def default_configuration() -> dict[str, Any]:
    return {
        "price_matrix": None,
        "rate_label": None,
        "services": ["default"],
        "excluded_categories": [],
    }


class PriceMatrixShippingMethod:
    """Shipping method that charges by looking the order subtotal up in a price matrix."""

    def __init__(self, configuration: Optional[dict[str, Any]] = None, check_currency: bool = True) -> None:
        self.configuration = {**default_configuration(), **(configuration or {})}
        self.check_currency = check_currency
        self.services = {"default": ShippingService("default", self.configuration["rate_label"] or "")}

    @property
    def matrix(self) -> Optional[Matrix]:
        return self.configuration["price_matrix"]

    def _apply(self, result: ParseResult) -> list[RowError]:
        if not result.ok:
            logger.warning("price matrix upload rejected with %d errors; keeping previous matrix", len(result.errors))
            return result.errors
        self.configuration["price_matrix"] = result.matrix
        logger.info("price matrix replaced: %d tiers", len(result.matrix.tiers))
        return []

    def submit_matrix(self, rows: Sequence[Sequence[Any]], currency_code: Optional[str]) -> list[RowError]:
        """Replace the stored matrix with ``rows``; returns the errors when rejected."""
        return self._apply(parse_rows(rows, currency_code))

    def submit_matrix_file(
        self,
        path: str | Path,
        currency_code: Optional[str],
        delete_source: bool = True,
    ) -> list[RowError]:
        return self._apply(import_matrix_file(path, currency_code, delete_source=delete_source))

    def current_values(self) -> list[list[str]]:
        if self.matrix is None:
            return []
        table = []
        for tier in self.matrix.tiers:
            row = tier.to_dict()
            table.append([row["threshold"], row["type"], row["value"], row.get("min", ""), row.get("max", "")])
        return table

    def calculate_rates(self, order: Order) -> list[ShippingRate]:
        if self.matrix is None:
            raise MatrixNotConfiguredError("no price matrix has been uploaded for this shipping method")

        subtotal = order.subtotal(self.configuration["excluded_categories"])
        amount = resolve(self.matrix, subtotal, check_currency=self.check_currency)
        # Rate ids carry no meaning here; there is one rate per shipment.
        return [ShippingRate(0, self.services["default"], amount)]
