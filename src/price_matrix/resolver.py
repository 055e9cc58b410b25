from __future__ import annotations

from decimal import Decimal

from .errors import CurrencyMismatchError, NegativePriceError, UnsupportedTierKindError
from .matrix import Matrix, Tier, TierKind
from .price import Price


def find_tier(matrix: Matrix, amount: Decimal) -> int:
    """Index of the tier whose ``[threshold, next threshold)`` interval holds ``amount``."""
    for idx, tier in enumerate(matrix.tiers):
        if not tier.applies_from(amount):
            continue
        upper = matrix.upper_bound(idx)
        if upper is None or amount < upper:
            return idx
    raise NegativePriceError(amount)


def tier_charge(tier: Tier, amount: Decimal) -> Decimal:
    if tier.kind == TierKind.FIXED_AMOUNT:
        return tier.value
    if tier.kind != TierKind.PERCENTAGE:
        raise UnsupportedTierKindError(tier.kind)

    cost = amount * tier.value
    if tier.min_amount is not None and cost < tier.min_amount:
        cost = tier.min_amount
    elif tier.max_amount is not None and cost > tier.max_amount:
        cost = tier.max_amount
    return cost


def resolve(matrix: Matrix, price: Price, *, check_currency: bool = True) -> Price:
    """Shipping cost for an order subtotal of ``price``.

    The result is in the subtotal's currency. A matrix without a currency
    code is never checked against the subtotal.
    """
    if check_currency and matrix.currency_code is not None and matrix.currency_code != price.currency_code:
        raise CurrencyMismatchError(matrix.currency_code, price.currency_code)

    tier = matrix.tiers[find_tier(matrix, price.amount)]
    return Price(tier_charge(tier, price.amount), price.currency_code)
