from decimal import Decimal

import pytest

from price_matrix.errors import CurrencyMismatchError, NegativePriceError, UnsupportedTierKindError
from price_matrix.matrix import Matrix, Tier
from price_matrix.parser import parse_rows
from price_matrix.price import Price
from price_matrix.resolver import find_tier, resolve, tier_charge


def _matrix(currency="USD"):
    return parse_rows([["0", "fixed_amount", "5"], ["100", "percentage", "0.1", "10", "50"]], currency).unwrap()


def test_fixed_amount_tier():
    assert resolve(_matrix(), Price("50", "USD")) == Price(Decimal("5"), "USD")


def test_percentage_tier_up_to_max():
    assert resolve(_matrix(), Price("500", "USD")).amount == Decimal("50")
    assert resolve(_matrix(), Price("1000", "USD")).amount == Decimal("50")
    assert resolve(_matrix(), Price("200", "USD")).amount == Decimal("20")


def test_threshold_boundary_belongs_to_upper_tier():
    matrix = _matrix()
    assert find_tier(matrix, Decimal("99.99")) == 0
    assert find_tier(matrix, Decimal("100")) == 1


def test_clamps():
    matrix = parse_rows([["0", "percentage", "0.1", "10", "50"]], "USD").unwrap()
    assert resolve(matrix, Price("0", "USD")).amount == Decimal("10")
    assert resolve(matrix, Price("1000", "USD")).amount == Decimal("50")
    assert resolve(matrix, Price("300", "USD")).amount == Decimal("30")


def test_zero_max_is_a_clamp():
    matrix = parse_rows([["0", "percentage", "0.1", "", "0"]], "USD").unwrap()
    assert resolve(matrix, Price("300", "USD")).amount == Decimal("0")


def test_exact_decimal_arithmetic():
    matrix = parse_rows([["0", "percentage", "0.1"]], "USD").unwrap()
    assert resolve(matrix, Price("0.3", "USD")).amount == Decimal("0.03")


def test_currency_mismatch():
    with pytest.raises(CurrencyMismatchError):
        resolve(_matrix("EUR"), Price("50", "USD"))


def test_currency_check_can_be_disabled():
    assert resolve(_matrix("EUR"), Price("50", "USD"), check_currency=False) == Price("5", "USD")


def test_matrix_without_currency_uses_subtotal_currency():
    result = resolve(_matrix(None), Price("150", "GBP"))
    assert result == Price("15", "GBP")


def test_negative_price():
    with pytest.raises(NegativePriceError):
        resolve(_matrix(), Price("-1", "USD"))


def test_unsupported_tier_kind():
    tier = Tier(threshold=Decimal("0"), kind="weight", value=Decimal("1"))
    with pytest.raises(UnsupportedTierKindError):
        tier_charge(tier, Decimal("10"))


def test_every_amount_matches_exactly_one_tier():
    matrix = parse_rows(
        [["0", "fixed_amount", "3"], ["10", "fixed_amount", "2"], ["10.5", "fixed_amount", "1"], ["99", "fixed_amount", "0"]],
        "USD",
    ).unwrap()
    for amount in ["0", "9.99", "10", "10.49", "10.5", "98.999", "99", "100000"]:
        value = Decimal(amount)
        matches = [
            i
            for i, t in enumerate(matrix.tiers)
            if value >= t.threshold and (matrix.upper_bound(i) is None or value < matrix.upper_bound(i))
        ]
        assert matches == [find_tier(matrix, value)]


def test_resolve_is_repeatable_and_does_not_mutate():
    matrix = _matrix()
    price = Price("1000", "USD")
    first = resolve(matrix, price)
    assert resolve(matrix, price) == first
    assert matrix == _matrix()
    assert price == Price("1000", "USD")


def test_matrix_rejects_broken_invariants():
    with pytest.raises(ValueError):
        Matrix(currency_code="USD", tiers=())
    with pytest.raises(ValueError):
        Matrix(currency_code="USD", tiers=(Tier(Decimal("5"), "fixed_amount", Decimal("1")),))


def test_matrix_normalises_currency_code():
    tiers = (Tier(Decimal("0"), "fixed_amount", Decimal("1")),)
    assert Matrix(currency_code="eur", tiers=tiers).currency_code == "EUR"
    with pytest.raises(ValueError):
        Matrix(currency_code="euro", tiers=tiers)
