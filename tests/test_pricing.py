import math

import pytest

from qrar.models import TaxType
from qrar.services.pricing import PricedLine, compute_order_totals, inclusive_line_tax, round2


def test_no_tax_order():
    result = compute_order_totals([PricedLine(100, 2)], TaxType.NONE)

    assert result.items_total == 200.0
    assert result.tax == 0.0
    assert result.final_total == 200.0


def test_exclusive_tax_is_added_on_top():
    result = compute_order_totals([PricedLine(100, 1)], TaxType.EXCLUSIVE, restaurant_tax_rate=18)

    assert result.tax == 18.0
    assert result.final_total == 118.0


def test_inclusive_tax_is_extracted_not_added():
    result = compute_order_totals([PricedLine(118, 1, tax_rate=18)], TaxType.INCLUSIVE)

    assert result.items_total == 118.0
    assert result.tax == 18.0
    assert result.final_total == 118.0


def test_discount_comes_off_exclusive_total():
    result = compute_order_totals(
        [PricedLine(100, 1)], TaxType.EXCLUSIVE, restaurant_tax_rate=18, discount=20
    )

    assert result.discount == 20
    assert result.final_total == 98.0


def test_inclusive_uses_each_lines_own_rate():
    lines = [PricedLine(118, 1, tax_rate=18), PricedLine(105, 2, tax_rate=5)]

    result = compute_order_totals(lines, TaxType.INCLUSIVE)

    assert result.tax == 28.0
    assert result.final_total == 328.0


def test_exclusive_ignores_line_rates():
    result = compute_order_totals(
        [PricedLine(50, 2, tax_rate=28)], TaxType.EXCLUSIVE, restaurant_tax_rate=5
    )
    assert result.tax == 5.0
    assert result.final_total == 105.0


def test_tax_type_accepts_plain_strings():
    result = compute_order_totals([PricedLine(100, 1)], "exclusive", restaurant_tax_rate=10)
    assert result.final_total == 110.0


@pytest.mark.parametrize("discount", [0, 5, 12.5, 199.99])
def test_no_tax_total_is_items_minus_discount(discount):
    lines = [PricedLine(49.99, 3), PricedLine(25, 2), PricedLine(0.01, 1)]

    result = compute_order_totals(lines, TaxType.NONE, discount=discount)

    assert result.final_total == round2(result.items_total - discount)


@pytest.mark.parametrize("rate", [0, 5, 12, 18, 28])
def test_exclusive_total_without_discount(rate):
    lines = [PricedLine(19.99, 3), PricedLine(5.5, 2)]
    items_total = 19.99 * 3 + 5.5 * 2

    result = compute_order_totals(lines, TaxType.EXCLUSIVE, restaurant_tax_rate=rate)

    assert result.final_total == round2(items_total * (1 + rate / 100))


@pytest.mark.parametrize("rate", [0.5, 5, 18, 100, 250])
def test_inclusive_tax_never_exceeds_items_total(rate):
    line = PricedLine(37.5, 4, tax_rate=rate)

    assert inclusive_line_tax(line) <= line.line_total
    result = compute_order_totals([line], TaxType.INCLUSIVE)
    assert result.tax <= result.items_total


def test_inclusive_line_without_rate_has_no_tax():
    assert inclusive_line_tax(PricedLine(100, 1)) == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [(2.675, 2.68), (0.125, 0.13), (1.005, 1.01), (10.0, 10.0), (3.14159, 3.14), (-1.005, -1.01)],
)
def test_round2_is_half_up(value, expected):
    assert round2(value) == expected


def test_nan_propagates():
    result = compute_order_totals([PricedLine(float("nan"), 1)], TaxType.NONE)
    assert math.isnan(result.items_total)
    assert math.isnan(result.final_total)


def test_empty_order_prices_to_zero():
    result = compute_order_totals([], TaxType.EXCLUSIVE, restaurant_tax_rate=18)
    assert result.to_dict() == {"items_total": 0.0, "tax": 0.0, "discount": 0.0, "final_total": 0.0}
