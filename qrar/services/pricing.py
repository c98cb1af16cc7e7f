"""
Order Pricing

Pure computation of an order's subtotal, tax and payable total for the
three tax modes a restaurant can run in:

    none       no tax
    inclusive  tax is already inside each displayed price and is extracted
               per item using that item's tax rate
    exclusive  one restaurant-wide rate is added on top of the subtotal

Currency amounts are rounded half-up to two decimals. Nothing here touches
the database or validates quantities and prices; schema validation happens
before an order ever reaches this module, and NaN inputs come out as NaN.

Author: Khalil Bannouri
Version: 1.0.0
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from qrar.models import TaxType

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PricedLine:
    """A line item as far as pricing is concerned."""
    price: float
    quantity: int
    tax_rate: Optional[float] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class PricingResult:
    items_total: float
    tax: float
    discount: float
    final_total: float

    def to_dict(self) -> dict:
        return {
            "items_total": self.items_total,
            "tax": self.tax,
            "discount": self.discount,
            "final_total": self.final_total,
        }


def round2(value: float) -> float:
    """Round a currency amount half-up to two decimal places."""
    if not math.isfinite(value):
        return value
    return float(Decimal(repr(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def inclusive_line_tax(line: PricedLine) -> float:
    """Tax contained in an inclusive-priced line: total * rate / (100 + rate)."""
    rate = line.tax_rate or 0.0
    return line.line_total * (rate / (100 + rate))


def compute_order_totals(
    items: Iterable[PricedLine],
    tax_type: TaxType,
    restaurant_tax_rate: float = 0.0,
    discount: float = 0.0,
) -> PricingResult:
    """
    Price an order.

    Args:
        items: Line items with unit price, quantity and optional tax rate
        tax_type: Restaurant tax mode
        restaurant_tax_rate: Percentage applied only in exclusive mode
        discount: Flat amount taken off the payable total

    Returns:
        PricingResult with rounded subtotal, tax and final total

    Example:
        >>> compute_order_totals([PricedLine(100, 1)], TaxType.EXCLUSIVE, 18).final_total
        118.0
    """
    lines = list(items)
    items_total = sum(line.line_total for line in lines)

    tax_type = TaxType(tax_type)
    if tax_type == TaxType.INCLUSIVE:
        tax = sum(inclusive_line_tax(line) for line in lines)
        added_tax = 0.0  # already part of items_total
    elif tax_type == TaxType.EXCLUSIVE:
        tax = items_total * (restaurant_tax_rate / 100)
        added_tax = tax
    else:
        tax = 0.0
        added_tax = 0.0

    return PricingResult(
        items_total=round2(items_total),
        tax=round2(tax),
        discount=discount,
        final_total=round2(items_total - discount + added_tax),
    )
