"""
Order pricing rules shared by order creation and order edit.

Per line:
    line_total      = quantity * unit_price
    line_discount   = discount_percent / 100 * line_total
    line_discounted = line_total - line_discount

Per order:
    total_price              = sum(line_total)
    initial_discounted_price = sum(line_discounted)
    final_discounted_price   = initial_discounted_price * (1 - additional_discount_percent / 100)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ..errors import ValidationError


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    unit_price: float
    discount_percent: float

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price

    @property
    def line_discount(self) -> float:
        return (self.discount_percent / 100) * self.line_total

    @property
    def line_discounted(self) -> float:
        return self.line_total - self.line_discount


@dataclass(frozen=True)
class OrderTotals:
    total_price: float
    initial_discounted_price: float
    additional_discount_percent: float
    final_discounted_price: float


def price_line(product_id: int, quantity: int, unit_price: float, discount_percent: float) -> PricedLine:
    return PricedLine(
        product_id=product_id,
        quantity=quantity,
        unit_price=float(unit_price),
        discount_percent=float(discount_percent or 0),
    )


def compute_totals(lines: Iterable[PricedLine], additional_discount_percent: float = 0) -> OrderTotals:
    total = 0.0
    discounted = 0.0
    for line in lines:
        total += line.line_total
        discounted += line.line_discounted

    additional = float(additional_discount_percent or 0)
    return OrderTotals(
        total_price=total,
        initial_discounted_price=discounted,
        additional_discount_percent=additional,
        final_discounted_price=discounted * (1 - additional / 100),
    )


def validate_percent(value, name: str = "additionalDiscountPercent") -> float:
    """Order-level discount must be a finite number within 0..100 (blank means 0)."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number between 0 and 100")
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number between 0 and 100")
    if not math.isfinite(pct) or pct < 0 or pct > 100:
        raise ValidationError(f"{name} must be a number between 0 and 100")
    return pct
