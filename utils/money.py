"""
Rounding helpers for prices and quantities.

Prices are stored as floats; rounding goes through Decimal so that
2.675 rounds to 2.68 the way a cashier would, not to 2.67.
"""

from decimal import Decimal, ROUND_HALF_UP
import math


def round2(value: float) -> float:
    """
    Round a money amount to 2 decimals, half away from zero.

    Examples:
        round2(2.675) → 2.68
        round2(10) → 10.0
    """
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (2.5 → 3, 0.5 → 1)."""
    return int(math.floor(value + 0.5))


def line_total(price: float, qty: int) -> float:
    """Rounded total of one line."""
    return round2(price * qty)
