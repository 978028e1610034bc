"""Decimal money helpers."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Convert to a Decimal rounded half-up to cents."""
    if not isinstance(value, Decimal):
        # str() first so floats like 0.1 don't carry binary noise
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Number) -> str:
    """Two-decimal string as expected by the payment gateway."""
    return f"{to_money(value):.2f}"
