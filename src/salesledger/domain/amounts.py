"""Money and quantity coercion helpers.

Source feeds deliver amounts as numbers or as loosely formatted strings
(``"1,234.50"``, ``"-18.00 INR"``). Everything is coerced to ``Decimal`` so sums stay
exact until the single rounding step at finalization.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Final

ZERO: Final[Decimal] = Decimal("0")
CENT: Final[Decimal] = Decimal("0.01")

_STRIP_PATTERN = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"-?(\d+(\.\d*)?|\.\d+)")


def parse_amount(value: object) -> Decimal:
    """Coerce a raw amount; anything non-numeric yields zero."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return ZERO
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = _STRIP_PATTERN.sub("", value)
        match = _LEADING_NUMBER.match(cleaned)
        if match is None:
            return ZERO
        try:
            return Decimal(match.group(0))
        except InvalidOperation:
            return ZERO
    return ZERO


def round_money(value: Decimal) -> Decimal:
    """Half-up to cents; a result that rounds to zero is always ``0.00``, never ``-0.00``."""

    rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    return rounded.copy_abs() if rounded.is_zero() else rounded
