"""Currency helpers.

All amounts travel as integers in minor units (kobo/cents). Decimal is only
used at the boundaries: parsing user input and rendering two-decimal text.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ..core.constants import MINOR_UNITS_PER_MAJOR
from ..core.exceptions import ValidationError

_CENT = Decimal("0.01")


def to_minor(value: Union[str, int, Decimal, None], field_name: str = "Amount") -> int:
    """Parse a major-unit amount ("1500.50", 1500, Decimal) into minor units.

    Floats are refused so no binary rounding sneaks into payroll figures.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, float):
        raise ValidationError(f"{field_name} must be given as text or Decimal, not float")
    try:
        amount = Decimal(str(value).replace(",", "").strip())
    except InvalidOperation:
        raise ValidationError(f"{field_name} is not a valid amount")
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return int((amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_minor(amount_minor: int) -> str:
    """Render minor units with exactly two decimals, e.g. 150050 -> '1500.50'."""
    return str((Decimal(int(amount_minor)) / MINOR_UNITS_PER_MAJOR).quantize(_CENT))


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero, for non-negative operands."""
    if denominator <= 0:
        raise ValidationError("Divisor must be greater than zero")
    quotient, remainder = divmod(int(numerator), int(denominator))
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient
