"""
Domain service: currency amounts.

The only place that knows how major currency units (rupees) map to the
minor units (paise) the payment provider charges in.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from numbers import Real
from typing import Any

from treeadopt.domain.exceptions import ValidationError


MINOR_UNITS_PER_MAJOR = 100

INVALID_AMOUNT_MESSAGE = "Invalid amount provided"


def validate_amount(amount: Any) -> float:
    """
    Check that ``amount`` is a positive finite number of major units.

    Raises:
        ValidationError: If the amount is missing, not a number, or not positive
    """
    if amount is None or isinstance(amount, bool) or not isinstance(amount, Real):
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    if math.isnan(amount) or math.isinf(amount) or amount <= 0:
        raise ValidationError(INVALID_AMOUNT_MESSAGE)
    return float(amount)


def to_minor_units(amount: float) -> int:
    """Convert major units to integer minor units, rounding half up."""
    minor = Decimal(str(amount)) * MINOR_UNITS_PER_MAJOR
    return int(minor.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount_minor: int) -> float:
    return amount_minor / MINOR_UNITS_PER_MAJOR
