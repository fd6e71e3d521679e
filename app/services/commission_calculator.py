"""
Commission calculator – derives the payable commission from a sale price and
the reseller commission rate (a percentage). Pure; no database access.
"""
import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from numbers import Real

from app.utils.errors import ValidationError

CENT = Decimal("0.01")


def _to_decimal(value, field: str) -> Decimal:
    if value is None:
        raise ValidationError(f"{field} is required")
    # bool is a Real subclass; True must not read as 1
    if isinstance(value, bool) or not isinstance(value, (Real, str, Decimal)):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def calculate_commission(price, rate) -> float:
    """
    commission = price * rate / 100, rounded half-up to currency precision.

    >>> calculate_commission(249.00, 50)
    124.5
    """
    price_d = _to_decimal(price, "price")
    rate_d = _to_decimal(rate, "commission rate")

    if price_d < 0:
        raise ValidationError("price must not be negative")
    if rate_d < 0 or rate_d > 100:
        raise ValidationError("commission rate must be between 0 and 100")

    amount = (price_d * rate_d / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return float(amount)
