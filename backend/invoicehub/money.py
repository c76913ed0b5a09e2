from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


def to_cents(value, field: str = "price") -> int:
    """
    Convert a caller-supplied decimal amount (int, float or string) to cents.

    Amounts are authoritative in cents; more than two decimal places is
    rejected instead of rounded.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than two decimal places")

    cents = int(amount * 100)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def format_cents(cents: int | None) -> str | None:
    if cents is None:
        return None
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{whole}.{frac:02d}"
