"""Decimal helpers for fares, wallet amounts and earnings."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def to_decimal(value) -> Decimal:
    """Convert ints, floats and numeric strings to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Not a number: {value!r}")


def round_half_up(value) -> Decimal:
    """Round to a whole amount, halves away from zero (2.5 -> 3)."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
