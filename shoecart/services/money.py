"""
Money Utilities - Safe Decimal operations for prices.

Catalog prices arrive as JSON numbers (whole rubles for this storefront,
but kopecks are allowed). Everything in between stays Decimal.
"""
from decimal import Decimal, InvalidOperation
from typing import Union

Number = Union[str, int, float, Decimal]


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        # Convert via string to avoid float precision issues
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def optional_decimal(value: Union[Number, None]) -> Decimal | None:
    """Like to_decimal, but keeps None (an absent old price is not a zero old price)."""
    if value is None:
        return None
    return to_decimal(value)


def to_json_number(value: Union[Number, None]) -> int | float | None:
    """
    Convert Decimal for JSON serialization.

    Whole amounts stay integers so payloads match what the catalog sends.
    Use only at API boundaries, not for internal calculations.
    """
    if value is None:
        return None
    decimal_value = to_decimal(value)
    if decimal_value == decimal_value.to_integral_value():
        return int(decimal_value)
    return float(decimal_value)


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def subtract(a: Number, b: Number) -> Decimal:
    """Safe subtraction of monetary values."""
    return to_decimal(a) - to_decimal(b)
