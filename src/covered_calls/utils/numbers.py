"""Numeric conversion helpers for currency math."""

from decimal import Decimal, InvalidOperation
from typing import Any

from ..exceptions import InvalidInputError

ZERO = Decimal("0")


def to_decimal(value: Any, name: str = "value") -> Decimal:
    """
    Convert a numeric input to Decimal.

    Floats go through ``str`` so 2.5 becomes Decimal("2.5") rather than its
    binary expansion. Booleans are rejected even though they are ints.

    Args:
        value: Decimal, int, float, or numeric string
        name: Input name used in error messages

    Returns:
        Finite Decimal

    Raises:
        InvalidInputError: If the value is not numeric, NaN, or infinite
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number, got bool")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidInputError(f"{name} must be a number, got {value!r}") from e
    else:
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    return ensure_finite(result, name)


def ensure_finite(value: Decimal, name: str = "value") -> Decimal:
    """
    Reject NaN and infinite Decimals.

    Raises:
        InvalidInputError: If the value is NaN or infinite
    """
    if not value.is_finite():
        raise InvalidInputError(f"{name} must be a finite number, got {value}")
    return value
