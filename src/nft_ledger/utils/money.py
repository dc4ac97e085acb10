"""Decimal conversions for monetary amounts. Floats go through str() to avoid binary drift."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """Convert int/str/float/Decimal to a finite Decimal.

    Raises:
        ValueError: If value is None, a bool, not numeric, or not finite.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"not a monetary amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"monetary amount must be finite: {value!r}")
    return result


def decimal_to_str(value: Decimal | None) -> str | None:
    """Render Decimal for JSON payloads without exponent notation."""
    if value is None:
        return None
    return format(value, "f")
