"""Helper functions for formatting amounts and periods for display."""

from __future__ import annotations

import calendar
from decimal import ROUND_HALF_UP, Decimal

_CENTS = Decimal("0.01")


def _to_decimal(value: int | float | Decimal) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def format_amount(value: int | float | Decimal, currency: str = "MKD") -> str:
    """Format a monetary amount with two decimals and thousands separators.

    Args:
        value: The amount to format
        currency: Currency code appended after the figure
    """
    d = _to_decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"{d:,.2f} {currency}"


def format_delta(value: int | float | Decimal, currency: str = "MKD") -> str:
    """Format a signed change such as ``+200.00 MKD`` or ``-50.00 MKD``."""

    d = _to_decimal(value)
    sign = "+" if d > 0 else "-" if d < 0 else ""
    return f"{sign}{format_amount(abs(d), currency)}"


def month_name(month: int) -> str:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be within 1..12, got {month}")
    return calendar.month_name[month]


def format_period(year: int, month: int) -> str:
    """Return the long label of a calendar month, e.g. ``March 2025``."""

    return f"{month_name(month)} {year}"
