"""Helpers for consistent user-facing number and date formatting (id-ID locale)."""
from __future__ import annotations

from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

MONTH_NAMES_SHORT = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
MONTH_NAMES_FULL = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)
_STRING_PARSE_PATTERNS: Iterable[str] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def _coerce_to_datetime(value: Any) -> datetime | None:
    """Attempt to normalise incoming date-like values to a datetime."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for pattern in _STRING_PARSE_PATTERNS:
                try:
                    return datetime.strptime(text, pattern)
                except ValueError:
                    continue
        return None
    return None


def _to_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


def _group_thousands(whole: int) -> str:
    return f"{whole:,}".replace(",", ".")


def format_idr(value: Any) -> str:
    """Format an amount as rupiah without fraction digits, e.g. ``Rp 1.234.567``."""
    amount = _to_decimal(value)
    if amount is None:
        return str(value)
    rounded = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    return f"{sign}Rp {_group_thousands(abs(rounded))}"


def format_percent(value: Any, places: int = 2) -> str:
    amount = _to_decimal(value)
    if amount is None:
        return str(value)
    return f"{amount:.{places}f}%"


def format_display_date(value: Any) -> str:
    """Format a value as d/m/yyyy (no zero padding) or return an empty string."""
    coerced = _coerce_to_datetime(value)
    if coerced is None:
        return "" if value in (None, "") else str(value)
    return f"{coerced.day}/{coerced.month}/{coerced.year}"


def format_period_label(month: int, year: int) -> str:
    """``Maret 2025`` style label for a month picker."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12 (got {month})")
    return f"{MONTH_NAMES_FULL[month - 1]} {year}"


__all__ = [
    "MONTH_NAMES_FULL",
    "MONTH_NAMES_SHORT",
    "format_display_date",
    "format_idr",
    "format_percent",
    "format_period_label",
]
