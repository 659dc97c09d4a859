"""Cell normalizers for scraped auction tables."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Final

_DATE_SEPARATORS: Final = re.compile(r"[./-]")
_THOUSANDS_SEPARATORS: Final = (",", " ", "\u00a0")
_MONTH_NAMES: Final = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)


def _month_number(value: str) -> int | None:
    if value.isdecimal():
        return int(value)
    lowered = value.lower()
    if len(lowered) < 3:
        return None
    for index, name in enumerate(_MONTH_NAMES, start=1):
        if name.startswith(lowered):
            return index
    return None


def normalize_date(raw: str | None) -> str | None:
    """Convert a day/month/year string to ``YYYY-MM-DD``.

    Accepts ``.``, ``-`` and ``/`` as separators, numeric or English month
    names (``25-Nov-2025``) and two-digit years, which are read as 20xx.
    Returns ``None`` instead of raising for anything that is not a real
    calendar date.
    """

    if not raw:
        return None
    parts = [part.strip() for part in _DATE_SEPARATORS.split(raw.strip())]
    if len(parts) != 3 or not all(parts):
        return None

    day, month, year = parts
    if len(year) == 2:
        year = f"20{year}"
    if not (day.isdecimal() and year.isdecimal() and len(year) == 4):
        return None

    month_number = _month_number(month)
    if month_number is None:
        return None

    try:
        return date(int(year), month_number, int(day)).isoformat()
    except ValueError:
        return None


def normalize_number(raw: str | None) -> Decimal | None:
    """Parse a numeric cell, returning ``None`` for blanks, dashes and junk."""

    if raw is None:
        return None
    cleaned = raw.strip()
    for separator in _THOUSANDS_SEPARATORS:
        cleaned = cleaned.replace(separator, "")
    if cleaned == "":
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def normalize_integer(raw: str | None) -> int | None:
    value = normalize_number(raw)
    if value is None or value != value.to_integral_value():
        return None
    return int(value)
