"""Numeric and period normalization shared by every distributor parser.

Numbers arrive as floats from spreadsheets, as strings with currency symbols
and thousands separators from text exports, and as accounting negatives in
parentheses. Periods are derived from explicit date cells, filenames or
report headers and always end up as ``YYYY-MM``. All date handling is UTC.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd


_CURRENCY_RX = re.compile(r"[\s$,£€¥%()\u00a0]")
_PAREN_NEGATIVE_RX = re.compile(r"^\(.*\)$")

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}
_MONTH_ALTERNATION = "|".join(sorted(MONTHS, key=len, reverse=True))
MONTH_TOKEN_RX = re.compile(rf"\b({_MONTH_ALTERNATION})\b", flags=re.IGNORECASE)

ISO_PERIOD_RX = re.compile(r"^(\d{4})-(\d{2})(?:-\d{2})?")
MDY_RX = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
DOTTED_FILENAME_RX = re.compile(r"(?<!\d)(\d{1,2})\.(\d{2})(?!\d)")
MONTH_NAME_YEAR_RX = re.compile(
    rf"\b({_MONTH_ALTERNATION})(?![a-z])[\s\-_.]*'?(\d{{2}})(?!\d)", flags=re.IGNORECASE
)
DATE_TOKEN_RX = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2,4})")
COMPACT_DATE_RX = re.compile(r"(?<!\d)(\d{4})(\d{2})\d{2}(?!\d)")
REPORT_CELL_RX = re.compile(r"(?<!\d)(\d{1,2})\.(\d{4})(?!\d)")

EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
EXCEL_SERIAL_RANGE = (20000, 60000)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value: Any) -> float:
    """Parse a locale-tolerant number; return 0.0 when it cannot be read.

    Accepts ``$1,234.50``, ``(3)`` (returns -3), ``12%`` and trailing-minus
    values such as ``45.10-`` from fixed-width exports.
    """

    if _is_missing(value):
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    text = str(value).strip()
    if not text:
        return 0.0
    negative = bool(_PAREN_NEGATIVE_RX.match(text))
    if text.endswith("-") and len(text) > 1:
        negative = not negative
        text = text[:-1]
    cleaned = _CURRENCY_RX.sub("", text)
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return -number if negative else number


def round_half_up(value: float, places: int = 0) -> float:
    quant = Decimal(1).scaleb(-places)
    try:
        return float(Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0


def round_currency(value: Any) -> float:
    """Round to cents, half away from zero."""

    return round_half_up(to_number(value), 2)


def to_cases(value: Any) -> int:
    """Whole cases; fractional quantities round to the nearest case."""

    return int(round_half_up(to_number(value), 0))


def clean_text(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def format_period(year: int, month: int) -> Optional[str]:
    if not 1 <= int(month) <= 12:
        return None
    return f"{int(year):04d}-{int(month):02d}"


def expand_year(two_digit: str, pivot: int = 50) -> int:
    """Two-digit years at or above ``pivot`` belong to the 1900s."""

    yy = int(two_digit)
    if len(two_digit) >= 4:
        return yy
    return 1900 + yy if yy >= pivot else 2000 + yy


def current_period(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment.year:04d}-{moment.month:02d}"


def _utc_period(year: int, month: int, day: int) -> Optional[str]:
    try:
        stamp = datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None
    return f"{stamp.year:04d}-{stamp.month:02d}"


def excel_serial_to_date(value: float) -> Optional[date]:
    low, high = EXCEL_SERIAL_RANGE
    if not low <= value <= high:
        return None
    return (EXCEL_EPOCH + timedelta(days=int(round_half_up(value, 0)))).date()


def period_from_value(value: Any) -> Optional[str]:
    """Period from a date-like cell: ``YYYY-MM[-DD]``, ``M/D/YY``, a date, or an Excel serial."""

    if _is_missing(value):
        return None
    if isinstance(value, (datetime, pd.Timestamp)):
        stamp = pd.Timestamp(value)
        if stamp.tzinfo is not None:
            stamp = stamp.tz_convert("UTC")
        return format_period(stamp.year, stamp.month)
    if isinstance(value, date):
        return format_period(value.year, value.month)
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        serial = excel_serial_to_date(float(value))
        return format_period(serial.year, serial.month) if serial else None
    text = str(value).strip()
    iso = ISO_PERIOD_RX.match(text)
    if iso:
        return format_period(int(iso.group(1)), int(iso.group(2)))
    mdy = MDY_RX.match(text)
    if mdy:
        month, _day, year = mdy.groups()
        return format_period(expand_year(year, pivot=100), int(month))
    return None


def period_from_dotted_filename(name: str) -> Optional[str]:
    """``"Petes 6.25 sales.xlsx"`` -> ``2025-06``."""

    for match in DOTTED_FILENAME_RX.finditer(name or ""):
        found = format_period(2000 + int(match.group(2)), int(match.group(1)))
        if found:
            return found
    return None


def period_from_month_name(text: str) -> Optional[str]:
    """``"Jul 25"`` or ``"Troia- July 25 Sales"`` -> ``2025-07``."""

    match = MONTH_NAME_YEAR_RX.search(text or "")
    if not match:
        return None
    month = MONTHS[match.group(1).lower()]
    return format_period(expand_year(match.group(2)), month)


def period_from_date_range_header(line: str) -> Optional[str]:
    """Use the second (THRU) date of a ``FROM : MM/DD/YY ... THRU MM/DD/YY`` header."""

    text = line or ""
    upper = text.upper()
    if "FROM" not in upper or "THRU" not in upper:
        return None
    dates = DATE_TOKEN_RX.findall(text)
    if len(dates) < 2:
        return None
    month, day, year = dates[1]
    return _utc_period(expand_year(year, pivot=100), int(month), int(day))


def period_from_first_date(text: str) -> Optional[str]:
    """First ``M/D/YYYY`` date anywhere in the text."""

    match = DATE_TOKEN_RX.search(text or "")
    if not match:
        return None
    month, day, year = match.groups()
    return _utc_period(expand_year(year, pivot=100), int(month), int(day))


def period_from_compact_date(text: str) -> Optional[str]:
    """``GALANT_20250731.CSV`` -> ``2025-07``."""

    for match in COMPACT_DATE_RX.finditer(text or ""):
        found = format_period(int(match.group(1)), int(match.group(2)))
        if found:
            return found
    return None


def period_from_report_cell(value: Any) -> Optional[str]:
    """Spreadsheet "Report" cell encoded as ``month.year`` (``6.2024``)."""

    if _is_missing(value):
        return None
    text = str(value).strip()
    match = REPORT_CELL_RX.search(text)
    if not match:
        return None
    return format_period(int(match.group(2)), int(match.group(1)))


def resolve_period(*strategies: Callable[[], Optional[str]], now: Optional[datetime] = None) -> str:
    """Try each strategy in order; fall back to the current UTC month.

    Strategies never raise out of here: a failing strategy is treated as no
    answer so the next one gets a chance.
    """

    for strategy in strategies:
        try:
            found = strategy()
        except (ValueError, TypeError, KeyError, IndexError):
            found = None
        if found:
            return found
    return current_period(now)
