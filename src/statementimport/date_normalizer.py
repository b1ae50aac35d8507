"""
Date normalization for statement cells.

Statement exports encode dates in several ways. ``parse_date`` tries the rules
in ``DATE_RULES`` in order and returns the first calendar date one of them
produces. Support for a new layout is added by inserting a rule before the
generic fallback; existing rules must keep their position, since a numeric
string such as ``03/04/25`` is accepted by whichever rule sees it first.
"""

import logging
import re
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

MONTHS = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

# Two-digit years below this value are placed in the 2000s, the rest in the 1900s.
CENTURY_PIVOT = 50

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s+(\d{4})$")
_MONTH_DAY_YEAR = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_NUMERIC_SEPARATORS = re.compile(r"[/\-]")


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _expand_year(year: int) -> int:
    if 0 <= year <= 99:
        return 2000 + year if year < CENTURY_PIVOT else 1900 + year
    return year


def _parse_iso(text: str) -> date | None:
    match = _ISO_PREFIX.match(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _safe_date(year, month, day)


def _month_name_date(month_name: str, day: int, year: int) -> date | None:
    month = MONTHS.get(month_name.lower().rstrip("."))
    if month is None or not 1 <= day <= 31 or year < 2000:
        return None
    return _safe_date(year, month, day)


def _parse_day_month_name(text: str) -> date | None:
    match = _DAY_MONTH_YEAR.match(text)
    if not match:
        return None
    return _month_name_date(match.group(2), int(match.group(1)), int(match.group(3)))


def _parse_month_name_day(text: str) -> date | None:
    match = _MONTH_DAY_YEAR.match(text)
    if not match:
        return None
    return _month_name_date(match.group(1), int(match.group(2)), int(match.group(3)))


def _parse_numeric_triplet(text: str) -> date | None:
    parts = _NUMERIC_SEPARATORS.split(text)
    if len(parts) != 3:
        return None
    try:
        first, second, third = (int(part) for part in parts)
    except ValueError:
        return None

    if first > 31:
        # YYYY/MM/DD
        return _safe_date(_expand_year(first), second, third)
    if third > 31:
        if first > 12:
            # DD/MM/YYYY
            return _safe_date(_expand_year(third), second, first)
        # MM/DD/YYYY, also when both are <= 12
        return _safe_date(_expand_year(third), first, second)
    if 0 <= third <= 99 and first <= 12 and second <= 31:
        # MM/DD/YY
        return _safe_date(_expand_year(third), first, second)
    if 0 <= third <= 99 and second <= 12 and first <= 31:
        # DD/MM/YY
        return _safe_date(_expand_year(third), second, first)
    return None


def _parse_generic(text: str) -> date | None:
    # Words like "today" or "now" would otherwise resolve to the current date.
    if not any(char.isdigit() for char in text):
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


DATE_RULES: list[tuple[str, Callable[[str], date | None]]] = [
    ("iso", _parse_iso),
    ("day_month_name_year", _parse_day_month_name),
    ("month_name_day_year", _parse_month_name_day),
    ("numeric_triplet", _parse_numeric_triplet),
    ("generic", _parse_generic),
]


def parse_date(raw: Any) -> date | None:
    """
    Parse a statement date cell into a calendar date.

    Args:
        raw: Cell value, usually a string. ``date``/``datetime`` values are
            accepted as they are.

    Returns:
        The date, or None when no rule accepts the value.
    """
    if raw is None:
        return None
    if not isinstance(raw, str) and pd.isna(raw):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if not text or text.lower() == "nan":
        return None

    for name, rule in DATE_RULES:
        try:
            parsed = rule(text)
        except (ValueError, OverflowError) as e:
            logger.debug(f"Date rule '{name}' failed on '{text}': {e}")
            continue
        if parsed is not None:
            return parsed

    logger.debug(f"Could not parse date '{text}'")
    return None
