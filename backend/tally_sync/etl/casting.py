"""
Field coercion for loosely-typed Tally rows.

The Tally mirror hands us numbers as strings ("12,345.67"), booleans as
1/0 integers or "Yes"/"No", and dates in several formats. These helpers
turn such values into the warehouse column types:

  - numbers never stay strings: parse failure or absence gives the default
  - boolean flags are True only for 1 / "1" / "yes" / "true"
  - blank text is None so that an update never overwrites with ""
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from loguru import logger

_TRUE_STRINGS = {"1", "yes", "true", "y"}


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse a float, falling back to *default* for absent or unparseable values."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return default if math.isnan(float(value)) else float(value)
    raw = str(value).replace(",", "").strip()
    if not raw:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return default if math.isnan(parsed) else parsed


def to_int(value: Any, default: int = 0) -> int:
    """Parse an int; "12.0" is accepted, anything else unparseable gives *default*."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    number = to_float(value, default=math.nan)
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number)


def to_bool(value: Any) -> bool:
    """Normalise Tally flags (1/0, "Yes"/"No", True/False) to a bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def to_text(value: Any) -> Optional[str]:
    """Stripped string, or None for absent / blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_date(value: Any) -> Optional[date]:
    """Parse Tally date formats: YYYYMMDD, YYYY-MM-DD, DD-MM-YYYY, DD/MM/YYYY, ISO."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    for fmt in ("%Y%m%d", "%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    try:
        return date_parser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError):
        logger.warning(f"Could not parse date: {raw!r}")
        return None


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse a Tally timestamp; values without an offset are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return _aware(date_parser.isoparse(raw))
    except ValueError:
        pass
    try:
        return _aware(date_parser.parse(raw, dayfirst=True))
    except (ValueError, OverflowError):
        logger.warning(f"Could not parse timestamp: {raw!r}")
        return None


def currency(value: Any) -> str:
    return to_text(value) or "INR"


def exchange_rate(value: Any) -> float:
    return to_float(value, default=1.0)


def conversion_factor(value: Any) -> float:
    return to_float(value, default=1.0)


def costing_method(value: Any) -> str:
    return to_text(value) or "FIFO"
