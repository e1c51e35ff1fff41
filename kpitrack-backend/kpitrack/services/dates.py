from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

_MIN_YEAR = 1900
_MAX_YEAR = 2100

# Excel's day zero, accounting for its phantom 1900-02-29.
_EXCEL_EPOCH = date(1899, 12, 30)

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_SHORT_MONTH_RE = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{2})$")
_SERIAL_RE = re.compile(r"^\d{1,6}(?:\.\d+)?$")

_TEXT_FORMATS = (
    "%b %d, %Y",
    "%B %d, %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)

_BLANKS = {"", "null", "none", "undefined", "n/a", "#div/0!", "#error!"}


def _build(year: int, month: int, day: int) -> Optional[date]:
    if not _MIN_YEAR <= year <= _MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(text: str) -> Optional[date]:
    try:
        serial = int(float(text))
    except (ValueError, OverflowError):
        return None
    if not 0 < serial < 100000:
        return None
    parsed = _EXCEL_EPOCH + timedelta(days=serial)
    if not _MIN_YEAR <= parsed.year <= _MAX_YEAR:
        return None
    return parsed


def parse_date(value) -> Optional[date]:
    """Best-effort conversion of stored date text to a calendar date.

    Accepts ISO dates (with or without a time part), ``YYYYMMDD``,
    ``MM/DD/YYYY`` falling back to ``DD/MM/YYYY``, ``6-Jan-25``, English month
    names, day labels such as ``"Jan 1, 2025 - Wednesday"`` and Excel serial
    numbers. Returns ``None`` rather than raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_serial(str(value))

    text = str(value).strip()
    if text.lower() in _BLANKS:
        return None

    match = _ISO_RE.match(text)
    if match:
        return _build(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _COMPACT_RE.match(text)
    if match:
        return _build(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    if _SERIAL_RE.match(text):
        return _from_serial(text)

    match = _SLASH_RE.match(text)
    if match:
        first, second, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
        return _build(year, first, second) or _build(year, second, first)

    match = _SHORT_MONTH_RE.match(text)
    if match:
        try:
            month = datetime.strptime(match.group(2).title(), "%b").month
        except ValueError:
            return None
        return _build(2000 + int(match.group(3)), month, int(match.group(1)))

    # Day labels carry a trailing " - Weekday"
    head = text.split(" - ")[0].strip()
    for fmt in _TEXT_FORMATS:
        try:
            parsed = datetime.strptime(head, fmt).date()
        except ValueError:
            continue
        return parsed if _MIN_YEAR <= parsed.year <= _MAX_YEAR else None
    return None


def as_day(value) -> Optional[date]:
    """Truncate a window bound to day granularity."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_day_label(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}, {day.year} - {day.strftime('%A')}"
