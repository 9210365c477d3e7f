"""
Calendar-day helpers.

Every date leaving this module is a local calendar day formatted as
YYYY-MM-DD. Values are anchored at local noon before formatting so that
no timezone offset (UTC-12 through UTC+14) can push the day across midnight.
Timezone-aware inputs keep their own wall-clock day; they are never converted.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Tuple

from dateutil import parser as dateutil_parser

from smart_calendar.models import WEEKDAYS

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

_FULL_DAY = re.compile(r"\b(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)\b", re.IGNORECASE)
_SHORT_DAY = re.compile(r"\b(Mon|Tue|Tues|Wed|Thu|Thurs|Fri|Sat|Sun)\b", re.IGNORECASE)
_SHORT_TO_FULL = {
    "mon": "Monday",
    "tue": "Tuesday",
    "tues": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "thurs": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}


def anchor_noon(year: int, month: int, day: int) -> datetime:
    """Local datetime at 12:00 on the given day."""
    return datetime(year, month, day, 12, 0, 0, 0)


def format_day(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def _components(value: Any, today: date) -> Optional[Tuple[int, int, int]]:
    if isinstance(value, datetime):
        return value.year, value.month, value.day
    if isinstance(value, date):
        return value.year, value.month, value.day
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    m = _ISO_DATE.match(text)
    if m:
        return int(m.group(1)), int(m.group(2)), int(m.group(3))

    # Missing parts (e.g. no year) come from today; noon keeps the default time off midnight.
    default = anchor_noon(today.year, today.month, today.day)
    parsed = dateutil_parser.parse(text, default=default)
    return parsed.year, parsed.month, parsed.day


def canonical_date(value: Any, today: Optional[date] = None) -> Optional[str]:
    """
    Canonicalize a free-form date into YYYY-MM-DD.

    Accepts date/datetime objects and strings (ISO or natural language).
    Returns None when the value is missing or cannot be read as a calendar day.
    """
    if value is None:
        return None
    today = today or date.today()
    try:
        parts = _components(value, today)
        if parts is None:
            return None
        return format_day(anchor_noon(*parts))
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unparseable date {value!r}: {e}")
        return None


def weekday_name(day: str) -> str:
    d = date.fromisoformat(day)
    noon = anchor_noon(d.year, d.month, d.day)
    return WEEKDAYS[noon.weekday()]


def find_weekday(*texts: Optional[str]) -> Optional[str]:
    """First weekday mentioned in the given texts, full names before abbreviations."""
    for pattern in (_FULL_DAY, _SHORT_DAY):
        for text in texts:
            if not text:
                continue
            m = pattern.search(text)
            if m:
                token = m.group(1).lower()
                return _SHORT_TO_FULL.get(token, token.capitalize())
    return None


def weekdays_in(text: Optional[str]) -> List[str]:
    """Every distinct weekday mentioned in text, in order of appearance."""
    if not text:
        return []
    found: List[Tuple[int, str]] = []
    for pattern in (_FULL_DAY, _SHORT_DAY):
        for m in pattern.finditer(text):
            token = m.group(1).lower()
            found.append((m.start(), _SHORT_TO_FULL.get(token, token.capitalize())))
    out: List[str] = []
    for _, name in sorted(found):
        if name not in out:
            out.append(name)
    return out


def next_occurrence(weekday: str, today: date) -> str:
    """Next date strictly after today falling on the weekday."""
    target = WEEKDAYS.index(weekday)
    days_ahead = (target - today.weekday()) % 7 or 7
    return canonical_date(today + timedelta(days=days_ahead))
