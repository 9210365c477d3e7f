"""
RFC 5545 export of stored events for Apple Calendar, Google Calendar and Outlook.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from ics import Calendar, Event

from smart_calendar.models import CalendarEvent

logger = logging.getLogger(__name__)

UID_DOMAIN = "student-calendar"

_CLOCK = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)?", re.IGNORECASE)


def parse_clock(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """(hour, minute) from "3:00 PM", "3:00PM" or "15:00"; None when it is not a clock time."""
    if not value:
        return None
    m = _CLOCK.search(value)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    period = (m.group(3) or "").lower()
    if period == "pm" and hour != 12:
        hour += 12
    elif period == "am" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def _label(value: str) -> str:
    return value.replace("_", " ").capitalize()


def build_description(event: CalendarEvent) -> str:
    parts: List[str] = []
    course = " - ".join(p for p in (event.course_code, event.course_title) if p)
    if course:
        parts.append(f"Course: {course}")
    parts.append(f"Type: {_label(event.type)}")
    parts.append(f"Priority: {_label(event.priority)}")
    if event.description:
        parts.extend(["", event.description])
    return "\n".join(parts)


def filter_events_by_date_range(
    events: Iterable[CalendarEvent], start: str, end: str
) -> List[CalendarEvent]:
    """Events dated within [start, end], both inclusive. Undated events are left out."""
    return [e for e in events if e.date and start <= e.date <= end]


def to_ics_event(event: CalendarEvent, today: Optional[date] = None) -> Event:
    day = date.fromisoformat(event.date) if event.date else (today or date.today())
    clock = parse_clock(event.time)

    ev = Event(
        name=event.title,
        uid=f"{event.id}@{UID_DOMAIN}",
        description=build_description(event),
        location=event.location or None,
        categories={event.type.upper()},
    )
    if clock is None:
        ev.begin = datetime(day.year, day.month, day.day)
        ev.make_all_day()
    else:
        ev.begin = datetime(day.year, day.month, day.day, clock[0], clock[1])
        ev.duration = timedelta(hours=1)
    return ev


def generate_ics(events: Iterable[CalendarEvent], today: Optional[date] = None) -> str:
    cal = Calendar(creator="-//Student Calendar//EN")
    count = 0
    for event in events:
        cal.events.add(to_ics_event(event, today=today))
        count += 1
    logger.info(f"Exported {count} event(s) to iCalendar")
    return cal.serialize()
