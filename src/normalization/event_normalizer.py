"""
Normalization of extracted candidates into CalendarEvents.

Each candidate is repaired field by field; only a missing title drops it.
Dates follow the lenient policy: anything unparseable leaves ``date`` unset
and the user fills it in during review. Course metadata comes from the
candidate itself, then the document, then the first event in the same
document that carried it.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Iterable, List, Optional, Union

from llm.schemas import DocumentMeta, ExtractedEventCandidate
from normalization.dates import canonical_date, find_weekday, next_occurrence, weekdays_in
from smart_calendar.models import (
    DEFAULT_EVENT_TYPE,
    EVENT_TYPES,
    PRIORITIES,
    CalendarEvent,
    Recurrence,
    default_priority,
    new_event_id,
)

logger = logging.getLogger(__name__)

_TIME_JUNK = re.compile(r"[^0-9:apmAPM]")
_RECURRING_PLACEHOLDER = re.compile(r"recurring", re.IGNORECASE)


class CandidateRejected(ValueError):
    pass


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False


def coerce_type(value: Any, title: str = "") -> str:
    raw = _text(value)
    if raw is None:
        return DEFAULT_EVENT_TYPE
    key = re.sub(r"[\s-]+", "_", raw.lower())
    if key in EVENT_TYPES:
        return key
    logger.warning(f"Unknown event type {raw!r} for {title!r}, using {DEFAULT_EVENT_TYPE!r}")
    return DEFAULT_EVENT_TYPE


def coerce_priority(value: Any, event_type: str) -> str:
    raw = _text(value)
    if raw and raw.lower() in PRIORITIES:
        return raw.lower()
    return default_priority(event_type)


def sanitize_time(value: Any) -> Optional[str]:
    raw = _text(value)
    if raw is None:
        return None
    return _TIME_JUNK.sub("", raw) or None


def _frequency(pattern: Optional[str]) -> str:
    lower = (pattern or "").lower()
    if "daily" in lower or "every day" in lower:
        return "daily"
    if "monthly" in lower:
        return "monthly"
    return "weekly"


class EventNormalizer:
    def __init__(self, today: Optional[date] = None):
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def normalize(
        self,
        candidates: Iterable[Union[ExtractedEventCandidate, dict]],
        meta: Optional[DocumentMeta] = None,
    ) -> List[CalendarEvent]:
        """Normalize one document's candidates, preserving their order. Never raises."""
        meta = meta or DocumentMeta()
        items = [c for c in (self._coerce_candidate(c) for c in candidates or []) if c is not None]

        course_code = meta.course_code or next((_text(c.course_code) for c in items if _text(c.course_code)), None)
        course_title = meta.course_title or next((_text(c.course_title) for c in items if _text(c.course_title)), None)
        doc = DocumentMeta(class_location=meta.class_location, course_code=course_code, course_title=course_title)

        events: List[CalendarEvent] = []
        for i, candidate in enumerate(items):
            try:
                events.append(self.normalize_one(candidate, doc))
            except CandidateRejected as e:
                logger.warning(f"Rejected candidate #{i}: {e}")
            except Exception as e:
                logger.warning(f"Rejected candidate #{i} ({type(e).__name__}): {e}")
        return events

    def _coerce_candidate(self, raw: Any) -> Optional[ExtractedEventCandidate]:
        if isinstance(raw, ExtractedEventCandidate):
            return raw
        if isinstance(raw, dict):
            try:
                return ExtractedEventCandidate.model_validate(raw)
            except Exception as e:
                logger.warning(f"Rejected candidate {raw!r}: {e}")
                return None
        logger.warning(f"Rejected candidate of type {type(raw).__name__}")
        return None

    def normalize_one(self, c: ExtractedEventCandidate, doc: DocumentMeta) -> CalendarEvent:
        title = _text(c.title)
        if title is None:
            raise CandidateRejected("missing title")

        description = _text(c.description)
        is_recurring = _truthy(c.is_recurring)
        days: List[str] = []

        raw_date = c.date
        if isinstance(raw_date, str) and _RECURRING_PLACEHOLDER.search(raw_date):
            weekday = find_weekday(title, description)
            is_recurring = True
            if weekday:
                event_date = next_occurrence(weekday, self.today)
                days = [weekday]
                logger.info(f"Placeholder date for {title!r} resolved to next {weekday}: {event_date}")
            else:
                event_date = None
                logger.warning(f"Placeholder date for {title!r} has no weekday, leaving date unset")
        else:
            event_date = canonical_date(raw_date, self.today)
            if event_date is None:
                logger.warning(f"Unparseable date {raw_date!r} for {title!r}, leaving date unset")

        event_type = coerce_type(c.type, title)

        recurrence = None
        pattern = _text(c.recurrence_pattern)
        if is_recurring:
            for day in weekdays_in(pattern):
                if day not in days:
                    days.append(day)
            recurrence = Recurrence(
                frequency=_frequency(pattern),
                days=days,
                end_date=canonical_date(c.recurrence_end_date, self.today) or "",
            )

        return CalendarEvent(
            id=new_event_id(),
            title=title,
            date=event_date,
            type=event_type,
            priority=coerce_priority(c.priority, event_type),
            time=sanitize_time(c.time),
            location=_text(c.location) or doc.class_location,
            description=description,
            course_code=_text(c.course_code) or doc.course_code,
            course_title=_text(c.course_title) or doc.course_title,
            is_recurring=is_recurring,
            recurrence=recurrence,
        )
