from __future__ import annotations

import logging
from typing import Iterable, List

from normalization.dates import weekday_name
from smart_calendar.errors import MissingDateError, RecurrenceValidationError
from smart_calendar.models import CalendarEvent, Recurrence

logger = logging.getLogger(__name__)


def synthesize_recurrence(event: CalendarEvent) -> Recurrence:
    """Weekly on the weekday of the event's own date, with no end date yet."""
    days = [weekday_name(event.date)] if event.date else []
    return Recurrence(frequency="weekly", days=days, end_date="")


class RecurrenceResolver:
    """
    Confirmation-time checks on a reviewed batch.

    Recurring events without a pattern get one derived from their date, then
    the batch is refused while any selected event lacks a date or any
    recurring one lacks an end date. Open-ended series are never accepted.
    """

    def resolve(self, event: CalendarEvent) -> CalendarEvent:
        if not event.is_recurring:
            return event
        if event.recurrence is not None and event.recurrence.days:
            return event
        if not event.date:
            return event

        synthesized = synthesize_recurrence(event)
        if event.recurrence is not None:
            # keep what the user already chose, fill in only the days
            synthesized = event.recurrence.model_copy(update={"days": synthesized.days})
        logger.info(f"Synthesized {synthesized.frequency} recurrence on {synthesized.days} for {event.title!r}")
        return event.model_copy(update={"recurrence": synthesized})

    def confirm(self, events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
        """Selected events ready for persistence, or a ConfirmationError naming the blockers."""
        selected = [self.resolve(e) for e in events if e.selected]

        undated = [e.title for e in selected if not e.date]
        if undated:
            raise MissingDateError("Please set a date for every selected event.", titles=undated)

        open_ended = [
            e.title
            for e in selected
            if e.is_recurring and (e.recurrence is None or not e.recurrence.end_date)
        ]
        if open_ended:
            raise RecurrenceValidationError(
                "Please set an end date for all recurring events.", titles=open_ended
            )

        backwards = [
            e.title
            for e in selected
            if e.is_recurring and e.recurrence.end_date < e.date
        ]
        if backwards:
            raise RecurrenceValidationError(
                "A recurring event cannot end before it starts.", titles=backwards
            )

        logger.info(f"Confirmed {len(selected)} event(s)")
        return selected


def confirm_batch(events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    return RecurrenceResolver().confirm(events)
