"""
Typed edits applied to a pending or stored event during review.

Each operation names exactly one field. Applying an edit re-validates the
whole event, so titles stay non-empty, dates stay canonical and enums stay
closed no matter what the client sends.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from normalization.dates import canonical_date
from scheduling.recurrence import synthesize_recurrence
from smart_calendar.models import CalendarEvent, CamelModel, EventType, Priority, Recurrence


class SetTitle(CamelModel):
    op: Literal["set_title"] = "set_title"
    title: str = Field(..., min_length=1)


class SetDate(CamelModel):
    op: Literal["set_date"] = "set_date"
    date: str


class SetType(CamelModel):
    op: Literal["set_type"] = "set_type"
    type: EventType


class SetPriority(CamelModel):
    op: Literal["set_priority"] = "set_priority"
    priority: Priority


class SetTime(CamelModel):
    op: Literal["set_time"] = "set_time"
    time: Optional[str] = None


class SetLocation(CamelModel):
    op: Literal["set_location"] = "set_location"
    location: Optional[str] = None


class SetDescription(CamelModel):
    op: Literal["set_description"] = "set_description"
    description: Optional[str] = None


class SetRecurring(CamelModel):
    op: Literal["set_recurring"] = "set_recurring"
    is_recurring: bool


class SetRecurrenceDays(CamelModel):
    op: Literal["set_recurrence_days"] = "set_recurrence_days"
    days: List[str]


class SetRecurrenceEndDate(CamelModel):
    op: Literal["set_recurrence_end_date"] = "set_recurrence_end_date"
    end_date: str = ""


class SetSelected(CamelModel):
    op: Literal["set_selected"] = "set_selected"
    selected: bool


EventEdit = Annotated[
    Union[
        SetTitle,
        SetDate,
        SetType,
        SetPriority,
        SetTime,
        SetLocation,
        SetDescription,
        SetRecurring,
        SetRecurrenceDays,
        SetRecurrenceEndDate,
        SetSelected,
    ],
    Field(discriminator="op"),
]

_edit_adapter: TypeAdapter = TypeAdapter(EventEdit)


def parse_edit(data: Dict[str, Any]) -> EventEdit:
    return _edit_adapter.validate_python(data)


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _canonical_or_raise(value: str) -> str:
    day = canonical_date(value)
    if day is None:
        raise ValueError(f"not a calendar date: {value!r}")
    return day


def _recurrence(event: CalendarEvent) -> Recurrence:
    return event.recurrence or synthesize_recurrence(event)


def apply_edit(event: CalendarEvent, edit: EventEdit) -> CalendarEvent:
    """Return a new event with the edit applied. Raises ValueError for values that cannot be stored."""
    data = event.model_dump()

    if isinstance(edit, SetTitle):
        data["title"] = edit.title
    elif isinstance(edit, SetDate):
        data["date"] = _canonical_or_raise(edit.date)
    elif isinstance(edit, SetType):
        data["type"] = edit.type
    elif isinstance(edit, SetPriority):
        data["priority"] = edit.priority
    elif isinstance(edit, SetTime):
        data["time"] = _optional_text(edit.time)
    elif isinstance(edit, SetLocation):
        data["location"] = _optional_text(edit.location)
    elif isinstance(edit, SetDescription):
        data["description"] = _optional_text(edit.description)
    elif isinstance(edit, SetRecurring):
        data["is_recurring"] = edit.is_recurring
        # turning it back on starts over from the event's own date
        data["recurrence"] = synthesize_recurrence(event).model_dump() if edit.is_recurring else None
    elif isinstance(edit, SetRecurrenceDays):
        data["recurrence"] = _recurrence(event).model_copy(update={"days": edit.days}).model_dump()
    elif isinstance(edit, SetRecurrenceEndDate):
        end = _canonical_or_raise(edit.end_date) if edit.end_date.strip() else ""
        data["recurrence"] = _recurrence(event).model_copy(update={"end_date": end}).model_dump()
    elif isinstance(edit, SetSelected):
        data["selected"] = edit.selected
    else:
        raise TypeError(f"unsupported edit {edit!r}")

    return type(event).model_validate(data)
