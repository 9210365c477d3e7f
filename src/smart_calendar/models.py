from __future__ import annotations

import re
import uuid
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


EventType = Literal["test", "assignment", "meeting", "office_hours"]
Priority = Literal["low", "medium", "high"]
Frequency = Literal["daily", "weekly", "monthly"]

EVENT_TYPES: Tuple[str, ...] = ("test", "assignment", "meeting", "office_hours")
PRIORITIES: Tuple[str, ...] = ("low", "medium", "high")
DEFAULT_EVENT_TYPE = "assignment"

PRIORITY_BY_TYPE: Dict[str, str] = {
    "test": "high",
    "assignment": "medium",
    "meeting": "medium",
    "office_hours": "low",
}

WEEKDAYS: Tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def new_event_id() -> str:
    return uuid.uuid4().hex


def default_priority(event_type: str) -> str:
    return PRIORITY_BY_TYPE.get(event_type, "medium")


def _check_iso_date(value: str) -> str:
    if not _ISO_DATE.match(value):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    date.fromisoformat(value)
    return value


class CamelModel(BaseModel):
    """Serializes with the camelCase keys the clients and the store use."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Recurrence(CamelModel):
    frequency: Frequency = "weekly"
    days: List[str] = Field(default_factory=list)
    end_date: str = ""

    @field_validator("days")
    @classmethod
    def days_are_weekdays(cls, v: List[str]) -> List[str]:
        out: List[str] = []
        for day in v:
            name = day.strip().capitalize()
            if name not in WEEKDAYS:
                raise ValueError(f"unknown weekday {day!r}")
            if name not in out:
                out.append(name)
        return out

    @field_validator("end_date", mode="before")
    @classmethod
    def end_date_canonical(cls, v: Any) -> str:
        if v is None:
            return ""
        v2 = str(v).strip()
        return _check_iso_date(v2) if v2 else ""


class CalendarEvent(CamelModel):
    """A normalized event, pending review until a store has saved it."""

    id: str = Field(default_factory=new_event_id, min_length=1)
    title: str = Field(..., min_length=1)
    date: Optional[str] = None
    type: EventType = DEFAULT_EVENT_TYPE
    priority: Priority = "medium"

    time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    course_code: Optional[str] = None
    course_title: Optional[str] = None

    is_recurring: bool = False
    recurrence: Optional[Recurrence] = None

    # review-only flag, never persisted
    selected: bool = True

    @model_validator(mode="before")
    @classmethod
    def priority_from_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("priority") is None:
            data = dict(data)
            data["priority"] = default_priority(data.get("type") or DEFAULT_EVENT_TYPE)
        return data

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("date", mode="before")
    @classmethod
    def date_canonical(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v2 = str(v).strip()
        return _check_iso_date(v2) if v2 else None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"selected"})


class StoredEvent(CalendarEvent):
    """A confirmed event as held by a store, keyed by (user_id, id)."""

    user_id: str = Field(..., min_length=1)
    created_at: str
    updated_at: str

    def to_event(self) -> CalendarEvent:
        return CalendarEvent.model_validate(
            self.model_dump(exclude={"user_id", "created_at", "updated_at"})
        )
