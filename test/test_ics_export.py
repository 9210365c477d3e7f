from datetime import date

import pytest

from integration.ics_export import (
    build_description,
    filter_events_by_date_range,
    generate_ics,
    parse_clock,
)
from smart_calendar.models import CalendarEvent


def _unfold(text: str) -> str:
    return text.replace("\r\n ", "").replace("\n ", "")


def test_filter_is_inclusive_and_skips_undated():
    events = [
        CalendarEvent(title="Before", date="2024-02-29"),
        CalendarEvent(title="Start", date="2024-03-01"),
        CalendarEvent(title="End", date="2024-03-31"),
        CalendarEvent(title="After", date="2024-04-01"),
        CalendarEvent(title="Undated"),
    ]
    kept = filter_events_by_date_range(events, "2024-03-01", "2024-03-31")
    assert [e.title for e in kept] == ["Start", "End"]


@pytest.mark.parametrize(
    "value,expected",
    [
        ("3:00 PM", (15, 0)),
        ("3:00PM", (15, 0)),
        ("12:15am", (0, 15)),
        ("12:30 PM", (12, 30)),
        ("09:45", (9, 45)),
        ("noon", None),
        ("25:00", None),
        (None, None),
    ],
)
def test_parse_clock(value, expected):
    assert parse_clock(value) == expected


def test_description_combines_course_type_priority_and_text():
    ev = CalendarEvent(
        title="Midterm",
        date="2024-03-15",
        type="office_hours",
        course_code="CS 4400",
        course_title="Cloud Computing",
        description="Bring ID",
    )
    assert build_description(ev) == (
        "Course: CS 4400 - Cloud Computing\nType: Office hours\nPriority: Low\n\nBring ID"
    )


def test_all_day_and_timed_events():
    events = [
        CalendarEvent(id="allday1", title="Project due", date="2024-03-15", type="assignment"),
        CalendarEvent(id="timed1", title="Midterm", date="2024-03-20", type="test", time="10:00AM", location="Room 101"),
    ]
    text = _unfold(generate_ics(events))

    assert text.startswith("BEGIN:VCALENDAR")
    assert "UID:allday1@student-calendar" in text
    assert "UID:timed1@student-calendar" in text
    assert "DTSTART;VALUE=DATE:20240315" in text
    assert "DTSTART:20240320T100000" in text
    assert "SUMMARY:Midterm" in text
    assert "LOCATION:Room 101" in text
    assert "CATEGORIES:TEST" in text
    assert "CATEGORIES:ASSIGNMENT" in text


def test_undated_event_falls_back_to_today():
    text = _unfold(generate_ics([CalendarEvent(id="nodate", title="Someday")], today=date(2024, 5, 6)))
    assert "DTSTART;VALUE=DATE:20240506" in text
