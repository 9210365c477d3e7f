import os
import time
from datetime import date, datetime, timedelta, timezone

import pytest

from normalization.dates import (
    anchor_noon,
    canonical_date,
    find_weekday,
    next_occurrence,
    weekday_name,
    weekdays_in,
)

OFFSETS = range(-12, 15)

# Boundary days: year/month ends, leap day, DST transitions in common zones.
DAYS = [
    date(2024, 1, 1),
    date(2024, 2, 29),
    date(2024, 3, 10),
    date(2024, 3, 31),
    date(2024, 10, 27),
    date(2024, 11, 3),
    date(2024, 12, 31),
]


def _posix_zone(offset_hours: int) -> str:
    # Etc/GMT names have inverted signs: Etc/GMT+12 is UTC-12
    if offset_hours == 0:
        return "Etc/GMT"
    sign = "-" if offset_hours > 0 else "+"
    return f"Etc/GMT{sign}{abs(offset_hours)}"


@pytest.mark.parametrize("offset_hours", OFFSETS)
def test_aware_datetimes_keep_their_own_day(offset_hours):
    tz = timezone(timedelta(hours=offset_hours))
    for day in DAYS:
        for hour in (0, 12, 23):
            value = datetime(day.year, day.month, day.day, hour, 30, tzinfo=tz)
            assert canonical_date(value) == day.isoformat()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
@pytest.mark.parametrize("offset_hours", OFFSETS)
def test_local_days_survive_every_process_timezone(monkeypatch, offset_hours):
    monkeypatch.setenv("TZ", _posix_zone(offset_hours))
    time.tzset()
    try:
        for day in DAYS:
            assert canonical_date(day) == day.isoformat()
            assert canonical_date(day.isoformat()) == day.isoformat()
            noon = anchor_noon(day.year, day.month, day.day)
            assert canonical_date(noon) == day.isoformat()
            # a round trip through a POSIX timestamp lands on the same local day
            assert canonical_date(datetime.fromtimestamp(noon.timestamp())) == day.isoformat()
    finally:
        monkeypatch.undo()
        time.tzset()


def test_anchor_noon_is_midday():
    dt = anchor_noon(2024, 3, 15)
    assert (dt.hour, dt.minute, dt.second, dt.microsecond) == (12, 0, 0, 0)
    assert dt.tzinfo is None


@pytest.mark.parametrize("value", [None, "", "   ", "2024-02-30", "2023-02-29", "not-a-date", "TBD", 12345, [], {}])
def test_unreadable_dates_are_none(value):
    assert canonical_date(value, today=date(2024, 3, 13)) is None


def test_missing_year_comes_from_today():
    assert canonical_date("Sept 5", today=date(2025, 1, 10)) == "2025-09-05"


def test_weekday_name():
    assert weekday_name("2024-03-13") == "Wednesday"
    assert weekday_name("2024-03-17") == "Sunday"


def test_find_weekday_prefers_full_names():
    assert find_weekday("Mon lab", "Friday review") == "Friday"
    assert find_weekday("Tues recitation") == "Tuesday"
    assert find_weekday(None, "", "nothing here") is None


def test_weekdays_in_pattern_order():
    assert weekdays_in("Mon/Wed and Friday") == ["Monday", "Wednesday", "Friday"]
    assert weekdays_in("Every Tuesday, every tue") == ["Tuesday"]
    assert weekdays_in(None) == []


def test_next_occurrence_is_strictly_after_today():
    wednesday = date(2024, 3, 13)
    assert next_occurrence("Wednesday", wednesday) == "2024-03-20"
    assert next_occurrence("Thursday", wednesday) == "2024-03-14"
    assert next_occurrence("Tuesday", wednesday) == "2024-03-19"
    assert next_occurrence("Sunday", date(2024, 12, 30)) == "2025-01-05"
