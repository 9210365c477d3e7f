import pytest

from extraction.response_parser import parse_response


def test_prose_around_json_is_ignored():
    raw = 'Sure! {"events":[{"title":"Midterm","date":"2024-03-15","type":"test"}], "classLocation":"Room 101"}'
    parsed = parse_response(raw)
    assert len(parsed.events) == 1
    assert parsed.events[0].title == "Midterm"
    assert parsed.events[0].date == "2024-03-15"
    assert parsed.class_location == "Room 101"
    assert parsed.course_code is None


def test_no_braces_gives_empty_result():
    parsed = parse_response("no valid output")
    assert parsed.events == []
    assert parsed.class_location is None
    assert parsed.course_title is None
    assert parsed.course_code is None


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "{",
        "}",
        "} oops {",
        '{"events": [{"title": "Quiz"',
        '{"events": "not a list"}',
        '{"events": null}',
        '{"classLocation": "Room 5"}',
        "[1, 2, 3]",
        '{"events": {"title": "x"}}',
        "{not json at all}",
        None,
        42,
    ],
)
def test_parser_is_total(raw):
    parsed = parse_response(raw)
    assert isinstance(parsed.events, list)
    assert parsed.events == []


def test_deeply_nested_json_gives_empty_result():
    raw = '{"events": ' + "[" * 100000 + "]" * 100000 + "}"
    assert parse_response(raw).events == []


def test_non_object_items_are_skipped():
    parsed = parse_response('{"events": ["Quiz", 3, null, {"title": "Quiz 1"}]}')
    assert [c.title for c in parsed.events] == ["Quiz 1"]


def test_camel_case_fields_are_read():
    raw = (
        '{"events":[{"title":"Office Hours","isRecurring":true,'
        '"recurrencePattern":"Weekly on Tuesday","recurrenceEndDate":"2024-05-01","courseCode":"CS 101"}],'
        '"courseTitle":"Intro","courseCode":"CS 101"}'
    )
    parsed = parse_response(raw)
    c = parsed.events[0]
    assert c.is_recurring is True
    assert c.recurrence_pattern == "Weekly on Tuesday"
    assert c.recurrence_end_date == "2024-05-01"
    assert parsed.meta.course_title == "Intro"
    assert parsed.meta.course_code == "CS 101"


def test_blank_or_non_string_metadata_becomes_none():
    parsed = parse_response('{"events": [], "classLocation": "  ", "courseTitle": 7, "courseCode": null}')
    assert parsed.meta.class_location is None
    assert parsed.meta.course_title is None
    assert parsed.meta.course_code is None


def test_markdown_fenced_json_is_accepted():
    raw = '```json\n{"events": [{"title": "Final", "date": "2024-05-10", "type": "test"}]}\n```'
    parsed = parse_response(raw)
    assert [c.title for c in parsed.events] == ["Final"]
