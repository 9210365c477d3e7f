from __future__ import annotations

from smart_calendar.models import EVENT_TYPES

# =========================
# DOCUMENT EXTRACTION PROMPT
# =========================

_TYPE_LIST = ", ".join(EVENT_TYPES)

_PROMPT_TEMPLATE = """
You are a calendar event parser specialized in academic calendars and syllabi.
Analyze the provided {file_kind} and extract every academic event a student would want in a personal calendar.

RULES:
1. Extract the title, date, type, time, location, and description of each event.
2. Dates must use the YYYY-MM-DD format (e.g. "2024-03-15").
3. "type" must be exactly one of: {types}.
4. When a field is not stated explicitly, infer it instead of leaving it out:
   - priority from the event type (test=high, assignment=medium, meeting=medium, office_hours=low)
   - time as a typical time for that kind of event (e.g. tests in the morning, office hours in the afternoon)
   - location from the class location when the event has none
5. If the document is about a specific course, also extract:
   - courseTitle (e.g. "Cloud Computing", "Data Structures")
   - courseCode (e.g. "CS 4400", "MATH 101")
   - classLocation, the primary classroom or building
6. For repeating events (weekly office hours, recurring meetings) emit ONE event on its earliest date,
   set "isRecurring" to true, add "recurrencePattern" (e.g. "Weekly on Tuesday") and
   "recurrenceEndDate" (YYYY-MM-DD) when an end is mentioned.

RESPONSE FORMAT:
Return exactly one JSON object and nothing else: no markdown, no backticks, no commentary.

{{
  "events": [
    {{
      "title": "string (required)",
      "date": "YYYY-MM-DD (required)",
      "type": "{types_pipe} (required)",
      "time": "HH:MM AM/PM (optional)",
      "location": "string (optional)",
      "description": "string (optional)",
      "priority": "high|medium|low (optional)",
      "isRecurring": "boolean (optional)",
      "recurrencePattern": "string (optional)",
      "recurrenceEndDate": "YYYY-MM-DD (optional)"
    }}
  ],
  "classLocation": "string or null",
  "courseTitle": "string or null",
  "courseCode": "string or null"
}}

If no events are found, still return a well-formed object with an empty array:
{{"events": [], "classLocation": null}}

EXAMPLE:
{{"events":[{{"title":"Midterm Exam","date":"2024-03-15","type":"test","time":"10:00 AM","location":"Room 101","description":"Covers chapters 1-5"}}],"classLocation":"Room 101","courseTitle":"Cloud Computing","courseCode":"CS 4400"}}
"""


def describe_file(mime_type: str) -> str:
    mime = (mime_type or "").lower()
    if mime == "application/pdf":
        return "PDF document"
    if mime.startswith("image/"):
        return "image"
    return f"{mime or 'unknown'} file"


def build_prompt(mime_type: str) -> str:
    """Instruction text for the extraction service. Pure; does no I/O."""
    return _PROMPT_TEMPLATE.format(
        file_kind=describe_file(mime_type),
        types=_TYPE_LIST,
        types_pipe="|".join(EVENT_TYPES),
    ).strip()
