from __future__ import annotations
import json
from typing import Optional

from llm.providers.base import LLMProvider
from llm.schemas import EncodedFile


class MockProvider(LLMProvider):
    name = "mock"

    def __init__(self, response_text: Optional[str] = None):
        self._response_text = response_text

    async def generate(self, *, instruction: str, file: EncodedFile) -> str:
        """
        Returns a canned syllabus response with a little prose around it,
        the way real models tend to answer.
        """
        if self._response_text is not None:
            return self._response_text

        if not file.mime_type.startswith("image/") and file.mime_type != "application/pdf":
            return json.dumps({"events": [], "classLocation": None})

        body = json.dumps({
            "events": [
                {
                    "title": "Midterm Exam",
                    "date": "2025-03-12",
                    "type": "test",
                    "time": "10:00 AM",
                    "location": "Room 101",
                    "description": "Covers chapters 1-5"
                },
                {
                    "title": "Project Proposal Due",
                    "date": "2025-02-20",
                    "type": "assignment",
                    "time": "11:59 PM"
                },
                {
                    "title": "Office Hours",
                    "date": "2025-01-14",
                    "type": "office_hours",
                    "time": "2:00 PM",
                    "isRecurring": True,
                    "recurrencePattern": "Weekly on Tuesday"
                }
            ],
            "classLocation": "Klaus 2456",
            "courseTitle": "Cloud Computing",
            "courseCode": "CS 4400"
        })
        return f"Here are the events I found:\n{body}\nLet me know if you need anything else."
