from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EncodedFile(BaseModel):
    """Inline file part sent to the extraction service."""

    data: str = Field(..., min_length=1)  # base64
    mime_type: str
    filename: Optional[str] = None
    truncated: bool = False


class ExtractedEventCandidate(BaseModel):
    """
    One raw item from the model's ``events`` array.

    Nothing here is trusted: every field may be missing, of the wrong type, or malformed.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    title: Any = None
    date: Any = None
    type: Any = None
    time: Any = None
    location: Any = None
    description: Any = None
    priority: Any = None
    course_code: Any = None
    course_title: Any = None
    is_recurring: Any = None
    recurrence_pattern: Any = None
    recurrence_end_date: Any = None


class DocumentMeta(BaseModel):
    class_location: Optional[str] = None
    course_title: Optional[str] = None
    course_code: Optional[str] = None


class ParsedExtraction(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    events: List[ExtractedEventCandidate] = Field(default_factory=list)
    class_location: Optional[str] = None
    course_title: Optional[str] = None
    course_code: Optional[str] = None

    @property
    def meta(self) -> DocumentMeta:
        return DocumentMeta(
            class_location=self.class_location,
            course_title=self.course_title,
            course_code=self.course_code,
        )
