"""
Errors raised between upload and sync, grouped by the stage that fails.

File- and extraction-level errors abort a single file's contribution to an
upload batch. Each carries a stable ``kind`` and a ``user_message`` so the
HTTP layer can pick what to show without inspecting exception text.
"""

from __future__ import annotations

from typing import List, Optional


class CalendarError(Exception):
    kind: str = "error"
    user_message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class FileAccessError(CalendarError):
    kind = "file_access"
    user_message = (
        "Cannot access this file. Temporary files such as screenshots may have been "
        "cleaned up by the system. Save the file first, then upload it again."
    )


class ExtractionError(CalendarError):
    kind = "unknown"


class ExtractionTimeout(ExtractionError, TimeoutError):
    kind = "timeout"
    user_message = "The document took too long to process. Try a smaller file."


class QuotaExceeded(ExtractionError):
    kind = "quota_exceeded"
    user_message = "The extraction service is busy right now. Please try again in a few minutes."


class UnsupportedFormat(ExtractionError):
    kind = "unsupported_format"
    user_message = "This file type is not supported. Upload an image or a PDF."


class UnknownExtractionError(ExtractionError):
    kind = "unknown"
    user_message = "Failed to process document."


class ConfirmationError(CalendarError):
    """Raised when a reviewed batch cannot be accepted yet."""

    kind = "confirmation"

    def __init__(self, message: str, titles: Optional[List[str]] = None):
        super().__init__(message)
        self.titles = list(titles or [])


class RecurrenceValidationError(ConfirmationError):
    kind = "recurrence"


class MissingDateError(ConfirmationError):
    kind = "missing_date"


class PersistenceError(CalendarError):
    kind = "persistence"
    user_message = "Sync failed. Your events were not saved."
