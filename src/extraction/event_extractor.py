"""
Turns uploaded documents into pending events.

One file is encoded, prompted, submitted, parsed and normalized. A batch runs
every file concurrently; a file that fails contributes a ``FileFailure``
instead of events and never cancels its siblings. Results are concatenated
in submission order.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Sequence

from extraction.file_encoder import FileEncoder, FileSource, source_name
from extraction.response_parser import parse_response
from llm.llm_client import ExtractionClient
from llm.prompts import build_prompt
from normalization.event_normalizer import EventNormalizer
from smart_calendar.errors import CalendarError, UnknownExtractionError
from smart_calendar.models import CalendarEvent

logger = logging.getLogger(__name__)


@dataclass
class FileFailure:
    filename: str
    kind: str
    message: str

    def to_dict(self) -> dict:
        return {"filename": self.filename, "kind": self.kind, "message": self.message}


@dataclass
class FileResult:
    filename: str
    events: List[CalendarEvent] = field(default_factory=list)
    candidates: int = 0

    @property
    def rejected(self) -> int:
        return self.candidates - len(self.events)


@dataclass
class BatchResult:
    events: List[CalendarEvent] = field(default_factory=list)
    files: List[FileResult] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return sum(f.rejected for f in self.files)


class EventExtractor:
    def __init__(self, client: ExtractionClient, encoder: FileEncoder, normalizer: EventNormalizer):
        self.client = client
        self.encoder = encoder
        self.normalizer = normalizer

    async def extract_file(self, source: FileSource) -> FileResult:
        """Raises FileAccessError or an ExtractionError subclass; parse/normalize problems only shrink the result."""
        start = time.time()
        encoded = await self.encoder.encode(source)
        raw = await self.client.submit(encoded, build_prompt(encoded.mime_type))

        parsed = parse_response(raw)
        events = self.normalizer.normalize(parsed.events, parsed.meta)
        result = FileResult(filename=encoded.filename or source_name(source), events=events, candidates=len(parsed.events))

        logger.info(
            f"{result.filename}: {len(events)} event(s) from {result.candidates} candidate(s) "
            f"in {time.time() - start:.2f}s"
        )
        return result

    async def extract_batch(self, sources: Sequence[FileSource]) -> BatchResult:
        outcomes = await asyncio.gather(
            *(self.extract_file(s) for s in sources),
            return_exceptions=True,
        )

        batch = BatchResult()
        for source, outcome in zip(sources, outcomes):
            name = source_name(source)
            if isinstance(outcome, CalendarError):
                logger.warning(f"{name} failed [{outcome.kind}]: {outcome}")
                batch.failures.append(FileFailure(name, outcome.kind, outcome.user_message))
            elif isinstance(outcome, Exception):
                logger.error(f"{name} failed unexpectedly: {outcome!r}")
                batch.failures.append(FileFailure(name, UnknownExtractionError.kind, UnknownExtractionError.user_message))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                batch.files.append(outcome)
                batch.events.extend(outcome.events)
        return batch
