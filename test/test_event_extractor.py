import asyncio

from extraction.event_extractor import EventExtractor
from extraction.file_encoder import FileEncoder, UploadedFile
from llm.llm_client import ExtractionClient
from llm.providers.base import LLMProvider
from llm.providers.mock_provider import MockProvider
from normalization.event_normalizer import EventNormalizer
from smart_calendar.errors import QuotaExceeded

SCENARIO_A = 'Sure! {"events":[{"title":"Midterm","date":"2024-03-15","type":"test"}], "classLocation":"Room 101"}'


class PerFileProvider(LLMProvider):
    """Answers per filename; slower files finish later."""

    name = "per-file"

    def __init__(self, answers, delays=None, errors=None):
        self.answers = answers
        self.delays = delays or {}
        self.errors = errors or {}

    async def generate(self, *, instruction: str, file) -> str:
        await asyncio.sleep(self.delays.get(file.filename, 0))
        if file.filename in self.errors:
            raise self.errors[file.filename]
        return self.answers[file.filename]


def _extractor(provider, tmp_path, today):
    return EventExtractor(
        client=ExtractionClient(provider, timeout_s=5),
        encoder=FileEncoder(str(tmp_path / "scratch")),
        normalizer=EventNormalizer(today=today),
    )


def _pdf(name):
    return UploadedFile(name, b"%PDF-1.4", "application/pdf")


def test_single_file_pipeline(fake_provider_factory, tmp_path, today):
    extractor = _extractor(fake_provider_factory(SCENARIO_A), tmp_path, today)
    result = asyncio.run(extractor.extract_file(_pdf("midterm.pdf")))
    assert result.filename == "midterm.pdf"
    assert result.candidates == 1
    assert result.rejected == 0
    ev = result.events[0]
    assert (ev.title, ev.type, ev.priority, ev.location) == ("Midterm", "test", "high", "Room 101")


def test_batch_keeps_submission_order(tmp_path, today):
    provider = PerFileProvider(
        answers={
            "a.pdf": '{"events":[{"title":"A1","date":"2024-04-01"},{"title":"A2","date":"2024-04-02"}]}',
            "b.pdf": '{"events":[{"title":"B1","date":"2024-04-03"}]}',
        },
        delays={"a.pdf": 0.1},
    )
    batch = asyncio.run(_extractor(provider, tmp_path, today).extract_batch([_pdf("a.pdf"), _pdf("b.pdf")]))
    assert [e.title for e in batch.events] == ["A1", "A2", "B1"]
    assert batch.failures == []


def test_failed_file_does_not_cancel_siblings(tmp_path, today):
    provider = PerFileProvider(
        answers={"ok.pdf": SCENARIO_A},
        errors={"busy.pdf": QuotaExceeded("quota")},
    )
    sources = [
        _pdf("busy.pdf"),
        UploadedFile("notes.txt", b"Quiz Friday", "text/plain"),
        UploadedFile("blank.png", b"", "image/png"),
        _pdf("ok.pdf"),
    ]
    batch = asyncio.run(_extractor(provider, tmp_path, today).extract_batch(sources))

    assert [e.title for e in batch.events] == ["Midterm"]
    assert [(f.filename, f.kind) for f in batch.failures] == [
        ("busy.pdf", "quota_exceeded"),
        ("notes.txt", "unsupported_format"),
        ("blank.png", "file_access"),
    ]
    assert batch.failures[0].message == QuotaExceeded.user_message


def test_unexpected_errors_are_reported_as_unknown(tmp_path, today):
    provider = PerFileProvider(answers={}, errors={"x.pdf": KeyError("oops")})
    batch = asyncio.run(_extractor(provider, tmp_path, today).extract_batch([_pdf("x.pdf")]))
    assert batch.events == []
    assert [f.kind for f in batch.failures] == ["unknown"]


def test_rejected_candidates_are_counted(fake_provider_factory, tmp_path, today):
    raw = '{"events":[{"title":"Kept"},{"date":"2024-04-01"},{"title":""}]}'
    batch = asyncio.run(_extractor(fake_provider_factory(raw), tmp_path, today).extract_batch([_pdf("s.pdf")]))
    assert [e.title for e in batch.events] == ["Kept"]
    assert batch.rejected == 2


def test_mock_provider_end_to_end(tmp_path, today):
    batch = asyncio.run(_extractor(MockProvider(), tmp_path, today).extract_batch([_pdf("syllabus.pdf")]))
    titles = [e.title for e in batch.events]
    assert titles == ["Midterm Exam", "Project Proposal Due", "Office Hours"]

    exam, proposal, office = batch.events
    assert exam.location == "Room 101"
    assert proposal.location == "Klaus 2456"
    assert {e.course_code for e in batch.events} == {"CS 4400"}
    assert office.priority == "low"
    assert office.is_recurring is True
    assert office.recurrence.days == ["Tuesday"]
    assert proposal.time == "11:59PM"
