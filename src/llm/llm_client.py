from __future__ import annotations

import asyncio
import logging

import httpx

from llm.providers.base import LLMProvider
from llm.providers.gemini_provider import GeminiProvider
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OpenAIProvider
from llm.schemas import EncodedFile
from smart_calendar.config import Settings
from smart_calendar.errors import (
    ExtractionError,
    ExtractionTimeout,
    QuotaExceeded,
    UnknownExtractionError,
    UnsupportedFormat,
)

logger = logging.getLogger(__name__)

_QUOTA_MARKERS = ("resource_exhausted", "quota", "rate limit", "rate_limit", "too many requests")
_UNSUPPORTED_MARKERS = ("invalid_argument", "unsupported", "mime type", "mime_type", "invalid file")


def classify_failure(exc: BaseException) -> ExtractionError:
    """Map a transport/service failure onto the closed extraction error taxonomy."""
    if isinstance(exc, ExtractionError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ExtractionTimeout(f"Extraction request timed out: {exc}")

    text = str(exc)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        text = f"{text} {exc.response.text}"
        if status == 429:
            return QuotaExceeded(f"Extraction service quota exhausted (HTTP {status})")
        if status in (400, 415, 422) and not _has_marker(text, _QUOTA_MARKERS):
            return UnsupportedFormat(f"Extraction service rejected the input (HTTP {status})")

    if _has_marker(text, _QUOTA_MARKERS):
        return QuotaExceeded(f"Extraction service quota exhausted: {text[:200]}")
    if _has_marker(text, _UNSUPPORTED_MARKERS):
        return UnsupportedFormat(f"Extraction service rejected the input: {text[:200]}")
    return UnknownExtractionError(f"Extraction failed: {text[:200] or type(exc).__name__}")


def _has_marker(text: str, markers) -> bool:
    lower = text.lower()
    return any(m in lower for m in markers)


class ExtractionClient:
    """
    Single round trip to the extraction service with a hard timeout.

    No retries here: errors propagate to the caller right away, already classified.
    """

    def __init__(self, provider: LLMProvider, timeout_s: float = 30.0):
        self.provider = provider
        self.timeout_s = timeout_s

    async def submit(self, file: EncodedFile, prompt: str) -> str:
        logger.info(
            f"Submitting {file.filename or 'file'} ({file.mime_type}) to {self.provider.name} "
            f"(timeout {self.timeout_s:.0f}s)"
        )
        try:
            text = await asyncio.wait_for(
                self.provider.generate(instruction=prompt, file=file),
                timeout=self.timeout_s,
            )
        except ExtractionError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"Extraction timed out after {self.timeout_s}s for {file.filename}")
            raise ExtractionTimeout(f"No response within {self.timeout_s}s") from e
        except Exception as e:
            err = classify_failure(e)
            logger.warning(f"Extraction failed for {file.filename} [{err.kind}]: {e}")
            raise err from e

        text = text or ""
        logger.debug(f"Raw response preview: {text[:300]!r}")
        return text


def build_provider(settings: Settings) -> LLMProvider:
    provider = settings.llm_provider
    if provider == "mock":
        return MockProvider()
    if provider == "openai":
        return OpenAIProvider(
            api_key=settings.openai_api_key or "",
            model=settings.openai_model,
            base_url=settings.openai_base_url,
        )
    if provider == "gemini":
        return GeminiProvider(
            api_key=settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
        )
    raise RuntimeError(f"Unknown LLM_PROVIDER {provider!r}")


def build_extraction_client(settings: Settings) -> ExtractionClient:
    return ExtractionClient(build_provider(settings), timeout_s=settings.extraction_timeout_s)
