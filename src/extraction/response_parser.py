from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from llm.schemas import ExtractedEventCandidate, ParsedExtraction

logger = logging.getLogger(__name__)


def _slice_object(raw: str) -> Optional[str]:
    """Text between the first '{' and the last '}', or None when there is no such span."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return raw[start : end + 1]


def _meta_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_response(raw: Any) -> ParsedExtraction:
    """
    Pull the event payload out of a free-text model response.

    The model may wrap its JSON in prose, so only the outermost brace span is decoded.
    Never raises: anything unusable yields an empty result.
    """
    if not isinstance(raw, str) or not raw:
        logger.warning("Empty extraction response")
        return ParsedExtraction()

    body = _slice_object(raw)
    if body is None:
        logger.warning(f"No JSON object found in extraction response: {raw[:120]!r}")
        return ParsedExtraction()

    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Malformed JSON in extraction response: {e}")
        return ParsedExtraction()

    if not isinstance(data, dict) or not isinstance(data.get("events"), list):
        logger.warning("Extraction response has no events array")
        return ParsedExtraction()

    candidates: List[ExtractedEventCandidate] = []
    for i, item in enumerate(data["events"]):
        if not isinstance(item, dict):
            logger.warning(f"Skipping events[{i}]: not an object")
            continue
        try:
            candidates.append(ExtractedEventCandidate.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping events[{i}]: {e.errors()[:1]}")

    return ParsedExtraction(
        events=candidates,
        class_location=_meta_str(data.get("classLocation")),
        course_title=_meta_str(data.get("courseTitle")),
        course_code=_meta_str(data.get("courseCode")),
    )
