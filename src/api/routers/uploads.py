import logging
import time
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from api.dependencies import get_event_extractor, get_user_id
from api.metrics import (
    CANDIDATES_REJECTED_TOTAL,
    EVENTS_EXTRACTED_TOTAL,
    EXTRACTION_FAILURES_TOTAL,
    FILES_UPLOADED_TOTAL,
    record_request,
)
from extraction.event_extractor import EventExtractor
from extraction.file_encoder import UploadedFile

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/uploads")
async def upload_documents(
    files: List[UploadFile] = File(...),
    user_id: str = Depends(get_user_id),
    extractor: EventExtractor = Depends(get_event_extractor),
) -> dict:
    """
    Extract pending events from one or more documents.

    Nothing is saved here: the returned events go back to the client for
    review and come back through ``POST /events/confirm``. Files that fail
    are listed under ``failures`` with a user-facing message.
    """
    start = time.time()
    logger.info(f"User {user_id} uploaded {len(files)} file(s)")

    # one byte past the ceiling is enough to mark the file truncated
    limit = extractor.encoder.max_bytes + 1
    sources = []
    for f in files:
        data = await f.read(limit)
        sources.append(
            UploadedFile(
                filename=f.filename or "upload",
                data=data,
                content_type=f.content_type,
                size=getattr(f, "size", None),
            )
        )
    FILES_UPLOADED_TOTAL.inc(len(sources))

    batch = await extractor.extract_batch(sources)

    EVENTS_EXTRACTED_TOTAL.inc(len(batch.events))
    CANDIDATES_REJECTED_TOTAL.inc(batch.rejected)
    for failure in batch.failures:
        EXTRACTION_FAILURES_TOTAL.labels(kind=failure.kind).inc()

    status = "ok" if not batch.failures else ("partial" if batch.events or batch.files else "failed")
    record_request("/uploads", status, start)

    return {
        "events": [e.model_dump(by_alias=True) for e in batch.events],
        "failures": [f.to_dict() for f in batch.failures],
        "rejected": batch.rejected,
    }
