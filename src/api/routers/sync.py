import logging
import time

from fastapi import APIRouter, Depends

from api.dependencies import get_sync_service, get_user_id
from api.metrics import SYNC_FAILURES_TOTAL, record_request
from storage.event_sync import EventSyncService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/sync")
async def sync_status(
    user_id: str = Depends(get_user_id),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    return sync.status(user_id).to_dict()


@router.post("/sync/retry")
async def retry_sync(
    user_id: str = Depends(get_user_id),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    """Resend the events that exhausted their retries in an earlier sync."""
    start = time.time()
    report = await sync.retry_failed(user_id)
    if report.failed:
        SYNC_FAILURES_TOTAL.inc(len(report.failed))
    record_request("/sync/retry", "ok" if report.ok else "sync_error", start)
    return {
        "saved": [e.id for e in report.saved],
        "failed": [e.id for e in report.failed],
        "sync": report.status.to_dict(),
    }
