import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response

from api.dependencies import (
    get_event_store,
    get_recurrence_resolver,
    get_sync_service,
    get_user_id,
)
from api.metrics import SYNC_FAILURES_TOTAL, record_request
from integration.ics_export import filter_events_by_date_range, generate_ics
from normalization.dates import canonical_date
from scheduling.recurrence import RecurrenceResolver
from smart_calendar.edits import apply_edit, parse_edit
from smart_calendar.errors import PersistenceError
from smart_calendar.models import CalendarEvent, CamelModel
from storage.event_store import CalendarEventStore
from storage.event_sync import EventSyncService, SyncReport

router = APIRouter()
logger = logging.getLogger(__name__)


class ConfirmIn(CamelModel):
    events: List[CalendarEvent]


def _sync_body(report: SyncReport) -> dict:
    return {
        "saved": [e.model_dump(by_alias=True) for e in report.saved],
        "failed": [e.id for e in report.failed],
        "sync": report.status.to_dict(),
    }


@router.get("/events")
async def list_events(
    user_id: str = Depends(get_user_id),
    store: CalendarEventStore = Depends(get_event_store),
) -> dict:
    events = await store.list(user_id)
    return {"events": [e.model_dump(by_alias=True) for e in events]}


@router.post("/events/confirm")
async def confirm_events(
    payload: ConfirmIn,
    user_id: str = Depends(get_user_id),
    resolver: RecurrenceResolver = Depends(get_recurrence_resolver),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    """Accept the reviewed batch. Only selected events are saved; blockers come back as 422."""
    start = time.time()
    confirmed = resolver.confirm(payload.events)

    report = await sync.save_batch(user_id, confirmed)
    if report.failed:
        SYNC_FAILURES_TOTAL.inc(len(report.failed))

    record_request("/events/confirm", "ok" if report.ok else "sync_error", start)
    return _sync_body(report)


@router.get("/events/export")
async def export_events(
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    user_id: str = Depends(get_user_id),
    store: CalendarEventStore = Depends(get_event_store),
) -> Response:
    events = await store.list(user_id)

    start_day = canonical_date(start) if start else None
    end_day = canonical_date(end) if end else None
    if start is not None or end is not None:
        if (start and start_day is None) or (end and end_day is None):
            raise HTTPException(status_code=422, detail="start and end must be dates (YYYY-MM-DD)")
        if start_day and end_day and start_day > end_day:
            raise HTTPException(status_code=422, detail="start must not be after end")
        events = filter_events_by_date_range(events, start_day or "0000-01-01", end_day or "9999-12-31")

    filename = f"student-calendar-{start_day or 'all'}-to-{end_day or 'all'}.ics"
    return Response(
        content=generate_ics(events),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.patch("/events/{event_id}")
async def edit_event(
    event_id: str,
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_user_id),
    store: CalendarEventStore = Depends(get_event_store),
    resolver: RecurrenceResolver = Depends(get_recurrence_resolver),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    existing = await store.get(user_id, event_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")

    try:
        edited = apply_edit(existing.to_event(), parse_edit(payload))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    # stored events obey the same gate as a fresh confirmation
    edited = resolver.confirm([edited.model_copy(update={"selected": True})])[0]

    report = await sync.save_batch(user_id, [edited])
    if report.failed:
        SYNC_FAILURES_TOTAL.inc(len(report.failed))
        raise PersistenceError(f"event {event_id} was not saved")
    return {"event": report.saved[0].model_dump(by_alias=True), "sync": report.status.to_dict()}


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    user_id: str = Depends(get_user_id),
    store: CalendarEventStore = Depends(get_event_store),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    if not await store.delete(user_id, event_id):
        raise HTTPException(status_code=404, detail=f"Event {event_id} not found")
    sync.forget(user_id, event_id)
    return {"deleted": event_id}


@router.delete("/events")
async def clear_calendar(
    user_id: str = Depends(get_user_id),
    store: CalendarEventStore = Depends(get_event_store),
    sync: EventSyncService = Depends(get_sync_service),
) -> dict:
    deleted = await store.delete_all(user_id)
    sync.forget(user_id)
    logger.info(f"User {user_id} cleared {deleted} event(s)")
    return {"deleted": deleted}
