import logging
from typing import Optional

from fastapi import Header, HTTPException

from api import state
from extraction.event_extractor import EventExtractor
from scheduling.recurrence import RecurrenceResolver
from storage.event_store import CalendarEventStore
from storage.event_sync import EventSyncService

logger = logging.getLogger(__name__)

_resolver = RecurrenceResolver()


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_event_store() -> CalendarEventStore:
    state.ensure_state()
    return state.event_store


def get_sync_service() -> EventSyncService:
    state.ensure_state()
    return state.sync_service


def get_event_extractor() -> EventExtractor:
    try:
        return state.get_extractor()
    except RuntimeError as e:
        logger.error(f"Extraction service unavailable: {e}")
        raise HTTPException(status_code=503, detail="Extraction service is not configured")


def get_recurrence_resolver() -> RecurrenceResolver:
    return _resolver
