import logging

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api.dependencies import get_event_store, get_sync_service
from api.metrics import USERS_SYNC_FAILED
from storage import db
from storage.event_store import CalendarEventStore
from storage.event_sync import EventSyncService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(store: CalendarEventStore = Depends(get_event_store)) -> dict:
    """Health check endpoint for container orchestration."""
    health = {"status": "healthy", "store": store.name}

    if store.name == "postgres":
        db_health = await db.health_check()
        health["database"] = db_health
        if db_health["status"] != "healthy":
            health["status"] = "degraded"

    return health


@router.get("/metrics")
async def metrics(sync: EventSyncService = Depends(get_sync_service)) -> Response:
    """Prometheus scrape endpoint."""
    USERS_SYNC_FAILED.set(sync.users_in_error())
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
