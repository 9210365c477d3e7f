import logging
from typing import Optional

from extraction.event_extractor import EventExtractor
from extraction.file_encoder import FileEncoder
from llm.llm_client import build_extraction_client
from normalization.event_normalizer import EventNormalizer
from smart_calendar.config import Settings
from storage.event_store import CalendarEventStore, build_event_store
from storage.event_sync import EventSyncService

logger = logging.getLogger(__name__)

# Global instances initialized at startup (or lazily on first request)
settings: Optional[Settings] = None
event_store: Optional[CalendarEventStore] = None
sync_service: Optional[EventSyncService] = None
extractor: Optional[EventExtractor] = None


def init_state(new_settings: Settings) -> None:
    global settings, event_store, sync_service, extractor

    settings = new_settings
    event_store = build_event_store(new_settings.event_store)
    sync_service = EventSyncService(
        event_store,
        max_attempts=new_settings.sync_max_attempts,
        backoff_s=new_settings.sync_backoff_s,
    )
    extractor = None
    logger.info(f"State initialized (store={event_store.name}, provider={new_settings.llm_provider})")


def ensure_state() -> None:
    if settings is None:
        init_state(Settings.from_env())


def get_extractor() -> EventExtractor:
    """Built on first use; raises RuntimeError when the provider is not configured."""
    global extractor

    ensure_state()
    if extractor is None:
        extractor = EventExtractor(
            client=build_extraction_client(settings),
            encoder=FileEncoder(settings.upload_scratch_dir, settings.max_upload_bytes),
            normalizer=EventNormalizer(),
        )
    return extractor
