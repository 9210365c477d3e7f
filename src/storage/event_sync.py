"""
Best-effort bulk save of a confirmed batch, with per-event retry.

Every event is saved independently and in parallel; there is no rollback
when only some of them make it. Transient ``PersistenceError``s are retried
with exponential backoff. Events that still fail are remembered per user and
the user's sync state stays ``error`` until a manual retry succeeds.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from smart_calendar.errors import PersistenceError
from smart_calendar.models import CalendarEvent, StoredEvent
from storage.event_store import CalendarEventStore

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    SYNCED = "synced"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


@dataclass
class SyncStatus:
    state: SyncState = SyncState.SYNCED
    last_synced: Optional[str] = None
    pending: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "lastSynced": self.last_synced,
            "pending": self.pending,
            "error": self.error,
        }


@dataclass
class SyncReport:
    saved: List[StoredEvent] = field(default_factory=list)
    failed: List[CalendarEvent] = field(default_factory=list)
    status: SyncStatus = field(default_factory=SyncStatus)

    @property
    def ok(self) -> bool:
        return not self.failed


def _is_connectivity(exc: BaseException) -> bool:
    return isinstance(exc.__cause__, OSError)


class EventSyncService:
    """
    Per-user sync state is derived, never stored: ``syncing`` while any batch
    for the user is in flight, ``error``/``offline`` while failed events are
    waiting for a retry, ``synced`` otherwise. Users with nothing in flight and
    nothing pending keep only their last successful sync time.
    """

    def __init__(
        self,
        store: CalendarEventStore,
        max_attempts: int = 3,
        backoff_s: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_s = backoff_s
        self._sleep = sleep
        self._in_flight: Dict[str, int] = {}
        # user -> event id -> (event, last failure)
        self._failed: Dict[str, Dict[str, Tuple[CalendarEvent, BaseException]]] = {}
        self._last_synced: Dict[str, str] = {}

    def status(self, user_id: str) -> SyncStatus:
        failed = self._failed.get(user_id, {})
        status = SyncStatus(last_synced=self._last_synced.get(user_id), pending=len(failed))
        if self._in_flight.get(user_id):
            status.state = SyncState.SYNCING
        if failed:
            errors = [exc for _, exc in failed.values()]
            status.error = str(errors[-1])
            if not self._in_flight.get(user_id):
                offline = all(_is_connectivity(exc) for exc in errors)
                status.state = SyncState.OFFLINE if offline else SyncState.ERROR
        return status

    def users_in_error(self) -> int:
        return sum(1 for user in self._failed if not self._in_flight.get(user))

    def failed_events(self, user_id: str) -> List[CalendarEvent]:
        return [event for event, _ in self._failed.get(user_id, {}).values()]

    def forget(self, user_id: str, event_id: Optional[str] = None) -> None:
        """Drop remembered failures for one event, or for all of the user's events."""
        if event_id is None:
            self._failed.pop(user_id, None)
            return
        failed = self._failed.get(user_id)
        if failed is not None:
            failed.pop(event_id, None)
            if not failed:
                del self._failed[user_id]

    async def save_batch(self, user_id: str, events: Iterable[CalendarEvent]) -> SyncReport:
        events = list(events)
        self._in_flight[user_id] = self._in_flight.get(user_id, 0) + 1
        try:
            results = await asyncio.gather(
                *(self._save_with_retry(user_id, e) for e in events),
                return_exceptions=True,
            )
        finally:
            self._in_flight[user_id] -= 1
            if not self._in_flight[user_id]:
                del self._in_flight[user_id]

        report = SyncReport()
        unexpected: Optional[BaseException] = None
        failed = self._failed.setdefault(user_id, {})
        for event, result in zip(events, results):
            if isinstance(result, BaseException):
                if not isinstance(result, PersistenceError):
                    unexpected = unexpected or result
                report.failed.append(event)
                failed[event.id] = (event, result)
            else:
                report.saved.append(result)
                failed.pop(event.id, None)
        if not failed:
            del self._failed[user_id]

        if report.failed:
            logger.warning(
                f"Sync for user {user_id}: {len(report.saved)} saved, {len(report.failed)} failed"
            )
        else:
            logger.info(f"Sync for user {user_id}: {len(report.saved)} saved")
        self._mark_synced(user_id)
        report.status = self.status(user_id)

        if unexpected is not None:
            raise unexpected
        return report

    async def retry_failed(self, user_id: str) -> SyncReport:
        pending = self.failed_events(user_id)
        if not pending:
            return SyncReport(status=self.status(user_id))
        logger.info(f"Retrying {len(pending)} failed event(s) for user {user_id}")
        return await self.save_batch(user_id, pending)

    async def _save_with_retry(self, user_id: str, event: CalendarEvent) -> StoredEvent:
        delay = self.backoff_s
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.store.save(user_id, event)
            except PersistenceError as e:
                if attempt == self.max_attempts:
                    logger.warning(f"Giving up on event {event.id} after {attempt} attempt(s): {e}")
                    raise
                logger.warning(
                    f"Save of event {event.id} failed (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await self._sleep(delay)
                delay *= 2
        raise PersistenceError(f"event {event.id} was not saved")

    def _mark_synced(self, user_id: str) -> None:
        if user_id in self._failed or self._in_flight.get(user_id):
            return
        self._last_synced[user_id] = datetime.now(timezone.utc).isoformat()
