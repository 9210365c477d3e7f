"""
Per-user event persistence.

Records are keyed by ``(user_id, event_id)``. ``save`` is an upsert: saving
the same key twice is safe and keeps the original ``createdAt``, which is
what lets the sync service retry without creating duplicates.
"""

import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

import asyncpg

from smart_calendar.errors import PersistenceError
from smart_calendar.models import CalendarEvent, StoredEvent
from storage import db

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_STORE_FIELDS = {"selected", "user_id", "created_at", "updated_at"}


def _record(event: CalendarEvent) -> dict:
    return event.model_dump(by_alias=True, exclude=_STORE_FIELDS)


def _sort_key(event: StoredEvent):
    return (event.date is None, event.date or "", event.created_at)


class CalendarEventStore(ABC):
    name: str = "base"

    @abstractmethod
    async def save(self, user_id: str, event: CalendarEvent) -> StoredEvent:
        raise NotImplementedError

    @abstractmethod
    async def list(self, user_id: str) -> List[StoredEvent]:
        raise NotImplementedError

    @abstractmethod
    async def get(self, user_id: str, event_id: str) -> Optional[StoredEvent]:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, user_id: str, event_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def delete_all(self, user_id: str) -> int:
        raise NotImplementedError


class InMemoryEventStore(CalendarEventStore):
    """Process-local store for development and tests. Last write wins."""

    name = "memory"

    def __init__(self):
        self._events: Dict[str, Dict[str, StoredEvent]] = {}

    async def save(self, user_id: str, event: CalendarEvent) -> StoredEvent:
        bucket = self._events.setdefault(user_id, {})
        now = _now_iso()
        existing = bucket.get(event.id)
        stored = StoredEvent(
            **event.model_dump(exclude=_STORE_FIELDS),
            user_id=user_id,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        bucket[event.id] = stored
        return stored

    async def list(self, user_id: str) -> List[StoredEvent]:
        return sorted(self._events.get(user_id, {}).values(), key=_sort_key)

    async def get(self, user_id: str, event_id: str) -> Optional[StoredEvent]:
        return self._events.get(user_id, {}).get(event_id)

    async def delete(self, user_id: str, event_id: str) -> bool:
        return self._events.get(user_id, {}).pop(event_id, None) is not None

    async def delete_all(self, user_id: str) -> int:
        return len(self._events.pop(user_id, {}))


@asynccontextmanager
async def _persistence_errors(action: str):
    try:
        yield
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error(f"Event store {action} failed: {e}")
        raise PersistenceError(f"{action} failed: {e}") from e


class PostgresEventStore(CalendarEventStore):
    """
    PostgreSQL-backed store using the shared asyncpg pool in ``storage.db``.

    The event body is kept as JSONB in its camelCase record form; timestamps
    are server-assigned columns.
    """

    name = "postgres"

    @staticmethod
    def _from_row(row) -> StoredEvent:
        record = row["record"]
        if isinstance(record, str):
            record = json.loads(record)
        return StoredEvent.model_validate(
            {
                **record,
                "userId": row["user_id"],
                "createdAt": row["created_at"].isoformat(),
                "updatedAt": row["updated_at"].isoformat(),
            }
        )

    async def save(self, user_id: str, event: CalendarEvent) -> StoredEvent:
        query = """
            INSERT INTO calendar_events (user_id, event_id, record)
            VALUES ($1, $2, $3)
            ON CONFLICT (user_id, event_id) DO UPDATE
                SET record = EXCLUDED.record,
                    updated_at = NOW()
            RETURNING user_id, record, created_at, updated_at
        """
        async with _persistence_errors("save"):
            row = await db.fetchrow(query, user_id, event.id, _record(event))
        logger.debug(f"Saved event {event.id} for user {user_id}")
        return self._from_row(row)

    async def list(self, user_id: str) -> List[StoredEvent]:
        query = """
            SELECT user_id, record, created_at, updated_at
            FROM calendar_events
            WHERE user_id = $1
            ORDER BY record->>'date' ASC NULLS LAST, created_at ASC
        """
        async with _persistence_errors("list"):
            rows = await db.fetch(query, user_id)
        return [self._from_row(r) for r in rows]

    async def get(self, user_id: str, event_id: str) -> Optional[StoredEvent]:
        query = """
            SELECT user_id, record, created_at, updated_at
            FROM calendar_events
            WHERE user_id = $1 AND event_id = $2
        """
        async with _persistence_errors("get"):
            row = await db.fetchrow(query, user_id, event_id)
        return self._from_row(row) if row else None

    async def delete(self, user_id: str, event_id: str) -> bool:
        async with _persistence_errors("delete"):
            status = await db.execute(
                "DELETE FROM calendar_events WHERE user_id = $1 AND event_id = $2",
                user_id,
                event_id,
            )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return status.endswith(" 1")

    async def delete_all(self, user_id: str) -> int:
        async with _persistence_errors("delete_all"):
            status = await db.execute("DELETE FROM calendar_events WHERE user_id = $1", user_id)
        deleted = int(status.split()[-1])
        logger.info(f"Cleared {deleted} event(s) for user {user_id}")
        return deleted


def build_event_store(kind: str) -> CalendarEventStore:
    if kind == "postgres":
        return PostgresEventStore()
    if kind == "memory":
        return InMemoryEventStore()
    raise RuntimeError(f"Unknown EVENT_STORE {kind!r}")
