"""
asyncpg pool shared by the PostgreSQL event store.

Connections are created with a JSONB codec so event records go in and come
out as plain dicts. Opened at startup from ``Settings.database_url``,
closed at shutdown.
"""

import json
import logging
import pathlib
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_PATH = pathlib.Path(__file__).parent / "schema.sql"

_pool: Optional[asyncpg.Pool] = None


async def _setup_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_db_pool(
    dsn: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 30.0,
) -> asyncpg.Pool:
    global _pool

    if _pool is not None:
        logger.warning("Event database pool already open")
        return _pool

    logger.info(f"Opening event database pool (min={min_size}, max={max_size})")
    try:
        _pool = await asyncpg.create_pool(
            dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            init=_setup_connection,
        )
    except (asyncpg.PostgresError, OSError) as e:
        logger.error(f"Could not open event database pool: {e}")
        raise
    return _pool


async def close_db_pool() -> None:
    global _pool

    if _pool is None:
        return
    await _pool.close()
    _pool = None
    logger.info("Event database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Event database pool is not open; call init_db_pool() at startup")
    return _pool


@asynccontextmanager
async def get_connection():
    async with get_pool().acquire() as conn:
        yield conn


async def execute(query: str, *args) -> str:
    """Returns the command tag, e.g. ``"DELETE 3"``."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)


async def fetch(query: str, *args) -> list:
    async with get_connection() as conn:
        return await conn.fetch(query, *args)


async def fetchrow(query: str, *args):
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)


async def init_schema() -> None:
    """Creates the calendar_events table and index when missing. Idempotent."""
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")
    logger.info(f"Applying {SCHEMA_PATH.name}")
    async with get_connection() as conn:
        await conn.execute(SCHEMA_PATH.read_text())


async def health_check() -> Dict[str, Any]:
    try:
        async with get_connection() as conn:
            table = await conn.fetchval("SELECT to_regclass('calendar_events')")
    except (RuntimeError, asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.error(f"Event database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}

    pool = get_pool()
    return {
        "status": "healthy" if table is not None else "unhealthy",
        "schema": "ready" if table is not None else "missing",
        "pool_size": pool.get_size(),
        "pool_free": pool.get_idle_size(),
    }
