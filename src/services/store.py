"""Per-user key-value persistence on Postgres.

Each user owns a set of JSON documents addressed by key (``healthData``,
``symptoms``, ``alerts`` ...) in the ``user_data`` table::

    CREATE TABLE user_data (
        user_id    text        NOT NULL,
        key        text        NOT NULL,
        value      jsonb       NOT NULL,
        updated_at timestamptz NOT NULL DEFAULT NOW(),
        PRIMARY KEY (user_id, key)
    );

Every request gets a connection where ``app.current_user_id`` is set via
``SET LOCAL`` so Row-Level Security policies see the caller's identity.
Driver and network errors are re-raised as ``PersistenceError`` so callers
can tell a failed write apart from "no data".
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from src.config import Settings, get_settings

logger = logging.getLogger("cycleinsights.db")

# Document keys used by the application
HEALTH_DATA = "healthData"
SYMPTOMS = "symptoms"
LIFESTYLE_DATA = "lifestyleData"
PCOS_RISK = "pcosRisk"
ANOMALIES = "anomalies"
ALERTS = "alerts"
HEALTH_METRICS = "healthMetrics"
USER = "user"

ALL_KEYS = (
    HEALTH_DATA,
    SYMPTOMS,
    LIFESTYLE_DATA,
    PCOS_RISK,
    ANOMALIES,
    ALERTS,
    HEALTH_METRICS,
    USER,
)


class PersistenceError(RuntimeError):
    """Raised when the key-value store cannot complete a read or write."""


# Module-level connection pool — initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)", s.db_pool_min_size, s.db_pool_max_size
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(user_id: str | None = None) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection with the RLS user variable set.

    The ``SET LOCAL`` is scoped to the transaction so it disappears when the
    connection is returned to the pool.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute("SELECT set_config('app.current_user_id', $1, true)", user_id)
            yield conn


class PostgresKeyValueStore:
    """Key-value collaborator backed by the ``user_data`` table.

    Usage::

        store = PostgresKeyValueStore()
        await store.set(ALERTS, payload, user_id)
        alerts = await store.get(ALERTS, user_id)   # None if never written
    """

    async def get(self, key: str, user_id: str) -> Any | None:
        """Return the stored document for ``key``, or None if absent."""
        try:
            async with get_connection(user_id) as conn:
                raw = await conn.fetchval(
                    "SELECT value FROM user_data WHERE user_id = $1 AND key = $2",
                    user_id,
                    key,
                )
        except (asyncpg.PostgresError, OSError) as exc:
            logger.error("Storage get failed for %s/%s: %s", user_id, key, exc)
            raise PersistenceError(f"Could not read '{key}'") from exc
        if raw is None:
            return None
        return json.loads(raw) if isinstance(raw, str) else raw

    async def set(self, key: str, value: Any, user_id: str) -> None:
        """Replace the document stored under ``key``."""
        try:
            async with get_connection(user_id) as conn:
                await conn.execute(
                    """
                    INSERT INTO user_data (user_id, key, value)
                    VALUES ($1, $2, $3::jsonb)
                    ON CONFLICT (user_id, key) DO UPDATE SET
                        value = EXCLUDED.value,
                        updated_at = NOW()
                    """,
                    user_id,
                    key,
                    json.dumps(value, default=str),
                )
        except (asyncpg.PostgresError, OSError) as exc:
            logger.error("Storage set failed for %s/%s: %s", user_id, key, exc)
            raise PersistenceError(f"Could not save '{key}'") from exc

    async def delete(self, key: str, user_id: str) -> None:
        try:
            async with get_connection(user_id) as conn:
                await conn.execute(
                    "DELETE FROM user_data WHERE user_id = $1 AND key = $2", user_id, key
                )
        except (asyncpg.PostgresError, OSError) as exc:
            logger.error("Storage delete failed for %s/%s: %s", user_id, key, exc)
            raise PersistenceError(f"Could not delete '{key}'") from exc
