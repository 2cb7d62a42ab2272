# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""PostgreSQL connection management with asyncpg and bounded call times."""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from typing import Any

import asyncpg
from attrs import field, frozen
from beartype import beartype

from .config import get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)

AUTH_STATES_DDL = """
CREATE TABLE IF NOT EXISTS auth_states (
    state_id    UUID PRIMARY KEY,
    token       TEXT        NOT NULL,
    user_id     TEXT        NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL,
    expires_at  TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_auth_states_expires_at ON auth_states (expires_at);
"""


class DatabaseUnavailableError(Exception):
    """Raised when PostgreSQL cannot answer within the configured bound."""


@frozen
class DatabaseConfig:
    """Immutable database configuration."""

    url: str = field()
    min_size: int = field(default=1)
    max_size: int = field(default=10)
    timeout_seconds: float = field(default=5.0)


class Database:
    """asyncpg pool wrapper.

    Every query is bounded by ``timeout_seconds``; timeouts and connection
    failures surface as :class:`DatabaseUnavailableError` so callers can
    classify them as transient.
    """

    def __init__(self, config: DatabaseConfig | None = None) -> None:
        self._pool: asyncpg.Pool | None = None
        self._config = config or self._config_from_settings()

    @staticmethod
    def _config_from_settings() -> DatabaseConfig:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is not configured")
        return DatabaseConfig(
            url=settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            timeout_seconds=settings.datastore_timeout_seconds,
        )

    @property
    def timeout(self) -> float:
        """Per-call bound in seconds."""
        return self._config.timeout_seconds

    @beartype
    async def connect(self) -> None:
        """Create the connection pool."""
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                self._config.url,
                min_size=self._config.min_size,
                max_size=self._config.max_size,
                timeout=self._config.timeout_seconds,
                command_timeout=self._config.timeout_seconds,
            )
        except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as e:
            raise DatabaseUnavailableError(f"Could not create pool: {e}") from e
        logger.info(
            "Database pool ready (min=%d, max=%d)",
            self._config.min_size,
            self._config.max_size,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a pooled connection within the configured bound."""
        if self._pool is None:
            raise RuntimeError("Database not connected")
        try:
            async with self._pool.acquire(timeout=self._config.timeout_seconds) as conn:
                yield conn
        except asyncio.TimeoutError as e:
            raise DatabaseUnavailableError("Timed out acquiring connection") from e
        except (asyncpg.PostgresConnectionError, OSError) as e:
            raise DatabaseUnavailableError(f"Connection failed: {e}") from e

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a statement and return the status tag."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args, timeout=self.timeout)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Fetch all rows."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args, timeout=self.timeout)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args, timeout=self.timeout)

    @beartype
    async def ensure_schema(self) -> None:
        """Create the tables this service owns."""
        await self.execute(AUTH_STATES_DDL)
        logger.info("auth_states table ensured")


_database: Database | None = None


@beartype
def get_database() -> Database:
    """Get global database instance."""
    global _database
    if _database is None:
        _database = Database()
    return _database


@beartype
async def init_db_pool() -> None:
    """Initialize the database pool and schema."""
    db = get_database()
    await db.connect()
    await db.ensure_schema()


@beartype
async def close_db_pool() -> None:
    """Close the database pool."""
    global _database
    if _database is not None:
        await _database.disconnect()
        _database = None
