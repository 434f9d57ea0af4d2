"""PostgreSQL access through an asyncpg connection pool.

One ``Database`` is created at app startup and handed to the document store;
nothing here is module-global.  Every statement runs under the pool's
``command_timeout`` so a stuck round trip fails instead of hanging, and every
driver / network failure is re-raised as ``UpstreamUnavailableError`` with a
message that carries no connection details.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

import asyncpg

from lunara.config import Settings, get_settings
from lunara.errors import UpstreamUnavailableError

logger = logging.getLogger("lunara.db")

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "sql" / "schema.sql"

# Failures that mean "the store is unreachable or misbehaving", never "not found".
DRIVER_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


async def _init_connection(conn: asyncpg.Connection) -> None:
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


class Database:
    """Thin wrapper over an asyncpg pool."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool. Call once at app startup."""
        s = self._settings
        try:
            self._pool = await asyncpg.create_pool(
                s.database_url,
                min_size=s.database_pool_min_size,
                max_size=s.database_pool_max_size,
                command_timeout=s.request_timeout_seconds,
                timeout=s.request_timeout_seconds,
                init=_init_connection,
            )
        except DRIVER_ERRORS as exc:
            logger.error("Database pool initialization failed: %s", exc)
            raise UpstreamUnavailableError("Database service unavailable") from exc
        logger.info(
            "Database pool initialized (min=%d, max=%d)",
            s.database_pool_min_size,
            s.database_pool_max_size,
        )
        return self._pool

    async def close(self) -> None:
        """Drain the pool. Call at app shutdown."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise UpstreamUnavailableError("Database service unavailable")
        return self._pool

    async def apply_schema(self, path: Path = SCHEMA_PATH) -> None:
        """Create tables and indexes if they do not exist yet."""
        async with self.connection() as conn:
            await conn.execute(path.read_text())
        logger.info("Database schema applied from %s", path.name)

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """Acquire a pooled connection inside a transaction.

        Usage::

            async with db.connection() as conn:
                rows = await conn.fetch("SELECT * FROM cycles WHERE user_id = $1", uid)
        """
        pool = self.pool
        try:
            async with pool.acquire(timeout=self._settings.request_timeout_seconds) as conn:
                async with conn.transaction():
                    yield conn
        except DRIVER_ERRORS as exc:
            logger.error("Database operation failed: %s", exc)
            raise UpstreamUnavailableError("Database service unavailable") from exc

    async def execute(self, query: str, *args: Any) -> str:
        async with self.connection() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.connection() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.connection() as conn:
            return await conn.fetchval(query, *args)

    async def ping(self) -> bool:
        try:
            return await self.fetchval("SELECT 1") == 1
        except UpstreamUnavailableError:
            return False
