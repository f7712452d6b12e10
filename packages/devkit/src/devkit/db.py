from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine as _create_async_engine
from sqlalchemy.orm import DeclarativeBase

from devkit.timezone import service_zone

T = TypeVar("T")
logger = logging.getLogger(__name__)

_POSTGRES_PREFIX = "postgresql"


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model in the service."""


def normalize_postgres_dsn(dsn: str) -> str:
    """Route bare ``postgresql://`` DSNs to the async psycopg driver."""
    if dsn.startswith(f"{_POSTGRES_PREFIX}://"):
        return f"{_POSTGRES_PREFIX}+psycopg://{dsn[len(_POSTGRES_PREFIX) + 3:]}"
    return dsn


def is_postgres_dsn(dsn: str) -> bool:
    return dsn.startswith(_POSTGRES_PREFIX)


def create_async_engine(dsn: str, pool_recycle_seconds: int = 1800) -> AsyncEngine:
    normalized = normalize_postgres_dsn(dsn)
    engine = _create_async_engine(normalized, pool_pre_ping=True, pool_recycle=pool_recycle_seconds)
    if is_postgres_dsn(normalized):
        zone_name = service_zone().key

        @event.listens_for(engine.sync_engine, "connect")
        def _pin_session_timezone(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute(f"SET TIME ZONE '{zone_name}'")
            finally:
                cursor.close()

    return engine


def is_transient_db_error(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


async def create_schema_if_not_exists(engine: AsyncEngine, schema_name: str) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"'))


async def create_all_tables(engine: AsyncEngine, metadata: MetaData) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


class AsyncDatabaseManager:
    """Lazily connected engine plus a retrying unit-of-work helper.

    ``run_with_session`` commits on success and rolls back on error. Transient
    connection failures rebuild the engine and retry with exponential backoff.
    """

    def __init__(
        self,
        dsn: str,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.2,
    ) -> None:
        self._dsn = normalize_postgres_dsn(dsn)
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def dsn(self) -> str:
        return self._dsn

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database manager is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is None:
            self._engine = create_async_engine(self._dsn)
            self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        engine, self._engine, self._sessions = self._engine, None, None
        await engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._sessions is None:
            await self.connect()
        assert self._sessions is not None
        async with self._sessions() as session:
            async with session.begin():
                yield session

    async def run_with_session(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        for attempt in range(1, self._max_retries + 1):
            try:
                async with self.session() as session:
                    return await fn(session)
            except Exception as exc:
                if attempt >= self._max_retries or not is_transient_db_error(exc):
                    raise
                delay = self._base_delay_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "database_retry",
                    extra={"component": "devkit", "attempt": attempt, "delay_seconds": delay},
                )
                await self.disconnect()
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")
