import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from devkit.db import AsyncDatabaseManager, is_postgres_dsn, is_transient_db_error, normalize_postgres_dsn


def test_normalize_postgres_dsn() -> None:
    assert normalize_postgres_dsn("postgresql://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_postgres_dsn("postgresql+psycopg://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_postgres_dsn("sqlite+aiosqlite:///pharmacies.db") == "sqlite+aiosqlite:///pharmacies.db"


def test_is_postgres_dsn() -> None:
    assert is_postgres_dsn("postgresql+psycopg://u:p@h:5432/db")
    assert not is_postgres_dsn("sqlite+aiosqlite:///pharmacies.db")


def test_transient_error_detection() -> None:
    assert is_transient_db_error(OperationalError("stmt", {}, Exception("down")))
    assert not is_transient_db_error(ValueError("nope"))


@pytest.mark.asyncio
async def test_run_with_session_retries_transient_errors() -> None:
    manager = AsyncDatabaseManager("sqlite+aiosqlite:///:memory:", max_retries=3, base_delay_seconds=0)
    calls = {"count": 0}

    async def work(session) -> int:  # type: ignore[no-untyped-def]
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("SELECT 1", {}, Exception("connection reset"))
        return (await session.execute(text("SELECT 1"))).scalar_one()

    try:
        assert await manager.run_with_session(work) == 1
        assert calls["count"] == 2
    finally:
        await manager.disconnect()


@pytest.mark.asyncio
async def test_run_with_session_does_not_retry_other_errors() -> None:
    manager = AsyncDatabaseManager("sqlite+aiosqlite:///:memory:", max_retries=3, base_delay_seconds=0)
    calls = {"count": 0}

    async def work(_session) -> None:  # type: ignore[no-untyped-def]
        calls["count"] += 1
        raise ValueError("bad row")

    try:
        with pytest.raises(ValueError):
            await manager.run_with_session(work)
        assert calls["count"] == 1
    finally:
        await manager.disconnect()
