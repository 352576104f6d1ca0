"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

def _configure_sqlite(engine: AsyncEngine) -> None:
    """Give SQLite real transactions so savepoints and rollbacks behave like PostgreSQL."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        # Disable the driver's implicit BEGIN; we emit our own below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # Writers queue on the file lock instead of failing at once.
        return {"connect_args": {"timeout": 30}}
    return {
        "pool_size": 10,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        # Poolers in transaction mode reject asyncpg's prepared statement cache.
        "connect_args": {"statement_cache_size": 0},
    }

async def init_db(url: str) -> None:
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_options(url))
    if _engine.dialect.name == "sqlite":
        _configure_sqlite(_engine)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

async def close_db() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database is not initialized"
        raise RuntimeError(msg)
    return _engine

def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for code that needs sessions outside a request."""
    if _session_factory is None:
        msg = "Database is not initialized"
        raise RuntimeError(msg)
    return _session_factory

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Uncommitted work is rolled back on exit."""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
