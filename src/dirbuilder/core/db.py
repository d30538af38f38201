"""Database engine and session management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from src.dirbuilder.core.config import get_settings

_engine: AsyncEngine | None = None


def _configure_sqlite_connection(dbapi_connection: Any, connection_record: Any) -> None:
    # The driver must not emit its own deferred BEGIN; _begin_immediate does it instead
    dbapi_connection.isolation_level = None
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(connection: Any) -> None:
    # Take the write lock at transaction start, so a read-then-write merge
    # cannot interleave with another one (SQLite has no SELECT ... FOR UPDATE)
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_for_url(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine, applying SQLite-specific connection setup."""
    engine = create_async_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_immediate)
    return engine


def get_engine() -> AsyncEngine:
    """Get or create the database engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        kwargs: dict[str, Any] = {"pool_pre_ping": True}
        if not settings.is_sqlite:
            kwargs["pool_size"] = settings.database_pool_size
            kwargs["max_overflow"] = settings.database_max_overflow
        _engine = create_engine_for_url(settings.database_url, **kwargs)
    return _engine


async def dispose_engine() -> None:
    """Dispose the database engine. Call during shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to the given (or default) engine."""
    return async_sessionmaker(
        bind=engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session(
    engine: AsyncEngine | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Create a database session.

    Args:
        engine: Optional engine override for testing.
    """
    async with get_session_factory(engine)() as session:
        yield session


async def init_models(engine: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet (SQLite/dev and tests)."""
    # Register tables on the metadata before create_all
    from src.dirbuilder import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
