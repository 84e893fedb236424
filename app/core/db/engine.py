"""
Database Engine Configuration for FastAPI.

SQLite (aiosqlite) is the default backend and is tuned for:
- Concurrent reads with WAL mode
- Safe concurrency with busy_timeout
- Foreign key enforcement

Read-heavy endpoints (dashboards) fan out independent queries through
run_db()/gather_db(), each running on its own short-lived session.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, List, TypeVar

from fastapi import Depends
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from app.core.config import config as settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _get_engine_options(database_url: str) -> dict:
    """
    Get engine options based on database type.
    SQLite requires special handling for async and concurrency.
    """
    is_sqlite = database_url.startswith("sqlite")

    options = {
        "echo": False,
        "future": True,
    }

    if is_sqlite:
        # StaticPool keeps a single connection alive for in-memory databases
        if ":memory:" in database_url:
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["poolclass"] = NullPool
    elif not settings.is_production:
        options["poolclass"] = NullPool
    else:
        options["pool_pre_ping"] = True

    return options


def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    Configure SQLite connection for concurrent access.
    Called on every new connection to the database.
    """
    cursor = dbapi_connection.cursor()

    # Readers don't block writers and vice versa
    cursor.execute("PRAGMA journal_mode=WAL")

    # Wait up to 30 seconds for locks before failing
    cursor.execute("PRAGMA busy_timeout=30000")

    # Disabled by default in SQLite
    cursor.execute("PRAGMA foreign_keys=ON")

    cursor.execute("PRAGMA synchronous=NORMAL")

    # -64000 = 64MB cache
    cursor.execute("PRAGMA cache_size=-64000")

    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine, registering the SQLite PRAGMAs when needed."""
    engine = create_async_engine(database_url, **_get_engine_options(database_url))

    if database_url.startswith("sqlite"):
        # For aiosqlite, we need to use the sync_engine's pool events
        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            _configure_sqlite_connection(dbapi_connection, connection_record)

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Manual control over flushing
    )


database_url = settings.database_url

engine = build_engine(database_url)

AsyncSessionLocal = build_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Session factory dependency.
    Overridden in tests to point the whole app at a temporary database.
    """
    return AsyncSessionLocal


async def get_db_util(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Request scoped session.

    Transaction handling:
    - Commit once when the handler returns
    - Rollback on any exception, so a failing batch leaves nothing behind
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def run_db(
    fn: Callable[[AsyncSession], Awaitable[T]],
    session_factory: async_sessionmaker[AsyncSession] = None,
) -> T:
    """Run a read-only callable on its own short-lived session."""
    factory = session_factory or AsyncSessionLocal
    async with factory() as session:
        return await fn(session)


async def gather_db(
    *fns: Callable[[AsyncSession], Awaitable[Any]],
    session_factory: async_sessionmaker[AsyncSession] = None,
) -> List[Any]:
    """
    Run independent read callables concurrently, one session each.

    Results come back in argument order. The first failure propagates;
    wrap optional reads with fallback() to tolerate their failure.
    """
    return list(
        await asyncio.gather(*(run_db(fn, session_factory) for fn in fns))
    )


def fallback(
    fn: Callable[[AsyncSession], Awaitable[T]], default: T
) -> Callable[[AsyncSession], Awaitable[T]]:
    """Wrap a non-critical read so that a failure yields ``default``."""

    async def _wrapped(db: AsyncSession) -> T:
        try:
            return await fn(db)
        except Exception as exc:
            logger.warning("Optional query %s failed: %s", getattr(fn, "__name__", fn), exc)
            return default

    _wrapped.__name__ = getattr(fn, "__name__", "optional_query")
    return _wrapped


async def check_database_connection(
    session_factory: async_sessionmaker[AsyncSession] = None,
) -> bool:
    """
    Verify database connection is working.
    Used by the health check endpoint.
    """
    try:
        async with (session_factory or AsyncSessionLocal)() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception:
        logger.exception("Database health check failed")
        return False
