"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path; the app's session
factory dependency is overridden to point at it.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.db import models  # noqa: F401  registers every table
from app.core.db.base import Base
from app.core.db.engine import build_engine, build_session_factory, get_session_factory
from app.main import app


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = build_session_factory(engine)
    app.dependency_overrides[get_session_factory] = lambda: factory
    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    """Session used to seed data; commit before calling the API."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
