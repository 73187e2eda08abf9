"""Shared test fixtures.

Tests run against a fresh in-memory SQLite database per test. Redis is not
initialized, so event publishing is skipped and rate limiting falls through
unless a test installs a fake client.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

os.environ["SIMPLYSECURE_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SIMPLYSECURE_LOG_FORMAT"] = "console"
os.environ["SIMPLYSECURE_ENFORCE_PREREQUISITES"] = "false"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from simplysecure.config import get_settings  # noqa: E402
from simplysecure.database import close_db, get_engine, get_session, init_db  # noqa: E402
from simplysecure.db import models  # noqa: E402, F401
from simplysecure.db.base import Base  # noqa: E402
from simplysecure.main import create_app  # noqa: E402
from simplysecure.users.service import create_user  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Create all tables in a fresh in-memory database."""
    settings = get_settings()
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service tests and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def user_id(db_session: AsyncSession) -> int:
    """A freshly created trainee. Returns the id only."""
    user = await create_user(db_session, "Test Ninja")
    return user.id


@pytest_asyncio.fixture
async def api_user(client: AsyncClient) -> dict:
    """A trainee created through the API."""
    response = await client.post("/api/v1/users", json={"username": "Api Ninja"})
    assert response.status_code == 201
    return response.json()
