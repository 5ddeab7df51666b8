"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite) with the
catalog seeded, and without Redis: event publishing and rate limiting
are no-ops when no Redis pool is initialized.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

os.environ["FJ_SECRET_KEY"] = "test-secret-key"
os.environ["FJ_CRON_SECRET"] = "test-cron-secret"
os.environ["FJ_LOG_FORMAT"] = "console"
os.environ["FJ_ACTIVITY_TIMEZONE"] = "UTC"

from fitjourney.auth.jwt import create_access_token  # noqa: E402
from fitjourney.auth.service import get_or_create_user  # noqa: E402
from fitjourney.config import get_settings  # noqa: E402
from fitjourney.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from fitjourney.db.base import Base  # noqa: E402
from fitjourney.db.models import User  # noqa: E402
from fitjourney.gamification.seed import seed_all  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-cron-secret"}


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database with all tables and the seeded catalog."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'fitjourney_test.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with get_session_factory()() as session:
        await seed_all(session)
    yield get_engine()
    await close_db()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for calling services and asserting state."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory: create and commit a user with optional starting totals."""
    counter = itertools.count(1)

    async def _make(coins: int = 0, xp: int = 0, level: int = 1, **fields: object) -> User:
        n = next(counter)
        user, _ = await get_or_create_user(db_session, f"user{n}@example.com", username=f"user{n}", name=f"User {n}")
        user.coins = coins
        user.xp = xp
        user.level = level
        for key, value in fields.items():
            setattr(user, key, value)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app; the engine fixture stands in for the lifespan."""
    from fitjourney.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a Bearer session token for ``user``."""
    client.headers["Authorization"] = f"Bearer {create_access_token(user.id, user.email)}"
    return client
