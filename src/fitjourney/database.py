"""Async SQLAlchemy engine and session factory, created once per process."""

from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str, echo: bool) -> dict:
    """Pool settings for PostgreSQL; SQLite (tests, local runs) takes the defaults."""
    if make_url(url).get_backend_name() != "postgresql":
        return {"echo": echo}
    return {
        "echo": echo,
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        # pgbouncer in transaction mode cannot keep prepared statements
        "connect_args": {"statement_cache_size": 0},
    }


async def init_db(url: str, echo: bool = False) -> None:
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_options(url, echo))
    # Services keep reading ORM objects after their commit
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for code outside a request: lifespan seeding and arq jobs."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, rolled back if left uncommitted."""
    async with get_session_factory()() as session:
        yield session
