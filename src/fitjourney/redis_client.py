"""Process-wide Redis client for event publishing, rate limiting and readiness checks."""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        health_check_interval=30,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
    _client = None


def get_optional_redis() -> redis.Redis | None:
    """FastAPI dependency: the client, or None before ``init_redis``.

    Services treat None as "do not publish".
    """
    return _client


def get_redis() -> redis.Redis:
    """The client; RuntimeError when Redis was never initialized."""
    client = get_optional_redis()
    if client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return client
