"""Fixed-window request limiting per client IP, counted in Redis."""

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from fitjourney.redis_client import get_optional_redis

logger = structlog.get_logger(__name__)

_EXEMPT_PATHS = frozenset({"/health", "/ready"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``requests_per_window`` requests per IP per window; 429 beyond that.

    Without a Redis pool, or when Redis errors, requests pass unlimited.
    """

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, remaining: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.requests_per_window),
            "X-RateLimit-Remaining": str(remaining),
        }

    async def _hit(self, redis: Any, client_ip: str, now: float) -> int:  # noqa: ANN401
        window = int(now) // self.window_seconds
        key = f"ratelimit:{client_ip}:{window}"
        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, self.window_seconds + 1)
        return count

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        redis = get_optional_redis()
        if redis is None or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        try:
            count = await self._hit(redis, client_ip, now)
        except RedisError:
            logger.warning("rate_limit_unavailable", client_ip=client_ip, exc_info=True)
            return await call_next(request)

        if count > self.requests_per_window:
            retry_after = self.window_seconds - int(now) % self.window_seconds
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(retry_after), **self._limit_headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(self.requests_per_window - count))
        return response
