"""HTTP middleware for the API: CORS, request context, rate limiting and error handlers."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fitjourney.config import Settings
from fitjourney.middleware.error_handler import setup_error_handlers
from fitjourney.middleware.logging import setup_logging
from fitjourney.middleware.rate_limit import RateLimitMiddleware
from fitjourney.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs the last added middleware outermost: CORS wraps the
    request context, which wraps the rate limiter, so 429 responses still
    carry CORS headers and a request id.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"],
    )
