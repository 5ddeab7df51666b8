"""Exception handlers: every error leaves the API as a JSON ``{"detail": ...}`` body."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fitjourney.exceptions import GamificationError

logger = structlog.get_logger(__name__)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Pydantic error entries without ``ctx``, which can hold exception objects."""
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


async def gamification_error_handler(request: Request, exc: GamificationError) -> JSONResponse:
    logger.info("gamification_error", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_errors(exc)
    logger.info("validation_error", path=request.url.path, error_count=len(errors))
    return JSONResponse(status_code=422, content={"detail": "Validation error", "errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, method=request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def setup_error_handlers(app: FastAPI) -> None:
    """Register the handlers; domain errors keep their own status and ``code``."""
    app.add_exception_handler(GamificationError, gamification_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
