"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.jwt import verify_token
from fitjourney.auth.service import get_user_by_id
from fitjourney.config import get_settings
from fitjourney.database import get_session
from fitjourney.db.models import User

_bearer = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """Session cookie first, then an Authorization: Bearer header."""
    cookie = request.cookies.get(get_settings().session_cookie_name)
    if cookie:
        return cookie
    if credentials is not None:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the session token, return the User model.

    Raises 401 for a missing/invalid token or unknown user, 403 for a banned user.
    """
    token = _extract_token(request, credentials)
    if token is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})

    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, int(payload["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if user.is_banned:
        raise HTTPException(status_code=403, detail="Account is banned")
    return user


async def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> None:
    """Guard for cron and service-to-service endpoints: Bearer <FJ_CRON_SECRET>."""
    expected = get_settings().cron_secret
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    if not expected or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(status_code=403, detail="Invalid cron secret")
