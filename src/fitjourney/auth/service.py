"""User lookups shared by the gamification services."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from fitjourney.db.models import User, UserStats
from fitjourney.exceptions import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_for_update(db: AsyncSession, user_id: int) -> User:
    """Load a user with a row lock for a read-modify-write of its totals.

    Raises NotFoundError if the user does not exist.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg, code="USER_NOT_FOUND")
    return user


async def get_or_create_user(
    db: AsyncSession,
    email: str,
    username: str | None = None,
    name: str | None = None,
) -> tuple[User, bool]:
    """
    Get existing user or create a new one.

    Returns:
        Tuple of (user, created) where created is True if a new user was made.
    """
    user = await get_user_by_email(db, email)
    if user is not None:
        return user, False

    user = User(email=email.lower(), username=username, name=name)
    db.add(user)
    await db.flush()
    db.add(UserStats(user_id=user.id))
    await db.flush()
    logger.info("user_created", user_id=user.id)
    return user, True


async def get_or_create_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Get or create the activity counter row for a user."""
    stats = await db.get(UserStats, user_id)
    if stats is None:
        stats = UserStats(user_id=user_id)
        db.add(stats)
        await db.flush()
    return stats
