"""Badge award service with duplicate prevention."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.db.models import BadgeDefinition, UserBadge
from fitjourney.gamification.events import BADGE_EARNED, publish_event
from fitjourney.gamification.xp_service import grant_xp

logger = logging.getLogger(__name__)


async def get_badge_by_slug(db: AsyncSession, slug: str) -> BadgeDefinition | None:
    """Fetch a badge definition by slug."""
    result = await db.execute(
        select(BadgeDefinition).where(BadgeDefinition.slug == slug)
    )
    return result.scalar_one_or_none()


async def has_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    """Check if user already has a specific badge."""
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Earned badges, most recent first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars())


async def count_badge_holders(db: AsyncSession) -> dict[int, int]:
    """badge_id -> number of users holding it."""
    result = await db.execute(
        select(UserBadge.badge_id, func.count()).group_by(UserBadge.badge_id)
    )
    return {badge_id: n for badge_id, n in result.all()}


async def award_badge(
    db: AsyncSession,
    redis: object,
    user_id: int,
    badge_slug: str,
    metadata: dict | None = None,
) -> bool:
    """Award a badge to a user.

    Returns True if awarded, False if already earned, unknown or inactive.
    Handles:
    1. Insert into user_badges (UNIQUE(user_id, badge_id) backs the check)
    2. Grant badge XP (idempotent via idempotency_key)
    3. Emit pubsub:badge_earned
    """
    badge = await get_badge_by_slug(db, badge_slug)
    if badge is None or not badge.is_active:
        logger.warning("Badge not found or inactive: %s", badge_slug)
        return False

    if await has_badge(db, user_id, badge.id):
        return False

    db.add(UserBadge(
        user_id=user_id,
        badge=badge,
        earned_at=datetime.now(timezone.utc),
        badge_metadata=metadata or {},
    ))
    await db.flush()

    if badge.xp_reward > 0:
        await grant_xp(
            db=db,
            redis=redis,
            user_id=user_id,
            amount=badge.xp_reward,
            source="badge",
            source_id=badge_slug,
            description=f'Earned badge: "{badge.name}"',
            idempotency_key=f"badge:{badge_slug}:{user_id}",
        )

    logger.info("Awarded badge %s to user %d", badge_slug, user_id)
    await publish_event(redis, BADGE_EARNED, {
        "user_id": user_id,
        "badge_slug": badge.slug,
        "badge_name": badge.name,
        "xp_reward": badge.xp_reward,
    })
    return True
