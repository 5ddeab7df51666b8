"""Daily activity streak and streak milestone bonuses."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.service import get_user_by_id, get_user_for_update
from fitjourney.coins.ledger_service import grant_bonus_coins
from fitjourney.db.models import StreakBonus, StreakBonusGrant
from fitjourney.exceptions import AlreadyClaimedError, GamificationError, NotFoundError
from fitjourney.gamification.badge_service import award_badge
from fitjourney.gamification.events import STREAK_UPDATE, publish_event
from fitjourney.gamification.trigger_engine import TriggerEngine
from fitjourney.gamification.xp_service import XP_REWARDS, grant_xp
from fitjourney.periods import local_date
from fitjourney.quests.quest_service import update_quest_progress

logger = logging.getLogger(__name__)


def next_streak_value(current: int, last_active: date | None, today: date) -> int | None:
    """New streak value for activity on ``today``, or None if nothing changes.

    Same day (or a last-active date in the future) is a no-op, yesterday
    extends the streak and anything older restarts it at 1.
    """
    if last_active is None:
        return 1
    if last_active >= today:
        return None
    if last_active == today - timedelta(days=1):
        return current + 1
    return 1


async def get_streak_bonus(db: AsyncSession, streak_days: int) -> StreakBonus | None:
    result = await db.execute(select(StreakBonus).where(StreakBonus.streak_days == streak_days))
    return result.scalar_one_or_none()


async def get_granted_bonus_days(db: AsyncSession, user_id: int) -> set[int]:
    """Milestone day counts this user has already been paid for."""
    result = await db.execute(
        select(StreakBonus.streak_days)
        .join(StreakBonusGrant, StreakBonusGrant.streak_bonus_id == StreakBonus.id)
        .where(StreakBonusGrant.user_id == user_id)
    )
    return set(result.scalars())


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: int,
    today: date | None = None,
) -> dict:
    """Record today's activity for the user's streak. Commits.

    On the first activity of a day:
    1. Extend or restart the streak, keep longest_streak current
    2. Grant daily-login XP and tick DAILY_LOGIN quests
    3. Award streak badges and pay the milestone bonus for the new length
    """
    today = today or local_date()
    user = await get_user_for_update(db, user_id)
    previous = user.streak

    new_streak = next_streak_value(previous, user.last_active_date, today)
    if new_streak is None:
        return {
            "streak": user.streak,
            "longest_streak": user.longest_streak,
            "changed": False,
            "broken": False,
            "bonus": None,
        }

    broken = new_streak == 1 and previous > 0
    user.streak = new_streak
    user.longest_streak = max(user.longest_streak, new_streak)
    user.last_active_date = today
    await db.flush()

    await grant_xp(
        db,
        redis,
        user_id,
        XP_REWARDS["DAILY_LOGIN"],
        source="DAILY_LOGIN",
        source_id=today.isoformat(),
        description="Daily login",
        idempotency_key=f"daily_login:{user_id}:{today.isoformat()}",
    )
    await update_quest_progress(db, redis, user_id, "DAILY_LOGIN")
    await TriggerEngine(db, redis).check_streak_badges(user_id, new_streak)

    bonus = None
    milestone = await get_streak_bonus(db, new_streak)
    if milestone is not None and new_streak not in await get_granted_bonus_days(db, user_id):
        bonus = await grant_streak_bonus(db, redis, user_id, new_streak)

    await db.commit()

    if broken:
        logger.info("User %d streak broken at %d, restarted", user_id, previous)
    await publish_event(redis, STREAK_UPDATE, {
        "user_id": user_id,
        "streak": new_streak,
        "longest_streak": user.longest_streak,
        "broken": broken,
        "bonus_days": bonus["streak_days"] if bonus else None,
    })
    return {
        "streak": new_streak,
        "longest_streak": user.longest_streak,
        "changed": True,
        "broken": broken,
        "bonus": bonus,
    }


async def grant_streak_bonus(
    db: AsyncSession,
    redis: object,
    user_id: int,
    streak_days: int,
) -> dict:
    """Pay a streak milestone once per user. Flushes, never commits.

    Raises NotFoundError for an unknown milestone, GamificationError when the
    current streak has not reached it, AlreadyClaimedError when already paid.
    """
    milestone = await get_streak_bonus(db, streak_days)
    if milestone is None:
        msg = f"No streak bonus for {streak_days} days"
        raise NotFoundError(msg, code="MILESTONE_NOT_FOUND")

    user = await get_user_for_update(db, user_id)
    if user.streak < streak_days:
        msg = f"Streak of {user.streak} days has not reached {streak_days}"
        raise GamificationError(msg, code="MILESTONE_NOT_REACHED")

    if streak_days in await get_granted_bonus_days(db, user_id):
        msg = f"Streak bonus for {streak_days} days already claimed"
        raise AlreadyClaimedError(msg)

    db.add(StreakBonusGrant(user_id=user_id, streak_bonus_id=milestone.id))
    await db.flush()

    metadata = {"streak_days": streak_days}
    if milestone.coin_reward > 0:
        await grant_bonus_coins(db, redis, user_id, milestone.coin_reward, "STREAK_BONUS", metadata)
    if milestone.xp_reward > 0:
        await grant_xp(
            db,
            redis,
            user_id,
            milestone.xp_reward,
            source="streak_bonus",
            source_id=str(streak_days),
            description=f"{streak_days}-day streak bonus",
            idempotency_key=f"streak_bonus:{user_id}:{streak_days}",
        )
    badge_awarded = False
    if milestone.badge_slug:
        badge_awarded = await award_badge(db, redis, user_id, milestone.badge_slug, metadata)

    logger.info("Granted %d-day streak bonus to user %d", streak_days, user_id)
    return {
        "streak_days": streak_days,
        "coins": milestone.coin_reward,
        "xp": milestone.xp_reward,
        "badge_slug": milestone.badge_slug if badge_awarded else None,
    }


async def claim_streak_bonus(
    db: AsyncSession,
    redis: object,
    user_id: int,
    streak_days: int,
) -> dict:
    """User-facing claim of a reached milestone. Commits."""
    result = await grant_streak_bonus(db, redis, user_id, streak_days)
    await db.commit()
    return result


async def get_streak_status(
    db: AsyncSession,
    user_id: int,
    today: date | None = None,
) -> dict:
    """Streak summary with milestone progress."""
    today = today or local_date()
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg, code="USER_NOT_FOUND")
    milestones = list((await db.execute(
        select(StreakBonus).order_by(StreakBonus.streak_days)
    )).scalars())
    granted = await get_granted_bonus_days(db, user_id)

    items = [
        {
            "streak_days": m.streak_days,
            "coin_reward": m.coin_reward,
            "xp_reward": m.xp_reward,
            "badge_slug": m.badge_slug,
            "description": m.description,
            "reached": user.streak >= m.streak_days,
            "claimed": m.streak_days in granted,
        }
        for m in milestones
    ]
    next_milestone = next((i for i in items if i["streak_days"] > user.streak), None)
    return {
        "current_streak": user.streak,
        "longest_streak": user.longest_streak,
        "last_active_date": user.last_active_date,
        "active_today": user.last_active_date == today,
        "next_milestone": next_milestone,
        "days_to_next_milestone": next_milestone["streak_days"] - user.streak if next_milestone else None,
        "claimed": sorted(granted),
        "available": [i["streak_days"] for i in items if i["reached"] and not i["claimed"]],
        "milestones": items,
    }
