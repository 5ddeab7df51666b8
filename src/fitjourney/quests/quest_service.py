"""Quest assignment, progress tracking, reward claiming and cleanup.

Assignments are keyed by (user, quest, period_key); the unique constraint on
that triple means re-running assignment for a period never duplicates a quest.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.coins.ledger_service import add_coins
from fitjourney.config import get_settings
from fitjourney.db.models import Quest, User, UserQuest
from fitjourney.exceptions import (
    AlreadyClaimedError,
    ExpiredError,
    ForbiddenError,
    GamificationError,
    NotFoundError,
    QuestNotCompletedError,
)
from fitjourney.gamification.events import QUEST_COMPLETED, publish_event
from fitjourney.gamification.xp_service import grant_xp
from fitjourney.periods import quest_expiry, quest_period_key, utcnow

logger = logging.getLogger(__name__)

QUEST_TYPES = ("DAILY", "WEEKLY", "SPECIAL")

TARGET_TYPES = (
    "CREATE_PLAN",
    "APPROVE_PLAN",
    "LIKE_COUNT",
    "COMMENT_COUNT",
    "CREATE_RECIPE",
    "DAILY_LOGIN",
    "WEIGHT_LOG",
    "CHECK_IN",
    "FOLLOW_USER",
    "VIEW_PLANS",
    "PLAY_GAME",
)


def _assignment_limit(quest_type: str) -> int | None:
    settings = get_settings()
    if quest_type == "DAILY":
        return settings.daily_quest_limit
    if quest_type == "WEEKLY":
        return settings.weekly_quest_limit
    return None


def _unexpired(now: datetime):
    return or_(UserQuest.expires_at.is_(None), UserQuest.expires_at > now)


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


async def assign_quests(
    db: AsyncSession,
    user_id: int,
    quest_type: str,
    now: datetime | None = None,
) -> list[UserQuest]:
    """Assign the highest-priority active quests of a type for the current period.

    Idempotent per period: quests already assigned are skipped and the total
    for the period never exceeds the type's limit. Returns the new rows.
    """
    if quest_type not in QUEST_TYPES:
        msg = f"Unknown quest type '{quest_type}'"
        raise GamificationError(msg, code="INVALID_QUEST_TYPE")

    now = now or utcnow()
    period_key = quest_period_key(quest_type, now)
    limit = _assignment_limit(quest_type)

    stmt = (
        select(Quest)
        .where(Quest.type == quest_type, Quest.is_active.is_(True))
        .order_by(Quest.priority.desc(), Quest.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    templates = list((await db.execute(stmt)).scalars())
    if not templates:
        return []

    existing = await db.execute(
        select(UserQuest.quest_id)
        .join(Quest, UserQuest.quest_id == Quest.id)
        .where(
            UserQuest.user_id == user_id,
            UserQuest.period_key == period_key,
            Quest.type == quest_type,
        )
    )
    assigned_ids = set(existing.scalars())

    candidates = [q for q in templates if q.id not in assigned_ids]
    if limit is not None:
        candidates = candidates[: max(0, limit - len(assigned_ids))]

    expires_at = quest_expiry(quest_type, now)
    created = []
    for quest in candidates:
        user_quest = UserQuest(
            user_id=user_id,
            quest=quest,
            period_key=period_key,
            assigned_at=now,
            expires_at=expires_at,
        )
        db.add(user_quest)
        created.append(user_quest)

    if created:
        await db.flush()
        logger.info("Assigned %d %s quests to user %d for %s", len(created), quest_type, user_id, period_key)
    return created


async def ensure_user_quests(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> int:
    """Lazily assign every quest type for the current periods. Returns rows created."""
    created = 0
    for quest_type in QUEST_TYPES:
        created += len(await assign_quests(db, user_id, quest_type, now))
    return created


async def assign_quests_to_all_users(
    db: AsyncSession,
    quest_type: str,
    now: datetime | None = None,
) -> dict:
    """Cron entry point: assign a quest type to every active user, one commit per user."""
    user_ids = list((await db.execute(
        select(User.id).where(User.is_banned.is_(False)).order_by(User.id)
    )).scalars())

    success = 0
    errors = 0
    for user_id in user_ids:
        try:
            await assign_quests(db, user_id, quest_type, now)
            await db.commit()
            success += 1
        except SQLAlchemyError:
            await db.rollback()
            errors += 1
            logger.warning("Quest assignment failed for user %d", user_id, exc_info=True)

    logger.info("%s quest assignment: %d ok, %d failed, %d users", quest_type, success, errors, len(user_ids))
    return {"success": success, "errors": errors, "total": len(user_ids)}


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def update_quest_progress(
    db: AsyncSession,
    redis: object,
    user_id: int,
    target_type: str,
    increment: int = 1,
    now: datetime | None = None,
) -> list[UserQuest]:
    """Advance the user's open, unexpired quests with this target.

    Progress is capped at the target value. Returns quests completed by this call.
    """
    now = now or utcnow()
    result = await db.execute(
        select(UserQuest)
        .join(Quest, UserQuest.quest_id == Quest.id)
        .where(
            UserQuest.user_id == user_id,
            UserQuest.completed.is_(False),
            Quest.target_type == target_type,
            _unexpired(now),
        )
    )
    completed = []
    for user_quest in result.scalars():
        target = user_quest.quest.target_value
        user_quest.progress = min(target, user_quest.progress + increment)
        if user_quest.progress >= target:
            user_quest.completed = True
            user_quest.completed_at = now
            completed.append(user_quest)
    await db.flush()

    for user_quest in completed:
        logger.info("User %d completed quest %s", user_id, user_quest.quest.slug)
        await publish_event(redis, QUEST_COMPLETED, {
            "user_id": user_id,
            "user_quest_id": user_quest.id,
            "quest_slug": user_quest.quest.slug,
            "title": user_quest.quest.title,
            "coin_reward": user_quest.quest.coin_reward,
            "xp_reward": user_quest.quest.xp_reward,
        })

    if completed:
        from fitjourney.gamification.trigger_engine import TriggerEngine

        await TriggerEngine(db, redis).check_quest_badges(user_id)

    return completed


# ---------------------------------------------------------------------------
# Claiming
# ---------------------------------------------------------------------------


async def claim_quest_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    user_quest_id: int,
    now: datetime | None = None,
) -> dict:
    """Pay out a completed quest's coins and XP exactly once. Commits."""
    now = now or utcnow()
    user_quest = await db.get(UserQuest, user_quest_id)
    if user_quest is None:
        msg = "Quest not found"
        raise NotFoundError(msg, code="QUEST_NOT_FOUND")
    if user_quest.user_id != user_id:
        msg = "This quest belongs to another user"
        raise ForbiddenError(msg)
    if not user_quest.completed:
        msg = "Quest is not completed yet"
        raise QuestNotCompletedError(msg)
    if user_quest.reward_claimed:
        msg = "Quest reward already claimed"
        raise AlreadyClaimedError(msg)
    if user_quest.expires_at is not None and user_quest.expires_at < now:
        msg = "Quest has expired"
        raise ExpiredError(msg)

    # Flip the flag first so a concurrent claim matches zero rows
    flipped = await db.execute(
        update(UserQuest)
        .where(UserQuest.id == user_quest_id, UserQuest.reward_claimed.is_(False))
        .values(reward_claimed=True, claimed_at=now)
        .execution_options(synchronize_session="evaluate")
    )
    if flipped.rowcount == 0:
        msg = "Quest reward already claimed"
        raise AlreadyClaimedError(msg)

    quest = user_quest.quest
    metadata = {"quest_id": quest.id, "quest_slug": quest.slug, "user_quest_id": user_quest.id}
    balance = None
    if quest.coin_reward > 0:
        balance = await add_coins(db, redis, user_id, quest.coin_reward, f"QUEST_{quest.type}", metadata)
    if quest.xp_reward > 0:
        await grant_xp(
            db,
            redis,
            user_id,
            quest.xp_reward,
            source="quest",
            source_id=quest.slug,
            description=f"Quest completed: {quest.title}",
            idempotency_key=f"quest:{user_quest.id}",
        )

    await db.commit()
    logger.info("User %d claimed quest %s: %d coins, %d XP", user_id, quest.slug, quest.coin_reward, quest.xp_reward)
    return {
        "user_quest": user_quest,
        "coins": quest.coin_reward,
        "xp": quest.xp_reward,
        "balance": balance,
    }


# ---------------------------------------------------------------------------
# Cleanup and listing
# ---------------------------------------------------------------------------


async def cleanup_expired_quests(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete expired quests that were never completed. Commits; returns rows deleted."""
    now = now or utcnow()
    result = await db.execute(
        delete(UserQuest)
        .where(
            UserQuest.completed.is_(False),
            UserQuest.expires_at.is_not(None),
            UserQuest.expires_at < now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    deleted = result.rowcount or 0
    logger.info("Cleaned up %d expired quests", deleted)
    return deleted


async def get_user_active_quests(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    assign: bool = True,
) -> dict[str, list[UserQuest]]:
    """Current-period quests grouped by type, assigning missing ones first."""
    now = now or utcnow()
    if assign and await ensure_user_quests(db, user_id, now):
        await db.commit()

    result = await db.execute(
        select(UserQuest)
        .join(Quest, UserQuest.quest_id == Quest.id)
        .where(UserQuest.user_id == user_id, _unexpired(now))
        .order_by(Quest.priority.desc(), UserQuest.id)
    )
    quests = list(result.scalars())
    return {
        "daily": [q for q in quests if q.quest.type == "DAILY"],
        "weekly": [q for q in quests if q.quest.type == "WEEKLY"],
        "special": [q for q in quests if q.quest.type == "SPECIAL"],
        "all": quests,
    }
