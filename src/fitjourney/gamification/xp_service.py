"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.service import get_user_for_update
from fitjourney.config import get_settings
from fitjourney.db.models import XPLedger
from fitjourney.exceptions import GamificationError
from fitjourney.gamification.events import LEVEL_UP, publish_event
from fitjourney.gamification.level_thresholds import compute_level

logger = logging.getLogger(__name__)

# XP paid for each activity reported by the other services.
XP_REWARDS: dict[str, int] = {
    "PLAN_CREATED": 50,
    "PLAN_APPROVED": 100,
    "LIKE_RECEIVED": 5,
    "LIKE_GIVEN": 2,
    "COMMENT_RECEIVED": 10,
    "COMMENT_GIVEN": 5,
    "DAILY_LOGIN": 10,
    "PROFILE_COMPLETE": 25,
    "VIEW_MILESTONE": 20,
    "RECIPE_CREATED": 30,
    "WEIGHT_LOGGED": 5,
    "CHECK_IN": 5,
}


@dataclass(frozen=True)
class XPGrant:
    """Outcome of a grant_xp call."""

    granted: bool
    total_xp: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


async def grant_xp(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    source: str,
    description: str = "",
    source_id: str | None = None,
    idempotency_key: str | None = None,
) -> XPGrant:
    """Grant XP to a user. Flushes, never commits.

    1. Skip if the idempotency key was already used
    2. Insert into xp_ledger
    3. Update users.xp and recompute users.level
    4. On level up: pay the level-up coin bonus and emit pubsub:level_up
    """
    if amount <= 0:
        msg = "XP amount must be positive"
        raise GamificationError(msg, code="INVALID_AMOUNT")

    user = await get_user_for_update(db, user_id)

    if idempotency_key is not None:
        existing = await db.execute(
            select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
        )
        if existing.scalar_one_or_none() is not None:
            return XPGrant(granted=False, total_xp=user.xp, old_level=user.level, new_level=user.level)

    now = datetime.now(timezone.utc)
    db.add(XPLedger(
        user_id=user_id,
        amount=amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
        created_at=now,
    ))

    old_level = user.level
    user.xp += amount
    level_info = compute_level(user.xp)
    user.level = level_info["level"]
    await db.flush()

    result = XPGrant(granted=True, total_xp=user.xp, old_level=old_level, new_level=user.level)
    if result.leveled_up:
        await _on_level_up(db, redis, user_id, old_level, user.level, level_info["title"])

    return result


async def _on_level_up(
    db: AsyncSession,
    redis: object,
    user_id: int,
    old_level: int,
    new_level: int,
    title: str,
) -> None:
    """Pay the per-level coin bonus and broadcast the level up."""
    from fitjourney.coins.ledger_service import grant_bonus_coins

    bonus = get_settings().level_up_coin_bonus * (new_level - old_level)
    if bonus > 0:
        await grant_bonus_coins(
            db,
            redis,
            user_id,
            bonus,
            reason="LEVEL_UP",
            metadata={"old_level": old_level, "new_level": new_level},
        )

    logger.info("User %d leveled up %d -> %d", user_id, old_level, new_level)
    await publish_event(redis, LEVEL_UP, {
        "user_id": user_id,
        "old_level": old_level,
        "new_level": new_level,
        "title": title,
        "coin_bonus": bonus,
    })


async def get_xp_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[XPLedger], int]:
    """Paginated XP ledger, newest first. Returns (entries, total)."""
    total = await db.scalar(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user_id)
    )
    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars()), total or 0
