"""Reward shop: catalog, purchases, activation, refunds and premium features.

A purchase is one transaction: conditional stock decrement, conditional coin
debit and the user_rewards row either all commit or all roll back.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime, timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.coins.ledger_service import get_balance, refund_coins, spend_coins
from fitjourney.config import get_settings
from fitjourney.db.models import Reward, UserReward
from fitjourney.exceptions import (
    AlreadyOwnedError,
    ExpiredError,
    ForbiddenError,
    GamificationError,
    InsufficientCoinsError,
    NotFoundError,
    OutOfStockError,
    RewardInactiveError,
)
from fitjourney.gamification.badge_service import award_badge
from fitjourney.gamification.events import REWARD_PURCHASED, publish_event
from fitjourney.gamification.trigger_engine import TriggerEngine
from fitjourney.periods import utcnow

logger = logging.getLogger(__name__)

COLLECTIBLE_TYPES = frozenset({"BADGE", "THEME", "AVATAR", "FRAME"})
CODE_TYPES = frozenset({"DISCOUNT_CODE", "GIFT_CARD"})
PREMIUM_TYPES = frozenset({"AD_FREE", "PREMIUM_STATS", "CUSTOM_PROFILE"})
REWARD_TYPES = COLLECTIBLE_TYPES | CODE_TYPES | PREMIUM_TYPES
REWARD_CATEGORIES = ("DIGITAL", "PHYSICAL", "PREMIUM")

_CODE_ALPHABET = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    digits = ""
    while True:
        n, rem = divmod(n, 36)
        digits = _CODE_ALPHABET[rem] + digits
        if n == 0:
            return digits


def generate_reward_code(reward_type: str, reward_id: int) -> str:
    """Redeemable code like DISC-0007-LX2K9F3A-Q8ZP1M."""
    prefix = "DISC" if reward_type == "DISCOUNT_CODE" else "GIFT"
    timestamp = _base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))
    return f"{prefix}-{reward_id:04d}-{timestamp}-{random_part}"


def check_stock(reward: Reward) -> bool:
    """True if the reward can still be bought (NULL stock is unlimited)."""
    return reward.stock is None or reward.stock > 0


async def _owned_reward_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(UserReward.reward_id).where(UserReward.user_id == user_id))
    return set(result.scalars())


async def list_rewards(
    db: AsyncSession,
    user_id: int | None = None,
    reward_type: str | None = None,
    category: str | None = None,
) -> list[dict]:
    """Active catalog with stock and ownership flags."""
    stmt = select(Reward).where(Reward.is_active.is_(True))
    if reward_type is not None:
        stmt = stmt.where(Reward.type == reward_type)
    if category is not None:
        stmt = stmt.where(Reward.category == category)
    rewards = list((await db.execute(stmt.order_by(Reward.sort_order, Reward.price, Reward.id))).scalars())

    owned = await _owned_reward_ids(db, user_id) if user_id is not None else set()
    return [
        {
            "reward": r,
            "in_stock": check_stock(r),
            "owned": r.id in owned and r.type in COLLECTIBLE_TYPES,
        }
        for r in rewards
    ]


async def purchase_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    reward_id: int,
) -> dict:
    """Buy a reward with coins. Commits; any failure leaves nothing changed."""
    reward = await db.get(Reward, reward_id)
    if reward is None:
        msg = "Reward not found"
        raise NotFoundError(msg, code="REWARD_NOT_FOUND")
    if not reward.is_active:
        msg = "Reward is not available"
        raise RewardInactiveError(msg)
    if not check_stock(reward):
        msg = "Reward is out of stock"
        raise OutOfStockError(msg)

    balance = await get_balance(db, user_id)
    if balance < reward.price:
        msg = f"Insufficient coins: balance {balance}, price {reward.price}"
        raise InsufficientCoinsError(msg)

    if reward.type in COLLECTIBLE_TYPES and reward.id in await _owned_reward_ids(db, user_id):
        msg = "You already own this reward"
        raise AlreadyOwnedError(msg)

    try:
        if reward.stock is not None:
            taken = await db.execute(
                update(Reward)
                .where(Reward.id == reward.id, Reward.stock > 0)
                .values(stock=Reward.stock - 1)
                .execution_options(synchronize_session="evaluate")
            )
            if taken.rowcount == 0:
                msg = "Reward is out of stock"
                raise OutOfStockError(msg)

        await spend_coins(
            db,
            user_id,
            reward.price,
            "REWARD_PURCHASE",
            {"reward_id": reward.id, "reward_slug": reward.slug, "reward_type": reward.type},
        )

        now = utcnow()
        user_reward = UserReward(
            user_id=user_id,
            reward=reward,
            coins_paid=reward.price,
            reward_data={},
            purchased_at=now,
        )
        if reward.type in COLLECTIBLE_TYPES:
            user_reward.reward_data = dict(reward.digital_data or {})
            user_reward.is_used = True
            user_reward.used_at = now
            if reward.type == "BADGE" and (reward.digital_data or {}).get("badge_slug"):
                await award_badge(db, redis, user_id, reward.digital_data["badge_slug"], {"reward_id": reward.id})
        elif reward.type in CODE_TYPES:
            user_reward.reward_data = {
                "code": generate_reward_code(reward.type, reward.id),
                "generated_at": now.isoformat(),
            }
        elif reward.type in PREMIUM_TYPES:
            days = reward.premium_days or get_settings().premium_default_days
            user_reward.expires_at = now + timedelta(days=days)

        db.add(user_reward)
        await db.flush()
        await TriggerEngine(db, redis).check_shop_badges(user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    remaining = await get_balance(db, user_id)
    logger.info("User %d bought reward %s for %d coins", user_id, reward.slug, reward.price)
    await publish_event(redis, REWARD_PURCHASED, {
        "user_id": user_id,
        "reward_id": reward.id,
        "reward_name": reward.name,
        "price": reward.price,
    })
    return {"user_reward": user_reward, "remaining_coins": remaining}


async def _get_owned_user_reward(db: AsyncSession, user_id: int, user_reward_id: int) -> UserReward:
    user_reward = await db.get(UserReward, user_reward_id)
    if user_reward is None:
        msg = "Purchased reward not found"
        raise NotFoundError(msg, code="USER_REWARD_NOT_FOUND")
    if user_reward.user_id != user_id:
        msg = "This reward belongs to another user"
        raise ForbiddenError(msg)
    return user_reward


async def activate_reward(
    db: AsyncSession,
    user_id: int,
    user_reward_id: int,
    now: datetime | None = None,
) -> dict:
    """Mark a purchased reward as used and return what the client needs to apply it. Commits."""
    now = now or utcnow()
    user_reward = await _get_owned_user_reward(db, user_id, user_reward_id)
    if user_reward.is_used:
        msg = "Reward already used"
        raise GamificationError(msg, code="ALREADY_USED")
    if user_reward.expires_at is not None and user_reward.expires_at < now:
        msg = "Reward has expired"
        raise ExpiredError(msg)

    reward = user_reward.reward
    if reward.type in CODE_TYPES:
        activation = {"code": user_reward.reward_data.get("code")}
    elif reward.type in PREMIUM_TYPES:
        activation = {"feature": reward.type, "expires_at": user_reward.expires_at}
    else:
        activation = dict(reward.digital_data or {})

    user_reward.is_used = True
    user_reward.used_at = now
    await db.commit()
    logger.info("User %d activated reward %s", user_id, reward.slug)
    return {"user_reward": user_reward, "type": reward.type, "activation": activation}


async def refund_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    user_reward_id: int,
    reason: str = "",
) -> dict:
    """Refund an unused purchase: coins back, stock restored, purchase removed. Commits."""
    user_reward = await _get_owned_user_reward(db, user_id, user_reward_id)
    if user_reward.is_used:
        msg = "Used rewards cannot be refunded"
        raise GamificationError(msg, code="ALREADY_USED")

    reward = user_reward.reward
    amount = user_reward.coins_paid
    try:
        if amount > 0:
            await refund_coins(
                db,
                redis,
                user_id,
                amount,
                "REWARD_REFUND",
                {"reward_id": reward.id, "user_reward_id": user_reward.id, "reason": reason},
            )
        if reward.stock is not None:
            await db.execute(
                update(Reward)
                .where(Reward.id == reward.id)
                .values(stock=Reward.stock + 1)
                .execution_options(synchronize_session="evaluate")
            )
        await db.delete(user_reward)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    balance = await get_balance(db, user_id)
    logger.info("Refunded %d coins to user %d for reward %s", amount, user_id, reward.slug)
    return {"refunded": amount, "balance": balance}


async def get_user_rewards(
    db: AsyncSession,
    user_id: int,
    include_used: bool = True,
    include_expired: bool = False,
    reward_type: str | None = None,
    now: datetime | None = None,
) -> list[UserReward]:
    """The user's purchases, newest first."""
    now = now or utcnow()
    stmt = select(UserReward).join(Reward, UserReward.reward_id == Reward.id).where(UserReward.user_id == user_id)
    if not include_used:
        stmt = stmt.where(UserReward.is_used.is_(False))
    if not include_expired:
        stmt = stmt.where(or_(UserReward.expires_at.is_(None), UserReward.expires_at > now))
    if reward_type is not None:
        stmt = stmt.where(Reward.type == reward_type)
    result = await db.execute(stmt.order_by(UserReward.purchased_at.desc(), UserReward.id.desc()))
    return list(result.scalars())


async def get_active_premium_features(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> dict[str, bool]:
    """Premium flags from activated, unexpired premium rewards."""
    now = now or utcnow()
    result = await db.execute(
        select(Reward.type)
        .join(UserReward, UserReward.reward_id == Reward.id)
        .where(
            UserReward.user_id == user_id,
            UserReward.is_used.is_(True),
            Reward.type.in_(PREMIUM_TYPES),
            or_(UserReward.expires_at.is_(None), UserReward.expires_at > now),
        )
    )
    active = set(result.scalars())
    return {
        "ad_free": "AD_FREE" in active,
        "premium_stats": "PREMIUM_STATS" in active,
        "custom_profile": "CUSTOM_PROFILE" in active,
    }
