"""Catalog seed data: badges, streak milestones, quest templates and shop rewards.

Seeding is idempotent and runs on startup. Existing rows keep their ids;
descriptive fields are refreshed, live counters such as reward stock are not.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.db.models import BadgeDefinition, Quest, Reward, StreakBonus

logger = logging.getLogger(__name__)


def _badge(slug, name, description, icon, category, xp_reward, sort_order) -> dict:
    return {
        "slug": slug,
        "name": name,
        "description": description,
        "icon": icon,
        "category": category,
        "xp_reward": xp_reward,
        "sort_order": sort_order,
    }


BADGE_SEED_DATA: list[dict] = [
    # Plans
    _badge("first_plan", "First Step", "Get your first plan approved", "🎯", "plans", 50, 1),
    _badge("plans_5", "Plan Maker", "Get 5 plans approved", "📝", "plans", 100, 2),
    _badge("plans_10", "Plan Hero", "Get 10 plans approved", "⭐", "plans", 200, 3),
    _badge("plans_25", "Plan Legend", "Get 25 plans approved", "👑", "plans", 500, 4),
    # Community
    _badge("likes_10", "Liked", "Your plans received 10 likes", "❤️", "community", 75, 10),
    _badge("likes_50", "Popular", "Your plans received 50 likes", "💖", "community", 150, 11),
    _badge("likes_100", "Superstar", "Your plans received 100 likes", "🌟", "community", 300, 12),
    _badge("views_100", "Eye-Catcher", "Your plans were viewed 100 times", "👀", "community", 50, 13),
    _badge("views_500", "Trending", "Your plans were viewed 500 times", "🔥", "community", 100, 14),
    _badge("views_1000", "Viral", "Your plans were viewed 1,000 times", "💥", "community", 250, 15),
    _badge("comments_10", "Chatty", "Write 10 comments", "💬", "community", 50, 16),
    _badge("comments_50", "Community Friend", "Write 50 comments", "🗣️", "community", 150, 17),
    # Streaks
    _badge("active_7_days", "Week Warrior", "Stay active 7 days in a row", "📅", "streak", 100, 20),
    _badge("active_30_days", "Month Master", "Stay active 30 days in a row", "🗓️", "streak", 300, 21),
    _badge("active_100_days", "Loyal", "Stay active 100 days in a row", "🏆", "streak", 1000, 22),
    # Quests
    _badge("quest_master_10", "Quest Apprentice", "Complete 10 quests", "🗺️", "quests", 100, 30),
    _badge("quest_master_50", "Quest Master", "Complete 50 quests", "🧭", "quests", 500, 31),
    _badge("quest_master_100", "Quest Legend", "Complete 100 quests", "🏅", "quests", 1000, 32),
    # Coins
    _badge("coin_collector_1000", "Coin Collector", "Earn 1,000 coins", "🪙", "coins", 150, 40),
    _badge("coin_collector_5000", "Coin Hoarder", "Earn 5,000 coins", "💰", "coins", 750, 41),
    _badge("coin_collector_10000", "Coin Tycoon", "Earn 10,000 coins", "💎", "coins", 1500, 42),
    # Games
    _badge("game_calorie_master", "Calorie Master", "Score 800+ in Calorie Guess", "🍎", "games", 200, 50),
    _badge("game_memory_master", "Memory Master", "Score 80+ in Memory Cards", "🧠", "games", 200, 51),
    # Shop
    _badge("shop_first_purchase", "First Purchase", "Buy your first reward", "🛍️", "shop", 100, 60),
    _badge("shop_enthusiast_10", "Shop Enthusiast", "Buy 10 rewards", "🛒", "shop", 500, 61),
    # Sold in the shop only
    _badge("shop_golden_apple", "Golden Apple", "A shiny badge from the reward shop", "🍏", "shop", 0, 70),
    _badge("shop_early_bird", "Early Bird", "For members who start the day early", "🐦", "shop", 0, 71),
    _badge("shop_marathoner", "Marathoner", "For the long-distance dieters", "🏃", "shop", 0, 72),
    _badge("shop_zen", "Zen", "Calm and consistent", "🧘", "shop", 0, 73),
]

STREAK_BONUS_SEED_DATA: list[dict] = [
    {"streak_days": 7, "coin_reward": 100, "xp_reward": 50, "badge_slug": "active_7_days",
     "description": "7-day streak bonus"},
    {"streak_days": 14, "coin_reward": 250, "xp_reward": 100, "badge_slug": None,
     "description": "14-day streak bonus"},
    {"streak_days": 30, "coin_reward": 500, "xp_reward": 250, "badge_slug": "active_30_days",
     "description": "30-day streak bonus"},
    {"streak_days": 60, "coin_reward": 1000, "xp_reward": 500, "badge_slug": None,
     "description": "60-day streak bonus"},
    {"streak_days": 100, "coin_reward": 2000, "xp_reward": 1000, "badge_slug": "active_100_days",
     "description": "100-day streak bonus"},
    {"streak_days": 180, "coin_reward": 3500, "xp_reward": 1500, "badge_slug": None,
     "description": "180-day streak bonus"},
    {"streak_days": 365, "coin_reward": 10000, "xp_reward": 5000, "badge_slug": None,
     "description": "365-day streak bonus"},
]


def _quest(slug, title, description, quest_type, category, target_type, target_value, coins, xp, priority) -> dict:
    return {
        "slug": slug,
        "title": title,
        "description": description,
        "type": quest_type,
        "category": category,
        "target_type": target_type,
        "target_value": target_value,
        "coin_reward": coins,
        "xp_reward": xp,
        "priority": priority,
    }


QUEST_SEED_DATA: list[dict] = [
    # Daily
    _quest("daily_login", "Show Up", "Open the app today", "DAILY", "ACTIVITY", "DAILY_LOGIN", 1, 10, 10, 100),
    _quest("daily_weight_log", "Step on the Scale", "Log your weight today", "DAILY", "ACTIVITY",
           "WEIGHT_LOG", 1, 15, 10, 90),
    _quest("daily_check_in", "Check In", "Complete today's check-in", "DAILY", "ACTIVITY", "CHECK_IN", 1, 15, 10, 80),
    _quest("daily_like_3", "Spread Some Love", "Like 3 plans", "DAILY", "SOCIAL", "LIKE_COUNT", 3, 10, 10, 70),
    _quest("daily_comment_2", "Cheer Someone On", "Leave 2 comments", "DAILY", "SOCIAL",
           "COMMENT_COUNT", 2, 15, 15, 60),
    _quest("daily_view_5", "Get Inspired", "View 5 plans", "DAILY", "PLAN", "VIEW_PLANS", 5, 10, 5, 50),
    _quest("daily_play_game", "Play Time", "Finish a mini-game", "DAILY", "ACTIVITY", "PLAY_GAME", 1, 10, 10, 40),
    # Weekly
    _quest("weekly_create_plan", "Share Your Plan", "Create a plan this week", "WEEKLY", "PLAN",
           "CREATE_PLAN", 1, 100, 100, 100),
    _quest("weekly_login_5", "Regular", "Be active on 5 days this week", "WEEKLY", "ACTIVITY",
           "DAILY_LOGIN", 5, 75, 75, 90),
    _quest("weekly_weight_log_3", "Track the Trend", "Log your weight 3 times this week", "WEEKLY", "ACTIVITY",
           "WEIGHT_LOG", 3, 60, 50, 80),
    _quest("weekly_follow_3", "Find Your People", "Follow 3 users", "WEEKLY", "SOCIAL", "FOLLOW_USER", 3, 50, 40, 70),
    _quest("weekly_recipe", "Home Chef", "Share a recipe this week", "WEEKLY", "RECIPE",
           "CREATE_RECIPE", 1, 80, 60, 60),
    # Special
    _quest("special_first_approved_plan", "Approved!", "Get a plan approved", "SPECIAL", "PLAN",
           "APPROVE_PLAN", 1, 200, 150, 100),
    _quest("special_comment_25", "Community Voice", "Leave 25 comments", "SPECIAL", "SOCIAL",
           "COMMENT_COUNT", 25, 150, 100, 50),
]


def _reward(slug, name, description, reward_type, category, price, stock=None, digital_data=None,
            premium_days=None, sort_order=0) -> dict:
    return {
        "slug": slug,
        "name": name,
        "description": description,
        "type": reward_type,
        "category": category,
        "price": price,
        "stock": stock,
        "digital_data": digital_data or {},
        "premium_days": premium_days,
        "sort_order": sort_order,
    }


REWARD_SEED_DATA: list[dict] = [
    # Badges
    _reward("badge_golden_apple", "Golden Apple Badge", "Show off a golden apple on your profile", "BADGE",
            "DIGITAL", 500, digital_data={"badge_slug": "shop_golden_apple"}, sort_order=1),
    _reward("badge_marathoner", "Marathoner Badge", "For the long-distance dieters", "BADGE",
            "DIGITAL", 1000, digital_data={"badge_slug": "shop_marathoner"}, sort_order=2),
    _reward("badge_early_bird", "Early Bird Badge", "Rise and shine", "BADGE",
            "DIGITAL", 300, digital_data={"badge_slug": "shop_early_bird"}, sort_order=3),
    _reward("badge_zen", "Zen Badge", "Calm and consistent", "BADGE",
            "DIGITAL", 400, digital_data={"badge_slug": "shop_zen"}, sort_order=4),
    # Themes
    _reward("theme_ocean", "Ocean Theme", "Cool blue profile theme", "THEME", "DIGITAL", 200,
            digital_data={"theme_code": "ocean"}, sort_order=10),
    _reward("theme_forest", "Forest Theme", "Fresh green profile theme", "THEME", "DIGITAL", 250,
            digital_data={"theme_code": "forest"}, sort_order=11),
    _reward("theme_sunset", "Sunset Theme", "Warm gradient profile theme", "THEME", "DIGITAL", 300,
            digital_data={"theme_code": "sunset"}, sort_order=12),
    # Frames
    _reward("frame_silver", "Silver Frame", "Silver avatar frame", "FRAME", "DIGITAL", 350,
            digital_data={"frame_code": "silver"}, sort_order=20),
    _reward("frame_gold", "Gold Frame", "Gold avatar frame", "FRAME", "DIGITAL", 450,
            digital_data={"frame_code": "gold"}, sort_order=21),
    # Discount codes
    _reward("discount_10", "10% Partner Discount", "10% off at partner health stores", "DISCOUNT_CODE",
            "PHYSICAL", 100, stock=100, sort_order=30),
    _reward("discount_25", "25% Partner Discount", "25% off at partner health stores", "DISCOUNT_CODE",
            "PHYSICAL", 250, stock=50, sort_order=31),
    _reward("discount_50", "50% Partner Discount", "50% off at partner health stores", "DISCOUNT_CODE",
            "PHYSICAL", 600, stock=20, sort_order=32),
    # Premium
    _reward("premium_ad_free", "Ad-Free Month", "No ads for 30 days", "AD_FREE", "PREMIUM", 800,
            premium_days=30, sort_order=40),
    _reward("premium_stats", "Premium Stats", "Detailed progress analytics for 30 days", "PREMIUM_STATS",
            "PREMIUM", 600, premium_days=30, sort_order=41),
    _reward("premium_custom_profile", "Custom Profile", "Custom profile styling for 30 days", "CUSTOM_PROFILE",
            "PREMIUM", 700, premium_days=30, sort_order=42),
]


async def _upsert_by_key(
    db: AsyncSession,
    model: type,
    key: str,
    rows: list[dict],
    frozen: tuple[str, ...] = (),
) -> int:
    """Insert missing rows, refresh existing ones except ``frozen`` columns."""
    existing = {getattr(obj, key): obj for obj in (await db.execute(select(model))).scalars()}
    for data in rows:
        obj = existing.get(data[key])
        if obj is None:
            db.add(model(**data))
            continue
        for field, value in data.items():
            if field not in frozen:
                setattr(obj, field, value)
    await db.flush()
    return len(rows)


async def seed_badges(db: AsyncSession) -> int:
    """Upsert all badge definitions. Returns number of badges seeded."""
    seeded = await _upsert_by_key(db, BadgeDefinition, "slug", BADGE_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded


async def seed_streak_bonuses(db: AsyncSession) -> int:
    seeded = await _upsert_by_key(db, StreakBonus, "streak_days", STREAK_BONUS_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d streak bonuses", seeded)
    return seeded


async def seed_quests(db: AsyncSession) -> int:
    seeded = await _upsert_by_key(db, Quest, "slug", QUEST_SEED_DATA)
    await db.commit()
    logger.info("Seeded %d quests", seeded)
    return seeded


async def seed_rewards(db: AsyncSession) -> int:
    seeded = await _upsert_by_key(db, Reward, "slug", REWARD_SEED_DATA, frozen=("stock",))
    await db.commit()
    logger.info("Seeded %d rewards", seeded)
    return seeded


async def seed_all(db: AsyncSession) -> None:
    """Seed every catalog (idempotent)."""
    await seed_badges(db)
    await seed_streak_bonuses(db)
    await seed_quests(db)
    await seed_rewards(db)
