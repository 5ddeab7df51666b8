"""Badge trigger engine: activity intake and threshold-based badge checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.service import get_or_create_stats, get_user_by_id
from fitjourney.coins.ledger_service import get_total_earned
from fitjourney.db.models import BadgeDefinition, GameSession, UserQuest, UserReward, UserStats
from fitjourney.exceptions import GamificationError, NotFoundError
from fitjourney.gamification.badge_service import award_badge
from fitjourney.gamification.xp_service import XP_REWARDS, grant_xp
from fitjourney.quests.quest_service import update_quest_progress

logger = logging.getLogger(__name__)

PLAN_BADGES = [("first_plan", 1), ("plans_5", 5), ("plans_10", 10), ("plans_25", 25)]
LIKE_BADGES = [("likes_10", 10), ("likes_50", 50), ("likes_100", 100)]
VIEW_BADGES = [("views_100", 100), ("views_500", 500), ("views_1000", 1000)]
COMMENT_BADGES = [("comments_10", 10), ("comments_50", 50)]
STREAK_BADGES = [("active_7_days", 7), ("active_30_days", 30), ("active_100_days", 100)]
QUEST_BADGES = [("quest_master_10", 10), ("quest_master_50", 50), ("quest_master_100", 100)]
COIN_BADGES = [("coin_collector_1000", 1000), ("coin_collector_5000", 5000), ("coin_collector_10000", 10000)]
SHOP_BADGES = [("shop_first_purchase", 1), ("shop_enthusiast_10", 10)]
# game_type -> (slug, minimum single-game score)
GAME_BADGES = {
    "CALORIE_GUESS": ("game_calorie_master", 800),
    "MEMORY_CARDS": ("game_memory_master", 80),
}

VIEW_MILESTONE_STEP = 100


@dataclass(frozen=True)
class ActivityRule:
    """What one side of an activity updates: a stats counter, XP and a quest target."""

    counter: str | None = None
    xp_source: str | None = None
    quest_target: str | None = None


# activity -> (actor rule, content owner rule)
ACTIVITY_RULES: dict[str, tuple[ActivityRule, ActivityRule | None]] = {
    "PLAN_CREATED": (ActivityRule("plans_created", "PLAN_CREATED", "CREATE_PLAN"), None),
    "PLAN_APPROVED": (ActivityRule("plans_approved", "PLAN_APPROVED", "APPROVE_PLAN"), None),
    "LIKE_GIVEN": (
        ActivityRule("likes_given", "LIKE_GIVEN", "LIKE_COUNT"),
        ActivityRule("likes_received", "LIKE_RECEIVED", "LIKE_COUNT"),
    ),
    "COMMENT_GIVEN": (
        ActivityRule("comments_given", "COMMENT_GIVEN", "COMMENT_COUNT"),
        ActivityRule("comments_received", "COMMENT_RECEIVED", "COMMENT_COUNT"),
    ),
    "PLAN_VIEWED": (ActivityRule(None, None, "VIEW_PLANS"), ActivityRule("views_received", None, None)),
    "RECIPE_CREATED": (ActivityRule("recipes_created", "RECIPE_CREATED", "CREATE_RECIPE"), None),
    "WEIGHT_LOGGED": (ActivityRule("weight_logs", "WEIGHT_LOGGED", "WEIGHT_LOG"), None),
    "CHECK_IN": (ActivityRule("check_ins", "CHECK_IN", "CHECK_IN"), None),
    "USER_FOLLOWED": (ActivityRule("follows", None, "FOLLOW_USER"), None),
    "PROFILE_COMPLETED": (ActivityRule(None, "PROFILE_COMPLETE", None), None),
}

# XP sources that may only ever be paid once per user
_ONCE_PER_USER = frozenset({"PROFILE_COMPLETE"})


class TriggerEngine:
    """Evaluates badge triggers for user activity."""

    def __init__(self, db: AsyncSession, redis: object) -> None:
        self.db = db
        self.redis = redis
        self._badge_cache: dict[str, BadgeDefinition] | None = None

    async def _load_badges(self) -> dict[str, BadgeDefinition]:
        """Load and cache all active badge definitions."""
        if self._badge_cache is None:
            result = await self.db.execute(
                select(BadgeDefinition).where(BadgeDefinition.is_active.is_(True))
            )
            self._badge_cache = {b.slug: b for b in result.scalars()}
        return self._badge_cache

    async def _award_thresholds(
        self,
        user_id: int,
        value: int,
        thresholds: list[tuple[str, int]],
        metadata: dict | None = None,
    ) -> list[str]:
        badges = await self._load_badges()
        awarded = []
        for slug, threshold in thresholds:
            if value >= threshold and slug in badges:
                if await award_badge(self.db, self.redis, user_id, slug, metadata):
                    awarded.append(slug)
        return awarded

    # ── Activity intake ──

    async def record_activity(
        self,
        user_id: int,
        activity: str,
        owner_id: int | None = None,
        value: int = 1,
    ) -> list[str]:
        """Apply an activity reported by another service and commit.

        The actor side and, for interactions with someone else's content, the
        owner side each update counters, XP and quests. Returns awarded badge slugs.
        """
        rules = ACTIVITY_RULES.get(activity)
        if rules is None:
            msg = f"Unknown activity '{activity}'"
            raise GamificationError(msg, code="UNKNOWN_ACTIVITY")
        if value <= 0:
            msg = "Activity value must be positive"
            raise GamificationError(msg, code="INVALID_AMOUNT")

        actor_rule, owner_rule = rules
        awarded = await self._apply_rule(user_id, activity, actor_rule, value)
        if owner_rule is not None and owner_id is not None and owner_id != user_id:
            awarded += await self._apply_rule(owner_id, activity, owner_rule, value)

        await self.db.commit()
        return awarded

    async def _apply_rule(self, user_id: int, activity: str, rule: ActivityRule, value: int) -> list[str]:
        if await get_user_by_id(self.db, user_id) is None:
            msg = f"User {user_id} not found"
            raise NotFoundError(msg, code="USER_NOT_FOUND")

        stats = await get_or_create_stats(self.db, user_id)
        if rule.counter is not None:
            before = getattr(stats, rule.counter)
            setattr(stats, rule.counter, before + value)
            await self.db.flush()
            if rule.counter == "views_received":
                await self._grant_view_milestones(user_id, before, before + value)

        if rule.xp_source is not None:
            if rule.xp_source in _ONCE_PER_USER:
                amount = XP_REWARDS[rule.xp_source]
                key = f"{rule.xp_source.lower()}:{user_id}"
            else:
                amount = XP_REWARDS[rule.xp_source] * value
                key = None
            await grant_xp(
                self.db,
                self.redis,
                user_id,
                amount,
                source=rule.xp_source,
                description=activity.replace("_", " ").lower(),
                idempotency_key=key,
            )

        if rule.quest_target is not None:
            await update_quest_progress(self.db, self.redis, user_id, rule.quest_target, increment=value)

        return await self.check_activity_badges(user_id)

    async def _grant_view_milestones(self, user_id: int, before: int, after: int) -> None:
        """Pay VIEW_MILESTONE XP for every 100 views crossed."""
        for milestone in range(
            (before // VIEW_MILESTONE_STEP + 1) * VIEW_MILESTONE_STEP,
            after + 1,
            VIEW_MILESTONE_STEP,
        ):
            await grant_xp(
                self.db,
                self.redis,
                user_id,
                XP_REWARDS["VIEW_MILESTONE"],
                source="VIEW_MILESTONE",
                source_id=str(milestone),
                description=f"{milestone} views on your plans",
                idempotency_key=f"views:{user_id}:{milestone}",
            )

    # ── Badge checks ──

    async def check_activity_badges(self, user_id: int) -> list[str]:
        """Plan, like, view and comment badges from the stats counters."""
        stats = await self.db.get(UserStats, user_id)
        if stats is None:
            return []
        awarded = []
        awarded += await self._award_thresholds(user_id, stats.plans_approved, PLAN_BADGES)
        awarded += await self._award_thresholds(user_id, stats.likes_received, LIKE_BADGES)
        awarded += await self._award_thresholds(user_id, stats.views_received, VIEW_BADGES)
        awarded += await self._award_thresholds(user_id, stats.comments_given, COMMENT_BADGES)
        return awarded

    async def check_streak_badges(self, user_id: int, streak: int) -> list[str]:
        return await self._award_thresholds(user_id, streak, STREAK_BADGES, {"streak": streak})

    async def check_quest_badges(self, user_id: int) -> list[str]:
        completed = await self.db.scalar(
            select(func.count()).select_from(UserQuest).where(
                UserQuest.user_id == user_id,
                UserQuest.completed.is_(True),
            )
        )
        return await self._award_thresholds(user_id, completed or 0, QUEST_BADGES)

    async def check_coin_badges(self, user_id: int) -> list[str]:
        total_earned = await get_total_earned(self.db, user_id)
        return await self._award_thresholds(user_id, total_earned, COIN_BADGES)

    async def check_shop_badges(self, user_id: int) -> list[str]:
        purchases = await self.db.scalar(
            select(func.count()).select_from(UserReward).where(UserReward.user_id == user_id)
        )
        return await self._award_thresholds(user_id, purchases or 0, SHOP_BADGES)

    async def check_game_badges(self, user_id: int, game_type: str, score: int) -> list[str]:
        rule = GAME_BADGES.get(game_type)
        if rule is None:
            return []
        slug, min_score = rule
        return await self._award_thresholds(user_id, score, [(slug, min_score)], {"score": score})

    async def check_all_badges(self, user_id: int) -> list[str]:
        """Re-evaluate every badge family from stored state. Safe to run repeatedly."""
        user = await get_user_by_id(self.db, user_id)
        if user is None:
            return []
        awarded = []
        awarded += await self.check_activity_badges(user_id)
        awarded += await self.check_streak_badges(user_id, user.longest_streak)
        awarded += await self.check_quest_badges(user_id)
        awarded += await self.check_coin_badges(user_id)
        awarded += await self.check_shop_badges(user_id)
        for game_type in GAME_BADGES:
            best = await self.db.scalar(
                select(func.max(GameSession.score)).where(
                    GameSession.user_id == user_id,
                    GameSession.game_type == game_type,
                    GameSession.completed.is_(True),
                )
            )
            if best is not None:
                awarded += await self.check_game_badges(user_id, game_type, best)
        return awarded
