"""Pydantic response models for XP, level, badge, streak and leaderboard endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# --- Badge ---


class BadgeDefinitionResponse(BaseModel):
    slug: str
    name: str
    description: str
    icon: str | None = None
    category: str
    xp_reward: int
    total_earned: int = 0


class BadgeDetailResponse(BadgeDefinitionResponse):
    recent_earners: list[dict] = []


class EarnedBadgeResponse(BaseModel):
    slug: str
    name: str
    icon: str | None = None
    earned_at: datetime
    metadata: dict = {}


class UserBadgesResponse(BaseModel):
    earned: list[EarnedBadgeResponse]
    total_available: int
    total_earned: int


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]


# --- XP ---


class XPResponse(BaseModel):
    total_xp: int
    level: int
    level_title: str
    xp_into_level: int
    xp_for_level: int
    next_level: int
    next_title: str


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    title: str
    xp_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Streak ---


class StreakMilestone(BaseModel):
    streak_days: int
    coin_reward: int
    xp_reward: int
    badge_slug: str | None = None
    description: str
    reached: bool
    claimed: bool


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_active_date: date | None = None
    active_today: bool
    next_milestone: StreakMilestone | None = None
    days_to_next_milestone: int | None = None
    claimed: list[int]
    available: list[int]
    milestones: list[StreakMilestone]


class StreakBonusResult(BaseModel):
    streak_days: int
    coins: int
    xp: int
    badge_slug: str | None = None


class CheckInResponse(BaseModel):
    streak: int
    longest_streak: int
    changed: bool
    broken: bool
    bonus: StreakBonusResult | None = None


class ClaimStreakBonusRequest(BaseModel):
    streak_days: int = Field(..., ge=1)


# --- Summary ---


class GamificationSummaryResponse(BaseModel):
    xp: XPResponse
    coins: int
    streak: int
    longest_streak: int
    badges: dict  # {earned: int, total: int}
    stats: dict


# --- Leaderboard ---


class XPLeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str | None = None
    name: str | None = None
    xp: int
    level: int
    level_title: str


class XPLeaderboardResponse(BaseModel):
    entries: list[XPLeaderboardEntry]
