"""Pydantic models for quest endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserQuestResponse(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    type: str
    category: str
    target_type: str
    target_value: int
    progress: int
    completed: bool
    reward_claimed: bool
    coin_reward: int
    xp_reward: int
    assigned_at: datetime
    expires_at: datetime | None = None
    completed_at: datetime | None = None


class UserQuestsResponse(BaseModel):
    daily: list[UserQuestResponse]
    weekly: list[UserQuestResponse]
    special: list[UserQuestResponse]
    completed_count: int
    claimable_count: int


class ClaimQuestResponse(BaseModel):
    quest: UserQuestResponse
    coins: int
    xp: int
    balance: int | None = None
