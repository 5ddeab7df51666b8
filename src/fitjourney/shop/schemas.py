"""Pydantic models for the reward shop."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RewardResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    type: str
    category: str
    price: int
    stock: int | None = None
    in_stock: bool
    owned: bool = False
    premium_days: int | None = None
    image_url: str | None = None


class RewardListResponse(BaseModel):
    rewards: list[RewardResponse]
    balance: int


class PurchaseRequest(BaseModel):
    reward_id: int = Field(..., ge=1)


class UserRewardResponse(BaseModel):
    id: int
    reward_id: int
    slug: str
    name: str
    type: str
    coins_paid: int
    reward_data: dict = {}
    is_used: bool
    used_at: datetime | None = None
    expires_at: datetime | None = None
    purchased_at: datetime


class PurchaseResponse(BaseModel):
    user_reward: UserRewardResponse
    remaining_coins: int


class ActivateResponse(BaseModel):
    user_reward: UserRewardResponse
    type: str
    activation: dict


class RefundRequest(BaseModel):
    reason: str = Field("", max_length=256)


class RefundResponse(BaseModel):
    refunded: int
    balance: int


class PremiumFeaturesResponse(BaseModel):
    ad_free: bool
    premium_stats: bool
    custom_profile: bool
