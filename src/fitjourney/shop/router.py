"""Reward shop endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import get_current_user
from fitjourney.coins.ledger_service import get_balance
from fitjourney.database import get_session
from fitjourney.db.models import User, UserReward
from fitjourney.redis_client import get_optional_redis
from fitjourney.shop.reward_service import (
    activate_reward,
    get_active_premium_features,
    get_user_rewards,
    list_rewards,
    purchase_reward,
    refund_reward,
)
from fitjourney.shop.schemas import (
    ActivateResponse,
    PremiumFeaturesResponse,
    PurchaseRequest,
    PurchaseResponse,
    RefundRequest,
    RefundResponse,
    RewardListResponse,
    RewardResponse,
    UserRewardResponse,
)

router = APIRouter(prefix="/api/v1/shop", tags=["Shop"])


def _user_reward_response(ur: UserReward) -> UserRewardResponse:
    return UserRewardResponse(
        id=ur.id,
        reward_id=ur.reward_id,
        slug=ur.reward.slug,
        name=ur.reward.name,
        type=ur.reward.type,
        coins_paid=ur.coins_paid,
        reward_data=ur.reward_data or {},
        is_used=ur.is_used,
        used_at=ur.used_at,
        expires_at=ur.expires_at,
        purchased_at=ur.purchased_at,
    )


@router.get("/rewards", response_model=RewardListResponse)
async def get_rewards(
    type: str | None = Query(None, max_length=32),  # noqa: A002
    category: str | None = Query(None, max_length=16),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Active catalog with stock and ownership flags for the current user."""
    items = await list_rewards(db, user.id, type, category)
    return RewardListResponse(
        rewards=[
            RewardResponse(
                id=item["reward"].id,
                slug=item["reward"].slug,
                name=item["reward"].name,
                description=item["reward"].description,
                type=item["reward"].type,
                category=item["reward"].category,
                price=item["reward"].price,
                stock=item["reward"].stock,
                in_stock=item["in_stock"],
                owned=item["owned"],
                premium_days=item["reward"].premium_days,
                image_url=item["reward"].image_url,
            )
            for item in items
        ],
        balance=await get_balance(db, user.id),
    )


@router.post("/purchase", response_model=PurchaseResponse)
async def purchase(
    body: PurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Buy a reward with coins."""
    result = await purchase_reward(db, redis, user.id, body.reward_id)
    return PurchaseResponse(
        user_reward=_user_reward_response(result["user_reward"]),
        remaining_coins=result["remaining_coins"],
    )


@router.get("/my-rewards", response_model=list[UserRewardResponse])
async def get_my_rewards(
    include_used: bool = Query(True),
    include_expired: bool = Query(False),
    type: str | None = Query(None, max_length=32),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The current user's purchases, newest first."""
    rewards = await get_user_rewards(db, user.id, include_used, include_expired, type)
    return [_user_reward_response(ur) for ur in rewards]


@router.post("/my-rewards/{user_reward_id}/activate", response_model=ActivateResponse)
async def activate(
    user_reward_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Use a purchased code or premium reward."""
    result = await activate_reward(db, user.id, user_reward_id)
    return ActivateResponse(
        user_reward=_user_reward_response(result["user_reward"]),
        type=result["type"],
        activation=result["activation"],
    )


@router.post("/my-rewards/{user_reward_id}/refund", response_model=RefundResponse)
async def refund(
    user_reward_id: int,
    body: RefundRequest = Body(default_factory=RefundRequest),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Refund an unused purchase."""
    return RefundResponse(**await refund_reward(db, redis, user.id, user_reward_id, body.reason))


@router.get("/premium", response_model=PremiumFeaturesResponse)
async def get_premium(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Active premium features for the current user."""
    return PremiumFeaturesResponse(**await get_active_premium_features(db, user.id))
