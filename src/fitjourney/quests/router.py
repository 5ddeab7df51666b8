"""Quest listing and reward claiming endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import get_current_user
from fitjourney.database import get_session
from fitjourney.db.models import User, UserQuest
from fitjourney.quests.quest_service import claim_quest_reward, get_user_active_quests
from fitjourney.quests.schemas import ClaimQuestResponse, UserQuestResponse, UserQuestsResponse
from fitjourney.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Quests"])


def _quest_response(uq: UserQuest) -> UserQuestResponse:
    q = uq.quest
    return UserQuestResponse(
        id=uq.id,
        slug=q.slug,
        title=q.title,
        description=q.description,
        type=q.type,
        category=q.category,
        target_type=q.target_type,
        target_value=q.target_value,
        progress=uq.progress,
        completed=uq.completed,
        reward_claimed=uq.reward_claimed,
        coin_reward=q.coin_reward,
        xp_reward=q.xp_reward,
        assigned_at=uq.assigned_at,
        expires_at=uq.expires_at,
        completed_at=uq.completed_at,
    )


@router.get("/users/me/quests", response_model=UserQuestsResponse)
async def get_my_quests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current daily, weekly and special quests. Missing assignments are created on read."""
    quests = await get_user_active_quests(db, user.id)
    return UserQuestsResponse(
        daily=[_quest_response(uq) for uq in quests["daily"]],
        weekly=[_quest_response(uq) for uq in quests["weekly"]],
        special=[_quest_response(uq) for uq in quests["special"]],
        completed_count=sum(1 for uq in quests["all"] if uq.completed),
        claimable_count=sum(1 for uq in quests["all"] if uq.completed and not uq.reward_claimed),
    )


@router.post("/quests/{user_quest_id}/claim", response_model=ClaimQuestResponse)
async def claim_quest(
    user_quest_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Claim the coin and XP reward of a completed quest."""
    result = await claim_quest_reward(db, redis, user.id, user_quest_id)
    return ClaimQuestResponse(
        quest=_quest_response(result["user_quest"]),
        coins=result["coins"],
        xp=result["xp"],
        balance=result["balance"],
    )
