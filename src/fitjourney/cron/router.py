"""Scheduled-job and service-to-service endpoints, guarded by the cron secret."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import require_cron_secret
from fitjourney.database import get_session
from fitjourney.gamification.trigger_engine import TriggerEngine
from fitjourney.quests.quest_service import assign_quests_to_all_users, cleanup_expired_quests
from fitjourney.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Cron"], dependencies=[Depends(require_cron_secret)])


class AssignmentResult(BaseModel):
    quest_type: str
    success: int
    errors: int
    total: int


class CleanupResult(BaseModel):
    deleted: int


class ActivityRequest(BaseModel):
    user_id: int = Field(..., ge=1)
    activity: str = Field(..., min_length=1, max_length=32)
    owner_id: int | None = Field(None, ge=1)
    value: int = Field(1, ge=1)


class ActivityResult(BaseModel):
    activity: str
    badges_awarded: list[str]


# ── Quest scheduling ──


async def _assign(db: AsyncSession, quest_type: str) -> AssignmentResult:
    result = await assign_quests_to_all_users(db, quest_type)
    return AssignmentResult(quest_type=quest_type, **result)


@router.post("/cron/quests/assign-daily", response_model=AssignmentResult)
async def assign_daily(db: AsyncSession = Depends(get_session)):
    return await _assign(db, "DAILY")


@router.post("/cron/quests/assign-weekly", response_model=AssignmentResult)
async def assign_weekly(db: AsyncSession = Depends(get_session)):
    return await _assign(db, "WEEKLY")


@router.post("/cron/quests/assign-special", response_model=AssignmentResult)
async def assign_special(db: AsyncSession = Depends(get_session)):
    return await _assign(db, "SPECIAL")


@router.post("/cron/quests/cleanup", response_model=CleanupResult)
async def cleanup(db: AsyncSession = Depends(get_session)):
    """Delete expired quests that were never completed."""
    return CleanupResult(deleted=await cleanup_expired_quests(db))


# ── Activity intake ──


@router.post("/internal/activity", response_model=ActivityResult)
async def record_activity(
    body: ActivityRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Apply a plan, social or tracking event reported by another service."""
    awarded = await TriggerEngine(db, redis).record_activity(
        body.user_id, body.activity.upper(), body.owner_id, body.value
    )
    return ActivityResult(activity=body.activity.upper(), badges_awarded=awarded)
