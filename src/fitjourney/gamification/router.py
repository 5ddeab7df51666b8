"""Gamification API endpoints: XP, levels, badges, streak and XP leaderboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import get_current_user
from fitjourney.auth.service import get_or_create_stats
from fitjourney.database import get_session
from fitjourney.db.models import BadgeDefinition, User, UserBadge
from fitjourney.gamification.badge_service import count_badge_holders, get_badge_by_slug, get_user_badges
from fitjourney.gamification.level_thresholds import LEVEL_THRESHOLDS, compute_level
from fitjourney.gamification.schemas import (
    AllBadgesResponse,
    AllLevelsResponse,
    BadgeDefinitionResponse,
    BadgeDetailResponse,
    CheckInResponse,
    ClaimStreakBonusRequest,
    EarnedBadgeResponse,
    GamificationSummaryResponse,
    LevelEntry,
    StreakBonusResult,
    StreakResponse,
    UserBadgesResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPLeaderboardEntry,
    XPLeaderboardResponse,
    XPResponse,
)
from fitjourney.gamification.streak_service import claim_streak_bonus, get_streak_status, update_streak
from fitjourney.gamification.xp_service import get_xp_history
from fitjourney.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _xp_response(total_xp: int) -> XPResponse:
    level_info = compute_level(total_xp)
    return XPResponse(
        total_xp=total_xp,
        level=level_info["level"],
        level_title=level_info["title"],
        xp_into_level=level_info["xp_into_level"],
        xp_for_level=level_info["xp_for_level"],
        next_level=level_info["next_level"],
        next_title=level_info["next_title"],
    )


async def _count_active_badges(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count()).select_from(BadgeDefinition).where(BadgeDefinition.is_active.is_(True))
    )
    return result.scalar_one()


# ── Public endpoints ──


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges(db: AsyncSession = Depends(get_session)):
    """Get all badge definitions with holder counts."""
    result = await db.execute(
        select(BadgeDefinition)
        .where(BadgeDefinition.is_active.is_(True))
        .order_by(BadgeDefinition.sort_order, BadgeDefinition.id)
    )
    holders = await count_badge_holders(db)

    return AllBadgesResponse(badges=[
        BadgeDefinitionResponse(
            slug=b.slug,
            name=b.name,
            description=b.description,
            icon=b.icon,
            category=b.category,
            xp_reward=b.xp_reward,
            total_earned=holders.get(b.id, 0),
        )
        for b in result.scalars()
    ])


@router.get("/badges/{slug}", response_model=BadgeDetailResponse)
async def get_badge(slug: str, db: AsyncSession = Depends(get_session)):
    """One active badge with its holder count and last ten earners."""
    badge = await get_badge_by_slug(db, slug)
    if badge is None or not badge.is_active:
        raise HTTPException(status_code=404, detail="Badge not found")

    holders = await count_badge_holders(db)
    earners_result = await db.execute(
        select(UserBadge.earned_at, User.username, User.name)
        .join(User, UserBadge.user_id == User.id)
        .where(UserBadge.badge_id == badge.id)
        .order_by(UserBadge.earned_at.desc())
        .limit(10)
    )
    recent_earners = [
        {
            "user": row.username or row.name or "anonymous",
            "earned_at": row.earned_at.isoformat(),
        }
        for row in earners_result
    ]

    return BadgeDetailResponse(
        slug=badge.slug,
        name=badge.name,
        description=badge.description,
        icon=badge.icon,
        category=badge.category,
        xp_reward=badge.xp_reward,
        total_earned=holders.get(badge.id, 0),
        recent_earners=recent_earners,
    )


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Level table: per-level and cumulative XP requirements."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(
                level=t["level"],
                title=t["title"],
                xp_required=t["xp_required"],
                cumulative=t["cumulative"],
            )
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/leaderboard/xp", response_model=XPLeaderboardResponse)
async def xp_leaderboard(
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Top users by total XP."""
    result = await db.execute(
        select(User)
        .where(User.is_banned.is_(False))
        .order_by(User.xp.desc(), User.id)
        .limit(limit)
    )
    entries = []
    for rank, u in enumerate(result.scalars(), start=1):
        level_info = compute_level(u.xp)
        entries.append(XPLeaderboardEntry(
            rank=rank,
            user_id=u.id,
            username=u.username,
            name=u.name,
            xp=u.xp,
            level=level_info["level"],
            level_title=level_info["title"],
        ))
    return XPLeaderboardResponse(entries=entries)


# ── Authenticated endpoints ──


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def get_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Badges the current user holds, newest first."""
    earned = await get_user_badges(db, user.id)
    return UserBadgesResponse(
        earned=[
            EarnedBadgeResponse(
                slug=ub.badge.slug,
                name=ub.badge.name,
                icon=ub.badge.icon,
                earned_at=ub.earned_at,
                metadata=ub.badge_metadata or {},
            )
            for ub in earned
        ],
        total_available=await _count_active_badges(db),
        total_earned=len(earned),
    )


@router.get("/users/me/xp", response_model=XPResponse)
async def get_my_xp(user: User = Depends(get_current_user)):
    """Total XP, level and progress toward the next level."""
    return _xp_response(user.xp)


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def get_my_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """XP ledger, newest first."""
    entries, total = await get_xp_history(db, user.id, page, per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/streak", response_model=StreakResponse)
async def get_my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get current streak and milestone progress."""
    return StreakResponse(**await get_streak_status(db, user.id))


@router.post("/users/me/streak/check-in", response_model=CheckInResponse)
async def check_in(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Record today's activity. Repeated calls on the same day are no-ops."""
    result = await update_streak(db, redis, user.id)
    return CheckInResponse(
        streak=result["streak"],
        longest_streak=result["longest_streak"],
        changed=result["changed"],
        broken=result["broken"],
        bonus=StreakBonusResult(**result["bonus"]) if result["bonus"] else None,
    )


@router.post("/users/me/streak/claim-bonus", response_model=StreakBonusResult)
async def claim_bonus(
    body: ClaimStreakBonusRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Claim a reached streak milestone that has not been paid yet."""
    return StreakBonusResult(**await claim_streak_bonus(db, redis, user.id, body.streak_days))


@router.get("/users/me/gamification", response_model=GamificationSummaryResponse)
async def get_gamification_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Full gamification summary from the denormalized user row."""
    earned = await db.execute(
        select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user.id)
    )
    stats = await get_or_create_stats(db, user.id)
    await db.commit()

    return GamificationSummaryResponse(
        xp=_xp_response(user.xp),
        coins=user.coins,
        streak=user.streak,
        longest_streak=user.longest_streak,
        badges={"earned": earned.scalar_one(), "total": await _count_active_badges(db)},
        stats={
            "plans_created": stats.plans_created,
            "plans_approved": stats.plans_approved,
            "likes_received": stats.likes_received,
            "views_received": stats.views_received,
            "comments_given": stats.comments_given,
            "weight_logs": stats.weight_logs,
            "check_ins": stats.check_ins,
        },
    )
