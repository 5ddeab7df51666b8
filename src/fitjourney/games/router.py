"""Mini-game session, status and leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import get_current_user
from fitjourney.database import get_session
from fitjourney.db.models import GameSession, User
from fitjourney.games.game_service import (
    MAX_LEADERBOARD_LIMIT,
    cancel_game_session,
    complete_game_session,
    get_daily_game_status,
    get_game_leaderboard,
    get_user_game_stats,
    start_game_session,
)
from fitjourney.games.schemas import (
    CompleteGameRequest,
    CompleteGameResponse,
    GameLeaderboardEntry,
    GameLeaderboardResponse,
    GameSessionResponse,
    GameStatsEntry,
    GameStatsResponse,
    GameStatusEntry,
    GameStatusResponse,
)
from fitjourney.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/games", tags=["Games"])


def _session_response(s: GameSession) -> GameSessionResponse:
    return GameSessionResponse(
        id=s.id,
        game_type=s.game_type,
        score=s.score,
        coins_earned=s.coins_earned,
        completed=s.completed,
        started_at=s.started_at,
        completed_at=s.completed_at,
        duration_seconds=s.duration_seconds,
    )


# ── Status ──


@router.get("/status", response_model=GameStatusResponse)
async def get_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Plays used and left today per game."""
    return GameStatusResponse(games=[GameStatusEntry(**g) for g in await get_daily_game_status(db, user.id)])


@router.get("/stats", response_model=GameStatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Lifetime per-game totals for the current user."""
    stats = await get_user_game_stats(db, user.id)
    return GameStatsResponse(stats={k: GameStatsEntry(**v) for k, v in stats.items()})


# ── Sessions ──


@router.post("/{game_type}/sessions", response_model=GameSessionResponse, status_code=201)
async def start_session(
    game_type: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Start a game, subject to the daily limit."""
    return _session_response(await start_game_session(db, user.id, game_type.upper()))


@router.post("/sessions/{session_id}/complete", response_model=CompleteGameResponse)
async def complete_session(
    session_id: int,
    body: CompleteGameRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Submit the final score and collect coins."""
    result = await complete_game_session(db, redis, user.id, session_id, body.score, body.game_data)
    return CompleteGameResponse(
        session=_session_response(result["session"]),
        coins_earned=result["coins_earned"],
        is_high_score=result["is_high_score"],
        previous_best=result["previous_best"],
        rank=result["rank"],
        badges=result["badges"],
    )


@router.delete("/sessions/{session_id}", status_code=204)
async def cancel_session(
    session_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Abandon an unfinished session."""
    await cancel_game_session(db, user.id, session_id)
    return Response(status_code=204)


# ── Leaderboard ──


@router.get("/{game_type}/leaderboard", response_model=GameLeaderboardResponse)
async def get_leaderboard(
    game_type: str,
    period: str = Query("all-time", pattern="^(daily|weekly|all-time)$"),
    limit: int = Query(50, ge=1, le=MAX_LEADERBOARD_LIMIT),
    db: AsyncSession = Depends(get_session),
):
    """Best score per user for a game."""
    game_type = game_type.upper()
    entries = await get_game_leaderboard(db, game_type, period, limit)
    return GameLeaderboardResponse(
        game_type=game_type,
        period=period,
        entries=[GameLeaderboardEntry(**e) for e in entries],
    )
