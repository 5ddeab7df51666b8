"""Mini-games: sessions, coin payouts, daily limits and leaderboards."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import and_, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.coins.ledger_service import add_coins
from fitjourney.config import get_settings
from fitjourney.db.models import GameSession, User
from fitjourney.exceptions import (
    DailyLimitReachedError,
    ForbiddenError,
    GamificationError,
    NotFoundError,
)
from fitjourney.gamification.trigger_engine import TriggerEngine
from fitjourney.games.ranking import rank_entries
from fitjourney.periods import day_bounds, utcnow, week_bounds
from fitjourney.quests.quest_service import update_quest_progress

logger = logging.getLogger(__name__)

MEMORY_CARDS_MAX_SCORE = 100

# Reward tiers are checked best-first; the first one reached pays out.
GAME_SETTINGS: dict[str, dict] = {
    "CALORIE_GUESS": {
        "name": "Calorie Guess",
        "description": "Guess the calories of 10 foods; closer guesses score more",
        "score_tiers": [(800, 200), (500, 100), (100, 50)],
    },
    "MEMORY_CARDS": {
        "name": "Memory Cards",
        "description": "Match 8 pairs of healthy-food cards in as few moves as possible",
        # (max moves, coins)
        "move_tiers": [(20, 100), (30, 50), (40, 25)],
    },
    "NUTRITION_QUIZ": {
        "name": "Nutrition Quiz",
        "description": "Answer 10 nutrition questions against the clock",
        "score_tiers": [(300, 150), (200, 80), (100, 40)],
    },
    "DAILY_PUZZLE": {
        "name": "Daily Puzzle",
        "description": "Solve the daily puzzle in 60 seconds",
        "score_tiers": [(150, 100), (100, 60), (50, 30)],
    },
}
GAME_TYPES = tuple(GAME_SETTINGS)
LEADERBOARD_PERIODS = ("daily", "weekly", "all-time")
MAX_LEADERBOARD_LIMIT = 100


def _check_game_type(game_type: str) -> None:
    if game_type not in GAME_SETTINGS:
        msg = f"Unknown game type '{game_type}'"
        raise GamificationError(msg, code="INVALID_GAME_TYPE")


def memory_cards_score(moves: int) -> int:
    """Fewer moves is better: score = 100 - moves, floored at 0."""
    return max(0, MEMORY_CARDS_MAX_SCORE - moves)


def calculate_coins(game_type: str, score: int, moves: int | None = None) -> int:
    """Coins paid for a finished game."""
    _check_game_type(game_type)
    settings = GAME_SETTINGS[game_type]

    if game_type == "MEMORY_CARDS":
        if moves is None:
            moves = MEMORY_CARDS_MAX_SCORE - score
        for max_moves, coins in settings["move_tiers"]:
            if moves <= max_moves:
                return coins
        return 0

    for min_score, coins in settings["score_tiers"]:
        if score >= min_score:
            return coins
    return 0


async def count_games_today(
    db: AsyncSession,
    user_id: int,
    game_type: str,
    now: datetime | None = None,
) -> int:
    start, end = day_bounds(now)
    return await db.scalar(
        select(func.count()).select_from(GameSession).where(
            GameSession.user_id == user_id,
            GameSession.game_type == game_type,
            GameSession.started_at >= start,
            GameSession.started_at < end,
        )
    ) or 0


async def start_game_session(
    db: AsyncSession,
    user_id: int,
    game_type: str,
    now: datetime | None = None,
) -> GameSession:
    """Open a session if today's limit for this game allows it. Commits."""
    _check_game_type(game_type)
    now = now or utcnow()
    limit = get_settings().daily_game_limit
    if await count_games_today(db, user_id, game_type, now) >= limit:
        msg = f"Daily limit of {limit} games reached for {game_type}"
        raise DailyLimitReachedError(msg)

    session = GameSession(user_id=user_id, game_type=game_type, started_at=now, game_data={})
    db.add(session)
    await db.commit()
    return session


async def _get_own_session(db: AsyncSession, user_id: int, session_id: int) -> GameSession:
    session = await db.get(GameSession, session_id)
    if session is None:
        msg = "Game session not found"
        raise NotFoundError(msg, code="GAME_SESSION_NOT_FOUND")
    if session.user_id != user_id:
        msg = "This game session belongs to another user"
        raise ForbiddenError(msg)
    if session.completed:
        msg = "Game session already completed"
        raise GamificationError(msg, code="GAME_ALREADY_COMPLETED")
    return session


async def _best_score(db: AsyncSession, user_id: int, game_type: str) -> int | None:
    return await db.scalar(
        select(func.max(GameSession.score)).where(
            GameSession.user_id == user_id,
            GameSession.game_type == game_type,
            GameSession.completed.is_(True),
        )
    )


def _parse_moves(game_data: dict) -> int | None:
    moves = game_data.get("moves")
    if moves is None:
        return None
    if isinstance(moves, bool) or not isinstance(moves, int) or moves < 0:
        msg = "Move count must be a non-negative integer"
        raise GamificationError(msg, code="INVALID_SCORE")
    return moves


async def complete_game_session(
    db: AsyncSession,
    redis: object,
    user_id: int,
    session_id: int,
    score: int,
    game_data: dict | None = None,
    now: datetime | None = None,
) -> dict:
    """Finish a session, pay coins and report high score and rank. Commits."""
    now = now or utcnow()
    session = await _get_own_session(db, user_id, session_id)
    game_data = game_data or {}

    moves = _parse_moves(game_data) if session.game_type == "MEMORY_CARDS" else None
    if session.game_type == "MEMORY_CARDS":
        if moves is not None:
            score = memory_cards_score(moves)
        elif score > MEMORY_CARDS_MAX_SCORE:
            msg = f"Memory Cards scores cannot exceed {MEMORY_CARDS_MAX_SCORE}"
            raise GamificationError(msg, code="INVALID_SCORE")
    if score < 0:
        msg = "Score must not be negative"
        raise GamificationError(msg, code="INVALID_SCORE")

    previous_best = await _best_score(db, user_id, session.game_type)
    coins = calculate_coins(session.game_type, score, moves)

    closed = await db.execute(
        update(GameSession)
        .where(GameSession.id == session.id, GameSession.completed.is_(False))
        .values(
            completed=True,
            score=score,
            coins_earned=coins,
            completed_at=now,
            duration_seconds=max(0, int((now - session.started_at).total_seconds())),
            game_data=game_data,
        )
        .execution_options(synchronize_session="evaluate")
    )
    if closed.rowcount == 0:
        msg = "Game session already completed"
        raise GamificationError(msg, code="GAME_ALREADY_COMPLETED")

    if coins > 0:
        await add_coins(
            db,
            redis,
            user_id,
            coins,
            f"GAME_{session.game_type}",
            {"session_id": session.id, "score": score},
        )
    await update_quest_progress(db, redis, user_id, "PLAY_GAME", now=now)
    badges = await TriggerEngine(db, redis).check_game_badges(user_id, session.game_type, score)
    await db.commit()

    better_users = await db.scalar(
        select(func.count(distinct(GameSession.user_id))).where(
            GameSession.game_type == session.game_type,
            GameSession.completed.is_(True),
            GameSession.score > score,
        )
    ) or 0
    logger.info("User %d finished %s with %d (%d coins)", user_id, session.game_type, score, coins)
    return {
        "session": session,
        "coins_earned": coins,
        "is_high_score": previous_best is None or score > previous_best,
        "previous_best": previous_best,
        "rank": better_users + 1,
        "badges": badges,
    }


async def cancel_game_session(db: AsyncSession, user_id: int, session_id: int) -> None:
    """Abandon an unfinished session. Commits."""
    session = await _get_own_session(db, user_id, session_id)
    await db.delete(session)
    await db.commit()


async def get_game_leaderboard(
    db: AsyncSession,
    game_type: str,
    period: str = "all-time",
    limit: int = 50,
    now: datetime | None = None,
) -> list[dict]:
    """Best completed score per user for a game and period, ranked.

    Ties on score go to whoever reached it first. Percentiles are taken over
    every player in the period, not just the returned page.
    """
    _check_game_type(game_type)
    if period not in LEADERBOARD_PERIODS:
        msg = f"Unknown period '{period}'"
        raise GamificationError(msg, code="INVALID_PERIOD")
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))

    conditions = [GameSession.game_type == game_type, GameSession.completed.is_(True)]
    if period == "daily":
        start, end = day_bounds(now)
        conditions += [GameSession.completed_at >= start, GameSession.completed_at < end]
    elif period == "weekly":
        start, end = week_bounds(now)
        conditions += [GameSession.completed_at >= start, GameSession.completed_at < end]

    best = (
        select(
            GameSession.user_id,
            func.max(GameSession.score).label("best_score"),
            func.count().label("games_played"),
        )
        .where(*conditions)
        .group_by(GameSession.user_id)
        .subquery()
    )
    first_reached = (
        select(GameSession.user_id, func.min(GameSession.completed_at).label("achieved_at"))
        .join(best, and_(GameSession.user_id == best.c.user_id, GameSession.score == best.c.best_score))
        .where(*conditions)
        .group_by(GameSession.user_id)
        .subquery()
    )
    stmt = (
        select(best.c.user_id, best.c.best_score, best.c.games_played, first_reached.c.achieved_at)
        .join(first_reached, first_reached.c.user_id == best.c.user_id)
        .order_by(best.c.best_score.desc(), first_reached.c.achieved_at, best.c.user_id)
        .limit(limit)
    )

    rows = (await db.execute(stmt)).all()
    if not rows:
        return []
    total_players = await db.scalar(select(func.count()).select_from(best)) or len(rows)

    users = {
        u.id: u
        for u in (await db.execute(select(User).where(User.id.in_([r.user_id for r in rows])))).scalars()
    }
    entries = [
        {
            "user_id": r.user_id,
            "username": users[r.user_id].username if r.user_id in users else None,
            "name": users[r.user_id].name if r.user_id in users else None,
            "level": users[r.user_id].level if r.user_id in users else 1,
            "score": r.best_score,
            "games_played": r.games_played,
            "achieved_at": r.achieved_at,
        }
        for r in rows
    ]
    return rank_entries(entries, total=total_players)


async def get_user_game_stats(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> dict[str, dict]:
    """Per-game totals for a user plus plays left today."""
    result = await db.execute(
        select(
            GameSession.game_type,
            func.count(),
            func.max(GameSession.score),
            func.avg(GameSession.score),
            func.coalesce(func.sum(GameSession.coins_earned), 0),
        )
        .where(GameSession.user_id == user_id, GameSession.completed.is_(True))
        .group_by(GameSession.game_type)
    )
    rows = {r[0]: r for r in result.all()}
    limit = get_settings().daily_game_limit

    stats = {}
    for game_type in GAME_TYPES:
        row = rows.get(game_type)
        played_today = await count_games_today(db, user_id, game_type, now)
        stats[game_type] = {
            "total_games": row[1] if row else 0,
            "high_score": row[2] if row else 0,
            "average_score": round(float(row[3]), 2) if row and row[3] is not None else 0.0,
            "total_coins": int(row[4]) if row else 0,
            "remaining_today": max(0, limit - played_today),
        }
    return stats


async def get_daily_game_status(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> list[dict]:
    """Which games can still be played today."""
    limit = get_settings().daily_game_limit
    status = []
    for game_type, settings in GAME_SETTINGS.items():
        played = await count_games_today(db, user_id, game_type, now)
        status.append({
            "game_type": game_type,
            "name": settings["name"],
            "description": settings["description"],
            "played_today": played,
            "daily_limit": limit,
            "remaining": max(0, limit - played),
            "can_play": played < limit,
        })
    return status
