"""Mini-game sessions, payouts, limits and leaderboards."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from fitjourney.db.models import GameSession
from fitjourney.exceptions import DailyLimitReachedError, ForbiddenError, GamificationError, NotFoundError
from fitjourney.games.game_service import (
    cancel_game_session,
    complete_game_session,
    get_daily_game_status,
    get_game_leaderboard,
    get_user_game_stats,
    start_game_session,
)

RICH_XP = {"xp": 100_000, "level": 32}


async def _play(db, user_id: int, game_type: str, score: int, game_data: dict | None = None) -> dict:
    session = await start_game_session(db, user_id, game_type)
    return await complete_game_session(db, None, user_id, session.id, score, game_data)


class TestSessions:
    @pytest.mark.asyncio
    async def test_complete_pays_coins(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        result = await _play(db_session, u.id, "NUTRITION_QUIZ", 210)

        assert result["coins_earned"] == 80
        assert result["is_high_score"] is True
        assert result["previous_best"] is None
        assert result["rank"] == 1
        assert result["session"].completed is True
        await db_session.refresh(u)
        assert u.coins == 80

    @pytest.mark.asyncio
    async def test_high_score_tracking(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        await _play(db_session, u.id, "DAILY_PUZZLE", 120)
        lower = await _play(db_session, u.id, "DAILY_PUZZLE", 60)

        assert lower["is_high_score"] is False
        assert lower["previous_best"] == 120

    @pytest.mark.asyncio
    async def test_memory_cards_scored_from_moves(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        result = await _play(db_session, u.id, "MEMORY_CARDS", 0, {"moves": 18})

        assert result["session"].score == 82
        assert result["coins_earned"] == 100
        assert result["badges"] == ["game_memory_master"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("score", "game_data"),
        [
            (5000, {}),
            (0, {"moves": -500}),
            (0, {"moves": "abc"}),
            (0, {"moves": 12.5}),
        ],
    )
    async def test_memory_cards_rejects_impossible_results(self, db_session, make_user, score, game_data):
        u = await make_user(**RICH_XP)
        session = await start_game_session(db_session, u.id, "MEMORY_CARDS")

        with pytest.raises(GamificationError) as exc_info:
            await complete_game_session(db_session, None, u.id, session.id, score, game_data)

        assert exc_info.value.code == "INVALID_SCORE"
        await db_session.refresh(u)
        assert u.coins == 0
        await db_session.refresh(session)
        assert session.completed is False

    @pytest.mark.asyncio
    async def test_memory_cards_perfect_score_without_moves(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        result = await _play(db_session, u.id, "MEMORY_CARDS", 100)
        assert result["session"].score == 100
        assert result["coins_earned"] == 100

    @pytest.mark.asyncio
    async def test_calorie_master_badge(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        result = await _play(db_session, u.id, "CALORIE_GUESS", 850)
        assert result["coins_earned"] == 200
        assert result["badges"] == ["game_calorie_master"]

    @pytest.mark.asyncio
    async def test_daily_limit(self, db_session, user):
        for _ in range(5):
            await start_game_session(db_session, user.id, "CALORIE_GUESS")
        with pytest.raises(DailyLimitReachedError):
            await start_game_session(db_session, user.id, "CALORIE_GUESS")
        # Limits are per game
        await start_game_session(db_session, user.id, "DAILY_PUZZLE")

    @pytest.mark.asyncio
    async def test_unknown_game(self, db_session, user):
        with pytest.raises(GamificationError) as exc_info:
            await start_game_session(db_session, user.id, "CHESS")
        assert exc_info.value.code == "INVALID_GAME_TYPE"

    @pytest.mark.asyncio
    async def test_complete_twice(self, db_session, user):
        session = await start_game_session(db_session, user.id, "DAILY_PUZZLE")
        await complete_game_session(db_session, None, user.id, session.id, 10)
        with pytest.raises(GamificationError) as exc_info:
            await complete_game_session(db_session, None, user.id, session.id, 10)
        assert exc_info.value.code == "GAME_ALREADY_COMPLETED"

    @pytest.mark.asyncio
    async def test_complete_other_users_session(self, db_session, make_user):
        owner = await make_user()
        other = await make_user()
        session = await start_game_session(db_session, owner.id, "DAILY_PUZZLE")
        with pytest.raises(ForbiddenError):
            await complete_game_session(db_session, None, other.id, session.id, 10)

    @pytest.mark.asyncio
    async def test_negative_score(self, db_session, user):
        session = await start_game_session(db_session, user.id, "DAILY_PUZZLE")
        with pytest.raises(GamificationError) as exc_info:
            await complete_game_session(db_session, None, user.id, session.id, -1)
        assert exc_info.value.code == "INVALID_SCORE"

    @pytest.mark.asyncio
    async def test_cancel_deletes_session(self, db_session, user):
        session = await start_game_session(db_session, user.id, "DAILY_PUZZLE")
        session_id = session.id
        await cancel_game_session(db_session, user.id, session_id)

        assert await db_session.scalar(select(func.count()).select_from(GameSession)) == 0
        with pytest.raises(NotFoundError):
            await cancel_game_session(db_session, user.id, session_id)


class TestLeaderboardAndStats:
    @pytest.mark.asyncio
    async def test_best_score_per_user(self, db_session, make_user):
        a = await make_user(**RICH_XP)
        b = await make_user(**RICH_XP)
        await _play(db_session, a.id, "NUTRITION_QUIZ", 150)
        await _play(db_session, a.id, "NUTRITION_QUIZ", 320)
        await _play(db_session, b.id, "NUTRITION_QUIZ", 200)

        board = await get_game_leaderboard(db_session, "NUTRITION_QUIZ", "all-time")

        assert [(e["user_id"], e["score"], e["rank"]) for e in board] == [(a.id, 320, 1), (b.id, 200, 2)]
        assert board[0]["games_played"] == 2
        assert await get_game_leaderboard(db_session, "NUTRITION_QUIZ", "daily") != []

    @pytest.mark.asyncio
    async def test_leaderboard_ties_go_to_first_and_percentile_covers_all(self, db_session, make_user):
        late, early, third = await make_user(), await make_user(), await make_user()
        t0 = datetime(2026, 3, 4, 9, 0, tzinfo=timezone.utc)
        for user, score, finished in ((late, 200, t0 + timedelta(hours=1)), (early, 200, t0), (third, 100, t0)):
            session = await start_game_session(db_session, user.id, "DAILY_PUZZLE", now=finished)
            await complete_game_session(db_session, None, user.id, session.id, score, now=finished)

        board = await get_game_leaderboard(db_session, "DAILY_PUZZLE", "all-time", limit=2)

        assert [(e["user_id"], e["rank"]) for e in board] == [(early.id, 1), (late.id, 2)]
        assert [e["percentile"] for e in board] == [66.67, 33.33]

    @pytest.mark.asyncio
    async def test_unknown_period(self, db_session, engine):
        with pytest.raises(GamificationError) as exc_info:
            await get_game_leaderboard(db_session, "NUTRITION_QUIZ", "yearly")
        assert exc_info.value.code == "INVALID_PERIOD"

    @pytest.mark.asyncio
    async def test_stats_and_status(self, db_session, make_user):
        u = await make_user(**RICH_XP)
        await _play(db_session, u.id, "DAILY_PUZZLE", 100)
        await _play(db_session, u.id, "DAILY_PUZZLE", 50)

        stats = await get_user_game_stats(db_session, u.id)
        assert stats["DAILY_PUZZLE"] == {
            "total_games": 2,
            "high_score": 100,
            "average_score": 75.0,
            "total_coins": 90,
            "remaining_today": 3,
        }
        assert stats["CALORIE_GUESS"]["total_games"] == 0

        status = {s["game_type"]: s for s in await get_daily_game_status(db_session, u.id)}
        assert status["DAILY_PUZZLE"]["played_today"] == 2
        assert status["DAILY_PUZZLE"]["can_play"] is True
        assert status["MEMORY_CARDS"]["remaining"] == 5
