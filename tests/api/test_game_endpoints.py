"""Mini-game session, status and leaderboard endpoints."""

import pytest

from fitjourney.auth.jwt import create_access_token


class TestGameSessions:
    @pytest.mark.asyncio
    async def test_start_and_complete(self, authed_client):
        started = await authed_client.post("/api/v1/games/calorie_guess/sessions")
        assert started.status_code == 201
        session = started.json()
        assert session["game_type"] == "CALORIE_GUESS"
        assert session["completed"] is False

        response = await authed_client.post(
            f"/api/v1/games/sessions/{session['id']}/complete",
            json={"score": 650, "game_data": {"guesses": 10}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["coins_earned"] == 100
        assert body["is_high_score"] is True
        assert body["previous_best"] is None
        assert body["rank"] == 1
        assert body["session"]["score"] == 650

        balance = (await authed_client.get("/api/v1/users/me/coins")).json()
        assert balance["balance"] == 100

    @pytest.mark.asyncio
    async def test_complete_twice(self, authed_client):
        session = (await authed_client.post("/api/v1/games/DAILY_PUZZLE/sessions")).json()
        await authed_client.post(f"/api/v1/games/sessions/{session['id']}/complete", json={"score": 10})

        response = await authed_client.post(f"/api/v1/games/sessions/{session['id']}/complete", json={"score": 10})

        assert response.status_code == 400
        assert response.json()["code"] == "GAME_ALREADY_COMPLETED"

    @pytest.mark.asyncio
    async def test_negative_score_rejected(self, authed_client):
        session = (await authed_client.post("/api/v1/games/NUTRITION_QUIZ/sessions")).json()
        response = await authed_client.post(f"/api/v1/games/sessions/{session['id']}/complete", json={"score": -5})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_non_numeric_moves_rejected(self, authed_client):
        session = (await authed_client.post("/api/v1/games/MEMORY_CARDS/sessions")).json()
        response = await authed_client.post(
            f"/api/v1/games/sessions/{session['id']}/complete",
            json={"score": 0, "game_data": {"moves": "abc"}},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SCORE"

    @pytest.mark.asyncio
    async def test_cancel(self, authed_client):
        session = (await authed_client.post("/api/v1/games/MEMORY_CARDS/sessions")).json()

        response = await authed_client.delete(f"/api/v1/games/sessions/{session['id']}")
        assert response.status_code == 204

        missing = await authed_client.delete(f"/api/v1/games/sessions/{session['id']}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_game(self, authed_client):
        response = await authed_client.post("/api/v1/games/tetris/sessions")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_GAME_TYPE"

    @pytest.mark.asyncio
    async def test_daily_limit(self, authed_client):
        for _ in range(5):
            assert (await authed_client.post("/api/v1/games/DAILY_PUZZLE/sessions")).status_code == 201

        response = await authed_client.post("/api/v1/games/DAILY_PUZZLE/sessions")

        assert response.status_code == 400
        assert response.json()["code"] == "DAILY_LIMIT_REACHED"


class TestGameOverview:
    @pytest.mark.asyncio
    async def test_status(self, authed_client):
        await authed_client.post("/api/v1/games/CALORIE_GUESS/sessions")

        games = {g["game_type"]: g for g in (await authed_client.get("/api/v1/games/status")).json()["games"]}

        assert set(games) == {"CALORIE_GUESS", "MEMORY_CARDS", "NUTRITION_QUIZ", "DAILY_PUZZLE"}
        assert games["CALORIE_GUESS"]["played_today"] == 1
        assert games["CALORIE_GUESS"]["remaining"] == 4
        assert games["MEMORY_CARDS"]["can_play"] is True

    @pytest.mark.asyncio
    async def test_stats(self, authed_client):
        session = (await authed_client.post("/api/v1/games/NUTRITION_QUIZ/sessions")).json()
        await authed_client.post(f"/api/v1/games/sessions/{session['id']}/complete", json={"score": 220})

        stats = (await authed_client.get("/api/v1/games/stats")).json()["stats"]

        assert stats["NUTRITION_QUIZ"]["total_games"] == 1
        assert stats["NUTRITION_QUIZ"]["high_score"] == 220
        assert stats["NUTRITION_QUIZ"]["total_coins"] == 80
        assert stats["DAILY_PUZZLE"]["total_games"] == 0

    @pytest.mark.asyncio
    async def test_leaderboard(self, client, make_user):
        for score in (120, 480):
            u = await make_user()
            headers = {"Authorization": f"Bearer {create_access_token(u.id, u.email)}"}
            session = (await client.post("/api/v1/games/CALORIE_GUESS/sessions", headers=headers)).json()
            await client.post(
                f"/api/v1/games/sessions/{session['id']}/complete", json={"score": score}, headers=headers,
            )

        data = (await client.get("/api/v1/games/calorie_guess/leaderboard")).json()

        assert data["game_type"] == "CALORIE_GUESS"
        assert data["period"] == "all-time"
        assert [e["score"] for e in data["entries"]] == [480, 120]
        assert data["entries"][0]["rank"] == 1

    @pytest.mark.asyncio
    async def test_leaderboard_rejects_unknown_period(self, client):
        response = await client.get("/api/v1/games/CALORIE_GUESS/leaderboard", params={"period": "monthly"})
        assert response.status_code == 422
