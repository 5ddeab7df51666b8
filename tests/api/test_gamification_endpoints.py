"""XP, level, badge, streak and XP leaderboard endpoints."""

import pytest

from fitjourney.auth.jwt import create_access_token
from fitjourney.gamification.badge_service import award_badge


class TestCatalogEndpoints:
    @pytest.mark.asyncio
    async def test_levels(self, client):
        levels = (await client.get("/api/v1/levels")).json()["levels"]
        assert len(levels) == 100
        assert levels[1] == {"level": 2, "title": "Newcomer", "xp_required": 100, "cumulative": 100}

    @pytest.mark.asyncio
    async def test_badges_with_holder_counts(self, client, db_session, user):
        await award_badge(db_session, None, user.id, "likes_10")
        await db_session.commit()

        badges = {b["slug"]: b for b in (await client.get("/api/v1/badges")).json()["badges"]}
        assert len(badges) == 29
        assert badges["likes_10"]["total_earned"] == 1
        assert badges["likes_50"]["total_earned"] == 0

    @pytest.mark.asyncio
    async def test_badge_detail(self, client, db_session, user):
        await award_badge(db_session, None, user.id, "first_plan")
        await db_session.commit()

        data = (await client.get("/api/v1/badges/first_plan")).json()
        assert data["name"] == "First Step"
        assert data["total_earned"] == 1
        assert data["recent_earners"][0]["user"] == user.username

    @pytest.mark.asyncio
    async def test_badge_not_found(self, client):
        response = await client.get("/api/v1/badges/no_such_badge")
        assert response.status_code == 404


class TestMyProgress:
    @pytest.mark.asyncio
    async def test_xp_for_new_user(self, authed_client):
        data = (await authed_client.get("/api/v1/users/me/xp")).json()
        assert data["total_xp"] == 0
        assert data["level"] == 1
        assert data["level_title"] == "Newcomer"
        assert data["next_level"] == 2

    @pytest.mark.asyncio
    async def test_check_in_flow(self, authed_client):
        first = (await authed_client.post("/api/v1/users/me/streak/check-in")).json()
        second = (await authed_client.post("/api/v1/users/me/streak/check-in")).json()

        assert first["streak"] == 1
        assert first["changed"] is True
        assert second["changed"] is False

        streak = (await authed_client.get("/api/v1/users/me/streak")).json()
        assert streak["current_streak"] == 1
        assert streak["active_today"] is True
        assert streak["next_milestone"]["streak_days"] == 7

        history = (await authed_client.get("/api/v1/users/me/xp/history")).json()
        assert history["total"] == 1
        assert history["entries"][0]["source"] == "DAILY_LOGIN"
        assert history["entries"][0]["amount"] == 10

    @pytest.mark.asyncio
    async def test_claim_bonus_not_reached(self, authed_client):
        response = await authed_client.post("/api/v1/users/me/streak/claim-bonus", json={"streak_days": 7})
        assert response.status_code == 400
        assert response.json()["code"] == "MILESTONE_NOT_REACHED"

    @pytest.mark.asyncio
    async def test_claim_bonus_unknown_milestone(self, authed_client):
        response = await authed_client.post("/api/v1/users/me/streak/claim-bonus", json={"streak_days": 8})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_claim_bonus(self, client, make_user):
        u = await make_user(streak=30, longest_streak=30)
        headers = {"Authorization": f"Bearer {create_access_token(u.id, u.email)}"}

        response = await client.post("/api/v1/users/me/streak/claim-bonus", json={"streak_days": 30}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"streak_days": 30, "coins": 500, "xp": 250, "badge_slug": "active_30_days"}

    @pytest.mark.asyncio
    async def test_my_badges(self, authed_client, db_session, user):
        await award_badge(db_session, None, user.id, "comments_10", {"source": "test"})
        await db_session.commit()

        data = (await authed_client.get("/api/v1/users/me/badges")).json()
        assert data["total_earned"] == 1
        assert data["total_available"] == 29
        assert data["earned"][0]["slug"] == "comments_10"
        assert data["earned"][0]["metadata"] == {"source": "test"}

    @pytest.mark.asyncio
    async def test_summary(self, authed_client):
        await authed_client.post("/api/v1/users/me/streak/check-in")

        data = (await authed_client.get("/api/v1/users/me/gamification")).json()
        assert data["xp"]["total_xp"] == 10
        assert data["streak"] == 1
        assert data["coins"] == 0
        assert data["badges"] == {"earned": 0, "total": 29}
        assert data["stats"]["plans_created"] == 0


class TestXPLeaderboard:
    @pytest.mark.asyncio
    async def test_ordered_by_xp(self, client, make_user):
        low = await make_user(xp=100, level=2)
        high = await make_user(xp=900, level=4)
        await make_user(xp=5000, is_banned=True)

        entries = (await client.get("/api/v1/leaderboard/xp")).json()["entries"]

        assert [e["user_id"] for e in entries] == [high.id, low.id]
        assert entries[0]["rank"] == 1
        assert entries[0]["level"] == 4
