"""Cron-secret guarded scheduling and activity intake endpoints."""

import pytest
from sqlalchemy import func, select

from fitjourney.db.models import UserQuest, UserStats


class TestCronSecret:
    @pytest.mark.asyncio
    async def test_missing_secret(self, client):
        response = await client.post("/api/v1/cron/quests/cleanup")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_secret(self, client):
        response = await client.post("/api/v1/cron/quests/cleanup", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 403


class TestQuestJobs:
    @pytest.mark.asyncio
    async def test_assign_daily_skips_banned(self, client, db_session, make_user, cron_headers):
        await make_user()
        await make_user()
        await make_user(is_banned=True)

        response = await client.post("/api/v1/cron/quests/assign-daily", headers=cron_headers)

        assert response.status_code == 200
        assert response.json() == {"quest_type": "DAILY", "success": 2, "errors": 0, "total": 2}
        assert await db_session.scalar(select(func.count()).select_from(UserQuest)) == 10

    @pytest.mark.asyncio
    async def test_assign_weekly_is_idempotent(self, client, db_session, make_user, cron_headers):
        await make_user()

        await client.post("/api/v1/cron/quests/assign-weekly", headers=cron_headers)
        await client.post("/api/v1/cron/quests/assign-weekly", headers=cron_headers)

        assert await db_session.scalar(select(func.count()).select_from(UserQuest)) == 3

    @pytest.mark.asyncio
    async def test_cleanup_with_nothing_expired(self, client, make_user, cron_headers):
        await make_user()
        await client.post("/api/v1/cron/quests/assign-special", headers=cron_headers)

        response = await client.post("/api/v1/cron/quests/cleanup", headers=cron_headers)

        assert response.json() == {"deleted": 0}


class TestActivityIntake:
    @pytest.mark.asyncio
    async def test_plan_approved_awards_first_plan(self, client, user, cron_headers):
        response = await client.post(
            "/api/v1/internal/activity",
            json={"user_id": user.id, "activity": "plan_approved"},
            headers=cron_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"activity": "PLAN_APPROVED", "badges_awarded": ["first_plan"]}

    @pytest.mark.asyncio
    async def test_like_updates_owner(self, client, db_session, make_user, cron_headers):
        actor = await make_user()
        owner = await make_user()
        owner_id = owner.id

        response = await client.post(
            "/api/v1/internal/activity",
            json={"user_id": actor.id, "activity": "LIKE_GIVEN", "owner_id": owner_id, "value": 10},
            headers=cron_headers,
        )

        assert response.json()["badges_awarded"] == ["likes_10"]
        likes = await db_session.scalar(select(UserStats.likes_received).where(UserStats.user_id == owner_id))
        assert likes == 10

    @pytest.mark.asyncio
    async def test_unknown_activity(self, client, user, cron_headers):
        response = await client.post(
            "/api/v1/internal/activity",
            json={"user_id": user.id, "activity": "SKYDIVE"},
            headers=cron_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "UNKNOWN_ACTIVITY"

    @pytest.mark.asyncio
    async def test_unknown_user(self, client, cron_headers):
        response = await client.post(
            "/api/v1/internal/activity",
            json={"user_id": 9999, "activity": "CHECK_IN"},
            headers=cron_headers,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"
