"""Quest listing and reward claim endpoints."""

import pytest

from fitjourney.auth.jwt import create_access_token


class TestQuestEndpoints:
    @pytest.mark.asyncio
    async def test_first_read_assigns_quests(self, authed_client):
        data = (await authed_client.get("/api/v1/users/me/quests")).json()

        assert len(data["daily"]) == 5
        assert len(data["weekly"]) == 3
        assert len(data["special"]) == 2
        assert data["daily"][0]["slug"] == "daily_login"
        assert data["completed_count"] == 0
        assert data["claimable_count"] == 0

    @pytest.mark.asyncio
    async def test_second_read_is_stable(self, authed_client):
        first = (await authed_client.get("/api/v1/users/me/quests")).json()
        second = (await authed_client.get("/api/v1/users/me/quests")).json()
        assert [q["id"] for q in first["daily"]] == [q["id"] for q in second["daily"]]

    @pytest.mark.asyncio
    async def test_check_in_completes_and_claim_pays(self, authed_client):
        await authed_client.get("/api/v1/users/me/quests")
        await authed_client.post("/api/v1/users/me/streak/check-in")

        data = (await authed_client.get("/api/v1/users/me/quests")).json()
        login = next(q for q in data["daily"] if q["slug"] == "daily_login")
        assert login["completed"] is True
        assert data["claimable_count"] == 1

        response = await authed_client.post(f"/api/v1/quests/{login['id']}/claim")
        assert response.status_code == 200
        body = response.json()
        assert body["coins"] == 10
        assert body["xp"] == 10
        assert body["balance"] == 10
        assert body["quest"]["reward_claimed"] is True

        again = await authed_client.post(f"/api/v1/quests/{login['id']}/claim")
        assert again.status_code == 400
        assert again.json()["code"] == "ALREADY_CLAIMED"

    @pytest.mark.asyncio
    async def test_claim_incomplete(self, authed_client):
        data = (await authed_client.get("/api/v1/users/me/quests")).json()
        quest_id = data["weekly"][0]["id"]

        response = await authed_client.post(f"/api/v1/quests/{quest_id}/claim")

        assert response.status_code == 400
        assert response.json()["code"] == "NOT_COMPLETED"

    @pytest.mark.asyncio
    async def test_claim_other_users_quest(self, authed_client, client, make_user):
        other = await make_user()
        headers = {"Authorization": f"Bearer {create_access_token(other.id, other.email)}"}
        data = (await client.get("/api/v1/users/me/quests", headers=headers)).json()

        response = await authed_client.post(f"/api/v1/quests/{data['daily'][0]['id']}/claim")

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"
