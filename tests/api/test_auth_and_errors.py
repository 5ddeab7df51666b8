"""Session auth, request ids and the JSON error envelope."""

import pytest

from fitjourney.auth.jwt import create_access_token


class TestSessionAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/users/me/xp")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get("/api/v1/users/me/xp", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        token = create_access_token(9999, "ghost@example.com")
        response = await client.get("/api/v1/users/me/xp", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_banned_user(self, client, make_user):
        u = await make_user(is_banned=True)
        token = create_access_token(u.id, u.email)
        response = await client.get("/api/v1/users/me/xp", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_session_cookie(self, client, user):
        token = create_access_token(user.id, user.email)
        response = await client.get("/api/v1/users/me/xp", headers={"Cookie": f"fj_session={token}"})
        assert response.status_code == 200


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert response.headers.get("X-Request-ID")

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_unknown_route_is_json_404(self, client):
        response = await client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_domain_error_envelope(self, authed_client):
        response = await authed_client.post("/api/v1/quests/999/claim")
        assert response.status_code == 404
        assert response.json() == {"detail": "Quest not found", "code": "QUEST_NOT_FOUND"}

    @pytest.mark.asyncio
    async def test_validation_error_envelope(self, authed_client):
        response = await authed_client.post("/api/v1/users/me/streak/claim-bonus", json={"streak_days": 0})
        assert response.status_code == 422
        body = response.json()
        assert body["detail"] == "Validation error"
        assert body["errors"][0]["loc"] == ["body", "streak_days"]
