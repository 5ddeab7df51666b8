"""Operational endpoints."""

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_version(self, client):
        data = (await client.get("/version")).json()
        assert data["version"] == "0.1.0"
        assert "environment" in data

    @pytest.mark.asyncio
    async def test_ready_without_redis_is_degraded(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["catalog_seeded"] is True
        assert data["checks"]["redis"].startswith("error")
