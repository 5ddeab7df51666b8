"""Reward shop endpoints."""

import pytest

from fitjourney.auth.jwt import create_access_token

RICH = {"coins": 5000, "xp": 100_000, "level": 32}


async def _rich_headers(make_user) -> dict:
    u = await make_user(**RICH)
    return {"Authorization": f"Bearer {create_access_token(u.id, u.email)}"}


async def _reward_ids(client, headers) -> dict[str, int]:
    data = (await client.get("/api/v1/shop/rewards", headers=headers)).json()
    return {r["slug"]: r["id"] for r in data["rewards"]}


class TestCatalog:
    @pytest.mark.asyncio
    async def test_list_with_balance(self, client, make_user):
        headers = await _rich_headers(make_user)
        data = (await client.get("/api/v1/shop/rewards", headers=headers)).json()
        assert data["balance"] == 5000
        assert len(data["rewards"]) == 15
        assert all(r["owned"] is False for r in data["rewards"])

    @pytest.mark.asyncio
    async def test_filter_by_type(self, authed_client):
        data = (await authed_client.get("/api/v1/shop/rewards", params={"type": "THEME"})).json()
        assert {r["slug"] for r in data["rewards"]} == {"theme_ocean", "theme_forest", "theme_sunset"}


class TestPurchase:
    @pytest.mark.asyncio
    async def test_buy_theme(self, client, make_user):
        headers = await _rich_headers(make_user)
        ids = await _reward_ids(client, headers)

        response = await client.post("/api/v1/shop/purchase", json={"reward_id": ids["theme_ocean"]}, headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["remaining_coins"] == 4800
        assert body["user_reward"]["slug"] == "theme_ocean"
        assert body["user_reward"]["coins_paid"] == 200

        listing = (await client.get("/api/v1/shop/rewards", headers=headers)).json()
        owned = {r["slug"] for r in listing["rewards"] if r["owned"]}
        assert owned == {"theme_ocean"}

        mine = (await client.get("/api/v1/shop/my-rewards", headers=headers)).json()
        assert [r["slug"] for r in mine] == ["theme_ocean"]

    @pytest.mark.asyncio
    async def test_insufficient_coins(self, authed_client):
        ids = await _reward_ids(authed_client, {})
        response = await authed_client.post("/api/v1/shop/purchase", json={"reward_id": ids["theme_ocean"]})
        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_COINS"

    @pytest.mark.asyncio
    async def test_unknown_reward(self, authed_client):
        response = await authed_client.post("/api/v1/shop/purchase", json={"reward_id": 9999})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_body(self, authed_client):
        response = await authed_client.post("/api/v1/shop/purchase", json={"reward_id": 0})
        assert response.status_code == 422


class TestMyRewards:
    @pytest.mark.asyncio
    async def test_activate_premium(self, client, make_user):
        headers = await _rich_headers(make_user)
        ids = await _reward_ids(client, headers)
        bought = (await client.post(
            "/api/v1/shop/purchase", json={"reward_id": ids["premium_ad_free"]}, headers=headers,
        )).json()
        user_reward_id = bought["user_reward"]["id"]

        before = (await client.get("/api/v1/shop/premium", headers=headers)).json()
        response = await client.post(f"/api/v1/shop/my-rewards/{user_reward_id}/activate", headers=headers)
        after = (await client.get("/api/v1/shop/premium", headers=headers)).json()

        assert response.status_code == 200
        assert response.json()["type"] == "AD_FREE"
        assert before["ad_free"] is False
        assert after == {"ad_free": True, "premium_stats": False, "custom_profile": False}

    @pytest.mark.asyncio
    async def test_refund_without_body(self, client, make_user):
        headers = await _rich_headers(make_user)
        ids = await _reward_ids(client, headers)
        bought = (await client.post(
            "/api/v1/shop/purchase", json={"reward_id": ids["discount_25"]}, headers=headers,
        )).json()

        response = await client.post(f"/api/v1/shop/my-rewards/{bought['user_reward']['id']}/refund", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"refunded": 250, "balance": 5000}
        assert (await client.get("/api/v1/shop/my-rewards", headers=headers)).json() == []
