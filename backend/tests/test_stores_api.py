"""
API Integration Tests — store reads (cache-aside) and status/detail updates.
"""

import pytest
from httpx import AsyncClient

from core.cache import cache_key


@pytest.fixture
async def pushed_store(client: AsyncClient, make_payload):
    resp = await client.post("/api/v1/products/push", json=make_payload())
    assert resp.status_code == 200
    return "STORE-1"


@pytest.mark.asyncio
class TestStoreReads:
    async def test_get_store_then_cache_hit(self, client: AsyncClient, fake_cache, pushed_store):
        first = await client.get(f"/api/v1/stores/{pushed_store}")
        second = await client.get(f"/api/v1/stores/{pushed_store}")

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json() == second.json()
        assert first.json()["external_id"] == "STORE-1"
        assert first.json()["city"] == "Bengaluru"
        assert first.json()["country"] == "India"
        assert fake_cache.misses == 1
        assert fake_cache.hits == 1

    async def test_unknown_store_is_404(self, client: AsyncClient, fake_cache):
        resp = await client.get("/api/v1/stores/NOPE")
        assert resp.status_code == 404
        assert fake_cache.store == {}

    async def test_get_status(self, client: AsyncClient, pushed_store):
        resp = await client.get(f"/api/v1/stores/{pushed_store}/status")
        assert resp.status_code == 200
        assert resp.json() == {"external_id": "STORE-1", "is_active": True, "is_open": True}


@pytest.mark.asyncio
class TestStoreUpdates:
    async def test_status_update_invalidates_cache(self, client: AsyncClient, fake_cache, pushed_store):
        await client.get(f"/api/v1/stores/{pushed_store}")
        assert cache_key("store", {"external_id": pushed_store}) in fake_cache.store

        resp = await client.put(f"/api/v1/stores/{pushed_store}/status", json={"is_open": False})

        assert resp.status_code == 200
        assert resp.json() == {"external_id": "STORE-1", "is_active": True, "is_open": False}
        assert fake_cache.store == {}

        again = await client.get(f"/api/v1/stores/{pushed_store}")
        assert again.json()["is_open"] is False

    async def test_status_update_requires_a_field(self, client: AsyncClient, pushed_store):
        resp = await client.put(f"/api/v1/stores/{pushed_store}/status", json={})
        assert resp.status_code == 422

    async def test_status_update_unknown_store(self, client: AsyncClient):
        resp = await client.put("/api/v1/stores/NOPE/status", json={"is_active": False})
        assert resp.status_code == 404

    async def test_details_update(self, client: AsyncClient, fake_cache, pushed_store):
        await client.get(f"/api/v1/stores/{pushed_store}")

        resp = await client.put(
            f"/api/v1/stores/{pushed_store}",
            json={"phone": "+91 80 4000 1234", "delivery_fee": 25, "estimated_delivery_time": 30},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["phone"] == "+91 80 4000 1234"
        assert body["delivery_fee"] == pytest.approx(25.0)
        assert body["estimated_delivery_time"] == 30
        assert body["name"] == "Fresh Mart STORE-1"
        assert fake_cache.store == {}

    async def test_details_update_empty_body(self, client: AsyncClient, pushed_store):
        resp = await client.put(f"/api/v1/stores/{pushed_store}", json={})
        assert resp.status_code == 400

    async def test_details_update_validates_ranges(self, client: AsyncClient, pushed_store):
        resp = await client.put(f"/api/v1/stores/{pushed_store}", json={"delivery_fee": -3})
        assert resp.status_code == 422

    async def test_push_after_details_update_keeps_details(self, client: AsyncClient, make_payload, pushed_store):
        await client.put(f"/api/v1/stores/{pushed_store}", json={"phone": "080-1234"})
        await client.post("/api/v1/products/push", json=make_payload())

        resp = await client.get(f"/api/v1/stores/{pushed_store}")
        assert resp.json()["phone"] == "080-1234"

    async def test_push_refreshes_cached_store(self, client: AsyncClient, fake_cache, make_payload, pushed_store):
        await client.get(f"/api/v1/stores/{pushed_store}")

        payload = make_payload()
        payload["store_details"]["name"] = "Fresh Mart Koramangala"
        await client.post("/api/v1/products/push", json=payload)

        resp = await client.get(f"/api/v1/stores/{pushed_store}")
        assert resp.json()["name"] == "Fresh Mart Koramangala"
