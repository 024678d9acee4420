"""Tests for GET /partitions/stats."""

import pytest


@pytest.mark.asyncio
async def test_stats_reflect_writes(async_client, location_body):
    await async_client.post("/locations", json=location_body)
    await async_client.post("/locations", json={**location_body, "tourist_id": "t2"})
    r = await async_client.get("/partitions/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["partitions"]["cached_partitions"] == 2
    assert data["partitions"]["tier_distribution"]["vip"] == 1
    assert data["partitions"]["tier_distribution"]["standard"] == 1
    labels = data["metrics"]["counters_by_labels"]["location_written"]
    assert labels == {"location_written:tier=standard": 1, "location_written:tier=vip": 1}
