"""Stats and delete endpoint behavior tests."""

import pytest
from fakeredis import FakeAsyncRedis
from httpx import AsyncClient

from shardurl.main import app


@pytest.mark.asyncio
async def test_stats_valid_id(client: AsyncClient) -> None:
    create_resp = await client.post("/api/shorten", json={"url": "https://www.google.com", "ttl": 120})
    short_id = create_resp.json()["short_id"]

    response = await client.get(f"/api/stats/{short_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["short_id"] == short_id
    assert data["original_url"] == "https://www.google.com"
    assert data["clicks"] == 0
    assert data["ttl"] == 120
    assert data["short_url"] == f"https://sho.example.com/{short_id}"
    assert data["created_at"] == create_resp.json()["created_at"]


@pytest.mark.asyncio
async def test_stats_unknown_id(client: AsyncClient) -> None:
    response = await client.get("/api/stats/nonexistent")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_after_clicks(client: AsyncClient) -> None:
    create_resp = await client.post("/api/shorten", json={"url": "https://www.example.com"})
    short_id = create_resp.json()["short_id"]

    for _ in range(5):
        await client.get(f"/{short_id}", follow_redirects=False)
    await app.state.record_store.drain()

    response = await client.get(f"/api/stats/{short_id}")
    assert response.status_code == 200
    assert response.json()["clicks"] == 5


@pytest.mark.asyncio
async def test_stats_ignores_lingering_counter(client: AsyncClient, shards: list[FakeAsyncRedis]) -> None:
    await shards[0].hset("analytics:abc123", mapping={"clicks": 12})

    response = await client.get("/api/stats/abc123")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats_corrupted_counter_is_server_error(client: AsyncClient, shards: list[FakeAsyncRedis]) -> None:
    await client.post("/api/shorten", json={"url": "https://www.example.com", "custom_alias": "abc123"})
    await shards[0].hset("analytics:abc123", "clicks", b"\xff\xfe")

    response = await client.get("/api/stats/abc123")

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}


@pytest.mark.asyncio
async def test_delete_url(client: AsyncClient, shards: list[FakeAsyncRedis]) -> None:
    await client.post("/api/shorten", json={"url": "https://www.example.com", "custom_alias": "blog"})

    response = await client.delete("/api/urls/blog")
    assert response.status_code == 204
    assert await shards[1].dbsize() == 0

    assert (await client.get("/blog", follow_redirects=False)).status_code == 404
    assert (await client.delete("/api/urls/blog")).status_code == 404
