"""Shard pool lifecycle and health tests."""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis
from fakeredis import FakeAsyncRedis
from redis.exceptions import ConnectionError as RedisConnectionError

from shardurl.config import Settings
from shardurl.enums import HealthStatus
from shardurl.errors import ShardConnectError
from shardurl.pool import ShardPool


def failing_client(message: str = "Connection refused") -> AsyncMock:
    client = AsyncMock(spec=redis.Redis)
    client.ping = AsyncMock(side_effect=RedisConnectionError(message))
    client.aclose = AsyncMock()
    return client


def healthy_client() -> AsyncMock:
    client = AsyncMock(spec=redis.Redis)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


def test_pool_requires_a_shard() -> None:
    with pytest.raises(ValueError, match="at least one shard"):
        ShardPool([])


def test_addresses_must_match_clients() -> None:
    with pytest.raises(ValueError):
        ShardPool([healthy_client(), healthy_client()], addresses=["a:1"])


def test_from_settings_builds_one_client_per_shard() -> None:
    settings = Settings(_env_file=None, REDIS_SHARDS="redis-a:6379,redis-b:6380")
    pool = ShardPool.from_settings(settings)

    assert pool.shard_count == 2
    assert pool.address(0) == "redis-a:6379"
    assert pool.address(1) == "redis-b:6380"
    assert pool.client(1).connection_pool.connection_kwargs["port"] == 6380
    assert not pool.connected


@pytest.mark.asyncio
async def test_connect_all_succeeds(pool: ShardPool) -> None:
    assert pool.connected
    assert pool.shard_count == 3


@pytest.mark.asyncio
async def test_connect_all_fails_fast_and_closes_everything() -> None:
    clients = [healthy_client(), failing_client(), healthy_client()]
    pool = ShardPool(clients, ["a:1", "b:2", "c:3"])

    with pytest.raises(ShardConnectError) as exc_info:
        await pool.connect_all()

    assert set(exc_info.value.failures) == {1}
    assert "Connection refused" in exc_info.value.failures[1]
    assert "shard 1" in str(exc_info.value)
    assert not pool.connected
    for client in clients:
        client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_connect_all_reports_every_failed_shard() -> None:
    pool = ShardPool([failing_client("down"), failing_client("timeout")])

    with pytest.raises(ShardConnectError) as exc_info:
        await pool.connect_all()

    assert exc_info.value.failures == {0: "down", 1: "timeout"}


@pytest.mark.asyncio
async def test_health_ok_when_all_shards_answer(pool: ShardPool) -> None:
    health = await pool.health()

    assert health.status is HealthStatus.OK
    assert [shard.index for shard in health.shards] == [0, 1, 2]
    assert all(shard.latency_ms is not None for shard in health.shards)
    assert health.unreachable == []


@pytest.mark.asyncio
async def test_health_degraded_keeps_every_shard(shards: list[FakeAsyncRedis]) -> None:
    pool = ShardPool([shards[0], failing_client("gone"), shards[2]])

    health = await pool.health()

    assert health.status is HealthStatus.DEGRADED
    assert len(health.shards) == 3
    assert health.unreachable == [1]
    assert health.shards[1].status is HealthStatus.UNREACHABLE
    assert health.shards[1].error == "gone"
    # Still routable: a dead shard is never dropped from the pool.
    assert pool.shard_count == 3


@pytest.mark.asyncio
async def test_ping_never_raises() -> None:
    pool = ShardPool([failing_client()])

    result = await pool.ping(0)

    assert result.status is HealthStatus.UNREACHABLE
    assert result.latency_ms is None


@pytest.mark.asyncio
async def test_close_all_continues_past_failures() -> None:
    clients = [healthy_client(), healthy_client(), healthy_client()]
    clients[0].aclose.side_effect = RuntimeError("close failed")
    clients[1].aclose.side_effect = OSError("broken pipe")
    pool = ShardPool(clients)

    failed = await pool.close_all()

    assert failed == [0, 1]
    for client in clients:
        client.aclose.assert_awaited_once()
