"""Shared pytest fixtures: in-memory shards, pool, record store and HTTP client."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import ASGITransport, AsyncClient

from shardurl.config import Settings
from shardurl.dependencies import bind_resources
from shardurl.main import app
from shardurl.pool import ShardPool
from shardurl.store import RecordStore

SHARD_COUNT = 3


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        BASE_URL="https://sho.example.com",
        REDIS_SHARDS="shard-a:6379,shard-b:6379,shard-c:6379",
    )


@pytest_asyncio.fixture
async def shards() -> AsyncGenerator[list[FakeAsyncRedis], None]:
    # One FakeServer per client, otherwise every fake shard shares one keyspace.
    clients = [FakeAsyncRedis(server=FakeServer(), decode_responses=True) for _ in range(SHARD_COUNT)]
    yield clients
    for shard in clients:
        await shard.aclose()


@pytest_asyncio.fixture
async def pool(shards: list[FakeAsyncRedis], settings: Settings) -> ShardPool:
    addresses = [f"{host}:{port}" for host, port in settings.shard_addresses]
    shard_pool = ShardPool(shards, addresses)
    await shard_pool.connect_all()
    return shard_pool


@pytest_asyncio.fixture
async def store(pool: ShardPool) -> AsyncGenerator[RecordStore, None]:
    record_store = RecordStore(pool)
    yield record_store
    await record_store.drain()


@pytest_asyncio.fixture
async def client(pool: ShardPool, settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    record_store = bind_resources(app, pool, settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await record_store.drain()
