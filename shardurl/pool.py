"""Shard pool: one long-lived Redis client per shard.

The pool owns the connections and their lifecycle. It is created once at
startup, passed explicitly to the RecordStore, and closed at shutdown.

Lifecycle Diagram
=================
::
    ┌──────────────┐    any shard    ┌──────────────────┐
    │ connect_all()│ ──── fails ───► │ close everything │──► ShardConnectError
    └──────┬───────┘                 └──────────────────┘
           │ all PONG
           ▼
    ┌──────────────┐
    │   serving    │ ◄── ping(i) / health(): per-shard, never raises
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ close_all()  │ ── closes shard 0..N-1, logs and skips failures
    └──────────────┘

How to Use
===========
**Step 1 — Build from settings**::
    pool = ShardPool.from_settings(get_settings())

**Step 2 — Connect (fail-fast)**::
    await pool.connect_all()

**Step 3 — Use a shard**::
    client = pool.client(router.route(short_id))

**Step 4 — Shutdown**::
    await pool.close_all()

Key Behaviours
===============
- Startup requires every shard; a degraded start would silently corrupt
  routing for every other key.
- After startup a dead shard is reported as degraded health but is never
  dropped from routing.
- Each client keeps its own internal connection pool (redis-py), shared by
  all concurrent requests routed to that shard.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

import redis.asyncio as redis
from prometheus_client import Gauge

from shardurl.config import Settings
from shardurl.enums import HealthStatus
from shardurl.errors import ShardConnectError

__all__ = ["PoolHealth", "ShardHealth", "ShardPool"]

SHARD_UP = Gauge(
    "shardurl_shard_up",
    "Whether the last ping of a shard succeeded (1) or failed (0)",
    ["shard"],
)


@dataclass
class ShardHealth:
    """Result of pinging a single shard."""

    index: int
    address: str
    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None


@dataclass
class PoolHealth:
    """Aggregate health: OK only when every shard answered."""

    status: HealthStatus
    shards: list[ShardHealth] = field(default_factory=list)

    @property
    def unreachable(self) -> list[int]:
        return [shard.index for shard in self.shards if shard.status is not HealthStatus.OK]


class ShardPool:
    def __init__(self, clients: Sequence[redis.Redis], addresses: Sequence[str] | None = None):
        if not clients:
            raise ValueError("ShardPool requires at least one shard")
        if addresses is not None and len(addresses) != len(clients):
            raise ValueError("addresses must match clients one to one")
        self._clients = list(clients)
        self._addresses = list(addresses) if addresses is not None else [f"shard-{i}" for i in range(len(clients))]
        self._connected = False
        self.logger = logging.getLogger("shardurl.pool")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShardPool":
        clients = []
        addresses = []
        for host, port in settings.shard_addresses:
            clients.append(
                redis.Redis(
                    host=host,
                    port=port,
                    password=settings.REDIS_PASSWORD,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                    socket_connect_timeout=settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                )
            )
            addresses.append(f"{host}:{port}")
        return cls(clients, addresses)

    def __len__(self) -> int:
        return len(self._clients)

    @property
    def shard_count(self) -> int:
        return len(self._clients)

    @property
    def connected(self) -> bool:
        return self._connected

    def client(self, index: int) -> redis.Redis:
        return self._clients[index]

    def address(self, index: int) -> str:
        return self._addresses[index]

    async def connect_all(self) -> None:
        """Ping every shard; raise ShardConnectError if any of them is unreachable."""
        self.logger.info(f"Connecting to {self.shard_count} shard(s): {', '.join(self._addresses)}")
        results = await asyncio.gather(
            *(self._clients[index].ping() for index in range(self.shard_count)),
            return_exceptions=True,
        )

        failures: dict[int, str] = {}
        for index, result in enumerate(results):
            if isinstance(result, Exception):
                failures[index] = str(result) or type(result).__name__
                self.logger.error(f"Shard {index} ({self._addresses[index]}) connect failed: {result}")
                SHARD_UP.labels(shard=str(index)).set(0)
            else:
                SHARD_UP.labels(shard=str(index)).set(1)

        if failures:
            await self.close_all()
            raise ShardConnectError(failures)

        self._connected = True
        self.logger.info("All shards connected")

    async def ping(self, index: int) -> ShardHealth:
        start_time = time.perf_counter()
        try:
            await self._clients[index].ping()
        except Exception as exc:
            self.logger.warning(f"Shard {index} ({self._addresses[index]}) ping failed: {exc}")
            SHARD_UP.labels(shard=str(index)).set(0)
            return ShardHealth(
                index=index,
                address=self._addresses[index],
                status=HealthStatus.UNREACHABLE,
                error=str(exc) or type(exc).__name__,
            )

        SHARD_UP.labels(shard=str(index)).set(1)
        return ShardHealth(
            index=index,
            address=self._addresses[index],
            status=HealthStatus.OK,
            latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

    async def health(self) -> PoolHealth:
        shards = await asyncio.gather(*(self.ping(index) for index in range(self.shard_count)))
        status = HealthStatus.OK if all(s.status is HealthStatus.OK for s in shards) else HealthStatus.DEGRADED
        return PoolHealth(status=status, shards=list(shards))

    async def close_all(self) -> list[int]:
        """Close every shard in order and return the indexes that failed to close."""
        self.logger.info("Closing shard connections...")
        failed = []
        for index, client in enumerate(self._clients):
            try:
                await client.aclose()
            except Exception as exc:
                failed.append(index)
                self.logger.error(f"Shard {index} ({self._addresses[index]}) close failed: {exc}")
        self._connected = False
        self.logger.info(f"Shard connections closed ({len(failed)} failure(s))")
        return failed
