"""Record store: the two-records-per-id model on top of the shard pool.

Every short id owns two keys on the same shard (routing is a pure function
of the short id, so co-location needs no special casing):

Key Layout
==========
::
    shard = router.route(short_id)

    <short_id>              STRING  {"originalUrl", "createdAt", "ttl"}   EX ttl
    analytics:<short_id>    HASH    {"clicks": "<int>"}                   EXPIRE ttl

Flow Diagram — create()
=======================
::
    ┌─────────────┐
    │ route(id)   │
    └──────┬──────┘
           ▼
    ┌─────────────┐  alias taken
    │ EXISTS id   │ ─────────────► AliasConflictError (no write)
    │ (alias only)│
    └──────┬──────┘
           ▼
    ┌─────────────┐  NX lost the race
    │ SET id EX   │ ─────────────► AliasConflictError
    │ (NX: alias) │
    └──────┬──────┘
           ▼
    ┌─────────────┐  failure is logged; the
    │ HSET + EXPIRE│ counter heals on first click
    │ analytics   │
    └──────┬──────┘
           ▼
       ShortRecord

Flow Diagram — redirect click
=============================
::
    get(id) ──► response to caller
       │
       └──► dispatch_click(id) ──► detached task ──► HINCRBY clicks 1
                                         │
                                         └──► done-callback: log failures only

How to Use
===========
**Step 1 — Build**::
    store = RecordStore(pool)

**Step 2 — Create and resolve**::
    record = await store.create("abc123", "https://example.com", 60, is_alias=True)
    record = await store.get("abc123")
    store.dispatch_click("abc123")

**Step 3 — Shutdown**::
    await store.drain()
    await pool.close_all()

Key Behaviours
===============
- No locks: correctness relies on SET EX/NX, HINCRBY and EXISTS being atomic
  on their shard.
- The alias EXISTS check and the SET are separate commands; the alias SET
  uses NX so a concurrent creator of the same alias loses with a conflict.
  Generated ids are written unconditionally.
- Stored payloads that cannot be decoded (invalid UTF-8, invalid JSON, bad
  fields) are corruption (BackendError), never "not found".
- Click recording never raises and is never awaited on the response path.
"""

import asyncio
import datetime
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import pydantic
from prometheus_client import Counter, Histogram
from redis.exceptions import RedisError

from shardurl.config import Settings
from shardurl.enums import RecordOperation, RequestStatus
from shardurl.errors import AliasConflictError, BackendError, NotFoundError
from shardurl.pool import ShardPool
from shardurl.router import ShardRouter
from shardurl.schemas import AnalyticsSnapshot, ShortRecord, StoredRecordPayload

__all__ = ["RecordStore"]

CLICKS_FIELD = "clicks"

RECORD_OPERATIONS_TOTAL = Counter(
    "shardurl_record_operations_total",
    "Record store operations by outcome",
    ["operation", "status"],
)
RECORD_OPERATION_DURATION = Histogram(
    "shardurl_record_operation_duration_seconds",
    "Time spent in record store operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)
CLICK_FAILURES_TOTAL = Counter(
    "shardurl_click_failures_total",
    "Click increments that were dropped",
)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RecordStore:
    def __init__(
        self,
        pool: ShardPool,
        router: ShardRouter | None = None,
        analytics_key_prefix: str = "analytics",
        clock: Callable[[], datetime.datetime] = _utcnow,
    ):
        self._pool = pool
        self._router = router or ShardRouter(pool.shard_count)
        if self._router.shard_count != pool.shard_count:
            raise ValueError(
                f"Router expects {self._router.shard_count} shard(s) but the pool has {pool.shard_count}"
            )
        self._analytics_key_prefix = analytics_key_prefix
        self._clock = clock
        self._click_tasks: set[asyncio.Task] = set()
        self.logger = logging.getLogger("shardurl.store")

    @classmethod
    def from_settings(cls, pool: ShardPool, settings: Settings) -> "RecordStore":
        return cls(pool, analytics_key_prefix=settings.ANALYTICS_KEY_PREFIX)

    @property
    def pool(self) -> ShardPool:
        return self._pool

    @property
    def pending_clicks(self) -> int:
        return len(self._click_tasks)

    def shard_for(self, short_id: str) -> int:
        return self._router.route(short_id)

    def analytics_key(self, short_id: str) -> str:
        return f"{self._analytics_key_prefix}:{short_id}"

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    async def create(self, short_id: str, original_url: str, ttl_seconds: int, is_alias: bool = False) -> ShortRecord:
        assert isinstance(ttl_seconds, int) and ttl_seconds > 0, f"ttl_seconds must be positive int, got {ttl_seconds!r}"
        start_time = time.perf_counter()
        index = self.shard_for(short_id)
        client = self._pool.client(index)

        record = ShortRecord(
            short_id=short_id,
            original_url=original_url,
            created_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )
        payload = StoredRecordPayload.from_record(record).model_dump_json(by_alias=True)

        with self._backend_call(RecordOperation.CREATE, short_id, index, start_time):
            if is_alias and await client.exists(short_id):
                self._observe(RecordOperation.CREATE, RequestStatus.CONFLICT, start_time)
                raise AliasConflictError(short_id)
            written = await client.set(short_id, payload, ex=ttl_seconds, nx=is_alias)

        if not written:
            self.logger.warning(f"Alias '{short_id}' claimed concurrently on shard {index}")
            self._observe(RecordOperation.CREATE, RequestStatus.CONFLICT, start_time)
            raise AliasConflictError(short_id)

        analytics_key = self.analytics_key(short_id)
        try:
            async with client.pipeline(transaction=True) as pipe:
                pipe.hset(analytics_key, mapping={CLICKS_FIELD: 0})
                pipe.expire(analytics_key, ttl_seconds)
                await pipe.execute()
        except (RedisError, OSError) as exc:
            self.logger.warning(f"Analytics counter for '{short_id}' not written on shard {index}: {exc}")

        self._observe(RecordOperation.CREATE, RequestStatus.SUCCESS, start_time)
        self.logger.debug(f"Created '{short_id}' on shard {index} with ttl {ttl_seconds}s")
        return record

    async def get(self, short_id: str) -> ShortRecord:
        start_time = time.perf_counter()
        index = self.shard_for(short_id)

        with self._backend_call(RecordOperation.GET, short_id, index, start_time):
            raw = await self._pool.client(index).get(short_id)

        if raw is None:
            self._observe(RecordOperation.GET, RequestStatus.NOT_FOUND, start_time)
            raise NotFoundError(short_id)

        record = self._decode(short_id, raw, index, start_time)
        self._observe(RecordOperation.GET, RequestStatus.SUCCESS, start_time)
        return record

    async def record_click(self, short_id: str) -> None:
        """Increment the click counter; failures are logged and dropped."""
        start_time = time.perf_counter()
        index = self.shard_for(short_id)
        client = self._pool.client(index)
        analytics_key = self.analytics_key(short_id)

        try:
            clicks = await client.hincrby(analytics_key, CLICKS_FIELD, 1)
            if clicks == 1:
                await self._ensure_counter_expiry(client, short_id, analytics_key)
        except Exception as exc:
            CLICK_FAILURES_TOTAL.inc()
            self._observe(RecordOperation.CLICK, RequestStatus.ERROR, start_time)
            self.logger.warning(f"Click for '{short_id}' not recorded on shard {index}: {exc}")
            return

        self._observe(RecordOperation.CLICK, RequestStatus.SUCCESS, start_time)

    def dispatch_click(self, short_id: str) -> asyncio.Task:
        """Record a click in a detached task the caller does not await."""
        task = asyncio.create_task(self.record_click(short_id), name=f"click:{short_id}")
        self._click_tasks.add(task)
        task.add_done_callback(self._on_click_done)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight click task."""
        if not self._click_tasks:
            return
        self.logger.info(f"Draining {len(self._click_tasks)} in-flight click(s)")
        await asyncio.gather(*list(self._click_tasks), return_exceptions=True)

    async def get_analytics(self, short_id: str) -> AnalyticsSnapshot:
        # The primary record is authoritative; a lingering counter alone is "not found".
        record = await self.get(short_id)

        start_time = time.perf_counter()
        index = self.shard_for(short_id)
        with self._backend_call(RecordOperation.ANALYTICS, short_id, index, start_time):
            raw = await self._pool.client(index).hget(self.analytics_key(short_id), CLICKS_FIELD)

        clicks = 0
        if raw is not None:
            try:
                clicks = int(raw)
            except ValueError:
                clicks = -1
            if clicks < 0:
                self._observe(RecordOperation.ANALYTICS, RequestStatus.ERROR, start_time)
                self.logger.error(f"Corrupted click counter for '{short_id}' on shard {index}: {raw!r}")
                raise BackendError(f"Corrupted click counter for '{short_id}'", shard_index=index)

        self._observe(RecordOperation.ANALYTICS, RequestStatus.SUCCESS, start_time)
        return AnalyticsSnapshot(record=record, clicks=clicks)

    async def delete(self, short_id: str) -> bool:
        """Delete both records; return whether the primary existed."""
        start_time = time.perf_counter()
        index = self.shard_for(short_id)
        client = self._pool.client(index)

        with self._backend_call(RecordOperation.DELETE, short_id, index, start_time):
            existed = bool(await client.delete(short_id))

        try:
            await client.delete(self.analytics_key(short_id))
        except (RedisError, OSError) as exc:
            self.logger.warning(f"Analytics counter for '{short_id}' left to expire on shard {index}: {exc}")

        status = RequestStatus.SUCCESS if existed else RequestStatus.NOT_FOUND
        self._observe(RecordOperation.DELETE, status, start_time)
        return existed

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    @contextmanager
    def _backend_call(self, operation: RecordOperation, short_id: str, index: int, start_time: float) -> Iterator[None]:
        try:
            yield
        except UnicodeDecodeError as exc:
            # decode_responses=True decodes inside the client call
            self._observe(operation, RequestStatus.ERROR, start_time)
            self.logger.error(f"Corrupted value for '{short_id}' on shard {index} during {operation}: {exc}")
            raise BackendError(f"Corrupted value for '{short_id}'", shard_index=index) from exc
        except (RedisError, OSError) as exc:
            self._observe(operation, RequestStatus.ERROR, start_time)
            self.logger.error(f"Shard {index} ({self._pool.address(index)}) failed during {operation} of '{short_id}': {exc}")
            raise BackendError(f"Shard {index} failed during {operation}", shard_index=index) from exc

    def _decode(self, short_id: str, raw: str | bytes, index: int, start_time: float) -> ShortRecord:
        try:
            return StoredRecordPayload.model_validate_json(raw).to_record(short_id)
        except pydantic.ValidationError as exc:
            self._observe(RecordOperation.GET, RequestStatus.ERROR, start_time)
            self.logger.error(f"Corrupted record for '{short_id}' on shard {index}: {exc}")
            raise BackendError(f"Corrupted record for '{short_id}'", shard_index=index) from exc

    async def _ensure_counter_expiry(self, client, short_id: str, analytics_key: str) -> None:
        # HINCRBY on an expired counter recreates it without a TTL.
        if await client.ttl(analytics_key) != -1:
            return
        remaining_ms = await client.pttl(short_id)
        if remaining_ms > 0:
            await client.pexpire(analytics_key, remaining_ms)
        elif remaining_ms == -2:
            await client.delete(analytics_key)

    def _on_click_done(self, task: asyncio.Task) -> None:
        self._click_tasks.discard(task)
        if task.cancelled():
            self.logger.debug(f"Click task {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            CLICK_FAILURES_TOTAL.inc()
            self.logger.error(f"Click task {task.get_name()} failed: {exc}")

    @staticmethod
    def _observe(operation: RecordOperation, status: RequestStatus, start_time: float) -> None:
        RECORD_OPERATIONS_TOTAL.labels(operation=operation, status=status).inc()
        RECORD_OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start_time)
