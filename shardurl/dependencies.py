"""Dependency injection for the HTTP layer.

Shared resources (shard pool, record store, identifier service, settings)
are created once by the application lifespan and attached to ``app.state``.
Routes receive them through a lightweight per-request context instead of
module-level singletons, so tests can bind in-memory shards to the app.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, FastAPI, Request

from shardurl.config import Settings
from shardurl.identifiers import IdentifierService
from shardurl.pool import ShardPool
from shardurl.store import RecordStore
from shardurl.url_service import URLShorteningService

__all__ = [
    "RequestContext",
    "bind_resources",
    "get_shard_pool",
    "get_record_store",
    "get_request_context",
    "get_url_service",
]


def bind_resources(app: FastAPI, pool: ShardPool, settings: Settings) -> RecordStore:
    """Attach the pool and the objects built on it to the application."""
    store = RecordStore.from_settings(pool, settings)
    app.state.settings = settings
    app.state.shard_pool = pool
    app.state.record_store = store
    app.state.identifiers = IdentifierService.from_settings(settings)
    return store


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        pool: Shard pool shared by every request
        store: Record store built on the pool
        identifiers: Short id generator and alias validator
        settings: Application settings
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    pool: ShardPool
    store: RecordStore
    identifiers: IdentifierService
    settings: Settings
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Package logger carrying the request context."""
        return logging.LoggerAdapter(
            logging.getLogger("shardurl.http"),
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_shard_pool(request: Request) -> ShardPool:
    return request.app.state.shard_pool


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


async def get_request_context(
    request: Request,
    pool: ShardPool = Depends(get_shard_pool),
    store: RecordStore = Depends(get_record_store),
) -> RequestContext:
    return RequestContext(
        pool=pool,
        store=store,
        identifiers=request.app.state.identifiers,
        settings=request.app.state.settings,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_url_service(ctx: RequestContext = Depends(get_request_context)) -> URLShorteningService:
    return URLShorteningService.from_context(ctx)
