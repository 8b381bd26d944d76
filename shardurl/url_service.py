"""URL Shortener Service Layer - request orchestration

This module sits between the HTTP routes and the record store. It runs all
input validation first, so malformed input never reaches a shard, then hands
the validated values to the RecordStore.

Request Flow Diagrams
=====================

URL Creation Flow
-----------------
::
    ┌─────────────┐
    │  POST /api  │
    │  /shorten   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate URL│──► ValidationError (bad format, points at us)
    │ & TTL       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Alias or    │──► ValidationError (bad alias)
    │ nanoid id   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ store.create│──► AliasConflictError / BackendError
    └──────┬──────┘
           ▼
       ShortRecord

Redirect Flow
-------------
::
    ┌─────────────┐
    │ GET /:id    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ store.get   │──► NotFoundError / BackendError
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ dispatch    │  detached, not awaited
    │ click       │
    └──────┬──────┘
           ▼
    302 to original URL

Usage Examples
=============
```python
@router.post("/api/shorten")
async def shorten_url(
    payload: URLCreate,
    service: URLShorteningService = Depends(get_url_service),
) -> URLResponse:
    record = await service.shorten(payload)
    return URLResponse.from_record(record, service.settings.BASE_URL)
```
"""

import logging
import time

from shardurl.config import Settings
from shardurl.errors import NotFoundError
from shardurl.identifiers import IdentifierService
from shardurl.schemas import AnalyticsSnapshot, ShortRecord, URLCreate
from shardurl.store import RecordStore
from shardurl.validation import validate_target_url, validate_ttl

__all__ = ["URLShorteningService"]


class URLShorteningService:
    """Validates requests and drives the record store.

    Example:
        >>> service = URLShorteningService.from_context(ctx)
        >>> record = await service.shorten(URLCreate(url="https://example.com"))
        >>> print(f"Shortened: {record.short_id}")
    """

    def __init__(
        self,
        store: RecordStore,
        identifiers: IdentifierService,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._identifiers = identifiers
        self._settings = settings
        self._logger = logger or logging.getLogger("shardurl.service")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "URLShorteningService":
        """Build a service from the request context's shared resources."""
        return cls(ctx.store, ctx.identifiers, ctx.settings, ctx.logger)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def shorten(self, request: URLCreate) -> ShortRecord:
        """Create a short URL.

        Raises:
            ValidationError: URL, TTL or alias rejected; no shard was touched.
            AliasConflictError: The requested alias already exists.
            BackendError: The routed shard failed.
        """
        start_time = time.perf_counter()

        original_url = validate_target_url(request.url, self._settings.BASE_URL)
        ttl_seconds = validate_ttl(
            request.ttl,
            default=self._settings.DEFAULT_TTL_SECONDS,
            maximum=self._settings.MAX_TTL_SECONDS,
        )
        short_id, is_alias = self._identifiers.resolve(request.custom_alias)

        record = await self._store.create(short_id, original_url, ttl_seconds, is_alias=is_alias)

        duration = time.perf_counter() - start_time
        self._logger.info(f"Short URL created: {short_id} (alias={is_alias}, ttl={ttl_seconds}s) in {duration:.3f}s")
        return record

    async def resolve(self, short_id: str) -> ShortRecord:
        """Look up a record for redirection and count the click in the background."""
        self._ensure_well_formed(short_id)
        record = await self._store.get(short_id)
        self._store.dispatch_click(short_id)
        return record

    async def statistics(self, short_id: str) -> AnalyticsSnapshot:
        self._ensure_well_formed(short_id)
        return await self._store.get_analytics(short_id)

    async def delete(self, short_id: str) -> bool:
        if not self._identifiers.is_well_formed(short_id):
            return False
        existed = await self._store.delete(short_id)
        self._logger.info(f"Delete requested for {short_id}: existed={existed}")
        return existed

    def _ensure_well_formed(self, short_id: str) -> None:
        # Nothing outside the id charset can have been stored.
        if not self._identifiers.is_well_formed(short_id):
            raise NotFoundError(short_id)
