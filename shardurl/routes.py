"""FastAPI route definitions for the sharded URL shortener.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200 ok / 503 degraded)

    POST   /api/shorten
        ├─ URLCreate (request body)
        └─ URLResponse (201) or 409/422

    GET    /api/stats/:short_id
        └─ URLStats (200) or 404

    DELETE /api/urls/:short_id
        └─ 204 or 404

    GET    /:short_id
        └─ 302 Redirect or 404

Key Behaviours
===============
- Validation and alias conflicts are user-facing outcomes (422 / 409).
- Backend failures become a generic 500 through the handler registered in
  shardurl.main; no partial data is returned.
- The redirect never waits for click recording.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse

from shardurl.dependencies import RequestContext, get_request_context, get_url_service
from shardurl.enums import HealthStatus
from shardurl.errors import AliasConflictError, NotFoundError, ValidationError
from shardurl.schemas import HealthResponse, ShardHealthResponse, URLCreate, URLResponse, URLStats
from shardurl.url_service import URLShorteningService

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(response: Response, ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    health = await ctx.pool.health()
    if health.status is not HealthStatus.OK:
        ctx.logger.warning(f"Health check degraded, unreachable shards: {health.unreachable}")
        response.status_code = 503

    return HealthResponse(
        status=health.status,
        shards=[ShardHealthResponse(**asdict(shard)) for shard in health.shards],
    )


@router.post("/api/shorten", response_model=URLResponse, status_code=201, tags=["urls"])
async def shorten_url(
    payload: URLCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> URLResponse:
    ctx.logger.info(f"URL shortening requested: {payload.url}")
    try:
        record = await service.shorten(payload)
    except ValidationError as exc:
        ctx.logger.warning(f"URL shortening rejected: {exc}")
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AliasConflictError as exc:
        ctx.logger.warning(f"URL shortening failed: {exc}")
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return URLResponse.from_record(record, ctx.settings.BASE_URL)


@router.get("/api/stats/{short_id}", response_model=URLStats, tags=["urls"])
async def get_stats(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> URLStats:
    try:
        snapshot = await service.statistics(short_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Short URL not found") from exc

    return URLStats.from_snapshot(snapshot, ctx.settings.BASE_URL)


@router.delete("/api/urls/{short_id}", status_code=204, tags=["urls"])
async def delete_url(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> Response:
    if not await service.delete(short_id):
        ctx.logger.info(f"Nothing to delete for {short_id}")
        raise HTTPException(status_code=404, detail="Short URL not found")
    return Response(status_code=204)


@router.get("/{short_id}", tags=["redirect"])
async def redirect_to_url(
    short_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> RedirectResponse:
    try:
        record = await service.resolve(short_id)
    except NotFoundError as exc:
        ctx.logger.info(f"Redirect failed - short id not found: {short_id}")
        raise HTTPException(status_code=404, detail="Short URL not found") from exc

    ctx.logger.info(f"Redirect: {short_id} -> {record.original_url} ({ctx.get_duration():.1f}ms)")
    return RedirectResponse(url=record.original_url, status_code=302)
