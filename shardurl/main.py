"""FastAPI application entry point for the sharded URL shortener.

Application Lifecycle Diagram
=============================
::
    ┌──────────────┐
    │  uvicorn     │
    │  startup     │
    └──────┬───────┘
           ▼
    ┌──────────────┐   any shard down
    │ lifespan():  │ ───────────────► ShardConnectError, startup aborted
    │ connect_all()│
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ drain clicks │
    │ close_all()  │
    └──────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    REDIS_SHARDS="localhost:6379,localhost:6380,localhost:6381" \
        uvicorn shardurl.main:app --host 0.0.0.0 --port 8080

**Step 2 — Make API calls**::
    curl -X POST http://localhost:8080/api/shorten \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "ttl": 60}'

Key Behaviours
===============
- The service refuses to start unless every configured shard answers PING.
- Shutdown waits for in-flight click increments, then closes every shard,
  continuing past individual close failures.
- Backend failures are reported as a generic 500 "Server error".
- Prometheus metrics are exposed at /metrics.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from shardurl import __version__
from shardurl.config import Settings, get_settings
from shardurl.dependencies import bind_resources
from shardurl.errors import BackendError
from shardurl.log import setup_logger
from shardurl.pool import ShardPool
from shardurl.routes import router


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = setup_logger(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        pool = ShardPool.from_settings(settings)
        await pool.connect_all()
        store = bind_resources(app, pool, settings)
        logger.info(f"{settings.APP_NAME} ready with {pool.shard_count} shard(s)")
        yield
        # Shutdown
        await store.drain()
        await pool.close_all()

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="URL shortener backed by hash-sharded Redis instances",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
        logger.error(f"Backend error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Server error"})

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
