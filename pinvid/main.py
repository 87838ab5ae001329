"""FastAPI application for the Pinterest video service."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict

import httpx
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from pinvid.cache import ResultCache
from pinvid.config import Config, load_config
from pinvid.errors import PinvidError
from pinvid.fetcher import MAX_REDIRECTS
from pinvid.key_ledger import ApiKeyLedger
from pinvid.keys import keys_router
from pinvid.rate_limiter import RateLimiter
from pinvid.robots import RobotsPolicy
from pinvid.routes import pinterest_router
from pinvid.service import PinterestService
from pinvid.store import RedisStore

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


def configure_state(
    app: FastAPI, config: Config, http_client: httpx.AsyncClient, store: RedisStore
) -> None:
    """Build the process-scoped collaborators and attach them to ``app.state``."""
    robots = RobotsPolicy(http_client, config.robots_url)
    cache = ResultCache(store)

    app.state.config = config
    app.state.http_client = http_client
    app.state.store = store
    app.state.robots = robots
    app.state.result_cache = cache
    app.state.key_ledger = ApiKeyLedger(config, store)
    app.state.rate_limiter = RateLimiter(
        store,
        window_seconds=config.rate_limit_window_seconds,
        default_limit=config.rate_limit_max,
    )
    app.state.pinterest_service = PinterestService(config, http_client, robots, cache)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown."""
    config = load_config()

    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(10.0),
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
        limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
    )
    store = await RedisStore.connect(config.redis_url)

    configure_state(app, config, http_client, store)
    app.state.rate_limiter.start_sweeper(config.rate_limit_sweep_seconds)

    logger.info(
        "Pinterest video service started (redis=%s, api_key_required=%s)",
        store.is_ready(),
        config.api_key_required,
    )

    yield

    await app.state.rate_limiter.stop_sweeper()
    await http_client.aclose()
    await store.close()
    logger.info("Pinterest video service stopped")


app = FastAPI(title="Pinterest Video Downloader", lifespan=lifespan)

app.include_router(pinterest_router)
app.include_router(keys_router)


@app.exception_handler(PinvidError)
async def pinvid_error_handler(request: Request, exc: PinvidError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        content=exc.to_payload(),
        status_code=exc.status_code,
        headers=exc.headers or None,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        content={"success": False, "error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.get("/health")
@app.get("/api/v1/health")
async def health_check() -> Dict[str, object]:
    """Liveness probe with process uptime."""
    return {
        "status": "ok",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
