"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from config.settings import settings
from src.tm_account.api.router import router as account_router
from src.tm_admin.api.router import router as admin_router
from src.tm_common.database import check_database, engine
from src.tm_common.errors import AppError, ValidationError
from src.tm_common.redis_client import close_redis, get_redis, ping_redis
from src.tm_common.response import error_response
from src.tm_gateway.api.router import router as auth_router
from src.tm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.tm_gateway.middleware.request_log import RequestLogMiddleware
from src.tm_matching.application.scheduler import MatchingScheduler
from src.tm_matching.application.service import get_matching_engine
from src.tm_order.api.router import router as order_router
from src.tm_valuation.api.router import router as token_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the database, ping Redis, start the matching scheduler."""
    await check_database()
    try:
        await ping_redis()
    except (RedisError, OSError) as exc:
        # Rate limiting fails open, so a missing Redis is not fatal
        logger.warning("Redis unavailable at startup: %s", exc)

    scheduler: MatchingScheduler | None = None
    if settings.MATCHING_SCHEDULER_ENABLED:
        scheduler = MatchingScheduler(
            get_matching_engine().run_matching_pass,
            settings.MATCHING_INTERVAL_SECONDS,
        )
        scheduler.start()
    app.state.matching_scheduler = scheduler
    yield
    if scheduler is not None:
        await scheduler.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(
    RateLimitMiddleware,
    redis_getter=get_redis,
    limits={
        "auth": settings.RATE_LIMIT_AUTH_PER_MINUTE,
        "orders": settings.RATE_LIMIT_ORDERS_PER_MINUTE,
    },
    enabled=settings.RATE_LIMIT_ENABLED,
)
# Added last so it runs outermost and also logs rate-limited requests
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    if exc.http_status >= 500:
        logger.error("[%d] %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query params share the 4001 envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg', 'invalid')}"
    return await app_error_handler(request, ValidationError(message))


app.include_router(auth_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(token_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
