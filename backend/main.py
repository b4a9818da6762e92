"""Quill Blog Engine - Main FastAPI Application."""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.middleware.rate_limit import limiter
from api.routes import api_router
from core.exceptions import (
    AlreadyExistsError,
    BatchLimitExceededError,
    BlogError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from infrastructure.config import get_settings
from infrastructure.database import close_db, init_db
from infrastructure.logging_config import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 5 * 1024 * 1024


def _init_sentry() -> None:
    """Error tracking, enabled by SENTRY_DSN."""
    dsn = settings.sentry_dsn
    if not dsn:
        return
    if not dsn.startswith("https://"):
        logger.warning("SENTRY_DSN looks malformed (%s...); Sentry disabled", dsn[:30])
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry enabled (env=%s)", settings.environment)


# At import time so start-up failures are reported too
_init_sentry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        json_output=settings.is_production and not settings.debug,
        level="DEBUG" if settings.debug else "INFO",
    )
    logger.info(
        "Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.environment
    )

    settings.validate_production_secrets()
    if not settings.cron_secret:
        logger.warning("CRON_SECRET is not set; the scheduled publish trigger rejects all calls")

    if settings.is_development:
        # Deployed environments run `alembic upgrade head` instead
        await init_db()

    yield

    await close_db()
    logger.info("%s stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Blog CMS backend: post lifecycle, scheduling and version history",
    version=settings.app_version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Default limit for every route via the middleware; @limiter.limit overrides per route
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ============================================================================
# Error handling
# ============================================================================

_ERROR_STATUS: dict[type[BlogError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    BatchLimitExceededError: status.HTTP_400_BAD_REQUEST,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
}


def error_status(exc: BlogError) -> int:
    """HTTP status for a domain error; subclasses inherit their parent's code."""
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


def _error_body(message: str) -> dict:
    return {"success": False, "error": message}


@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError):
    logger.debug("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=error_status(exc), content=_error_body(exc.message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Driver errors can embed connection strings; production logs only a prefix
    if settings.is_production:
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, str(exc)[:200])
    else:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


# ============================================================================
# Middleware
# ============================================================================


@app.middleware("http")
async def reject_large_bodies(request: Request, call_next):
    declared = request.headers.get("content-length", "")
    if request.method in ("POST", "PUT", "PATCH") and declared.isdigit():
        if int(declared) > MAX_BODY_BYTES:
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content=_error_body("Request body too large (max 5MB)"),
            )
    return await call_next(request)


def _request_id(incoming: str | None) -> str:
    # Caller-supplied ids must be UUIDs so they cannot inject into logs
    if incoming:
        try:
            return str(uuid.UUID(incoming))
        except ValueError:
            pass
    return str(uuid.uuid4())


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Assign a request id, time the request and write the access log line."""
    request.state.request_id = _request_id(request.headers.get("X-Request-ID"))
    started = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Response-Time"] = f"{duration_ms}ms"

    path = request.url.path
    if not path.startswith("/api/v1/health"):
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": request.state.request_id,
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
    return response


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs" if settings.is_development else "disabled",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.workers,
    )
