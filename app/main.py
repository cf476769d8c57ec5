"""Clinic queue API application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.config import settings
from app.core.background import dispatcher
from app.core.exceptions import AppException
from app.core.firebase import initialize_firebase
from app.core.redis_client import check_redis_connection, close_redis_connection
from app.database import check_database_connection, engine
from app.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.middleware.logging import REQUEST_ID_HEADER, LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()

EXCEPTION_HANDLERS = (
    (AppException, app_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (Exception, general_exception_handler),
)


async def _check_backends() -> None:
    """Log whether the ledger and serving counters are reachable."""
    ledger_ok = await check_database_connection()
    counters_ok = await check_redis_connection()
    if ledger_ok and counters_ok:
        logger.info("backends_ready")
        return
    # Queue writes fail with 503 until both come back
    logger.error("backends_unavailable", database=ledger_ok, counter_store=counters_ok)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start push delivery, probe backends, and drain side effects on shutdown."""
    logger.info(
        "application_startup",
        environment=settings.environment,
        reset_on_new_day=settings.queue_reset_on_new_day,
        lock_timeout_seconds=settings.queue_lock_timeout_seconds,
        notify_ahead=settings.queue_notify_ahead,
        upcoming_limit=settings.queue_upcoming_limit,
    )

    try:
        initialize_firebase(settings.firebase_credentials_path, settings.firebase_config_json)
        logger.info("firebase_initialized")
    except Exception as e:
        logger.warning(
            "firebase_initialization_failed",
            error=str(e),
            note="Patient push notifications disabled. Set FIREBASE_CREDENTIALS_PATH or FIREBASE_CONFIG_JSON.",
        )

    await _check_backends()

    yield

    # Broadcasts and notifications queued by the last requests
    pending = dispatcher.pending
    await dispatcher.drain()
    logger.info("side_effects_drained", count=pending)

    await engine.dispose()
    close_redis_connection()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Clinic queue management: doctor queues, live serving numbers and push updates",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER, "X-Process-Time"],
)
app.add_middleware(LoggingMiddleware)

for exc_class, handler in EXCEPTION_HANDLERS:
    app.add_exception_handler(exc_class, handler)  # type: ignore[arg-type]

app.include_router(api_router, prefix=settings.api_v1_prefix)

Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics", f"{settings.api_v1_prefix}/health.*"],
    inprogress_name="http_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service name plus where to find docs and the realtime auth endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "realtime_auth": f"{settings.api_v1_prefix}/realtime/auth",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
