"""Health check endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.config import settings
from app.core.background import BackgroundDispatcher
from app.core.firebase import is_firebase_initialized
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.dependencies import get_dispatcher

router = APIRouter()


class HealthResponse(BaseModel):
    """Liveness response."""

    status: str
    version: str
    environment: str


class DependencyHealthResponse(HealthResponse):
    """Readiness of the ledger, counter store and delivery channels."""

    database: str
    counter_store: str
    push_notifications: str
    pending_deliveries: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Liveness check",
)
async def health_check() -> HealthResponse:
    """Process is up and serving requests."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DependencyHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Dependency health check",
)
async def detailed_health_check(
    background: Annotated[BackgroundDispatcher, Depends(get_dispatcher)],
) -> DependencyHealthResponse:
    """
    Report on everything a queue operation depends on.

    The ledger and counter store are required for booking and progression;
    push notifications are optional and only reported.
    """
    db_healthy = await check_database_connection()
    counter_healthy = await check_redis_connection()

    return DependencyHealthResponse(
        status="healthy" if db_healthy and counter_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        counter_store="healthy" if counter_healthy else "unhealthy",
        push_notifications="enabled" if is_firebase_initialized() else "disabled",
        pending_deliveries=background.pending,
    )
