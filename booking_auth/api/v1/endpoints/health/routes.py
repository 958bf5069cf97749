"""Health check API routes."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.api.dependencies import get_database_session
from booking_auth.settings import Settings, get_settings
from booking_auth.utils.time import utcnow
from .schemas import DetailedHealthResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health Check"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Liveness probe without dependency checks.",
)
async def basic_health_check() -> HealthResponse:
    return HealthResponse(status="healthy", timestamp=utcnow().isoformat() + "Z")


@router.get(
    "/detailed",
    response_model=DetailedHealthResponse,
    summary="Detailed health check",
    description="Check the health status of the application and its database.",
    responses={
        200: {"description": "Service is healthy"},
        503: {"model": DetailedHealthResponse, "description": "Database unreachable"},
    },
)
async def detailed_health_check(
    session: AsyncSession = Depends(get_database_session),
    settings: Settings = Depends(get_settings),
):
    """
    Probe the database through the request's session.

    Responds 503 with the same body when the probe fails.
    """
    services = {}
    overall_status = "healthy"

    try:
        await session.execute(text("SELECT 1"))
        services["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health probe failed: {e}")
        services["database"] = "unhealthy"
        overall_status = "unhealthy"

    body = DetailedHealthResponse(
        status=overall_status,
        timestamp=utcnow().isoformat() + "Z",
        services=services,
        version=settings.api_version,
        environment=settings.environment,
    )

    if overall_status != "healthy":
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
    return body
