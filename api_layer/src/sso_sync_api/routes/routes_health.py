"""Health check endpoints for monitoring application status."""

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

ROUTER_HEALTH = APIRouter(tags=["Health"])

SERVICE_NAME = "SSO Site Sync API"


@ROUTER_HEALTH.get(
    "/health",
    summary="Health check endpoint",
    description="Basic health check that returns application status and metadata",
    responses={
        status.HTTP_200_OK: {
            "description": "Application is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "timestamp": "2026-01-05T12:00:00.000000Z",
                        "service": SERVICE_NAME,
                        "version": "v1",
                    }
                }
            },
        }
    },
)
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Lightweight, performs no dependency checks. Used by load balancers and
    liveness checks.
    """
    settings = request.app.state.settings

    response_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": "v1",
        "environment": settings.environment,
    }

    logger.debug("Health check requested", status="healthy")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response_data,
    )


@ROUTER_HEALTH.get(
    "/health/live",
    summary="Liveness check endpoint",
    responses={status.HTTP_200_OK: {"description": "Application process is alive"}},
)
async def liveness_check():
    """Liveness check: the process answers."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()},
    )


@ROUTER_HEALTH.get(
    "/health/ready",
    summary="Readiness check endpoint",
    description="Checks the registry database answers",
    responses={
        status.HTTP_200_OK: {"description": "Application is ready"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Registry database unavailable"},
    },
)
async def readiness_check(request: Request):
    """Readiness check: the registry database must answer."""
    registry_pool = getattr(request.app.state, "registry_pool", None)
    database_ok = bool(registry_pool) and await registry_pool.health_check()

    response_data = {
        "status": "ready" if database_ok else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"registry_database": "ok" if database_ok else "unavailable"},
    }

    if not database_ok:
        logger.warning("Readiness check failed", registry_database="unavailable")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=response_data)

    return JSONResponse(status_code=status.HTTP_200_OK, content=response_data)
