"""
Health Check Endpoints.

Liveness, readiness and a dependency report for orchestration systems.
"""
import time
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ....core.config import Settings, get_settings
from ....core.responses import HealthCheck, HealthResponse
from ....db.session import DbSession
from ....services import get_blob_storage_service

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service and its dependencies.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
    db: DbSession,
) -> HealthResponse:
    """
    Dependency report.

    Checks:
    - Database connectivity
    - Blob storage directory
    - AI assistant configuration
    """
    checks: dict[str, HealthCheck] = {}

    db_start = time.time()
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = HealthCheck(
            status="healthy",
            latency_ms=round((time.time() - db_start) * 1000, 2),
            message="Connected",
        )
    except SQLAlchemyError as e:
        logger.error("health_database_failed", error=str(e))
        checks["database"] = HealthCheck(status="unhealthy", message=str(e))

    storage = get_blob_storage_service()
    if storage.base_path.is_dir():
        checks["blob_storage"] = HealthCheck(status="healthy", message=str(storage.base_path))
    else:
        checks["blob_storage"] = HealthCheck(status="unhealthy", message="Storage directory missing")

    if settings.GOOGLE_API_KEY:
        checks["ai_assistant"] = HealthCheck(status="healthy", message="API key configured")
    else:
        checks["ai_assistant"] = HealthCheck(status="degraded", message="API key not configured")

    overall_status = "healthy"
    if any(c.status == "unhealthy" for c in checks.values()):
        overall_status = "unhealthy"
    elif any(c.status == "degraded" for c in checks.values()):
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        checks=checks,
    )


@router.get("/ready", summary="Readiness check")
async def readiness_check(db: DbSession) -> dict[str, str]:
    """Returns 200 only when the database answers."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get("/live", summary="Liveness check")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
