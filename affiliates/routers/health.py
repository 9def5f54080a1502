"""
Health check and monitoring endpoints.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from affiliates.config import settings
from affiliates.database import Database, get_db
from affiliates.models import HealthStatus

router = APIRouter(tags=["monitoring"])

# Track application start time
START_TIME = time.time()


@router.get("/health", response_model=HealthStatus)
async def health_check(db: Database = Depends(get_db)):
    """
    Health check endpoint.

    Reports database connectivity, uptime and version.
    """
    db_healthy = await db.health_check()

    return HealthStatus(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        uptime_seconds=time.time() - START_TIME,
        timestamp=datetime.now(timezone.utc)
    )


@router.get("/health/live")
async def liveness_check():
    """Liveness probe. Does not check dependencies."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: Database = Depends(get_db)):
    """
    Readiness probe.

    Ready only when the database answers.
    """
    db_healthy = await db.health_check()

    if not db_healthy:
        return Response(
            content='{"status": "not ready", "reason": "database disconnected"}',
            status_code=503,
            media_type="application/json"
        )

    return {"status": "ready"}


@router.get("/metrics")
async def metrics():
    """Prometheus metrics in text format."""
    if not settings.enable_metrics:
        return Response(status_code=404)

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get("/info")
async def info():
    """Service configuration that is safe to expose. The admin PIN is never reported."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "organization": settings.organization_name,
        "admin_gate_configured": bool(settings.admin_pin),
        "auto_create_schema": settings.auto_create_schema,
        "name_search_limit": settings.name_search_limit,
        "audit_log_default_limit": settings.audit_log_default_limit,
        "audit_log_max_limit": settings.audit_log_max_limit,
        "uptime_seconds": time.time() - START_TIME
    }
