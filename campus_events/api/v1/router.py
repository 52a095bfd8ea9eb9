"""
Main API router for Campus Events Service.
Combines all API endpoints and provides health checks.
"""

from fastapi import APIRouter
import logging
from datetime import datetime, timezone

from campus_events.api.dependencies import check_service_health
from campus_events.api.v1.catalog import router as catalog_router
from campus_events.api.v1.dashboard import router as dashboard_router
from campus_events.api.v1.events import router as events_router
from campus_events.schemas.event import HealthCheckResponse

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# Create main router
router = APIRouter(prefix="/api/v1")

router.include_router(events_router)
router.include_router(catalog_router)
router.include_router(dashboard_router)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint for the campus events service.

    Returns:
        Service health status
    """
    try:
        health_status = await check_service_health()
        return HealthCheckResponse(
            status="healthy" if health_status["overall"] == "healthy" else "unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=SERVICE_VERSION,
            database=health_status["database"],
            redis=health_status["redis"]
        )

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return HealthCheckResponse(
            status="unhealthy",
            timestamp=datetime.now(timezone.utc),
            version=SERVICE_VERSION,
            database="unknown",
            redis="unknown",
            details={"error": str(e)}
        )


@router.get("/info")
async def service_info():
    """
    Service information endpoint.

    Returns:
        Service information and capabilities
    """
    return {
        "service": "Campus Events Service",
        "version": SERVICE_VERSION,
        "description": "Event approval workflow with venue and resource allocation",
        "capabilities": [
            "Three-tier event approval (HOD, Dean, Head)",
            "Venue and resource conflict detection",
            "Atomic allocation and release",
            "Approval audit trail",
            "Real-time notifications over Redis pub/sub"
        ],
        "endpoints": {
            "events": "/api/v1/events",
            "venues": "/api/v1/venues",
            "resources": "/api/v1/resources",
            "dashboard": "/api/v1/dashboard/stats",
            "health": "/api/v1/health",
            "docs": "/docs"
        },
        "features": {
            "distributed_locking": True,
            "optimistic_concurrency": True,
            "audit_trail": True
        }
    }
