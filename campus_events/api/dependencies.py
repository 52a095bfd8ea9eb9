"""
API dependencies for Campus Events Service.
Handles authentication, authorization, and service wiring.
"""

from typing import Dict, Any
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import logging

from campus_events.db.database import db_manager
from campus_events.db.redis_client import redis_manager
from campus_events.models import UserRole
from campus_events.services.approval_service import ApprovalService, approval_service
from campus_events.services.catalog_service import CatalogService, catalog_service
from campus_events.services.event_service import Caller, EventService, event_service
from campus_events.services.jwt_service import jwt_service

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()


async def get_current_caller(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Caller:
    """
    Resolve the caller from the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or incomplete
    """
    caller = await jwt_service.get_caller(credentials.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


async def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Require the Admin role."""
    if caller.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return caller


def get_event_service() -> EventService:
    return event_service


def get_approval_service() -> ApprovalService:
    return approval_service


def get_catalog_service() -> CatalogService:
    return catalog_service


async def check_service_health() -> Dict[str, Any]:
    """
    Check the health of all service dependencies.

    Returns:
        Dictionary with health status of all components
    """
    health_status = {
        "database": "healthy" if db_manager.health_check() else "unhealthy",
        "redis": "unknown",
        "overall": "unknown"
    }

    try:
        redis_healthy = await redis_manager.health_check()
        health_status["redis"] = "healthy" if redis_healthy else "unhealthy"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        health_status["redis"] = "unhealthy"

    if health_status["database"] == "healthy" and health_status["redis"] == "healthy":
        health_status["overall"] = "healthy"
    else:
        health_status["overall"] = "unhealthy"

    return health_status
