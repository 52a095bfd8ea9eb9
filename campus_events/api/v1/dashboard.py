"""
Dashboard statistics endpoint.
"""

from fastapi import APIRouter, Depends

from campus_events.api.dependencies import get_current_caller, get_event_service
from campus_events.schemas.event import DashboardStatsResponse
from campus_events.services.event_service import Caller, EventService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """Event counts within the caller's scope, plus venue and resource totals."""
    return await events.dashboard_stats(caller)
