"""
Event API endpoints for Campus Events Service.
Handles submission, listing, reviewer decisions and completion.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional
import logging

from campus_events.api.dependencies import (
    get_approval_service,
    get_current_caller,
    get_event_service
)
from campus_events.models import EventStatus
from campus_events.schemas.event import (
    AllocationOutcomeResponse,
    CompletionResponse,
    DecisionRequest,
    DecisionResponse,
    EventCreate,
    EventDetailResponse,
    EventResponse
)
from campus_events.services.approval_service import ApprovalService
from campus_events.services.event_service import Caller, EventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """
    Submit an event request. The caller becomes its coordinator.
    """
    event = await events.create_event(event_data, caller)
    return EventResponse.model_validate(event)


@router.get("", response_model=List[EventResponse])
async def list_events(
    status_filter: Optional[EventStatus] = Query(None, alias="status", description="Filter by event status"),
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """
    List events visible to the caller, newest first.

    Coordinators see their own events, HODs their department, Deans their
    school, Heads and Admins everything.
    """
    return [EventResponse.model_validate(event) for event in await events.list_events(caller, status_filter)]


@router.get("/pending", response_model=List[EventResponse])
async def list_pending_approvals(
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """Events waiting on the caller's review tier."""
    return [EventResponse.model_validate(event) for event in await events.list_pending_approvals(caller)]


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    event_id: int = Path(..., gt=0),
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """Event with its resource requests, allocation and approval history."""
    return await events.get_event_detail(event_id)


@router.post("/{event_id}/decision", response_model=DecisionResponse)
async def decide(
    decision_data: DecisionRequest,
    event_id: int = Path(..., gt=0),
    caller: Caller = Depends(get_current_caller),
    approvals: ApprovalService = Depends(get_approval_service)
):
    """
    Approve, reject or request modification of an event at the caller's tier.

    A final approval also allocates a venue and resources; when allocation
    is not possible the event is returned to Pending and the response
    carries the reason.
    """
    outcome = await approvals.decide(
        event_id,
        caller.user_id,
        caller.role,
        decision_data.decision,
        decision_data.comments
    )

    allocation_result = None
    if outcome.allocation_result:
        result = outcome.allocation_result
        allocation_result = AllocationOutcomeResponse(
            outcome=result.outcome.value,
            allocation=result.allocation_payload,
            conflicts=[conflict.to_dict() for conflict in result.conflicts]
        )

    return DecisionResponse(
        message=outcome.message,
        event=EventResponse.model_validate(outcome.event),
        allocation_result=allocation_result
    )


@router.post("/{event_id}/complete", response_model=CompletionResponse)
async def complete_event(
    event_id: int = Path(..., gt=0),
    caller: Caller = Depends(get_current_caller),
    events: EventService = Depends(get_event_service)
):
    """Mark an event Completed and release its venue and resources."""
    event = await events.complete_event(event_id, caller.user_id)
    return CompletionResponse(
        message="Event completed and resources released",
        event=EventResponse.model_validate(event)
    )
