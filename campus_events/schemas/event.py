"""
Pydantic schemas for event requests and reviewer decisions.
Handles request/response validation and serialization.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone

from campus_events.models import Decision, EventStatus, UserRole


def to_naive_utc(value: datetime) -> datetime:
    """Schedules are stored as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Request schemas
class ResourceRequestCreate(BaseModel):
    """Quantity of one resource requested with an event."""

    resource_id: int = Field(..., gt=0, description="ID of the requested resource")
    quantity: int = Field(..., gt=0, description="Quantity requested")


class EventCreate(BaseModel):
    """Schema for submitting a new event request."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: Optional[str] = Field(None, max_length=5000, description="Event description")
    schedule_start: datetime = Field(..., description="Event start time")
    schedule_end: datetime = Field(..., description="Event end time")
    participant_count: int = Field(..., gt=0, description="Expected number of participants")
    venue_type_required: Optional[str] = Field(None, max_length=100, description="Preferred venue type")
    department_id: Optional[str] = Field(None, max_length=64, description="Overrides the caller's department")
    school_id: Optional[str] = Field(None, max_length=64, description="Overrides the caller's school")
    resources: List[ResourceRequestCreate] = Field(default_factory=list, description="Requested resources")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Title must not be blank."""
        if not v.strip():
            raise ValueError('Title cannot be blank')
        return v.strip()

    @field_validator('schedule_start', 'schedule_end')
    @classmethod
    def normalize_schedule(cls, v):
        return to_naive_utc(v)

    @model_validator(mode='after')
    def validate_schedule(self):
        """Validate the schedule window."""
        if self.schedule_start >= self.schedule_end:
            raise ValueError('schedule_start must be before schedule_end')
        return self


class DecisionRequest(BaseModel):
    """Schema for a reviewer decision."""

    decision: Decision = Field(..., description="Approved, Rejected or Modify")
    comments: Optional[str] = Field(None, max_length=2000, description="Rejection reason or modification request")


# Response schemas
class EventResponse(BaseModel):
    """Schema for event response."""

    id: int
    coordinator_id: str
    department_id: Optional[str] = None
    school_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    schedule_start: datetime
    schedule_end: datetime
    participant_count: int
    venue_type_required: Optional[str] = None
    status: EventStatus
    rejection_reason: Optional[str] = None
    modification_comments: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int

    class Config:
        from_attributes = True


class ResourceRequestResponse(BaseModel):
    """Schema for a filed resource request."""

    id: int
    resource_id: int
    resource_name: Optional[str] = None
    quantity_requested: int


class AllocationItemResponse(BaseModel):
    resource_id: int
    allocated_quantity: int


class AllocationResponse(BaseModel):
    """Schema for an allocation."""

    id: int
    event_id: int
    venue_id: Optional[int] = None
    resource_allocations: List[AllocationItemResponse] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime
    status: str


class ApprovalLogResponse(BaseModel):
    """Schema for an approval log entry."""

    id: int
    event_id: int
    approved_by: str
    role: UserRole
    decision: Decision
    comments: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventDetailResponse(BaseModel):
    """Event with its requests, allocation and approval history."""

    event: EventResponse
    resource_requests: List[ResourceRequestResponse]
    allocation: Optional[AllocationResponse] = None
    approval_logs: List[ApprovalLogResponse]


class ConflictResponse(BaseModel):
    type: str
    events: Optional[List[str]] = None
    resource: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None


class AllocationOutcomeResponse(BaseModel):
    """Result of the allocation run on final approval."""

    outcome: str
    allocation: Optional[AllocationResponse] = None
    conflicts: List[ConflictResponse] = Field(default_factory=list)


class DecisionResponse(BaseModel):
    """Schema for the response to a reviewer decision."""

    message: str
    event: EventResponse
    allocation_result: Optional[AllocationOutcomeResponse] = None


class CompletionResponse(BaseModel):
    message: str
    event: EventResponse


class EventStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    running: int
    completed: int
    rejected: int
    by_status: Dict[str, int]


class VenueStatsResponse(BaseModel):
    total: int
    available: int


class ResourceStatsResponse(BaseModel):
    total: int
    total_quantity: int
    available_quantity: int


class DashboardStatsResponse(BaseModel):
    """Schema for dashboard statistics."""

    events: EventStatsResponse
    venues: VenueStatsResponse
    resources: ResourceStatsResponse


# Health check schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    timestamp: datetime
    version: str
    database: str
    redis: str
    details: Optional[Dict[str, Any]] = None
