"""
Database models package
"""

from .event import (
    Base, Event, EventResourceRequest, ApprovalLog,
    EventStatus, UserRole, Decision, REVIEW_STATUSES, REVIEWER_ROLES, PENDING_STATUSES
)
from .allocation import (
    Venue, Resource, Allocation, AllocationItem,
    VenueStatus, ResourceCategory, AllocationStatus
)

__all__ = [
    "Base",
    "Event",
    "EventResourceRequest",
    "ApprovalLog",
    "EventStatus",
    "UserRole",
    "Decision",
    "REVIEW_STATUSES",
    "REVIEWER_ROLES",
    "PENDING_STATUSES",
    "Venue",
    "Resource",
    "Allocation",
    "AllocationItem",
    "VenueStatus",
    "ResourceCategory",
    "AllocationStatus",
]
