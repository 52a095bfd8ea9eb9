"""
Conflict detection for allocation.

The time-window check looks at every active allocation in the system, not
only allocations of the venue that would be chosen. An event therefore
conflicts with anything else running in an overlapping window.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from campus_events.db.repositories import AllocationRepository, EventRepository, ResourceRepository
from campus_events.models import Event

logger = logging.getLogger(__name__)


@dataclass
class Conflict:
    """A single reason an event cannot be allocated right now."""
    type: str
    events: List[str] = field(default_factory=list)
    resource: Optional[str] = None
    requested: Optional[int] = None
    available: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.type == "venue":
            return {"type": self.type, "events": list(self.events)}
        return {
            "type": self.type,
            "resource": self.resource,
            "requested": self.requested,
            "available": self.available,
        }


def describe_conflicts(conflicts: List[Conflict]) -> str:
    """Serialized description stored on a bounced event."""
    return f"Conflicts detected: {json.dumps([conflict.to_dict() for conflict in conflicts])}"


class ConflictChecker:
    """
    Read-only check run before any pool mutation for an event.
    """

    def __init__(self, session: Session):
        self.events = EventRepository(session)
        self.allocations = AllocationRepository(session)
        self.resources = ResourceRepository(session)

    def check_conflicts(self, event: Event) -> List[Conflict]:
        """
        Find everything that prevents allocating event.

        Returns:
            Venue/time conflicts followed by resource shortages; empty when
            allocation may proceed
        """
        conflicts: List[Conflict] = []

        overlapping = self.allocations.find_overlapping(
            event.schedule_start, event.schedule_end, exclude_event_id=event.id
        )
        if overlapping:
            conflicts.append(Conflict(
                type="venue",
                events=[allocation.event.title for allocation in overlapping]
            ))

        requests = self.events.get_resource_requests(event.id)
        resources = self.resources.get_many(request.resource_id for request in requests)
        for request in requests:
            resource = resources.get(request.resource_id)
            available = resource.available_quantity if resource else 0
            if request.quantity_requested > available:
                conflicts.append(Conflict(
                    type="resource",
                    resource=resource.name if resource else f"Resource {request.resource_id}",
                    requested=request.quantity_requested,
                    available=available
                ))

        if conflicts:
            logger.info(f"Event {event.id} has {len(conflicts)} allocation conflict(s)")
        return conflicts
