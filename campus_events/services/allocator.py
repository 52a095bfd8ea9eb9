"""
Allocator for Campus Events Service.

Claims a venue and takes resource quantities for an approved event, and
hands both back when the event completes. Every mutation for one event runs
in the caller's transaction, so a failure part way leaves no trace.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campus_events.core.exceptions import InvalidTransitionError, NotFoundError, PersistenceError
from campus_events.db.database import DatabaseManager, db_manager
from campus_events.db.repositories import (
    AllocationRepository, EventRepository, ResourceRepository, VenueRepository
)
from campus_events.models import Allocation, Event, EventStatus
from .conflict_checker import Conflict, ConflictChecker, describe_conflicts
from .event_publisher import NotificationEmitter, NotificationType, notification_emitter

logger = logging.getLogger(__name__)

NO_VENUE_MESSAGE = "No suitable venue available"


class AllocationOutcome(str, Enum):
    """Result kinds of an allocation attempt."""
    SUCCESS = "success"
    CONFLICT_DETECTED = "conflict_detected"
    NO_VENUE_AVAILABLE = "no_venue_available"


@dataclass
class AllocationResult:
    """Outcome of allocate(); conflicts are an outcome, not an error."""
    outcome: AllocationOutcome
    allocation: Optional[Allocation] = None
    conflicts: List[Conflict] = field(default_factory=list)
    event_payload: Dict[str, Any] = field(default_factory=dict)
    allocation_payload: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AllocationOutcome.SUCCESS


class Allocator:
    """
    Venue and resource allocation with guarded pool updates.
    """

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        emitter: Optional[NotificationEmitter] = None
    ):
        self.database = database or db_manager
        self.emitter = emitter or notification_emitter

    def _bounce(self, session: Session, event: Event, expected_status: EventStatus, comments: str) -> None:
        """Send an event back to Pending with an explanation."""
        moved = EventRepository(session).transition(
            event.id, expected_status, event.version, EventStatus.PENDING,
            modification_comments=comments
        )
        if not moved:
            raise PersistenceError(f"Event {event.id} changed while allocating")
        session.refresh(event)

    def allocate_in_session(self, session: Session, event: Event) -> AllocationResult:
        """
        Run the allocation algorithm inside an open transaction.

        The caller commits.

        Raises:
            InvalidTransitionError: event is not Approved
        """
        if event.status != EventStatus.APPROVED:
            raise InvalidTransitionError(
                f"Event {event.id} in {event.status.value} cannot be allocated",
                {"status": event.status.value}
            )

        conflicts = ConflictChecker(session).check_conflicts(event)
        if conflicts:
            self._bounce(session, event, event.status, describe_conflicts(conflicts))
            logger.warning(f"Allocation for event {event.id} bounced: {len(conflicts)} conflict(s)")
            return AllocationResult(
                outcome=AllocationOutcome.CONFLICT_DETECTED,
                conflicts=conflicts,
                event_payload=event.to_dict()
            )

        venue = VenueRepository(session).claim_available(event.participant_count)
        if venue is None:
            self._bounce(session, event, event.status, NO_VENUE_MESSAGE)
            logger.warning(f"Allocation for event {event.id} failed: no venue seats {event.participant_count}")
            return AllocationResult(
                outcome=AllocationOutcome.NO_VENUE_AVAILABLE,
                event_payload=event.to_dict()
            )

        resources = ResourceRepository(session)
        resource_allocations = []
        for request in EventRepository(session).get_resource_requests(event.id):
            if resources.try_decrement(request.resource_id, request.quantity_requested):
                resource_allocations.append({
                    "resource_id": request.resource_id,
                    "allocated_quantity": request.quantity_requested
                })
            else:
                # Shortage that appeared after the conflict check; skipped, not fatal
                logger.warning(
                    f"Skipping resource {request.resource_id} for event {event.id}: "
                    f"fewer than {request.quantity_requested} available"
                )

        allocation = AllocationRepository(session).create(event, venue, resource_allocations)
        logger.info(
            f"Allocated venue {venue.id} and {len(resource_allocations)} resource(s) to event {event.id}"
        )
        return AllocationResult(
            outcome=AllocationOutcome.SUCCESS,
            allocation=allocation,
            event_payload=event.to_dict(),
            allocation_payload=allocation.to_dict()
        )

    async def publish_result(self, result: AllocationResult) -> None:
        """Emit the notification matching an allocation outcome."""
        if result.outcome == AllocationOutcome.CONFLICT_DETECTED:
            await self.emitter.emit(NotificationType.ALLOCATION_CONFLICT, {
                "event": result.event_payload,
                "conflicts": [conflict.to_dict() for conflict in result.conflicts]
            })
        elif result.outcome == AllocationOutcome.NO_VENUE_AVAILABLE:
            await self.emitter.emit(NotificationType.ALLOCATION_FAILED, result.event_payload)
        else:
            await self.emitter.emit(NotificationType.RESOURCES_ALLOCATED, {
                "event": result.event_payload,
                "allocation": result.allocation_payload
            })

    async def allocate(self, event_id: int) -> AllocationResult:
        """
        Allocate a venue and resources to an approved event in its own
        transaction.

        Raises:
            NotFoundError: event does not exist
            InvalidTransitionError: event is not Approved
            PersistenceError: storage failure; nothing was written
        """
        try:
            with self.database.get_transaction_session() as session:
                event = EventRepository(session).get_by_id(event_id)
                if not event:
                    raise NotFoundError(f"Event {event_id} not found")

                result = self.allocate_in_session(session, event)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Allocation for event {event_id} rolled back: {e}")
            raise PersistenceError(f"Allocation for event {event_id} failed") from e

        await self.publish_result(result)
        return result

    def release_in_session(self, session: Session, event: Event) -> Optional[Allocation]:
        """
        Return an event's venue and resources to the pools and close its
        allocation. Runs inside the caller's transaction.

        Returns:
            The completed allocation, or None if the event held none
        """
        allocations = AllocationRepository(session)
        allocation = allocations.get_active_for_event(event.id)
        if allocation is None:
            logger.info(f"Event {event.id} has no active allocation to release")
            return None

        resources = ResourceRepository(session)
        for item in allocation.resource_allocations:
            if not resources.try_increment(item.resource_id, item.allocated_quantity):
                raise PersistenceError(
                    f"Releasing {item.allocated_quantity} of resource {item.resource_id} would exceed its total"
                )

        if allocation.venue_id is not None and not VenueRepository(session).release(allocation.venue_id):
            logger.warning(f"Venue {allocation.venue_id} was not occupied when event {event.id} released it")

        if not allocations.mark_completed(allocation.id):
            raise PersistenceError(f"Allocation {allocation.id} changed while releasing")

        session.refresh(allocation)
        logger.info(f"Released allocation {allocation.id} for event {event.id}")
        return allocation
