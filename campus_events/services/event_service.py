"""
Event Service for Campus Events.
Handles event submission, role-scoped listing, completion and dashboard
statistics.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
import logging

from campus_events.core.exceptions import (
    InvalidTransitionError, NotFoundError, PersistenceError, UnauthorizedError, ValidationError
)
from campus_events.db.database import DatabaseManager, db_manager
from campus_events.db.repositories import (
    AllocationRepository, ApprovalLogRepository, EventRepository, ResourceRepository, VenueRepository
)
from campus_events.models import (
    Event, EventStatus, PENDING_STATUSES, UserRole, VenueStatus
)
from campus_events.schemas.event import EventCreate
from .allocator import Allocator
from .approval_workflow import TIER_FOR_ROLE
from .event_publisher import NotificationEmitter, NotificationType, notification_emitter
from .locking import EventLockProvider, LockFactory

logger = logging.getLogger(__name__)

COMPLETABLE_STATUSES = (EventStatus.APPROVED, EventStatus.RUNNING)


@dataclass
class Caller:
    """Authenticated caller identity."""
    user_id: str
    role: UserRole
    department_id: Optional[str] = None
    school_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Caller":
        return cls(
            user_id=str(claims["user_id"]),
            role=UserRole(claims["role"]),
            department_id=claims.get("department_id"),
            school_id=claims.get("school_id")
        )

    def scope_filters(self) -> Dict[str, str]:
        """Equality filters limiting which events the caller sees."""
        if self.role == UserRole.COORDINATOR:
            return {"coordinator_id": self.user_id}
        if self.role == UserRole.HOD:
            return {"department_id": self.department_id}
        if self.role == UserRole.DEAN:
            return {"school_id": self.school_id}
        return {}


class EventService:
    """
    Event lifecycle outside the reviewer decisions.
    """

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        emitter: Optional[NotificationEmitter] = None,
        allocator: Optional[Allocator] = None,
        lock_factory: Optional[LockFactory] = None
    ):
        self.database = database or db_manager
        self.emitter = emitter or notification_emitter
        self.allocator = allocator or Allocator(self.database, self.emitter)
        self.locks = EventLockProvider(lock_factory)

    async def create_event(self, event_data: EventCreate, caller: Caller) -> Event:
        """
        Submit an event request. The event enters the chain at HOD_Review.

        Raises:
            ValidationError: empty window or non-positive counts
            NotFoundError: a requested resource does not exist
            PersistenceError: storage failure
        """
        if event_data.schedule_start >= event_data.schedule_end:
            raise ValidationError("schedule_start must be before schedule_end")
        if event_data.participant_count <= 0:
            raise ValidationError("participant_count must be positive")
        if any(request.quantity <= 0 for request in event_data.resources):
            raise ValidationError("Requested quantities must be positive")

        try:
            with self.database.get_transaction_session() as session:
                requested_ids = {request.resource_id for request in event_data.resources}
                known = ResourceRepository(session).get_many(requested_ids)
                missing = sorted(requested_ids - set(known))
                if missing:
                    raise NotFoundError(
                        f"Resources not found: {', '.join(str(resource_id) for resource_id in missing)}",
                        {"resource_ids": missing}
                    )

                event = EventRepository(session).create(
                    {
                        "coordinator_id": caller.user_id,
                        "department_id": event_data.department_id or caller.department_id,
                        "school_id": event_data.school_id or caller.school_id,
                        "title": event_data.title,
                        "description": event_data.description,
                        "schedule_start": event_data.schedule_start,
                        "schedule_end": event_data.schedule_end,
                        "participant_count": event_data.participant_count,
                        "venue_type_required": event_data.venue_type_required,
                        "status": EventStatus.HOD_REVIEW,
                    },
                    [request.model_dump() for request in event_data.resources]
                )
                session.refresh(event)
                event_payload = event.to_dict()
                session.commit()

        except SQLAlchemyError as e:
            logger.error(f"Failed to create event for {caller.user_id}: {e}")
            raise PersistenceError("Failed to create event") from e

        logger.info(f"Event {event.id} submitted by {caller.user_id}")
        await self.emitter.emit(NotificationType.EVENT_CREATED, event_payload)
        return event

    async def list_events(self, caller: Caller, status: Optional[EventStatus] = None) -> List[Event]:
        """Events visible to the caller, newest first."""
        with self.database.get_session() as session:
            return EventRepository(session).list(
                caller.scope_filters(),
                statuses=[status] if status else None
            )

    async def list_pending_approvals(self, caller: Caller) -> List[Event]:
        """Events waiting on the caller's review tier."""
        tier = TIER_FOR_ROLE.get(caller.role)
        if tier is None:
            raise UnauthorizedError(f"Role {caller.role.value} has no review queue")

        with self.database.get_session() as session:
            return EventRepository(session).list(caller.scope_filters(), statuses=[tier])

    async def get_event_detail(self, event_id: int) -> Dict[str, Any]:
        """
        Get an event with its resource requests, allocation and approval
        history.

        Raises:
            NotFoundError: event does not exist
        """
        with self.database.get_session() as session:
            events = EventRepository(session)
            event = events.get_by_id(event_id)
            if not event:
                raise NotFoundError(f"Event {event_id} not found")

            resource_requests = [
                {
                    "id": request.id,
                    "resource_id": request.resource_id,
                    "resource_name": request.resource.name if request.resource else None,
                    "quantity_requested": request.quantity_requested,
                }
                for request in events.get_resource_requests(event_id)
            ]
            allocation = AllocationRepository(session).get_for_event(event_id)

            return {
                "event": event.to_dict(),
                "resource_requests": resource_requests,
                "allocation": allocation.to_dict() if allocation else None,
                "approval_logs": [log.to_dict() for log in ApprovalLogRepository(session).list_for_event(event_id)],
            }

    async def complete_event(self, event_id: int, caller_id: str) -> Event:
        """
        Mark an event Completed and release its venue and resources.

        Raises:
            NotFoundError: event does not exist
            UnauthorizedError: caller is not the event's coordinator
            InvalidTransitionError: event is not Approved or Running
            PersistenceError: storage failure; nothing was released
        """
        lock = await self.locks.for_event(event_id)
        async with lock:
            try:
                with self.database.get_transaction_session() as session:
                    events = EventRepository(session)
                    event = events.get_by_id(event_id)
                    if not event:
                        raise NotFoundError(f"Event {event_id} not found")

                    if event.coordinator_id != caller_id:
                        raise UnauthorizedError("Only the event's coordinator can complete it")

                    if event.status not in COMPLETABLE_STATUSES:
                        raise InvalidTransitionError(
                            f"Event in {event.status.value} cannot be completed",
                            {"status": event.status.value}
                        )

                    if not events.transition(event_id, event.status, event.version, EventStatus.COMPLETED):
                        raise InvalidTransitionError(f"Event {event_id} changed while completing")

                    self.allocator.release_in_session(session, event)
                    session.refresh(event)
                    event_payload = event.to_dict()
                    session.commit()

            except SQLAlchemyError as e:
                logger.error(f"Completion of event {event_id} rolled back: {e}")
                raise PersistenceError(f"Failed to complete event {event_id}") from e

        logger.info(f"Event {event_id} completed by {caller_id}")
        await self.emitter.emit(NotificationType.EVENT_COMPLETED, event_payload)
        return event

    async def dashboard_stats(self, caller: Caller) -> Dict[str, Any]:
        """Event, venue and resource counts within the caller's scope."""
        with self.database.get_session() as session:
            events = EventRepository(session)
            by_status = events.count_by_status(caller.scope_filters())
            venues = VenueRepository(session)
            resources = ResourceRepository(session)

            return {
                "events": {
                    "total": sum(by_status.values()),
                    "pending": sum(by_status.get(status, 0) for status in PENDING_STATUSES),
                    "approved": by_status.get(EventStatus.APPROVED, 0),
                    "running": by_status.get(EventStatus.RUNNING, 0),
                    "completed": by_status.get(EventStatus.COMPLETED, 0),
                    "rejected": by_status.get(EventStatus.REJECTED, 0),
                    "by_status": {status.value: by_status.get(status, 0) for status in EventStatus},
                },
                "venues": {
                    "total": venues.count(),
                    "available": venues.count(VenueStatus.AVAILABLE),
                },
                "resources": {
                    "total": resources.count(),
                    **resources.quantity_totals(),
                },
            }


# Global service instance
event_service = EventService()
