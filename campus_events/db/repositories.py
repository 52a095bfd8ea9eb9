"""
Repositories for the event record store.

Each repository wraps a session owned by the caller; none of them commit.
Pool and status writes are single guarded UPDATE statements so that a
concurrent writer can never push a quantity below zero or double-claim a
venue.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from campus_events.models import (
    Allocation, AllocationItem, AllocationStatus, ApprovalLog, Decision,
    Event, EventResourceRequest, EventStatus, Resource, UserRole, Venue,
    VenueStatus
)

logger = logging.getLogger(__name__)


class EventRepository:
    """
    Repository for Event and EventResourceRequest rows.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, event_data: dict, resource_requests: Iterable[dict] = ()) -> Event:
        """Create an event together with its resource requests."""
        event = Event(**event_data)
        for request in resource_requests:
            event.resource_requests.append(
                EventResourceRequest(
                    resource_id=request["resource_id"],
                    quantity_requested=request["quantity"]
                )
            )
        self.session.add(event)
        self.session.flush()
        return event

    def get_by_id(self, event_id: int) -> Optional[Event]:
        """Get event by ID."""
        return self.session.query(Event).filter(Event.id == event_id).first()

    def get_resource_requests(self, event_id: int) -> List[EventResourceRequest]:
        """Get the resource requests filed with an event."""
        return self.session.query(EventResourceRequest).filter(
            EventResourceRequest.event_id == event_id
        ).order_by(EventResourceRequest.id).all()

    def _scoped_query(self, filters: Dict[str, str]):
        query = self.session.query(Event)
        for field, value in filters.items():
            query = query.filter(getattr(Event, field) == value)
        return query

    def list(
        self,
        filters: Optional[Dict[str, str]] = None,
        statuses: Optional[Sequence[EventStatus]] = None
    ) -> List[Event]:
        """List events matching equality filters, newest first."""
        query = self._scoped_query(filters or {})
        if statuses:
            query = query.filter(Event.status.in_(list(statuses)))
        return query.order_by(Event.created_at.desc(), Event.id.desc()).all()

    def count_by_status(self, filters: Optional[Dict[str, str]] = None) -> Dict[EventStatus, int]:
        """Count events grouped by status."""
        query = self.session.query(Event.status, func.count(Event.id))
        for field, value in (filters or {}).items():
            query = query.filter(getattr(Event, field) == value)
        return {status: total for status, total in query.group_by(Event.status).all()}

    def transition(
        self,
        event_id: int,
        expected_status: EventStatus,
        expected_version: int,
        new_status: EventStatus,
        **fields
    ) -> bool:
        """
        Move an event to a new status if nobody else has written it since it
        was read.

        Returns:
            True if the row was updated, False on a stale version or status
        """
        values = {
            Event.status: new_status,
            Event.version: Event.version + 1,
            Event.updated_at: func.now(),
        }
        for field, value in fields.items():
            values[getattr(Event, field)] = value

        result = self.session.query(Event).filter(
            Event.id == event_id,
            Event.status == expected_status,
            Event.version == expected_version
        ).update(values, synchronize_session=False)
        return result > 0


class ApprovalLogRepository:
    """Append-only approval audit trail."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        event_id: int,
        approved_by: str,
        role: UserRole,
        decision: Decision,
        comments: Optional[str] = None
    ) -> ApprovalLog:
        log = ApprovalLog(
            event_id=event_id,
            approved_by=approved_by,
            role=role,
            decision=decision,
            comments=comments
        )
        self.session.add(log)
        self.session.flush()
        return log

    def list_for_event(self, event_id: int) -> List[ApprovalLog]:
        """Approval logs for an event, oldest first."""
        return self.session.query(ApprovalLog).filter(
            ApprovalLog.event_id == event_id
        ).order_by(ApprovalLog.timestamp, ApprovalLog.id).all()


class VenueRepository:
    """Repository for the venue pool."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, venue_data: dict) -> Venue:
        venue = Venue(**venue_data)
        self.session.add(venue)
        self.session.flush()
        return venue

    def get_by_id(self, venue_id: int) -> Optional[Venue]:
        return self.session.query(Venue).filter(Venue.id == venue_id).first()

    def list(self) -> List[Venue]:
        return self.session.query(Venue).order_by(Venue.id).all()

    def count(self, status: Optional[VenueStatus] = None) -> int:
        query = self.session.query(Venue)
        if status:
            query = query.filter(Venue.availability_status == status)
        return query.count()

    def claim_available(self, min_capacity: int) -> Optional[Venue]:
        """
        Claim the first available venue that seats min_capacity.

        Candidates are tried in id order; each claim is a single UPDATE guarded
        on the venue still being Available, so two callers can never both
        win the same venue.
        """
        candidate_ids = [
            venue_id for (venue_id,) in self.session.query(Venue.id).filter(
                Venue.capacity >= min_capacity,
                Venue.availability_status == VenueStatus.AVAILABLE
            ).order_by(Venue.id).all()
        ]

        for venue_id in candidate_ids:
            claimed = self.session.query(Venue).filter(
                Venue.id == venue_id,
                Venue.availability_status == VenueStatus.AVAILABLE
            ).update({
                Venue.availability_status: VenueStatus.OCCUPIED,
                Venue.version: Venue.version + 1
            }, synchronize_session=False)

            if claimed:
                return self.session.query(Venue).populate_existing().filter(
                    Venue.id == venue_id
                ).first()

            logger.info(f"Venue {venue_id} was claimed concurrently, trying next candidate")

        return None

    def release(self, venue_id: int) -> bool:
        """Flip an occupied venue back to Available."""
        result = self.session.query(Venue).filter(
            Venue.id == venue_id,
            Venue.availability_status == VenueStatus.OCCUPIED
        ).update({
            Venue.availability_status: VenueStatus.AVAILABLE,
            Venue.version: Venue.version + 1
        }, synchronize_session=False)
        return result > 0


class ResourceRepository:
    """Repository for pooled resources."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, resource_data: dict) -> Resource:
        resource = Resource(**resource_data)
        self.session.add(resource)
        self.session.flush()
        return resource

    def get_by_id(self, resource_id: int) -> Optional[Resource]:
        return self.session.query(Resource).filter(Resource.id == resource_id).first()

    def get_many(self, resource_ids: Iterable[int]) -> Dict[int, Resource]:
        ids = list(set(resource_ids))
        if not ids:
            return {}
        resources = self.session.query(Resource).filter(Resource.id.in_(ids)).all()
        return {resource.id: resource for resource in resources}

    def list(self) -> List[Resource]:
        return self.session.query(Resource).order_by(Resource.id).all()

    def count(self) -> int:
        return self.session.query(Resource).count()

    def quantity_totals(self) -> Dict[str, int]:
        total, available = self.session.query(
            func.coalesce(func.sum(Resource.total_quantity), 0),
            func.coalesce(func.sum(Resource.available_quantity), 0)
        ).one()
        return {"total_quantity": int(total), "available_quantity": int(available)}

    def try_decrement(self, resource_id: int, quantity: int) -> bool:
        """
        Atomically take quantity from the pool.

        Returns:
            True if the pool had enough and was decremented, False otherwise
        """
        result = self.session.query(Resource).filter(
            Resource.id == resource_id,
            Resource.available_quantity >= quantity
        ).update({
            Resource.available_quantity: Resource.available_quantity - quantity,
            Resource.version: Resource.version + 1
        }, synchronize_session=False)
        return result > 0

    def try_increment(self, resource_id: int, quantity: int) -> bool:
        """
        Atomically return quantity to the pool without exceeding the total.

        Returns:
            True if the pool was incremented, False if it would overflow
        """
        result = self.session.query(Resource).filter(
            Resource.id == resource_id,
            Resource.available_quantity + quantity <= Resource.total_quantity
        ).update({
            Resource.available_quantity: Resource.available_quantity + quantity,
            Resource.version: Resource.version + 1
        }, synchronize_session=False)
        return result > 0


class AllocationRepository:
    """Repository for allocations and their resource items."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        event: Event,
        venue: Optional[Venue],
        resource_allocations: Iterable[dict]
    ) -> Allocation:
        allocation = Allocation(
            event_id=event.id,
            venue_id=venue.id if venue else None,
            start_time=event.schedule_start,
            end_time=event.schedule_end,
            status=AllocationStatus.ACTIVE
        )
        for item in resource_allocations:
            allocation.resource_allocations.append(
                AllocationItem(
                    resource_id=item["resource_id"],
                    allocated_quantity=item["allocated_quantity"]
                )
            )
        self.session.add(allocation)
        self.session.flush()
        return allocation

    def get_for_event(self, event_id: int) -> Optional[Allocation]:
        """Latest allocation for an event, active or not."""
        return self.session.query(Allocation).filter(
            Allocation.event_id == event_id
        ).order_by(Allocation.id.desc()).first()

    def get_active_for_event(self, event_id: int) -> Optional[Allocation]:
        return self.session.query(Allocation).filter(
            Allocation.event_id == event_id,
            Allocation.status == AllocationStatus.ACTIVE
        ).first()

    def find_overlapping(
        self,
        start_time: datetime,
        end_time: datetime,
        exclude_event_id: int
    ) -> List[Allocation]:
        """Active allocations of other events whose window touches [start, end]."""
        return self.session.query(Allocation).filter(
            Allocation.event_id != exclude_event_id,
            Allocation.status == AllocationStatus.ACTIVE,
            Allocation.start_time <= end_time,
            Allocation.end_time >= start_time
        ).order_by(Allocation.id).all()

    def mark_completed(self, allocation_id: int) -> bool:
        result = self.session.query(Allocation).filter(
            Allocation.id == allocation_id,
            Allocation.status == AllocationStatus.ACTIVE
        ).update({Allocation.status: AllocationStatus.COMPLETED}, synchronize_session=False)
        return result > 0
