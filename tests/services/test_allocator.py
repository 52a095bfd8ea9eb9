"""
Allocator tests: venue claim, guarded decrements, bounce paths, release and
transaction rollback.
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from campus_events.core.exceptions import InvalidTransitionError, NotFoundError, PersistenceError
from campus_events.db.repositories import AllocationRepository, EventRepository, ResourceRepository
from campus_events.models import AllocationStatus, EventStatus, VenueStatus
from campus_events.services.allocator import AllocationOutcome, NO_VENUE_MESSAGE

BASE_TIME = datetime(2030, 3, 1, 9, 0, 0)


class TestAllocate:
    """allocate() on approved events."""

    @pytest.mark.asyncio
    async def test_success(self, allocator, make_event, make_venue, make_resource,
                           load_event, load_venue, load_resource, notifications):
        venue_id = make_venue(capacity=200)
        projector_id = make_resource(name="Projector", total=15)
        event_id = make_event(status=EventStatus.APPROVED, participant_count=150, resources=[(projector_id, 4)])

        result = await allocator.allocate(event_id)

        assert result.outcome == AllocationOutcome.SUCCESS
        assert result.succeeded
        assert result.allocation_payload["venue_id"] == venue_id
        assert result.allocation_payload["resource_allocations"] == [
            {"resource_id": projector_id, "allocated_quantity": 4}
        ]
        assert load_event(event_id).status == EventStatus.APPROVED
        assert load_venue(venue_id).availability_status == VenueStatus.OCCUPIED
        assert load_resource(projector_id).available_quantity == 11
        assert [name for name, _ in notifications] == ["resources_allocated"]

    @pytest.mark.asyncio
    async def test_conflict_bounces_to_pending(self, allocator, make_event, make_venue, make_resource,
                                               load_event, load_venue, load_resource, notifications):
        venue_id = make_venue()
        laptops = make_resource(name="Laptop", total=50, available=10)
        event_id = make_event(status=EventStatus.APPROVED, resources=[(laptops, 20)])

        result = await allocator.allocate(event_id)

        assert result.outcome == AllocationOutcome.CONFLICT_DETECTED
        event = load_event(event_id)
        assert event.status == EventStatus.PENDING
        assert event.modification_comments.startswith("Conflicts detected: ")
        assert '"resource": "Laptop"' in event.modification_comments
        assert load_venue(venue_id).availability_status == VenueStatus.AVAILABLE
        assert load_resource(laptops).available_quantity == 10
        name, payload = notifications[0]
        assert name == "allocation_conflict"
        assert payload["conflicts"][0]["requested"] == 20

    @pytest.mark.asyncio
    async def test_no_venue_bounces_to_pending(self, allocator, make_event, make_venue, make_resource,
                                               load_event, load_resource, notifications):
        make_venue(capacity=100)
        chairs = make_resource(name="Chairs", total=1000)
        event_id = make_event(status=EventStatus.APPROVED, participant_count=101, resources=[(chairs, 101)])

        result = await allocator.allocate(event_id)

        assert result.outcome == AllocationOutcome.NO_VENUE_AVAILABLE
        event = load_event(event_id)
        assert event.status == EventStatus.PENDING
        assert event.modification_comments == NO_VENUE_MESSAGE
        assert load_resource(chairs).available_quantity == 1000
        assert [name for name, _ in notifications] == ["allocation_failed"]

    @pytest.mark.asyncio
    async def test_unknown_event(self, allocator):
        with pytest.raises(NotFoundError):
            await allocator.allocate(404)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        EventStatus.PENDING, EventStatus.HOD_REVIEW, EventStatus.HEAD_REVIEW,
        EventStatus.REJECTED, EventStatus.COMPLETED
    ])
    async def test_unapproved_event_is_refused(self, database, allocator, make_event, make_venue,
                                               make_resource, load_event, load_venue, load_resource,
                                               notifications, status):
        venue_id = make_venue()
        projector_id = make_resource(name="Projector", total=10)
        event_id = make_event(status=status, resources=[(projector_id, 4)])

        with pytest.raises(InvalidTransitionError):
            await allocator.allocate(event_id)

        assert load_event(event_id).status == status
        assert load_venue(venue_id).availability_status == VenueStatus.AVAILABLE
        assert load_resource(projector_id).available_quantity == 10
        with database.get_session() as session:
            assert AllocationRepository(session).get_for_event(event_id) is None
        assert notifications == []

    @pytest.mark.asyncio
    async def test_shortage_after_check_skips_resource(self, database, allocator, make_event, make_venue,
                                                        make_resource, load_resource):
        make_venue()
        projector_id = make_resource(name="Projector", total=15)
        chairs_id = make_resource(name="Chairs", total=100)
        event_id = make_event(status=EventStatus.APPROVED, resources=[(projector_id, 4), (chairs_id, 50)])

        original = ResourceRepository.try_decrement

        def failing_for_projector(self, resource_id, quantity):
            if resource_id == projector_id:
                return False
            return original(self, resource_id, quantity)

        with patch.object(ResourceRepository, "try_decrement", failing_for_projector):
            result = await allocator.allocate(event_id)

        assert result.outcome == AllocationOutcome.SUCCESS
        assert result.allocation_payload["resource_allocations"] == [
            {"resource_id": chairs_id, "allocated_quantity": 50}
        ]
        assert load_resource(projector_id).available_quantity == 15
        assert load_resource(chairs_id).available_quantity == 50

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back_everything(self, database, allocator, make_event, make_venue,
                                                         make_resource, load_event, load_venue,
                                                         load_resource, notifications):
        venue_id = make_venue()
        projector_id = make_resource(name="Projector", total=15)
        event_id = make_event(status=EventStatus.APPROVED, resources=[(projector_id, 4)])

        def broken_create(self, event, venue, resource_allocations):
            raise OperationalError("INSERT INTO allocations", {}, Exception("disk I/O error"))

        with patch.object(AllocationRepository, "create", broken_create):
            with pytest.raises(PersistenceError):
                await allocator.allocate(event_id)

        assert load_event(event_id).status == EventStatus.APPROVED
        assert load_venue(venue_id).availability_status == VenueStatus.AVAILABLE
        assert load_resource(projector_id).available_quantity == 15
        with database.get_session() as session:
            assert AllocationRepository(session).get_for_event(event_id) is None
        assert notifications == []


class TestRelease:
    """release_in_session() on completion."""

    @pytest.mark.asyncio
    async def test_restores_pools(self, database, allocator, make_event, make_venue, make_resource,
                                  load_venue, load_resource):
        venue_id = make_venue()
        projector_id = make_resource(name="Projector", total=15)
        event_id = make_event(status=EventStatus.APPROVED, resources=[(projector_id, 4)])
        await allocator.allocate(event_id)

        with database.get_transaction_session() as session:
            event = EventRepository(session).get_by_id(event_id)
            allocation = allocator.release_in_session(session, event)
            session.commit()

        assert allocation.status == AllocationStatus.COMPLETED
        assert load_venue(venue_id).availability_status == VenueStatus.AVAILABLE
        assert load_resource(projector_id).available_quantity == 15

    def test_nothing_to_release(self, database, allocator, make_event):
        event_id = make_event(status=EventStatus.APPROVED)

        with database.get_transaction_session() as session:
            event = EventRepository(session).get_by_id(event_id)
            assert allocator.release_in_session(session, event) is None

    @pytest.mark.asyncio
    async def test_overflowing_release_raises(self, database, allocator, make_event, make_venue,
                                              make_resource, load_resource):
        make_venue()
        projector_id = make_resource(name="Projector", total=15)
        event_id = make_event(status=EventStatus.APPROVED, resources=[(projector_id, 4)])
        await allocator.allocate(event_id)

        # Someone restored the pool behind the allocation's back
        with database.get_session() as session:
            ResourceRepository(session).try_increment(projector_id, 4)

        with pytest.raises(PersistenceError):
            with database.get_transaction_session() as session:
                event = EventRepository(session).get_by_id(event_id)
                allocator.release_in_session(session, event)
                session.commit()

        assert load_resource(projector_id).available_quantity == 15
        with database.get_session() as session:
            assert AllocationRepository(session).get_active_for_event(event_id) is not None
