"""
Event service tests: submission, scoped listing, completion and statistics.
"""

import pytest
from datetime import datetime, timedelta

from campus_events.core.exceptions import (
    InvalidTransitionError, NotFoundError, UnauthorizedError, ValidationError
)
from campus_events.models import AllocationStatus, EventStatus, UserRole, VenueStatus
from campus_events.schemas.event import EventCreate
from campus_events.services.event_service import Caller

BASE_TIME = datetime(2030, 3, 1, 9, 0, 0)


def event_request(**overrides):
    data = {
        "title": "AI Workshop",
        "description": "Hands-on session",
        "schedule_start": BASE_TIME,
        "schedule_end": BASE_TIME + timedelta(hours=3),
        "participant_count": 60,
        "venue_type_required": "Lab",
        "resources": [],
    }
    data.update(overrides)
    return EventCreate(**data)


class TestCreateEvent:

    @pytest.mark.asyncio
    async def test_creates_in_hod_review(self, event_service, coordinator, make_resource, notifications):
        laptops = make_resource(name="Laptop", total=50)

        event = await event_service.create_event(
            event_request(resources=[{"resource_id": laptops, "quantity": 30}]), coordinator
        )

        assert event.status == EventStatus.HOD_REVIEW
        assert event.coordinator_id == "coord-1"
        assert event.department_id == "CS"
        assert event.school_id == "Engineering"
        assert event.version == 1
        assert notifications[0][0] == "event_created"
        assert notifications[0][1]["title"] == "AI Workshop"

    @pytest.mark.asyncio
    async def test_request_overrides_caller_scope(self, event_service, coordinator):
        event = await event_service.create_event(event_request(department_id="EE"), coordinator)
        assert event.department_id == "EE"

    @pytest.mark.asyncio
    async def test_resource_requests_are_stored(self, event_service, coordinator, make_resource):
        laptops = make_resource(name="Laptop", total=50)
        chairs = make_resource(name="Chairs", total=100)

        event = await event_service.create_event(
            event_request(resources=[
                {"resource_id": laptops, "quantity": 30},
                {"resource_id": chairs, "quantity": 60},
            ]),
            coordinator
        )
        detail = await event_service.get_event_detail(event.id)

        assert [(r["resource_name"], r["quantity_requested"]) for r in detail["resource_requests"]] == [
            ("Laptop", 30), ("Chairs", 60)
        ]

    @pytest.mark.asyncio
    async def test_unknown_resource(self, event_service, coordinator, notifications):
        with pytest.raises(NotFoundError) as exc_info:
            await event_service.create_event(
                event_request(resources=[{"resource_id": 77, "quantity": 1}]), coordinator
            )

        assert exc_info.value.details["resource_ids"] == [77]
        assert notifications == []
        assert await event_service.list_events(coordinator) == []

    @pytest.mark.asyncio
    async def test_empty_window_rejected(self, event_service, coordinator):
        request = event_request()
        request.schedule_end = request.schedule_start

        with pytest.raises(ValidationError):
            await event_service.create_event(request, coordinator)


class TestListing:

    @pytest.mark.asyncio
    async def test_role_scoping(self, event_service, make_event, coordinator, hod, dean, head, admin):
        own = make_event(title="Mine", coordinator_id="coord-1", department_id="CS", school_id="Engineering")
        same_dept = make_event(title="Dept", coordinator_id="coord-2", department_id="CS", school_id="Engineering")
        same_school = make_event(title="School", coordinator_id="coord-3", department_id="EE", school_id="Engineering")
        elsewhere = make_event(title="Elsewhere", coordinator_id="coord-4", department_id="BIO", school_id="Science")

        async def ids(caller):
            return {event.id for event in await event_service.list_events(caller)}

        assert await ids(coordinator) == {own}
        assert await ids(hod) == {own, same_dept}
        assert await ids(dean) == {own, same_dept, same_school}
        assert await ids(head) == {own, same_dept, same_school, elsewhere}
        assert await ids(admin) == {own, same_dept, same_school, elsewhere}

    @pytest.mark.asyncio
    async def test_newest_first(self, event_service, make_event, head):
        first = make_event(title="First")
        second = make_event(title="Second")

        events = await event_service.list_events(head)

        assert [event.id for event in events] == [second, first]

    @pytest.mark.asyncio
    async def test_status_filter(self, event_service, make_event, head):
        make_event(status=EventStatus.HOD_REVIEW)
        rejected = make_event(status=EventStatus.REJECTED)

        events = await event_service.list_events(head, EventStatus.REJECTED)

        assert [event.id for event in events] == [rejected]

    @pytest.mark.asyncio
    async def test_pending_approvals_by_tier(self, event_service, make_event, hod, dean):
        at_hod = make_event(status=EventStatus.HOD_REVIEW)
        at_dean = make_event(status=EventStatus.DEAN_REVIEW)
        make_event(status=EventStatus.DEAN_REVIEW, school_id="Science")

        assert [event.id for event in await event_service.list_pending_approvals(hod)] == [at_hod]
        assert [event.id for event in await event_service.list_pending_approvals(dean)] == [at_dean]

    @pytest.mark.asyncio
    async def test_pending_approvals_require_reviewer(self, event_service, coordinator):
        with pytest.raises(UnauthorizedError):
            await event_service.list_pending_approvals(coordinator)


class TestEventDetail:

    @pytest.mark.asyncio
    async def test_detail_includes_history_and_allocation(self, event_service, approve_through_tiers,
                                                          make_event, make_venue):
        venue_id = make_venue()
        event_id = make_event()
        await approve_through_tiers(event_id)

        detail = await event_service.get_event_detail(event_id)

        assert detail["event"]["status"] == "Approved"
        assert detail["allocation"]["venue_id"] == venue_id
        assert detail["allocation"]["status"] == "Active"
        assert [log["role"] for log in detail["approval_logs"]] == ["HOD", "Dean", "Head"]

    @pytest.mark.asyncio
    async def test_unknown_event(self, event_service):
        with pytest.raises(NotFoundError):
            await event_service.get_event_detail(404)


class TestCompleteEvent:

    @pytest.mark.asyncio
    async def test_completion_restores_pools(self, event_service, approve_through_tiers, make_event,
                                             make_venue, make_resource, load_venue, load_resource,
                                             notifications, acquired_locks):
        venue_id = make_venue()
        projector_id = make_resource(name="Projector", total=15)
        chairs_id = make_resource(name="Chairs", total=100)
        event_id = make_event(resources=[(projector_id, 4), (chairs_id, 90)])
        await approve_through_tiers(event_id)
        assert load_resource(chairs_id).available_quantity == 10

        event = await event_service.complete_event(event_id, "coord-1")

        assert event.status == EventStatus.COMPLETED
        assert load_venue(venue_id).availability_status == VenueStatus.AVAILABLE
        assert load_resource(projector_id).available_quantity == 15
        assert load_resource(chairs_id).available_quantity == 100
        assert notifications[-1][0] == "event_completed"
        assert acquired_locks[-1] == f"campus:lock:event:{event_id}"

        detail = await event_service.get_event_detail(event_id)
        assert detail["allocation"]["status"] == AllocationStatus.COMPLETED.value

    @pytest.mark.asyncio
    async def test_freed_venue_can_be_allocated_again(self, event_service, approve_through_tiers,
                                                      make_event, make_venue):
        make_venue(capacity=500)
        first = make_event(title="First", start=BASE_TIME)
        second = make_event(title="Second", start=BASE_TIME + timedelta(days=1))
        await approve_through_tiers(first)
        await event_service.complete_event(first, "coord-1")

        outcome = await approve_through_tiers(second)

        assert outcome.event.status == EventStatus.APPROVED

    @pytest.mark.asyncio
    async def test_only_coordinator_can_complete(self, event_service, make_event, load_event):
        event_id = make_event(status=EventStatus.APPROVED)

        with pytest.raises(UnauthorizedError):
            await event_service.complete_event(event_id, "coord-2")

        assert load_event(event_id).status == EventStatus.APPROVED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [
        EventStatus.PENDING, EventStatus.HOD_REVIEW, EventStatus.HEAD_REVIEW,
        EventStatus.REJECTED, EventStatus.COMPLETED
    ])
    async def test_only_approved_or_running(self, event_service, make_event, status):
        event_id = make_event(status=status)

        with pytest.raises(InvalidTransitionError):
            await event_service.complete_event(event_id, "coord-1")

    @pytest.mark.asyncio
    async def test_running_event_can_complete(self, event_service, make_event):
        event_id = make_event(status=EventStatus.RUNNING)

        event = await event_service.complete_event(event_id, "coord-1")

        assert event.status == EventStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_event(self, event_service):
        with pytest.raises(NotFoundError):
            await event_service.complete_event(404, "coord-1")


class TestDashboardStats:

    @pytest.mark.asyncio
    async def test_counts(self, event_service, make_event, make_venue, make_resource, head):
        make_venue(name="A")
        make_venue(name="B", status=VenueStatus.OCCUPIED)
        make_resource(name="Projector", total=15, available=11)
        make_event(status=EventStatus.PENDING)
        make_event(status=EventStatus.HOD_REVIEW)
        make_event(status=EventStatus.DEAN_REVIEW)
        make_event(status=EventStatus.APPROVED)
        make_event(status=EventStatus.COMPLETED)
        make_event(status=EventStatus.REJECTED)

        stats = await event_service.dashboard_stats(head)

        assert stats["events"]["total"] == 6
        assert stats["events"]["pending"] == 3
        assert stats["events"]["approved"] == 1
        assert stats["events"]["running"] == 0
        assert stats["events"]["completed"] == 1
        assert stats["events"]["rejected"] == 1
        assert stats["events"]["by_status"]["HOD_Review"] == 1
        assert stats["venues"] == {"total": 2, "available": 1}
        assert stats["resources"] == {"total": 1, "total_quantity": 15, "available_quantity": 11}

    @pytest.mark.asyncio
    async def test_scoped_to_caller(self, event_service, make_event):
        make_event(coordinator_id="coord-1")
        make_event(coordinator_id="coord-2")

        stats = await event_service.dashboard_stats(Caller(user_id="coord-2", role=UserRole.COORDINATOR))

        assert stats["events"]["total"] == 1
