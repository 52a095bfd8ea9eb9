"""
Test configuration and fixtures for Campus Events Service.
Every test gets a fresh in-memory SQLite store, a recording publisher and a
no-op event lock.
"""

import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from campus_events.api.dependencies import (
    get_approval_service, get_catalog_service, get_current_caller, get_event_service
)
from campus_events.db.database import DatabaseManager
from campus_events.db.repositories import EventRepository, ResourceRepository, VenueRepository
from campus_events.models import Decision, EventStatus, ResourceCategory, UserRole, VenueStatus
from campus_events.services.allocator import Allocator
from campus_events.services.approval_service import ApprovalService
from campus_events.services.catalog_service import CatalogService
from campus_events.services.event_publisher import CallbackEventPublisher, NotificationEmitter
from campus_events.services.event_service import Caller, EventService
from campus_events.main import app

BASE_TIME = datetime(2030, 3, 1, 9, 0, 0)


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    manager = DatabaseManager()
    manager.configure("sqlite://")
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.close()


@pytest.fixture
def notifications():
    """Notifications emitted during a test, as (name, payload) tuples."""
    return []


@pytest.fixture
def emitter(notifications):
    publisher = CallbackEventPublisher()
    publisher.subscribe(lambda name, payload: notifications.append((name, payload)))
    return NotificationEmitter([publisher])


@pytest.fixture
def acquired_locks():
    return []


@pytest.fixture
def lock_factory(acquired_locks):
    """Lock factory that records keys and never blocks."""

    def factory(lock_key):
        @asynccontextmanager
        async def noop_lock():
            acquired_locks.append(lock_key)
            yield

        return noop_lock()

    return factory


@pytest.fixture
def allocator(database, emitter):
    return Allocator(database, emitter)


@pytest.fixture
def approval_service(database, emitter, allocator, lock_factory):
    return ApprovalService(database, emitter, allocator, lock_factory)


@pytest.fixture
def event_service(database, emitter, allocator, lock_factory):
    return EventService(database, emitter, allocator, lock_factory)


@pytest.fixture
def catalog_service(database, emitter):
    return CatalogService(database, emitter)


@pytest.fixture
def coordinator():
    return Caller(user_id="coord-1", role=UserRole.COORDINATOR, department_id="CS", school_id="Engineering")


@pytest.fixture
def hod():
    return Caller(user_id="hod-1", role=UserRole.HOD, department_id="CS", school_id="Engineering")


@pytest.fixture
def dean():
    return Caller(user_id="dean-1", role=UserRole.DEAN, school_id="Engineering")


@pytest.fixture
def head():
    return Caller(user_id="head-1", role=UserRole.HEAD)


@pytest.fixture
def admin():
    return Caller(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def make_venue(database):
    """Insert a venue and return its id."""

    def factory(name="Main Auditorium", capacity=500, venue_type="Auditorium",
                status=VenueStatus.AVAILABLE):
        with database.get_session() as session:
            venue = VenueRepository(session).create({
                "name": name,
                "capacity": capacity,
                "type": venue_type,
                "features": [],
                "availability_status": status,
            })
            return venue.id

    return factory


@pytest.fixture
def make_resource(database):
    """Insert a resource pool and return its id."""

    def factory(name="Projector", total=15, available=None, category=ResourceCategory.EQUIPMENT):
        with database.get_session() as session:
            resource = ResourceRepository(session).create({
                "name": name,
                "category": category,
                "total_quantity": total,
                "available_quantity": total if available is None else available,
                "unit": "units",
            })
            return resource.id

    return factory


@pytest.fixture
def make_event(database):
    """Insert an event directly at a given status and return its id."""

    def factory(title="Tech Symposium", status=EventStatus.HOD_REVIEW, participant_count=100,
                start=BASE_TIME, hours=3, resources=(), coordinator_id="coord-1",
                department_id="CS", school_id="Engineering"):
        with database.get_session() as session:
            event = EventRepository(session).create(
                {
                    "coordinator_id": coordinator_id,
                    "department_id": department_id,
                    "school_id": school_id,
                    "title": title,
                    "schedule_start": start,
                    "schedule_end": start + timedelta(hours=hours),
                    "participant_count": participant_count,
                    "status": status,
                },
                [{"resource_id": resource_id, "quantity": quantity} for resource_id, quantity in resources]
            )
            return event.id

    return factory


@pytest.fixture
def load_event(database):
    """Read an event back from the store."""

    def loader(event_id):
        with database.get_session() as session:
            return EventRepository(session).get_by_id(event_id)

    return loader


@pytest.fixture
def load_resource(database):
    def loader(resource_id):
        with database.get_session() as session:
            return ResourceRepository(session).get_by_id(resource_id)

    return loader


@pytest.fixture
def load_venue(database):
    def loader(venue_id):
        with database.get_session() as session:
            return VenueRepository(session).get_by_id(venue_id)

    return loader


@pytest.fixture
def approve_through_tiers(approval_service, hod, dean, head):
    """Walk an event from HOD_Review to the final decision."""

    async def run(event_id):
        await approval_service.decide(event_id, hod.user_id, hod.role, Decision.APPROVED)
        await approval_service.decide(event_id, dean.user_id, dean.role, Decision.APPROVED)
        return await approval_service.decide(event_id, head.user_id, head.role, Decision.APPROVED)

    return run


@pytest.fixture
def client(event_service, approval_service, catalog_service):
    """
    Test client wired to the SQLite-backed services.
    The lifespan is not run, so no Postgres or Redis is needed.
    """
    app.dependency_overrides[get_event_service] = lambda: event_service
    app.dependency_overrides[get_approval_service] = lambda: approval_service
    app.dependency_overrides[get_catalog_service] = lambda: catalog_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent requests as the given caller."""

    def as_caller(caller):
        app.dependency_overrides[get_current_caller] = lambda: caller

    return as_caller
