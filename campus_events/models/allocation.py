"""
Venue, resource pool and allocation models.
Venues and resources are shared pools mutated only by the allocator.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, ForeignKey, Index,
    CheckConstraint, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from .event import Base, enum_values


class VenueStatus(str, PyEnum):
    """Venue availability."""
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"


class ResourceCategory(str, PyEnum):
    """Resource categories."""
    EQUIPMENT = "Equipment"
    FOOD = "Food"
    FACILITY = "Facility"
    ITC = "ITC"


class AllocationStatus(str, PyEnum):
    """Allocation lifecycle."""
    ACTIVE = "Active"
    COMPLETED = "Completed"


class Venue(Base):
    """Bookable venue."""

    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)
    type = Column(String(100), nullable=True)
    availability_status = Column(
        Enum(VenueStatus, values_callable=enum_values, native_enum=False, length=20),
        default=VenueStatus.AVAILABLE,
        nullable=False,
        index=True
    )
    features = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    version = Column(Integer, default=1, nullable=False)

    __table_args__ = (
        CheckConstraint('capacity > 0', name='check_venue_capacity_positive'),
        Index('idx_venue_status_capacity', 'availability_status', 'capacity'),
    )

    def __repr__(self):
        return f"<Venue(id={self.id}, name='{self.name}', capacity={self.capacity})>"

    def to_dict(self) -> dict:
        """Convert venue to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "capacity": self.capacity,
            "type": self.type,
            "availability_status": self.availability_status.value,
            "features": list(self.features or []),
        }


class Resource(Base):
    """
    Pooled consumable or equipment.
    available_quantity only changes through guarded updates.
    """

    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(Enum(ResourceCategory, values_callable=enum_values, native_enum=False, length=20), nullable=False)
    total_quantity = Column(Integer, nullable=False)
    available_quantity = Column(Integer, nullable=False)
    unit = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    version = Column(Integer, default=1, nullable=False)

    __table_args__ = (
        CheckConstraint('total_quantity >= 0', name='check_total_quantity_positive'),
        CheckConstraint('available_quantity >= 0', name='check_available_quantity_positive'),
        CheckConstraint('available_quantity <= total_quantity', name='check_available_within_total'),
    )

    def __repr__(self):
        return f"<Resource(id={self.id}, name='{self.name}', available={self.available_quantity}/{self.total_quantity})>"

    def to_dict(self) -> dict:
        """Convert resource to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
            "unit": self.unit,
        }


class Allocation(Base):
    """
    Binding of an approved event to a venue and resource quantities.
    Superseded to Completed when the event completes, never deleted.
    """

    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=True, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(
        Enum(AllocationStatus, values_callable=enum_values, native_enum=False, length=20),
        default=AllocationStatus.ACTIVE,
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event")
    venue = relationship("Venue")
    resource_allocations = relationship("AllocationItem", back_populates="allocation", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_allocation_status_window', 'status', 'start_time', 'end_time'),
        # At most one active allocation per event
        Index(
            'uq_allocation_active_event', 'event_id',
            unique=True,
            sqlite_where=(status == AllocationStatus.ACTIVE.value),
            postgresql_where=(status == AllocationStatus.ACTIVE.value),
        ),
    )

    def __repr__(self):
        return f"<Allocation(id={self.id}, event_id={self.event_id}, venue_id={self.venue_id}, status='{self.status.value}')>"

    def to_dict(self) -> dict:
        """Convert allocation to dictionary representation."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "venue_id": self.venue_id,
            "resource_allocations": [item.to_dict() for item in self.resource_allocations],
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status.value,
        }


class AllocationItem(Base):
    """Quantity of one resource held by an allocation."""

    __tablename__ = "allocation_items"

    id = Column(Integer, primary_key=True, index=True)
    allocation_id = Column(Integer, ForeignKey("allocations.id", ondelete="CASCADE"), nullable=False, index=True)
    resource_id = Column(Integer, ForeignKey("resources.id"), nullable=False, index=True)
    allocated_quantity = Column(Integer, nullable=False)

    allocation = relationship("Allocation", back_populates="resource_allocations")

    __table_args__ = (
        CheckConstraint('allocated_quantity > 0', name='check_allocated_quantity_positive'),
    )

    def __repr__(self):
        return f"<AllocationItem(allocation_id={self.allocation_id}, resource_id={self.resource_id}, quantity={self.allocated_quantity})>"

    def to_dict(self) -> dict:
        return {
            "resource_id": self.resource_id,
            "allocated_quantity": self.allocated_quantity,
        }
