"""
Event models for Campus Events Service.
Events, the resource requests filed with them, and the approval audit trail.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Enum, ForeignKey, Index,
    CheckConstraint, Text
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from enum import Enum as PyEnum

Base = declarative_base()


def enum_values(enum_cls):
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]


class EventStatus(str, PyEnum):
    """Event lifecycle status."""
    PENDING = "Pending"
    HOD_REVIEW = "HOD_Review"
    DEAN_REVIEW = "Dean_Review"
    HEAD_REVIEW = "Head_Review"
    APPROVED = "Approved"
    RUNNING = "Running"
    COMPLETED = "Completed"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.REJECTED)


REVIEW_STATUSES = (EventStatus.HOD_REVIEW, EventStatus.DEAN_REVIEW, EventStatus.HEAD_REVIEW)

# Statuses counted as "pending" on the dashboard
PENDING_STATUSES = (EventStatus.PENDING,) + REVIEW_STATUSES


class UserRole(str, PyEnum):
    """Caller roles issued by the auth service."""
    COORDINATOR = "Coordinator"
    HOD = "HOD"
    DEAN = "Dean"
    HEAD = "Head"
    ADMIN = "Admin"


REVIEWER_ROLES = (UserRole.HOD, UserRole.DEAN, UserRole.HEAD)


class Decision(str, PyEnum):
    """Reviewer decision."""
    APPROVED = "Approved"
    REJECTED = "Rejected"
    MODIFY = "Modify"


class Event(Base):
    """
    Event request moving through the approval chain.
    Status writes are guarded by the version column.
    """

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)

    # References auth service
    coordinator_id = Column(String(64), nullable=False, index=True)
    department_id = Column(String(64), nullable=True, index=True)
    school_id = Column(String(64), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    schedule_start = Column(DateTime, nullable=False)
    schedule_end = Column(DateTime, nullable=False)
    participant_count = Column(Integer, nullable=False)
    venue_type_required = Column(String(100), nullable=True)

    status = Column(
        Enum(EventStatus, values_callable=enum_values, native_enum=False, length=20),
        default=EventStatus.HOD_REVIEW,
        nullable=False,
        index=True
    )
    rejection_reason = Column(Text, nullable=True)
    modification_comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    version = Column(Integer, default=1, nullable=False)  # For optimistic locking

    resource_requests = relationship("EventResourceRequest", back_populates="event", cascade="all, delete-orphan")
    approval_logs = relationship("ApprovalLog", back_populates="event", order_by="ApprovalLog.id")

    __table_args__ = (
        CheckConstraint('schedule_start < schedule_end', name='check_schedule_order'),
        CheckConstraint('participant_count > 0', name='check_participant_count_positive'),
        CheckConstraint('version > 0', name='check_event_version_positive'),
        Index('idx_event_status_created', 'status', 'created_at'),
    )

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', status='{self.status.value if self.status else None}')>"

    def to_dict(self) -> dict:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "coordinator_id": self.coordinator_id,
            "department_id": self.department_id,
            "school_id": self.school_id,
            "title": self.title,
            "description": self.description,
            "schedule_start": self.schedule_start.isoformat() if self.schedule_start else None,
            "schedule_end": self.schedule_end.isoformat() if self.schedule_end else None,
            "participant_count": self.participant_count,
            "venue_type_required": self.venue_type_required,
            "status": self.status.value if self.status else None,
            "rejection_reason": self.rejection_reason,
            "modification_comments": self.modification_comments,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version
        }


class EventResourceRequest(Base):
    """
    Quantity of a pooled resource requested by an event.
    Written once at event creation.
    """

    __tablename__ = "event_resource_requests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    resource_id = Column(Integer, ForeignKey("resources.id"), nullable=False, index=True)
    quantity_requested = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="resource_requests")
    resource = relationship("Resource")

    __table_args__ = (
        CheckConstraint('quantity_requested > 0', name='check_quantity_requested_positive'),
    )

    def __repr__(self):
        return f"<EventResourceRequest(event_id={self.event_id}, resource_id={self.resource_id}, quantity={self.quantity_requested})>"


class ApprovalLog(Base):
    """
    Append-only audit trail, one row per reviewer decision.
    """

    __tablename__ = "approval_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    approved_by = Column(String(64), nullable=False)  # User ID from auth service
    role = Column(Enum(UserRole, values_callable=enum_values, native_enum=False, length=20), nullable=False)
    decision = Column(Enum(Decision, values_callable=enum_values, native_enum=False, length=20), nullable=False)
    comments = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="approval_logs")

    __table_args__ = (
        Index('idx_approval_log_event_time', 'event_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<ApprovalLog(id={self.id}, event_id={self.event_id}, decision='{self.decision.value}')>"

    def to_dict(self) -> dict:
        """Convert approval log to dictionary representation."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "approved_by": self.approved_by,
            "role": self.role.value,
            "decision": self.decision.value,
            "comments": self.comments,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None
        }
