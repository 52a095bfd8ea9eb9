"""
Approval Service for Campus Events.

Applies reviewer decisions to events. Each decision is logged before the
event is touched, the status write is guarded by the event's version, and a
final-tier approval allocates resources in the same transaction as the
status change.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
import logging

from campus_events.core.exceptions import (
    InvalidTransitionError, NotFoundError, PersistenceError, UnauthorizedError, ValidationError
)
from campus_events.db.database import DatabaseManager, db_manager
from campus_events.db.repositories import ApprovalLogRepository, EventRepository
from campus_events.models import Decision, Event, REVIEWER_ROLES, UserRole
from .allocator import AllocationResult, Allocator
from .approval_workflow import is_final_approval, next_status
from .event_publisher import NotificationEmitter, NotificationType, notification_emitter
from .locking import EventLockProvider, LockFactory

logger = logging.getLogger(__name__)

DECISION_MESSAGES = {
    Decision.APPROVED: "Event approved",
    Decision.REJECTED: "Event rejected",
    Decision.MODIFY: "Modification requested",
}


@dataclass
class DecisionOutcome:
    """Event after a decision, plus the allocation attempt on final approval."""
    event: Event
    message: str
    allocation_result: Optional[AllocationResult] = None


class ApprovalService:
    """
    Reviewer decisions over the HOD, Dean and Head tiers.
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

    def _validate(self, actor_role: UserRole, decision: Decision, comments: Optional[str]) -> None:
        if decision == Decision.REJECTED and not (comments and comments.strip()):
            raise ValidationError("A rejection requires a reason", {"field": "comments"})

        if actor_role not in REVIEWER_ROLES:
            raise UnauthorizedError(f"Role {actor_role.value} cannot review events")

    async def decide(
        self,
        event_id: int,
        actor_id: str,
        actor_role: UserRole,
        decision: Decision,
        comments: Optional[str] = None
    ) -> DecisionOutcome:
        """
        Apply a reviewer decision to an event.

        Args:
            event_id: Event under review
            actor_id: Reviewer's user id
            actor_role: Reviewer's role; must match the event's tier
            decision: Approved, Rejected or Modify
            comments: Rejection reason or modification request

        Returns:
            DecisionOutcome with the event as stored after the decision. On
            final approval the event may already be back in Pending if
            allocation found a conflict or no venue.

        Raises:
            ValidationError: rejection without a reason
            UnauthorizedError: caller is not a reviewer
            NotFoundError: event does not exist
            InvalidTransitionError: wrong tier, terminal event, or the event
                changed while the decision was being applied
            PersistenceError: storage failure or lock timeout
        """
        self._validate(actor_role, decision, comments)

        lock = await self.locks.for_event(event_id)
        async with lock:
            try:
                # The audit entry is durable before the event changes
                with self.database.get_transaction_session() as session:
                    events = EventRepository(session)
                    event = events.get_by_id(event_id)
                    if not event:
                        raise NotFoundError(f"Event {event_id} not found")

                    target = next_status(event.status, actor_role, decision)
                    current_status, current_version = event.status, event.version

                    ApprovalLogRepository(session).append(
                        event_id, actor_id, actor_role, decision, comments
                    )
                    session.commit()

                with self.database.get_transaction_session() as session:
                    events = EventRepository(session)
                    fields = {}
                    if decision == Decision.REJECTED:
                        fields["rejection_reason"] = comments
                    elif decision == Decision.MODIFY:
                        fields["modification_comments"] = comments

                    if not events.transition(event_id, current_status, current_version, target, **fields):
                        raise InvalidTransitionError(
                            f"Event {event_id} changed while the decision was applied",
                            {"expected_status": current_status.value, "expected_version": current_version}
                        )

                    event = events.get_by_id(event_id)

                    allocation_result = None
                    if is_final_approval(current_status, decision):
                        allocation_result = self.allocator.allocate_in_session(session, event)

                    event_payload = event.to_dict()
                    session.commit()

                    logger.info(
                        f"{actor_role.value} {actor_id} decided {decision.value} on event {event_id}: "
                        f"{current_status.value} -> {event.status.value}"
                    )

            except SQLAlchemyError as e:
                logger.error(f"Decision on event {event_id} rolled back: {e}")
                raise PersistenceError(f"Failed to record decision on event {event_id}") from e

        if allocation_result:
            await self.allocator.publish_result(allocation_result)

        if decision == Decision.REJECTED:
            await self.emitter.emit(NotificationType.EVENT_REJECTED, event_payload)
        elif decision == Decision.MODIFY:
            await self.emitter.emit(NotificationType.EVENT_MODIFICATION_REQUESTED, event_payload)
        else:
            await self.emitter.emit(NotificationType.EVENT_APPROVED, event_payload)

        return DecisionOutcome(
            event=event,
            message=DECISION_MESSAGES[decision],
            allocation_result=allocation_result
        )


# Global service instance
approval_service = ApprovalService()
