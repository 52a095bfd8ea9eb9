"""
Approval state machine.

The chain is fixed: HOD, then Dean, then Head, then Approved. Each review
tier accepts exactly one role, and that role may approve, reject or send the
event back for modification.
"""

from typing import Dict, Tuple

from campus_events.core.exceptions import InvalidTransitionError, UnauthorizedError
from campus_events.models import Decision, EventStatus, REVIEWER_ROLES, UserRole

TransitionKey = Tuple[EventStatus, UserRole, Decision]

TRANSITIONS: Dict[TransitionKey, EventStatus] = {
    (EventStatus.HOD_REVIEW, UserRole.HOD, Decision.APPROVED): EventStatus.DEAN_REVIEW,
    (EventStatus.HOD_REVIEW, UserRole.HOD, Decision.REJECTED): EventStatus.REJECTED,
    (EventStatus.HOD_REVIEW, UserRole.HOD, Decision.MODIFY): EventStatus.PENDING,
    (EventStatus.DEAN_REVIEW, UserRole.DEAN, Decision.APPROVED): EventStatus.HEAD_REVIEW,
    (EventStatus.DEAN_REVIEW, UserRole.DEAN, Decision.REJECTED): EventStatus.REJECTED,
    (EventStatus.DEAN_REVIEW, UserRole.DEAN, Decision.MODIFY): EventStatus.PENDING,
    (EventStatus.HEAD_REVIEW, UserRole.HEAD, Decision.APPROVED): EventStatus.APPROVED,
    (EventStatus.HEAD_REVIEW, UserRole.HEAD, Decision.REJECTED): EventStatus.REJECTED,
    (EventStatus.HEAD_REVIEW, UserRole.HEAD, Decision.MODIFY): EventStatus.PENDING,
}

# Review status each reviewer role acts on
TIER_FOR_ROLE: Dict[UserRole, EventStatus] = {
    UserRole.HOD: EventStatus.HOD_REVIEW,
    UserRole.DEAN: EventStatus.DEAN_REVIEW,
    UserRole.HEAD: EventStatus.HEAD_REVIEW,
}


def next_status(status: EventStatus, role: UserRole, decision: Decision) -> EventStatus:
    """
    Resolve the status an event moves to when role makes decision on it.

    Raises:
        UnauthorizedError: role is not a reviewer
        InvalidTransitionError: the event is terminal, not under review, or
            under review at a different tier
    """
    if role not in REVIEWER_ROLES:
        raise UnauthorizedError(f"Role {role.value} cannot review events")

    if status.is_terminal:
        raise InvalidTransitionError(
            f"Event is {status.value}; no further decisions are accepted",
            {"status": status.value}
        )

    target = TRANSITIONS.get((status, role, decision))
    if target is None:
        raise InvalidTransitionError(
            f"{role.value} cannot decide on an event in {status.value}",
            {"status": status.value, "role": role.value, "decision": decision.value}
        )
    return target


def is_final_approval(status: EventStatus, decision: Decision) -> bool:
    """True when the decision takes the event out of the last review tier."""
    return status == EventStatus.HEAD_REVIEW and decision == Decision.APPROVED
