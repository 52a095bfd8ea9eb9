"""
Transition table tests, covering every (status, role, decision) combination.
"""

import itertools
import pytest

from campus_events.core.exceptions import InvalidTransitionError, UnauthorizedError
from campus_events.models import Decision, EventStatus, UserRole
from campus_events.services.approval_workflow import (
    TIER_FOR_ROLE, TRANSITIONS, is_final_approval, next_status
)

EXPECTED = {
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

ALL_COMBINATIONS = list(itertools.product(EventStatus, UserRole, Decision))


class TestTransitionTable:
    """The table has exactly nine legal moves."""

    def test_table_matches_chain(self):
        assert TRANSITIONS == EXPECTED

    @pytest.mark.parametrize("status,role,decision", ALL_COMBINATIONS)
    def test_every_combination(self, status, role, decision):
        key = (status, role, decision)

        if key in EXPECTED:
            assert next_status(status, role, decision) == EXPECTED[key]
        elif role in (UserRole.COORDINATOR, UserRole.ADMIN):
            with pytest.raises(UnauthorizedError):
                next_status(status, role, decision)
        else:
            with pytest.raises(InvalidTransitionError):
                next_status(status, role, decision)

    def test_no_tier_is_skipped(self):
        order = [EventStatus.HOD_REVIEW, EventStatus.DEAN_REVIEW, EventStatus.HEAD_REVIEW, EventStatus.APPROVED]
        for (status, _, decision), target in EXPECTED.items():
            if decision == Decision.APPROVED:
                assert order.index(target) == order.index(status) + 1

    def test_terminal_statuses_have_no_exits(self):
        for status, role, decision in ALL_COMBINATIONS:
            if status.is_terminal:
                assert (status, role, decision) not in TRANSITIONS

    def test_terminal_error_names_status(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            next_status(EventStatus.REJECTED, UserRole.HOD, Decision.APPROVED)
        assert exc_info.value.details["status"] == "Rejected"

    def test_tier_for_role(self):
        assert TIER_FOR_ROLE[UserRole.HOD] == EventStatus.HOD_REVIEW
        assert TIER_FOR_ROLE[UserRole.DEAN] == EventStatus.DEAN_REVIEW
        assert TIER_FOR_ROLE[UserRole.HEAD] == EventStatus.HEAD_REVIEW
        assert UserRole.ADMIN not in TIER_FOR_ROLE


class TestFinalApproval:

    def test_only_head_approval_is_final(self):
        assert is_final_approval(EventStatus.HEAD_REVIEW, Decision.APPROVED)
        assert not is_final_approval(EventStatus.DEAN_REVIEW, Decision.APPROVED)
        assert not is_final_approval(EventStatus.HEAD_REVIEW, Decision.MODIFY)
