"""
Error taxonomy for Campus Events Service.

Every error raised by the service layer derives from CampusEventsError and
carries the HTTP status the API layer answers with. Allocation conflicts are
not errors; they are reported through AllocationResult.
"""

from typing import Any, Dict, Optional


class CampusEventsError(Exception):
    """Base class for service errors."""

    status_code = 500
    error_code = "CAMPUS_EVENTS_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(CampusEventsError):
    """Event, venue or resource id did not resolve."""

    status_code = 404
    error_code = "NOT_FOUND"


class UnauthorizedError(CampusEventsError):
    """Role or ownership check failed."""

    status_code = 403
    error_code = "UNAUTHORIZED"


class InvalidTransitionError(CampusEventsError):
    """Decision or command is not legal for the event's current status."""

    status_code = 409
    error_code = "INVALID_TRANSITION"


class ValidationError(CampusEventsError):
    """Malformed input, e.g. a rejection without a reason."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class PersistenceError(CampusEventsError):
    """Storage layer failure; the enclosing transaction was rolled back."""

    status_code = 503
    error_code = "PERSISTENCE_ERROR"
