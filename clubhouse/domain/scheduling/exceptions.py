"""
Scheduling domain errors.
Raised by the scheduling services and rendered by the handler in main.py.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(SchedulingError):
    """Raised when a teesheet, config, template, block, member, guest or occupant is absent."""

    status_code = 404


class Conflict(SchedulingError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409


class DuplicateBooking(Conflict):
    """Raised when a member or guest already occupies the block."""

    pass


class CapacityExceeded(SchedulingError):
    """Raised when an add or a party move would exceed the block's max_members."""

    status_code = 409


class RestrictionViolated(SchedulingError):
    """
    Raised when a booking is stopped by restrictions.
    overridable=False: blocking violation, no override possible.
    overridable=True: advisory violations, retry with an explicit override.
    """

    status_code = 403

    def __init__(self, message: str, violations: list[dict], overridable: bool):
        super().__init__(message, {"violations": violations, "overridable": overridable})
        self.violations = violations
        self.overridable = overridable


class InvalidConfiguration(SchedulingError):
    """Raised for malformed times, empty or missing templates and unresolvable schedules."""

    status_code = 422


class Internal(SchedulingError):
    """Raised when storage fails."""

    status_code = 500
