"""
Scheduling errors

Every error the scheduling core raises is a recoverable, caller-facing
condition. Each carries a stable ``code`` and the HTTP status the API layer
answers with; ``main.py`` renders them as ``{"detail": {...}}``.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base exception for the scheduling core"""

    code = "scheduling_error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.details}


class InvalidDay(SchedulingError):
    """Raised for Sunday, unknown day names, or days the provider does not work"""

    code = "invalid_day"
    status_code = 422


class InvalidRange(SchedulingError):
    """Raised when a time range is malformed or has start >= end"""

    code = "invalid_range"
    status_code = 422


class EmptyRanges(SchedulingError):
    """Raised when an enabled day carries no time ranges"""

    code = "empty_ranges"
    status_code = 422


class OverlappingRanges(SchedulingError):
    """Raised when two ranges on the same day overlap"""

    code = "overlapping_ranges"
    status_code = 422


class OutOfRange(SchedulingError):
    """Raised for a slot index or time outside the time grid"""

    code = "out_of_range"
    status_code = 422


class InvalidReason(SchedulingError):
    code = "invalid_reason"
    status_code = 422


class SlotNotOffered(SchedulingError):
    """Raised when the slot is not part of the provider's availability"""

    code = "slot_not_offered"
    status_code = 409


class SlotTaken(SchedulingError):
    """Raised when another active appointment already holds the slot.

    Expected under normal concurrent load; callers should pick another slot.
    """

    code = "slot_taken"
    status_code = 409


class InvalidTransition(SchedulingError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move appointment from '{current}' to '{requested}'",
            current_status=current,
            requested_status=requested,
        )
        self.current = current
        self.requested = requested


class Forbidden(SchedulingError):
    code = "forbidden"
    status_code = 403


class NotFound(SchedulingError):
    code = "not_found"
    status_code = 404
