"""Core enums shared by the availability store, slot resolver and booking engine"""

from datetime import date
from enum import Enum
from typing import Union

from .errors import InvalidDay


class Weekday(str, Enum):
    """Bookable civil weekdays. Sunday is not part of the domain."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @property
    def index(self) -> int:
        """Python weekday number (Monday == 0)"""
        return WEEKDAYS.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Union["Weekday", str]) -> "Weekday":
        """Parse a day name case-insensitively; Sunday and unknown names raise InvalidDay"""
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        if name == "sunday":
            raise InvalidDay("Sunday is not a bookable day", day="sunday")
        try:
            return cls(name)
        except ValueError:
            raise InvalidDay(f"Unknown day '{value}'", day=str(value)) from None

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        if value.weekday() == 6:
            raise InvalidDay(
                f"{value.isoformat()} is a Sunday; Sunday is not a bookable day",
                date=value.isoformat(),
            )
        return WEEKDAYS[value.weekday()]


WEEKDAYS = list(Weekday)


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active (non-terminal) appointments occupy their slot"""
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)

# Valid lifecycle moves; anything else is an InvalidTransition
TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


class Role(str, Enum):
    PATIENT = "patient"
    PROVIDER = "provider"
    ADMIN = "admin"
