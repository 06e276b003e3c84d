"""
Slot Resolver

Derives discrete slot indices from a provider's weekly template:
- available slots: grid slots inside at least one open range of the day
- bookable slots: available slots not held by a scheduled/confirmed appointment

Appointments are bound to concrete calendar dates. When a caller names only
a weekday, it is bound to the next occurrence of that weekday on or after
today.
"""

from datetime import date, timedelta
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from ..appointments.repository import AppointmentRepository
from ..availability.service import AvailabilityService
from .errors import InvalidDay
from .time_grid import TimeGrid, get_time_grid
from .types import WEEKDAYS, Weekday

# Weekly grid status tags
DAY_AVAILABLE = "available"
DAY_FULL = "full"
DAY_NOT_CONFIGURED = "not_configured"


def _is_sunday_name(value) -> bool:
    return isinstance(value, str) and value.strip().lower() == "sunday"


def next_occurrence(weekday: Weekday, today: date) -> date:
    """The first date on or after ``today`` falling on ``weekday``"""
    return today + timedelta(days=(weekday.index - today.weekday()) % 7)


def resolve_booking_date(
    weekday: Optional[Union[Weekday, str]],
    on_date: Optional[date],
    today: date,
    allow_past: bool = False,
) -> tuple[Weekday, date]:
    """
    Bind a (weekday, date) request to a concrete bookable date.

    Raises:
        InvalidDay: Sunday, unknown day, weekday/date mismatch, or a past date
    """
    if on_date is None:
        if weekday is None:
            raise InvalidDay("A weekday or a date is required")
        day = Weekday.parse(weekday)
        return day, next_occurrence(day, today)

    day = Weekday.from_date(on_date)
    if weekday is not None and Weekday.parse(weekday) != day:
        raise InvalidDay(
            f"{on_date.isoformat()} is a {day.label}, not a {Weekday.parse(weekday).label}",
            date=on_date.isoformat(),
            day=str(weekday),
        )
    if not allow_past and on_date < today:
        raise InvalidDay(f"{on_date.isoformat()} is in the past", date=on_date.isoformat())
    return day, on_date


class SlotResolver:
    """Read-only slot queries over the availability store and the ledger"""

    def __init__(
        self,
        db: Session,
        grid: Optional[TimeGrid] = None,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.grid = grid or get_time_grid()
        self.today = today
        self.availability = AvailabilityService(db)
        self.ledger = AppointmentRepository()

    def enabled_days(self, provider_id: str) -> List[Weekday]:
        template = self.availability.get_schedule_or_none(provider_id) or {}
        return [day for day, schedule in template.items() if schedule.enabled]

    def available_slots(self, provider_id: str, weekday: Union[Weekday, str]) -> List[int]:
        """Sorted, duplicate-free slot indices inside the day's open ranges"""
        if _is_sunday_name(weekday):
            return []
        day = Weekday.parse(weekday)

        # A provider without a template simply has no availability
        template = self.availability.get_schedule_or_none(provider_id)
        if not template or day not in template or not template[day].enabled:
            return []

        slots: List[int] = []
        for time_range in template[day].ranges:
            slots.extend(self.grid.range_to_slots(time_range.start, time_range.end))
        return sorted(set(slots))

    def bookable_slots(
        self,
        provider_id: str,
        weekday: Optional[Union[Weekday, str]] = None,
        on_date: Optional[date] = None,
    ) -> List[int]:
        """Available slots minus those held by active appointments on the bound date"""
        if on_date is None and _is_sunday_name(weekday):
            return []
        if on_date is not None and on_date.weekday() == 6:
            return []

        day, bound_date = resolve_booking_date(weekday, on_date, self.today(), allow_past=True)
        available = self.available_slots(provider_id, day)
        if not available:
            return []

        occupied = self.ledger.occupied_slots(self.db, provider_id, bound_date)
        return [idx for idx in available if idx not in occupied]

    def describe_slots(self, slots: List[int]) -> List[dict]:
        result = []
        for idx in slots:
            start, end = self.grid.slot_to_range(idx)
            result.append(
                {
                    "slot_index": idx,
                    "start": start.strftime("%H:%M"),
                    "end": end.strftime("%H:%M"),
                    "label": self.grid.label(idx),
                }
            )
        return result

    def slot_listing(
        self,
        provider_id: str,
        weekday: Optional[Union[Weekday, str]] = None,
        on_date: Optional[date] = None,
    ) -> dict:
        """Available and bookable slots for one day, with display times"""
        if (on_date is None and _is_sunday_name(weekday)) or (
            on_date is not None and on_date.weekday() == 6
        ):
            return {
                "day": "sunday",
                "date": on_date.isoformat() if on_date else None,
                "available_slots": [],
                "bookable_slots": [],
                "slots": [],
            }

        day, bound_date = resolve_booking_date(weekday, on_date, self.today(), allow_past=True)
        available = self.available_slots(provider_id, day)
        bookable = self.bookable_slots(provider_id, day, bound_date)
        return {
            "day": day.value,
            "date": bound_date.isoformat(),
            "available_slots": available,
            "bookable_slots": bookable,
            "slots": self.describe_slots(bookable),
        }

    def week_overview(self, provider_id: str, week_of: Optional[date] = None) -> List[dict]:
        """
        Monday-Saturday status for the week containing ``week_of`` (default: today).

        Returns:
            list[dict]: [
                {
                    "date": "2026-10-19",
                    "day": "monday",
                    "status": "available" | "full" | "not_configured",
                    "available_slots": [...],
                    "bookable_slots": [...]
                },
                ...
            ]
        """
        anchor = week_of or self.today()
        monday = anchor - timedelta(days=anchor.weekday())

        overview = []
        for day in WEEKDAYS:
            day_date = monday + timedelta(days=day.index)
            available = self.available_slots(provider_id, day)
            if available:
                occupied = self.ledger.occupied_slots(self.db, provider_id, day_date)
                bookable = [idx for idx in available if idx not in occupied]
                status = DAY_AVAILABLE if bookable else DAY_FULL
            else:
                bookable = []
                status = DAY_NOT_CONFIGURED

            overview.append(
                {
                    "date": day_date.isoformat(),
                    "day": day.value,
                    "status": status,
                    "available_slots": available,
                    "bookable_slots": bookable,
                }
            )
        return overview
