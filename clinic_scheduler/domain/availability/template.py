"""
Weekly template values and validation.

A template maps each listed weekday to ``DaySchedule(enabled, ranges)``.
``build_template`` validates a raw template in full before anything is
stored, so a partially invalid template never reaches the database.
"""

from dataclasses import dataclass
from datetime import time
from typing import Any, Iterable, Mapping, Union

from ...shared.validators import format_time_of_day, parse_time_of_day
from ..scheduling.errors import EmptyRanges, InvalidDay, InvalidRange, OverlappingRanges
from ..scheduling.types import WEEKDAYS, Weekday


@dataclass(frozen=True, order=True)
class TimeRange:
    start: time
    end: time

    def overlaps(self, other: "TimeRange") -> bool:
        # Touching ranges (10:00-11:00, 11:00-12:00) do not overlap
        return self.start < other.end and other.start < self.end

    def to_dict(self) -> dict:
        return {"start": format_time_of_day(self.start), "end": format_time_of_day(self.end)}


@dataclass(frozen=True)
class DaySchedule:
    enabled: bool
    ranges: tuple = ()

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "ranges": [r.to_dict() for r in self.ranges]}


WeeklyTemplate = dict  # dict[Weekday, DaySchedule]


def _parse_range(day: Weekday, raw: Any) -> TimeRange:
    if isinstance(raw, TimeRange):
        start, end = raw.start, raw.end
    elif isinstance(raw, Mapping):
        start, end = raw.get("start"), raw.get("end")
    else:
        try:
            start, end = raw
        except (TypeError, ValueError):
            raise InvalidRange(f"Invalid time range {raw!r} on {day.label}", day=day.value) from None

    try:
        start_time = parse_time_of_day(start)
        end_time = parse_time_of_day(end)
    except ValueError as e:
        raise InvalidRange(f"{e} on {day.label}", day=day.value) from None

    if start_time >= end_time:
        raise InvalidRange(
            f"Start time must be before end time on {day.label} "
            f"({format_time_of_day(start_time)}-{format_time_of_day(end_time)})",
            day=day.value,
            start=format_time_of_day(start_time),
            end=format_time_of_day(end_time),
        )
    return TimeRange(start_time, end_time)


def _parse_day(day: Weekday, raw: Any) -> DaySchedule:
    if isinstance(raw, DaySchedule):
        enabled, raw_ranges = raw.enabled, raw.ranges
    elif isinstance(raw, Mapping):
        enabled, raw_ranges = bool(raw.get("enabled", False)), raw.get("ranges") or ()
    else:
        raise InvalidDay(f"Invalid schedule entry for {day.label}", day=day.value)

    ranges = sorted(_parse_range(day, r) for r in raw_ranges)

    if enabled and not ranges:
        raise EmptyRanges(f"Add at least one time range for {day.label}", day=day.value)

    for previous, current in zip(ranges, ranges[1:]):
        if previous.overlaps(current):
            raise OverlappingRanges(
                f"Time ranges overlap on {day.label}: "
                f"{format_time_of_day(previous.start)}-{format_time_of_day(previous.end)} and "
                f"{format_time_of_day(current.start)}-{format_time_of_day(current.end)}",
                day=day.value,
            )

    return DaySchedule(enabled=enabled, ranges=tuple(ranges))


def _iter_entries(raw: Union[Mapping, Iterable]) -> Iterable[tuple]:
    """Yield (day, entry) pairs from a mapping or a list of {"day": ..., ...} entries"""
    if isinstance(raw, Mapping):
        yield from raw.items()
        return
    for entry in raw:
        if isinstance(entry, Mapping):
            yield entry.get("day"), entry
        else:
            raise InvalidDay(f"Invalid schedule entry {entry!r}")


def build_template(raw: Union[Mapping, Iterable]) -> WeeklyTemplate:
    """
    Validate a raw weekly template.

    Raises:
        InvalidDay: Sunday (enabled or not), unknown or repeated days
        InvalidRange: unparseable times or start >= end
        EmptyRanges: an enabled day without ranges
        OverlappingRanges: overlapping ranges on one day
    """
    template: WeeklyTemplate = {}
    for raw_day, entry in _iter_entries(raw):
        day = Weekday.parse(raw_day)
        if day in template:
            raise InvalidDay(f"{day.label} is listed more than once", day=day.value)
        template[day] = _parse_day(day, entry)

    return {day: template[day] for day in WEEKDAYS if day in template}


def template_to_json(template: WeeklyTemplate) -> dict:
    return {day.value: schedule.to_dict() for day, schedule in template.items()}


def template_from_json(data: Mapping) -> WeeklyTemplate:
    """Rebuild a stored template (stored data is already validated)"""
    return build_template(data or {})
