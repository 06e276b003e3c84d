"""
Time Grid

The finite, ordered set of fixed-width bookable intervals in a day.
Slot ``i`` covers ``[start + i * width, start + (i + 1) * width)``.
The grid is immutable and loaded once from configuration.
"""

from datetime import time
from functools import lru_cache
from typing import List, Tuple

from ...config import GRID_END, GRID_START, SLOT_DURATION_MINUTES
from ...shared.validators import parse_time_of_day
from .errors import InvalidRange, OutOfRange

MINUTES_PER_DAY = 24 * 60


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(minutes: int) -> time:
    # The end of the last slot may sit exactly on midnight, reported as 00:00
    minutes %= MINUTES_PER_DAY
    return time(minutes // 60, minutes % 60)


def format_time_label(value: time) -> str:
    """12-hour display label, e.g. '9:00 AM'"""
    hour = value.hour % 12 or 12
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour}:{value.minute:02d} {suffix}"


class TimeGrid:
    """Fixed-width slot grid over a single civil day"""

    def __init__(self, start: time, end: time, slot_minutes: int):
        if slot_minutes <= 0:
            raise ValueError("Slot duration must be a positive number of minutes")

        start_minutes = _to_minutes(start)
        end_minutes = _to_minutes(end)
        # "00:00" as the end of the grid means midnight at the end of the day
        if end_minutes == 0:
            end_minutes = MINUTES_PER_DAY

        span = end_minutes - start_minutes
        if span <= 0:
            raise ValueError(f"Grid end {end} must be after grid start {start}")
        if span % slot_minutes:
            raise ValueError(
                f"Grid span of {span} minutes is not a multiple of {slot_minutes}-minute slots"
            )

        self._start = start_minutes
        self._end = end_minutes
        self.slot_minutes = slot_minutes
        self.slot_count = span // slot_minutes

    def __len__(self) -> int:
        return self.slot_count

    def __repr__(self) -> str:
        return (
            f"TimeGrid(start={_from_minutes(self._start)}, end={_from_minutes(self._end)}, "
            f"slot_minutes={self.slot_minutes})"
        )

    @property
    def start(self) -> time:
        return _from_minutes(self._start)

    @property
    def end(self) -> time:
        return _from_minutes(self._end)

    def _check_index(self, idx: int) -> None:
        if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < self.slot_count:
            raise OutOfRange(
                f"Slot index {idx} is outside the grid [0, {self.slot_count})",
                slot_index=idx,
                slot_count=self.slot_count,
            )

    def slot_to_range(self, idx: int) -> Tuple[time, time]:
        """Start and end time of slot ``idx``"""
        self._check_index(idx)
        slot_start = self._start + idx * self.slot_minutes
        return _from_minutes(slot_start), _from_minutes(slot_start + self.slot_minutes)

    def range_to_slots(self, start: time, end: time) -> List[int]:
        """Slot indices fully contained in ``[start, end)``, in order.

        Returns an empty list when no slot fits; raises InvalidRange if
        ``start >= end``.
        """
        start_minutes = _to_minutes(start)
        end_minutes = _to_minutes(end)
        if start_minutes >= end_minutes:
            raise InvalidRange(
                f"Range start {start.strftime('%H:%M')} must be before end {end.strftime('%H:%M')}",
                start=start.strftime("%H:%M"),
                end=end.strftime("%H:%M"),
            )

        # First slot starting at or after `start`, last slot ending at or before `end`
        first = max(0, -(-(start_minutes - self._start) // self.slot_minutes))
        last = min(self.slot_count, (end_minutes - self._start) // self.slot_minutes)
        return list(range(first, last)) if first < last else []

    def slot_containing(self, value: time) -> int:
        """Index of the slot that contains ``value``; raises OutOfRange outside the grid"""
        minutes = _to_minutes(value)
        if not self._start <= minutes < self._end:
            raise OutOfRange(
                f"{value.strftime('%H:%M')} is outside the bookable hours "
                f"{self.start.strftime('%H:%M')}-{_from_minutes(self._end).strftime('%H:%M')}",
                time=value.strftime("%H:%M"),
            )
        return (minutes - self._start) // self.slot_minutes

    def label(self, idx: int) -> str:
        """Display label for a slot, e.g. '9:00 AM – 9:30 AM'"""
        slot_start, slot_end = self.slot_to_range(idx)
        return f"{format_time_label(slot_start)} – {format_time_label(slot_end)}"


@lru_cache(maxsize=1)
def get_time_grid() -> TimeGrid:
    """The process-wide grid built from configuration"""
    return TimeGrid(
        parse_time_of_day(GRID_START),
        parse_time_of_day(GRID_END),
        SLOT_DURATION_MINUTES,
    )
