"""Shared validation utilities"""

import re
from datetime import time
from typing import Optional, Union

TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time_of_day(value: Union[str, time]) -> time:
    """
    Parse a civil time of day with minute resolution.

    Args:
        value: "HH:MM" (24-hour) string or a time object

    Returns:
        time object with seconds and microseconds dropped

    Raises:
        ValueError: If the value is not a valid HH:MM time
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    match = TIME_OF_DAY_PATTERN.match(str(value or "").strip())
    if not match:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return time(hour, minute)


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


def normalize_text(value: Optional[str]) -> str:
    """Collapse surrounding whitespace; None becomes an empty string"""
    return (value or "").strip()
