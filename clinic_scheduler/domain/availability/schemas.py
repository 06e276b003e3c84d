"""Availability domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .template import WeeklyTemplate


class TimeRangeIn(BaseModel):
    """One open interval, HH:MM 24-hour times"""

    start: str
    end: str


class DayScheduleIn(BaseModel):
    # Validated by the availability store so bad days map to InvalidDay, not 422
    day: str
    enabled: bool = False
    ranges: list[TimeRangeIn] = Field(default_factory=list)


class WeeklyScheduleUpdate(BaseModel):
    """Schema for replacing a provider's weekly template"""

    weeklySchedule: list[DayScheduleIn]

    def to_entries(self) -> list[dict]:
        return [entry.model_dump() for entry in self.weeklySchedule]


class TimeRangeOut(BaseModel):
    start: str
    end: str


class DayScheduleOut(BaseModel):
    day: str
    enabled: bool
    ranges: list[TimeRangeOut]


class WeeklyScheduleResponse(BaseModel):
    providerId: str
    weeklySchedule: list[DayScheduleOut]
    updatedAt: Optional[datetime] = None


def schedule_response(provider_id: str, template: WeeklyTemplate) -> WeeklyScheduleResponse:
    return WeeklyScheduleResponse(
        providerId=provider_id,
        weeklySchedule=[
            DayScheduleOut(day=day.value, **schedule.to_dict()) for day, schedule in template.items()
        ],
    )


class SlotOut(BaseModel):
    slot_index: int
    start: str
    end: str
    label: str


class SlotListingResponse(BaseModel):
    providerId: str
    day: str
    date: Optional[str] = None
    availableSlots: list[int]
    bookableSlots: list[int]
    slots: list[SlotOut]


class DayOverviewOut(BaseModel):
    date: str
    day: str
    status: str  # available, full, not_configured
    availableSlots: list[int]
    bookableSlots: list[int]
