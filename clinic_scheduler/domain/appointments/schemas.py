"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Appointment
from ..scheduling.time_grid import TimeGrid


class AppointmentCreate(BaseModel):
    """Schema for reserving a slot; give a weekday, a date, or both"""

    providerId: str
    patientId: Optional[str] = None  # defaults to the caller; required for admins
    day: Optional[str] = None
    appointmentDate: Optional[date] = None
    slotIndex: int
    reason: Optional[str] = None


class RescheduleRequest(BaseModel):
    day: Optional[str] = None
    appointmentDate: Optional[date] = None
    slotIndex: int


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    providerId: str
    patientId: str
    day: str
    appointmentDate: date
    slotIndex: int
    startTime: str
    endTime: str
    slotLabel: str
    reason: str
    status: str
    cancelledBy: Optional[str] = None
    rescheduledFromId: Optional[int] = None
    confirmedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AppointmentStatsResponse(BaseModel):
    scheduled: int
    confirmed: int
    completed: int
    cancelled: int
    total: int
    active: int


def appointment_response(appointment: Appointment, grid: TimeGrid) -> AppointmentResponse:
    start, end = grid.slot_to_range(appointment.slot_index)
    return AppointmentResponse(
        id=appointment.id,
        providerId=appointment.provider_id,
        patientId=appointment.patient_id,
        day=appointment.weekday,
        appointmentDate=appointment.appointment_date,
        slotIndex=appointment.slot_index,
        startTime=start.strftime("%H:%M"),
        endTime=end.strftime("%H:%M"),
        slotLabel=grid.label(appointment.slot_index),
        reason=appointment.reason,
        status=appointment.status,
        cancelledBy=appointment.cancelled_by,
        rescheduledFromId=appointment.rescheduled_from_id,
        confirmedAt=appointment.confirmed_at,
        completedAt=appointment.completed_at,
        cancelledAt=appointment.cancelled_at,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
    )
