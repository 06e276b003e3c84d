"""Appointment router - FastAPI endpoints for booking and the appointment lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_actor
from ...database import get_db
from ..scheduling.errors import Forbidden
from ..scheduling.permissions import Actor
from ..scheduling.types import AppointmentStatus, Role
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatsResponse,
    RescheduleRequest,
    appointment_response,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# LISTING
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
def list_all_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """All appointments (admin only)"""
    if not actor.is_admin:
        raise Forbidden("Only administrators can list all appointments")
    return [appointment_response(a, service.grid) for a in service.list_all(status)]


@router.get("/patient", response_model=list[AppointmentResponse])
def list_patient_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    patient_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """The calling patient's appointments (admins may pass patient_id)"""
    target = patient_id or actor.user_id
    if not (actor.is_patient(target) or actor.is_admin):
        raise Forbidden("You can only list your own appointments")
    return [appointment_response(a, service.grid) for a in service.list_by_patient(target, status)]


@router.get("/provider", response_model=list[AppointmentResponse])
def list_provider_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    provider_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """The calling provider's appointments (admins may pass provider_id)"""
    target = provider_id or actor.user_id
    if not (actor.is_provider(target) or actor.is_admin):
        raise Forbidden("You can only list your own appointments")
    return [
        appointment_response(a, service.grid)
        for a in service.list_by_provider(target, status, on_date)
    ]


@router.get("/stats", response_model=AppointmentStatsResponse)
def get_appointment_stats(
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Counts per status, scoped to the caller (admins see everything)"""
    if actor.is_admin:
        return service.stats()
    if actor.role == Role.PROVIDER:
        return service.stats(provider_id=actor.user_id)
    return service.stats(patient_id=actor.user_id)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return appointment_response(service.get_appointment(appointment_id, actor), service.grid)


# ============================================================================
# BOOKING & LIFECYCLE
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
def reserve_appointment(
    data: AppointmentCreate,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Reserve a slot; the appointment starts out scheduled"""
    if actor.is_admin and not data.patientId:
        raise Forbidden("Administrators must name the patient they are booking for")

    appointment = service.reserve(
        actor,
        provider_id=data.providerId,
        patient_id=data.patientId or actor.user_id,
        weekday=data.day,
        slot_index=data.slotIndex,
        reason=data.reason,
        on_date=data.appointmentDate,
    )
    return appointment_response(appointment, service.grid)


@router.patch("/{appointment_id}/confirm", response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return appointment_response(service.confirm(appointment_id, actor), service.grid)


@router.patch("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return appointment_response(service.complete(appointment_id, actor), service.grid)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    return appointment_response(service.cancel(appointment_id, actor), service.grid)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Move an appointment to another slot; returns the new appointment"""
    appointment = service.reschedule(
        appointment_id,
        new_weekday=data.day,
        new_slot_index=data.slotIndex,
        actor=actor,
        new_date=data.appointmentDate,
    )
    return appointment_response(appointment, service.grid)
