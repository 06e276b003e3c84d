"""Availability router - FastAPI endpoints for weekly schedules and slot lookup"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_actor
from ...database import get_db
from ..scheduling.errors import Forbidden
from ..scheduling.permissions import Actor, ensure_can_manage_schedule
from ..scheduling.slot_resolver import SlotResolver
from ..scheduling.types import Role
from .schemas import (
    DayOverviewOut,
    SlotListingResponse,
    WeeklyScheduleResponse,
    WeeklyScheduleUpdate,
    schedule_response,
)
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_slot_resolver(db: Session = Depends(get_db)) -> SlotResolver:
    """Dependency injection for SlotResolver"""
    return SlotResolver(db)


@router.get("", response_model=list[str])
def list_providers(
    _: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Provider ids that have published a weekly schedule"""
    return service.list_providers()


@router.get("/me", response_model=WeeklyScheduleResponse)
def get_my_schedule(
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get the calling provider's weekly schedule"""
    if actor.role != Role.PROVIDER:
        raise Forbidden("Only providers have a weekly schedule")
    return schedule_response(actor.user_id, service.get_schedule(actor.user_id))


@router.get("/{provider_id}", response_model=WeeklyScheduleResponse)
def get_schedule(
    provider_id: str,
    _: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Get a provider's weekly schedule"""
    return schedule_response(provider_id, service.get_schedule(provider_id))


@router.put("/{provider_id}", response_model=WeeklyScheduleResponse)
def set_schedule(
    provider_id: str,
    data: WeeklyScheduleUpdate,
    actor: Actor = Depends(get_current_actor),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Replace a provider's weekly schedule (all-or-nothing)"""
    ensure_can_manage_schedule(actor, provider_id)
    template = service.set_schedule(provider_id, data.to_entries())
    return schedule_response(provider_id, template)


@router.get("/{provider_id}/slots", response_model=SlotListingResponse)
def get_slots(
    provider_id: str,
    day: Optional[str] = Query(None, description="monday .. saturday"),
    on_date: Optional[date] = Query(None, alias="date"),
    _: Actor = Depends(get_current_actor),
    resolver: SlotResolver = Depends(get_slot_resolver),
):
    """Available and bookable slots for one day (weekday binds to its next occurrence)"""
    listing = resolver.slot_listing(provider_id, day, on_date)
    return SlotListingResponse(
        providerId=provider_id,
        day=listing["day"],
        date=listing["date"],
        availableSlots=listing["available_slots"],
        bookableSlots=listing["bookable_slots"],
        slots=listing["slots"],
    )


@router.get("/{provider_id}/week", response_model=list[DayOverviewOut])
def get_week_overview(
    provider_id: str,
    week_of: Optional[date] = Query(None),
    _: Actor = Depends(get_current_actor),
    resolver: SlotResolver = Depends(get_slot_resolver),
):
    """Monday-Saturday availability status for a week"""
    return [
        DayOverviewOut(
            date=entry["date"],
            day=entry["day"],
            status=entry["status"],
            availableSlots=entry["available_slots"],
            bookableSlots=entry["bookable_slots"],
        )
        for entry in resolver.week_overview(provider_id, week_of)
    ]
