"""
Booking service - the appointment state machine and conflict authority.

Lifecycle:
    scheduled -> confirmed -> completed
    scheduled -> cancelled
    confirmed -> cancelled

Reserve and reschedule hold a per-slot lock for their check-and-write, and
the partial unique index on active appointments rejects anything that slips
past it. Either way a conflict surfaces as SlotTaken and the transaction is
rolled back; no operation leaves a partially applied change behind.
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import REASON_MAX_LENGTH, REASON_MIN_LENGTH
from ...locking import SlotLocks, slot_lock_key, slot_locks
from ...models import Appointment
from ...shared.validators import normalize_text
from ..scheduling.errors import (
    InvalidDay,
    InvalidReason,
    InvalidTransition,
    NotFound,
    SlotNotOffered,
    SlotTaken,
)
from ..scheduling.permissions import (
    Actor,
    ensure_can_book,
    ensure_can_complete,
    ensure_can_confirm,
    ensure_can_view,
    ensure_participant,
)
from ..scheduling.slot_resolver import SlotResolver, resolve_booking_date
from ..scheduling.time_grid import TimeGrid
from ..scheduling.types import TRANSITIONS, AppointmentStatus, Weekday
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for appointment booking and lifecycle transitions"""

    def __init__(
        self,
        db: Session,
        grid: Optional[TimeGrid] = None,
        locks: Optional[SlotLocks] = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.resolver = SlotResolver(db, grid=grid, today=today)
        self.grid = self.resolver.grid
        self.locks = locks or slot_locks
        self.today = today
        self.now = now

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _validate_reason(self, reason: Optional[str]) -> str:
        cleaned = normalize_text(reason)
        if not cleaned:
            raise InvalidReason("Reason is required")
        if len(cleaned) < REASON_MIN_LENGTH:
            raise InvalidReason(
                f"Reason must be at least {REASON_MIN_LENGTH} characters",
                min_length=REASON_MIN_LENGTH,
            )
        if len(cleaned) > REASON_MAX_LENGTH:
            raise InvalidReason(
                f"Reason must not exceed {REASON_MAX_LENGTH} characters",
                max_length=REASON_MAX_LENGTH,
            )
        return cleaned

    def _resolve_slot(
        self,
        provider_id: str,
        weekday: Optional[Union[Weekday, str]],
        slot_index: int,
        on_date: Optional[date],
    ) -> tuple[Weekday, date]:
        """Bind the request to a date and make sure the provider offers the slot there"""
        day, booking_date = resolve_booking_date(weekday, on_date, self.today())

        if day not in self.resolver.enabled_days(provider_id):
            raise InvalidDay(
                f"Provider {provider_id} is not available on {day.label}",
                provider_id=provider_id,
                day=day.value,
            )

        # Raises OutOfRange for indices outside the grid
        self.grid.slot_to_range(slot_index)

        if slot_index not in self.resolver.available_slots(provider_id, day):
            raise SlotNotOffered(
                f"Slot {self.grid.label(slot_index)} is not offered on {day.label}",
                provider_id=provider_id,
                day=day.value,
                slot_index=slot_index,
            )
        return day, booking_date

    def _commit_booking(self, provider_id: str, booking_date: date, slot_index: int) -> None:
        """Commit, translating a unique-index violation into SlotTaken"""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                f"⚠️ Slot conflict on commit for provider {provider_id} "
                f"{booking_date.isoformat()} slot {slot_index}"
            )
            raise SlotTaken(
                "This slot has just been booked by someone else",
                provider_id=provider_id,
                date=booking_date.isoformat(),
                slot_index=slot_index,
            ) from e
        except Exception:
            self.db.rollback()
            raise

    def _slot_taken(self, provider_id: str, booking_date: date, slot_index: int) -> SlotTaken:
        logger.warning(
            f"🚫 Slot taken: provider {provider_id} {booking_date.isoformat()} slot {slot_index}"
        )
        return SlotTaken(
            f"Slot {self.grid.label(slot_index)} on {booking_date.isoformat()} is already booked",
            provider_id=provider_id,
            date=booking_date.isoformat(),
            slot_index=slot_index,
        )

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFound(f"Appointment {appointment_id} not found", appointment_id=appointment_id)
        return appointment

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def reserve(
        self,
        actor: Actor,
        provider_id: str,
        patient_id: str,
        weekday: Optional[Union[Weekday, str]],
        slot_index: int,
        reason: Optional[str],
        on_date: Optional[date] = None,
    ) -> Appointment:
        """Create a scheduled appointment on a free, offered slot"""
        ensure_can_book(actor, patient_id)
        cleaned_reason = self._validate_reason(reason)
        day, booking_date = self._resolve_slot(provider_id, weekday, slot_index, on_date)

        key = slot_lock_key(provider_id, booking_date, slot_index)
        with self.locks.hold(key):
            if self.repo.find_active(self.db, provider_id, booking_date, slot_index):
                raise self._slot_taken(provider_id, booking_date, slot_index)

            try:
                appointment = self.repo.create(
                    self.db,
                    provider_id=provider_id,
                    patient_id=patient_id,
                    weekday=day.value,
                    appointment_date=booking_date,
                    slot_index=slot_index,
                    reason=cleaned_reason,
                    status=AppointmentStatus.SCHEDULED.value,
                )
            except IntegrityError as e:
                self.db.rollback()
                raise self._slot_taken(provider_id, booking_date, slot_index) from e
            self._commit_booking(provider_id, booking_date, slot_index)

        self.db.refresh(appointment)
        logger.info(
            f"📅 Appointment {appointment.id} reserved: provider {provider_id}, patient {patient_id}, "
            f"{booking_date.isoformat()} slot {slot_index}"
        )
        return appointment

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply_transition(
        self, appointment: Appointment, target: AppointmentStatus, **fields
    ) -> AppointmentStatus:
        """
        Move ``appointment`` to ``target`` without committing.

        The UPDATE is conditional on the status last read. When it matches no
        row the appointment was moved by another request in between, so the
        row is reloaded and the move is checked again against the fresh
        status and retried once from it.

        Returns:
            The status the appointment actually left
        """
        for _ in range(2):
            current = AppointmentStatus(appointment.status)
            if target not in TRANSITIONS[current]:
                raise InvalidTransition(current.value, target.value)
            if self.repo.transition(self.db, appointment.id, current, target, **fields):
                return current
            self.db.rollback()
            self.db.refresh(appointment)
            logger.info(
                f"↪️ Appointment {appointment.id} moved to {appointment.status} concurrently, rechecking"
            )

        raise InvalidTransition(appointment.status, target.value)

    def _transition(
        self, appointment: Appointment, target: AppointmentStatus, **fields
    ) -> Appointment:
        try:
            current = self._apply_transition(appointment, target, **fields)
            self.db.commit()
        except InvalidTransition:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            f"🔄 Appointment {appointment.id}: {current.value} -> {target.value}"
        )
        return appointment

    def confirm(self, appointment_id: int, actor: Actor) -> Appointment:
        appointment = self._get(appointment_id)
        ensure_can_confirm(actor, appointment)
        return self._transition(appointment, AppointmentStatus.CONFIRMED, confirmed_at=self.now())

    def complete(self, appointment_id: int, actor: Actor) -> Appointment:
        appointment = self._get(appointment_id)
        ensure_can_complete(actor, appointment)
        return self._transition(appointment, AppointmentStatus.COMPLETED, completed_at=self.now())

    def cancel(self, appointment_id: int, actor: Actor) -> Appointment:
        """Cancel and free the slot immediately"""
        appointment = self._get(appointment_id)
        ensure_participant(actor, appointment, "cancel")
        return self._transition(
            appointment,
            AppointmentStatus.CANCELLED,
            cancelled_at=self.now(),
            cancelled_by=actor.user_id,
        )

    def reschedule(
        self,
        appointment_id: int,
        new_weekday: Optional[Union[Weekday, str]],
        new_slot_index: int,
        actor: Actor,
        new_date: Optional[date] = None,
    ) -> Appointment:
        """
        Move an active appointment to another slot.

        Cancels the original and reserves the new slot in a single
        transaction; if the new slot cannot be reserved the original stays
        exactly as it was.

        Returns:
            The new scheduled appointment (``rescheduled_from_id`` points at the original)
        """
        appointment = self._get(appointment_id)
        ensure_participant(actor, appointment, "reschedule")

        current = AppointmentStatus(appointment.status)
        if not current.is_active:
            raise InvalidTransition(
                current.value,
                AppointmentStatus.CANCELLED.value,
                f"Cannot reschedule a {current.value} appointment",
            )

        provider_id = appointment.provider_id
        day, booking_date = self._resolve_slot(provider_id, new_weekday, new_slot_index, new_date)

        old_key = slot_lock_key(provider_id, appointment.appointment_date, appointment.slot_index)
        new_key = slot_lock_key(provider_id, booking_date, new_slot_index)
        with self.locks.hold(old_key, new_key):
            if self.repo.find_active(
                self.db, provider_id, booking_date, new_slot_index, exclude_id=appointment.id
            ):
                raise self._slot_taken(provider_id, booking_date, new_slot_index)

            try:
                self._apply_transition(
                    appointment,
                    AppointmentStatus.CANCELLED,
                    cancelled_at=self.now(),
                    cancelled_by=actor.user_id,
                )
                replacement = self.repo.create(
                    self.db,
                    provider_id=provider_id,
                    patient_id=appointment.patient_id,
                    weekday=day.value,
                    appointment_date=booking_date,
                    slot_index=new_slot_index,
                    reason=appointment.reason,
                    status=AppointmentStatus.SCHEDULED.value,
                    rescheduled_from_id=appointment.id,
                )
            except InvalidTransition:
                raise
            except IntegrityError as e:
                self.db.rollback()
                raise self._slot_taken(provider_id, booking_date, new_slot_index) from e
            except Exception:
                self.db.rollback()
                raise
            self._commit_booking(provider_id, booking_date, new_slot_index)

        self.db.refresh(replacement)
        logger.info(
            f"🔁 Appointment {appointment.id} rescheduled as {replacement.id}: "
            f"{booking_date.isoformat()} slot {new_slot_index}"
        )
        return replacement

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int, actor: Actor) -> Appointment:
        appointment = self._get(appointment_id)
        ensure_can_view(actor, appointment)
        return appointment

    def list_by_provider(
        self,
        provider_id: str,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
    ) -> list[Appointment]:
        return self.repo.list_by_provider(self.db, provider_id, status, on_date)

    def list_by_patient(
        self, patient_id: str, status: Optional[AppointmentStatus] = None
    ) -> list[Appointment]:
        return self.repo.list_by_patient(self.db, patient_id, status)

    def list_all(self, status: Optional[AppointmentStatus] = None) -> list[Appointment]:
        return self.repo.list_all(self.db, status)

    def stats(self, provider_id: Optional[str] = None, patient_id: Optional[str] = None) -> dict:
        """Counts per status plus total and active (scheduled + confirmed)"""
        counts = self.repo.status_counts(self.db, provider_id=provider_id, patient_id=patient_id)
        return {
            **counts,
            "total": sum(counts.values()),
            "active": counts[AppointmentStatus.SCHEDULED.value]
            + counts[AppointmentStatus.CONFIRMED.value],
        }
