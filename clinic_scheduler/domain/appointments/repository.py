"""Appointment repository - the appointment ledger.

Writes here only flush; the booking service owns commit and rollback so a
multi-step change (reschedule) lands in one transaction.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment
from ..scheduling.types import ACTIVE_STATUSES, AppointmentStatus

ACTIVE_VALUES = [s.value for s in ACTIVE_STATUSES]


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def find_active(
        db: Session,
        provider_id: str,
        on_date: date,
        slot_index: int,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        """The scheduled/confirmed appointment holding a slot, if any"""
        query = db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == on_date,
            Appointment.slot_index == slot_index,
            Appointment.status.in_(ACTIVE_VALUES),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    @staticmethod
    def occupied_slots(db: Session, provider_id: str, on_date: date) -> set[int]:
        """Slot indices held by active appointments for a provider on a date"""
        rows = (
            db.query(Appointment.slot_index)
            .filter(
                Appointment.provider_id == provider_id,
                Appointment.appointment_date == on_date,
                Appointment.status.in_(ACTIVE_VALUES),
            )
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        """Add a new appointment and flush so constraint violations surface now"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def transition(
        db: Session,
        appointment_id: int,
        from_status: AppointmentStatus,
        to_status: AppointmentStatus,
        **fields,
    ) -> bool:
        """
        Conditionally move an appointment between statuses.

        The UPDATE only matches while the row still has ``from_status``, so two
        racing transitions cannot both apply. Returns True if the row changed.
        """
        updated = (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.status == from_status.value)
            .update({"status": to_status.value, **fields}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def _filtered(db: Session, status: Optional[AppointmentStatus] = None):
        query = db.query(Appointment)
        if status:
            query = query.filter(Appointment.status == status.value)
        return query

    @staticmethod
    def list_by_provider(
        db: Session,
        provider_id: str,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
    ) -> list[Appointment]:
        query = AppointmentRepository._filtered(db, status).filter(
            Appointment.provider_id == provider_id
        )
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        return query.order_by(Appointment.appointment_date, Appointment.slot_index, Appointment.id).all()

    @staticmethod
    def list_by_patient(
        db: Session, patient_id: str, status: Optional[AppointmentStatus] = None
    ) -> list[Appointment]:
        query = AppointmentRepository._filtered(db, status).filter(
            Appointment.patient_id == patient_id
        )
        return query.order_by(Appointment.appointment_date, Appointment.slot_index, Appointment.id).all()

    @staticmethod
    def list_all(db: Session, status: Optional[AppointmentStatus] = None) -> list[Appointment]:
        """Every appointment, newest date first (admin view)"""
        query = AppointmentRepository._filtered(db, status)
        return query.order_by(
            Appointment.appointment_date.desc(), Appointment.slot_index, Appointment.id
        ).all()

    @staticmethod
    def status_counts(
        db: Session, provider_id: Optional[str] = None, patient_id: Optional[str] = None
    ) -> dict:
        """Appointment counts per status, with zeroes for missing statuses"""
        query = db.query(Appointment.status, func.count(Appointment.id))
        if provider_id:
            query = query.filter(Appointment.provider_id == provider_id)
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)

        counts = {status.value: 0 for status in AppointmentStatus}
        for status, count in query.group_by(Appointment.status).all():
            counts[status] = count
        return counts
