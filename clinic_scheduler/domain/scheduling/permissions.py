"""
Authorization checks for scheduling operations.

The acting identity is supplied by the caller on every call; nothing here
reads ambient session state.
"""

from dataclasses import dataclass

from .errors import Forbidden
from .types import Role


@dataclass(frozen=True)
class Actor:
    """The authenticated caller: an opaque user id plus a role"""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_provider(self, provider_id: str) -> bool:
        return self.role == Role.PROVIDER and self.user_id == provider_id

    def is_patient(self, patient_id: str) -> bool:
        return self.role == Role.PATIENT and self.user_id == patient_id


def ensure_can_manage_schedule(actor: Actor, provider_id: str) -> None:
    """Only the provider (or an admin) may change their weekly template"""
    if not (actor.is_provider(provider_id) or actor.is_admin):
        raise Forbidden(
            "Only the provider or an administrator can change this schedule",
            provider_id=provider_id,
        )


def ensure_can_book(actor: Actor, patient_id: str) -> None:
    """Patients book for themselves; admins may book on behalf of a patient"""
    if actor.is_patient(patient_id):
        return
    if actor.is_admin:
        if not patient_id or patient_id == actor.user_id:
            raise Forbidden("Administrators must name the patient they are booking for")
        return
    raise Forbidden("Only the patient or an administrator can book this appointment")


def ensure_can_confirm(actor: Actor, appointment) -> None:
    if not (actor.is_provider(appointment.provider_id) or actor.is_admin):
        raise Forbidden(
            "Only the appointment's provider can confirm it", appointment_id=appointment.id
        )


def ensure_can_complete(actor: Actor, appointment) -> None:
    if not actor.is_provider(appointment.provider_id):
        raise Forbidden(
            "Only the appointment's provider can complete it", appointment_id=appointment.id
        )


def ensure_participant(actor: Actor, appointment, action: str) -> None:
    """Owning patient or owning provider (cancel, reschedule)"""
    if not (actor.is_patient(appointment.patient_id) or actor.is_provider(appointment.provider_id)):
        raise Forbidden(
            f"Only the appointment's patient or provider can {action} it",
            appointment_id=appointment.id,
        )


def ensure_can_view(actor: Actor, appointment) -> None:
    if not (
        actor.is_admin
        or actor.is_patient(appointment.patient_id)
        or actor.is_provider(appointment.provider_id)
    ):
        raise Forbidden("You do not have access to this appointment", appointment_id=appointment.id)
