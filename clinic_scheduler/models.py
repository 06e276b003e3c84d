from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.sql import func

from .database import Base

# Statuses that hold a slot; kept in sync with AppointmentStatus.is_active
ACTIVE_STATUS_SQL = "status IN ('scheduled', 'confirmed')"


class WeeklySchedule(Base):
    """A provider's recurring weekly availability template.

    ``days`` maps weekday name -> {"enabled": bool, "ranges": [{"start": "HH:MM", "end": "HH:MM"}]}
    and is always replaced as a whole.
    """

    __tablename__ = "weekly_schedules"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), unique=True, index=True, nullable=False)
    days = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String(64), nullable=False, index=True)
    patient_id = Column(String(64), nullable=False, index=True)
    weekday = Column(String(10), nullable=False)  # monday .. saturday
    appointment_date = Column(Date, nullable=False)  # concrete date the slot is booked on
    slot_index = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, confirmed, completed, cancelled
    cancelled_by = Column(String(64), nullable=True)  # user id of whoever cancelled
    rescheduled_from_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # Exclusivity: one active appointment per provider/date/slot
        Index(
            "uq_appointments_active_slot",
            "provider_id",
            "appointment_date",
            "slot_index",
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_SQL),
            postgresql_where=text(ACTIVE_STATUS_SQL),
        ),
        Index("ix_appointments_provider_date", "provider_id", "appointment_date"),
    )
