"""Availability repository - Database operations for weekly schedules"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import WeeklySchedule


class AvailabilityRepository:
    """Repository for weekly schedule database operations"""

    @staticmethod
    def get_by_provider(db: Session, provider_id: str) -> Optional[WeeklySchedule]:
        """Get the stored template row for a provider"""
        return db.query(WeeklySchedule).filter(WeeklySchedule.provider_id == provider_id).first()

    @staticmethod
    def replace_days(db: Session, provider_id: str, days: dict) -> WeeklySchedule:
        """Replace a provider's template in a single commit (insert on first save)"""
        schedule = AvailabilityRepository.get_by_provider(db, provider_id)
        try:
            if schedule is None:
                schedule = WeeklySchedule(provider_id=provider_id, days=days)
                db.add(schedule)
            else:
                schedule.days = days
            db.commit()
        except IntegrityError:
            # Another request created the row first; overwrite it instead
            db.rollback()
            schedule = AvailabilityRepository.get_by_provider(db, provider_id)
            schedule.days = days
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(schedule)
        return schedule

    @staticmethod
    def list_provider_ids(db: Session) -> list[str]:
        """Providers that have published a template"""
        rows = db.query(WeeklySchedule.provider_id).order_by(WeeklySchedule.provider_id).all()
        return [row[0] for row in rows]
