"""Shared test fixtures: a file-backed SQLite database per test, fixed clock, API client."""

import os
import tempfile
from datetime import date, time

# Configuration is read at import time, so set it before importing the app
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'clinic_scheduler_test.db')}"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from clinic_scheduler import models  # noqa: E402, F401
from clinic_scheduler.auth import create_access_token  # noqa: E402
from clinic_scheduler.database import Base, build_engine, get_db  # noqa: E402
from clinic_scheduler.domain.appointments.router import get_booking_service  # noqa: E402
from clinic_scheduler.domain.appointments.service import BookingService  # noqa: E402
from clinic_scheduler.domain.availability.router import get_slot_resolver  # noqa: E402
from clinic_scheduler.domain.availability.service import AvailabilityService  # noqa: E402
from clinic_scheduler.domain.scheduling.permissions import Actor  # noqa: E402
from clinic_scheduler.domain.scheduling.slot_resolver import SlotResolver  # noqa: E402
from clinic_scheduler.domain.scheduling.time_grid import TimeGrid  # noqa: E402
from clinic_scheduler.domain.scheduling.types import Role  # noqa: E402
from clinic_scheduler.locking import SlotLocks  # noqa: E402
from clinic_scheduler.main import app  # noqa: E402

# 2026-10-19 is a Monday
TODAY = date(2026, 10, 19)

PROVIDER = Actor(user_id="dr-1", role=Role.PROVIDER)
OTHER_PROVIDER = Actor(user_id="dr-2", role=Role.PROVIDER)
PATIENT_A = Actor(user_id="patient-a", role=Role.PATIENT)
PATIENT_B = Actor(user_id="patient-b", role=Role.PATIENT)
ADMIN = Actor(user_id="admin-1", role=Role.ADMIN)


def fixed_today() -> date:
    return TODAY


@pytest.fixture
def grid() -> TimeGrid:
    """09:00-17:00 in 30-minute slots (16 slots)"""
    return TimeGrid(time(9, 0), time(17, 0), 30)


@pytest.fixture
def engine(tmp_path):
    """File-backed so every thread gets its own real connection"""
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks() -> SlotLocks:
    return SlotLocks(timeout=5, use_redis=False)


@pytest.fixture
def availability(db) -> AvailabilityService:
    return AvailabilityService(db)


@pytest.fixture
def resolver(db, grid) -> SlotResolver:
    return SlotResolver(db, grid=grid, today=fixed_today)


@pytest.fixture
def booking(db, grid, locks) -> BookingService:
    return BookingService(db, grid=grid, locks=locks, today=fixed_today)


@pytest.fixture
def monday_morning(availability):
    """dr-1 works Monday 09:00-11:00 (slots 0-3) and Tuesday 13:00-15:00 (slots 8-11)"""
    return availability.set_schedule(
        PROVIDER.user_id,
        {
            "monday": {"enabled": True, "ranges": [{"start": "09:00", "end": "11:00"}]},
            "tuesday": {"enabled": True, "ranges": [{"start": "13:00", "end": "15:00"}]},
            "wednesday": {"enabled": False, "ranges": []},
        },
    )


@pytest.fixture
def client(session_factory, grid, locks):
    """API client bound to the per-test database and the fixed clock"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_booking_service(db: Session = Depends(get_db)) -> BookingService:
        return BookingService(db, grid=grid, locks=locks, today=fixed_today)

    def override_slot_resolver(db: Session = Depends(get_db)) -> SlotResolver:
        return SlotResolver(db, grid=grid, today=fixed_today)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_service] = override_booking_service
    app.dependency_overrides[get_slot_resolver] = override_slot_resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(actor: Actor) -> dict:
    token = create_access_token(actor.user_id, actor.role)
    return {"Authorization": f"Bearer {token}"}
