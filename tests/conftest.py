"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all DoseKeeper tests.
Fixtures include database sessions, test clients and sample data.
"""

import os
import sys
from datetime import datetime, date, timedelta
from typing import Generator, Dict, Any, Optional

import pytest

# Keep the app's own engine off disk during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from models import User, Medication, Schedule, DoseLog, DoseLogStatus, MedicationForm
from app import app


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session"""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine
    )

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def sample_user_data() -> Dict[str, Any]:
    """Sample user data for creating test users"""
    return {
        "email": "jane.doe@example.com",
        "display_name": "Jane Doe",
        "external_id": "auth0|jane",
    }


@pytest.fixture
def sample_medication_data() -> Dict[str, Any]:
    """Sample medication data for creating test medications"""
    return {
        "name": "Metformin",
        "dosage": "500mg",
        "form": MedicationForm.PILL,
        "instructions": "Take with meals",
        "pills_remaining": 30,
        "total_pills": 60,
        "refill_reminder_threshold": 7,
        "active": True,
        "start_date": date.today() - timedelta(days=60),
    }


@pytest.fixture
def test_user(db_session: Session, sample_user_data: Dict) -> User:
    """Create and return a test user"""
    user = User(**sample_user_data)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_medication(db_session: Session, test_user: User, sample_medication_data: Dict) -> Medication:
    """Create and return a test medication linked to the test user"""
    medication = Medication(user_id=test_user.id, **sample_medication_data)
    db_session.add(medication)
    db_session.commit()
    db_session.refresh(medication)
    return medication


@pytest.fixture
def test_schedule(db_session: Session, test_medication: Medication) -> Schedule:
    """Every-day 08:00 schedule for the test medication"""
    schedule = Schedule(
        medication_id=test_medication.id,
        time_of_day="08:00",
        days_of_week=None,
        with_food=True,
    )
    db_session.add(schedule)
    db_session.commit()
    db_session.refresh(schedule)
    return schedule


@pytest.fixture
def evening_schedule(db_session: Session, test_medication: Medication) -> Schedule:
    """Every-day 20:00 schedule for the test medication"""
    schedule = Schedule(
        medication_id=test_medication.id,
        time_of_day="20:00",
    )
    db_session.add(schedule)
    db_session.commit()
    db_session.refresh(schedule)
    return schedule


@pytest.fixture
def make_dose_log(db_session: Session):
    """Factory for persisted dose logs"""
    def _make(
        schedule: Schedule,
        scheduled_time: datetime,
        status: DoseLogStatus = DoseLogStatus.TAKEN,
        taken_at: Optional[datetime] = None,
        snooze_until: Optional[datetime] = None
    ) -> DoseLog:
        log = DoseLog(
            medication_id=schedule.medication_id,
            schedule_id=schedule.id,
            scheduled_time=scheduled_time,
            status=status,
            taken_at=taken_at if taken_at is not None else (
                scheduled_time if status == DoseLogStatus.TAKEN else None
            ),
            snooze_until=snooze_until,
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _make


# ==================== MARKERS ====================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
