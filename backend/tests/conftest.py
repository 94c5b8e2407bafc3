# backend/tests/conftest.py
"""
Pytest configuration for the TutorConnect backend.

Environment is pinned BEFORE any tutorconnect import so the settings
singleton picks up the test identity provider and an in-memory database.
"""

import os

os.environ["IDENTITY_PROVIDER"] = "jwt"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["SECRET_KEY"] = "test-secret-key-for-hs256-signing"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tutorconnect.api.dependencies import get_db
from tutorconnect.auth import create_access_token
from tutorconnect.core.config import settings
from tutorconnect.core.enums import BookingStatus, DayOfWeek, RoleName, VerificationState
from tutorconnect.database import Base
from tutorconnect.main import app
from tutorconnect.models.booking import Booking
from tutorconnect.models.tutor import AvailabilityWindow, TutorProfile, TutorSubject
from tutorconnect.models.user import User

settings.is_testing = True

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)

ALL_DAY = (time(0, 0), time(23, 59))


def _next_weekday(day: DayOfWeek, weeks_ahead: int = 1) -> date:
    """A date falling on ``day`` at least ``weeks_ahead`` weeks from today."""
    today = datetime.now(timezone.utc).date()
    target = list(DayOfWeek).index(day)
    offset = (target - today.weekday()) % 7
    return today + timedelta(days=offset + 7 * weeks_ahead)


def _utc_at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


@pytest.fixture
def next_weekday() -> Callable[..., date]:
    return _next_weekday


@pytest.fixture
def utc_at() -> Callable[..., datetime]:
    return _utc_at


@pytest.fixture(scope="function")
def db() -> Iterable[Session]:
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    yield session
    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db: Session) -> Iterable[TestClient]:
    """Create a test client bound to the test session."""

    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(
        role: RoleName = RoleName.STUDENT,
        first_name: str = "Test",
        last_name: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            firebase_uid=f"uid-{role.value}-{n}",
            email=f"{role.value}{n}@example.com",
            first_name=first_name,
            last_name=last_name or f"{role.value.title()}{n}",
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def make_tutor(db: Session, make_user: Callable[..., User]) -> Callable[..., TutorProfile]:
    """
    Build a tutor profile.

    ``availability`` maps day names to (start, end) clock-time pairs; by
    default the tutor is available all day, every day.
    """

    def _make_tutor(
        state: VerificationState = VerificationState.VERIFIED,
        subjects: Iterable[str] = ("Mathematics",),
        hourly_rate: Optional[str] = "40.00",
        timezone_name: str = "UTC",
        availability: Optional[dict] = None,
        teaches_online: bool = True,
        teaches_in_person: bool = False,
        first_name: str = "Tutor",
    ) -> TutorProfile:
        owner = make_user(RoleName.TUTOR, first_name=first_name)
        windows = availability or {day.value: [ALL_DAY] for day in DayOfWeek}
        profile = TutorProfile(
            user_id=owner.id,
            bio="Experienced tutor",
            hourly_rate=Decimal(hourly_rate) if hourly_rate is not None else None,
            education=[{"degree": "BSc", "institution": "State University", "yearCompleted": 2015}],
            teaches_online=teaches_online,
            teaches_in_person=teaches_in_person,
            timezone=timezone_name,
            verification_state=state.value,
            profile_completed=state != VerificationState.INCOMPLETE,
            submitted_at=datetime.now(timezone.utc),
        )
        profile.subjects = [TutorSubject(name=name, level="intermediate") for name in subjects]
        profile.availability = [
            AvailabilityWindow(day_of_week=day, start_time=start, end_time=end)
            for day, slots in windows.items()
            for start, end in slots
        ]
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make_tutor


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    """Insert a booking directly, bypassing the engine's validation."""

    def _make_booking(
        tutor: TutorProfile,
        student: User,
        start: datetime,
        minutes: int = 60,
        status: BookingStatus = BookingStatus.SCHEDULED,
        subject: str = "Mathematics",
        price: str = "40.00",
    ) -> Booking:
        booking = Booking(
            student_id=student.id,
            tutor_profile_id=tutor.id,
            subject=subject,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            duration_minutes=minutes,
            hourly_rate=Decimal("40.00"),
            total_price=Decimal(price),
            status=status.value,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make_booking


def _auth_headers_for(user: User) -> dict:
    token = create_access_token(user.firebase_uid, email=user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_for() -> Callable[[User], dict]:
    return _auth_headers_for


@pytest.fixture
def student(make_user: Callable[..., User]) -> User:
    return make_user(RoleName.STUDENT, first_name="Sam")


@pytest.fixture
def admin(make_user: Callable[..., User]) -> User:
    return make_user(RoleName.ADMIN, first_name="Ada")


@pytest.fixture
def tutor(make_tutor: Callable[..., TutorProfile]) -> TutorProfile:
    return make_tutor()


@pytest.fixture
def auth_headers_student(student: User) -> dict:
    return _auth_headers_for(student)


@pytest.fixture
def auth_headers_admin(admin: User) -> dict:
    return _auth_headers_for(admin)


@pytest.fixture
def auth_headers_tutor(tutor: TutorProfile) -> dict:
    return _auth_headers_for(tutor.user)
