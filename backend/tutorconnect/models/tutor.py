# backend/tutorconnect/models/tutor.py
"""
Tutor profile models for the TutorConnect marketplace.

A TutorProfile is created empty (``incomplete``) when a tutor signs up and
carries the teaching attributes an admin reviews before the tutor becomes
searchable. Subjects and weekly availability windows live in child tables so
search can filter on them in SQL; education history is stored as JSON since
it is only ever read back whole.
"""

from datetime import datetime, time, timezone
import logging
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import VerificationState
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class TutorProfile(Base):
    """
    Teaching profile owned by a single tutor account.

    Attributes:
        user_id: Owning User (role=tutor), one profile per user
        hourly_rate: Current rate; bookings snapshot it at creation
        education: List of {degree, institution, yearCompleted}
        teaches_online / teaches_in_person: Teaching methods offered
        timezone: IANA name availability windows are expressed in
        verification_state: incomplete, pending, verified or rejected
        profile_completed: Set once a valid profile has been submitted
        rating: Mean review rating, None until the first review
    """

    __tablename__ = "tutor_profiles"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    user_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    bio = Column(Text, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    education = Column(JSON, nullable=False, default=list)
    experience_years = Column(Integer, nullable=True)
    experience_description = Column(Text, nullable=True)
    teaches_online = Column(Boolean, nullable=False, default=False)
    teaches_in_person = Column(Boolean, nullable=False, default=False)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")

    verification_state = Column(
        String(20), nullable=False, default=VerificationState.INCOMPLETE.value, index=True
    )
    profile_completed = Column(Boolean, nullable=False, default=False)
    rating = Column(Numeric(3, 2), nullable=True)
    review_count = Column(Integer, nullable=False, default=0)

    submitted_at = Column(UTCDateTime, nullable=True)
    verified_at = Column(UTCDateTime, nullable=True)
    verified_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now(), nullable=True)

    user = relationship("User", back_populates="tutor_profile", foreign_keys=[user_id])
    verified_by = relationship("User", foreign_keys=[verified_by_id])
    subjects = relationship(
        "TutorSubject",
        back_populates="tutor_profile",
        cascade="all, delete-orphan",
        order_by="TutorSubject.name",
    )
    availability = relationship(
        "AvailabilityWindow",
        back_populates="tutor_profile",
        cascade="all, delete-orphan",
        order_by="AvailabilityWindow.start_time",
    )
    reviews = relationship(
        "Review",
        back_populates="tutor_profile",
        cascade="all, delete-orphan",
        order_by="Review.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(
            "verification_state IN ('incomplete', 'pending', 'verified', 'rejected')",
            name="ck_tutor_profiles_verification_state",
        ),
        CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate > 0", name="check_tutor_rate_positive"
        ),
        Index("ix_tutor_profiles_public", "verification_state", "profile_completed"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.verification_state:
            self.verification_state = VerificationState.INCOMPLETE.value
        if self.profile_completed is None:
            self.profile_completed = False
        if self.timezone is None:
            self.timezone = "UTC"
        if self.education is None:
            self.education = []
        if self.review_count is None:
            self.review_count = 0
        if self.teaches_online is None:
            self.teaches_online = False
        if self.teaches_in_person is None:
            self.teaches_in_person = False

    def __repr__(self) -> str:
        return f"<TutorProfile {self.id} user={self.user_id} state={self.verification_state}>"

    @property
    def is_verified(self) -> bool:
        return self.verification_state == VerificationState.VERIFIED

    @property
    def is_public(self) -> bool:
        """Visible in search only when verified and completed."""
        return self.is_verified and bool(self.profile_completed)

    def teaches(self, subject: str) -> bool:
        wanted = subject.strip().lower()
        return any(s.name.lower() == wanted for s in self.subjects)

    def windows_for_day(self, day_name: str) -> list["AvailabilityWindow"]:
        return [w for w in self.availability if w.day_of_week == day_name]

    def mark_submitted(self) -> None:
        """
        Record a valid submission.

        incomplete and rejected profiles move to pending; pending and verified
        profiles keep their state.
        """
        self.profile_completed = True
        self.submitted_at = datetime.now(timezone.utc)
        if self.verification_state in (
            VerificationState.INCOMPLETE,
            VerificationState.REJECTED,
        ):
            self.verification_state = VerificationState.PENDING.value
            logger.info(f"Tutor profile {self.id} submitted for verification")

    def approve(self, admin_user_id: str) -> None:
        self.verification_state = VerificationState.VERIFIED.value
        self.verified_at = datetime.now(timezone.utc)
        self.verified_by_id = admin_user_id
        logger.info(f"Tutor profile {self.id} approved by {admin_user_id}")

    def reject(self, admin_user_id: str) -> None:
        self.verification_state = VerificationState.REJECTED.value
        self.verified_at = datetime.now(timezone.utc)
        self.verified_by_id = admin_user_id
        logger.info(f"Tutor profile {self.id} rejected by {admin_user_id}")


class TutorSubject(Base):
    """A subject and level taught by a tutor."""

    __tablename__ = "tutor_subjects"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_profile_id = Column(
        String(26), ForeignKey("tutor_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    level = Column(String(20), nullable=False)

    tutor_profile = relationship("TutorProfile", back_populates="subjects")

    __table_args__ = (
        UniqueConstraint("tutor_profile_id", "name", name="uq_tutor_subjects_profile_name"),
        CheckConstraint(
            "level IN ('beginner', 'intermediate', 'advanced')", name="ck_tutor_subjects_level"
        ),
    )

    def __repr__(self) -> str:
        return f"<TutorSubject {self.name} ({self.level})>"


class AvailabilityWindow(Base):
    """
    A recurring weekly window in which a tutor accepts bookings.

    Times are wall-clock in the tutor's timezone.
    """

    __tablename__ = "availability_windows"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_profile_id = Column(
        String(26), ForeignKey("tutor_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(String(10), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    tutor_profile = relationship("TutorProfile", back_populates="availability")

    __table_args__ = (
        CheckConstraint(
            "day_of_week IN ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', "
            "'Saturday', 'Sunday')",
            name="ck_availability_windows_day",
        ),
        CheckConstraint("start_time < end_time", name="check_window_time_order"),
        Index("ix_availability_windows_profile_day", "tutor_profile_id", "day_of_week"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityWindow {self.day_of_week} {self.start_time}-{self.end_time}>"

    def contains(self, start: time, end: time) -> bool:
        """True when [start, end) lies entirely inside this window."""
        return self.start_time <= start and end <= self.end_time
