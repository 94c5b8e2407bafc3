# backend/tutorconnect/models/booking.py
"""
Booking model for the TutorConnect marketplace.

A booking reserves a fixed [start_time, end_time) interval of a tutor's time
for one student. Instants are stored in UTC; rate and price are snapshotted
so later rate changes never touch existing bookings.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BookingStatus
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class Booking(Base):
    """
    Reservation of a tutor's interval by a student.

    Overlap between scheduled bookings of the same tutor is prevented by the
    booking service under a per-tutor lock; the partial unique index on
    (tutor_profile_id, start_time) is the storage-level backstop for the
    identical-start race.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    student_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    tutor_profile_id = Column(
        String(26), ForeignKey("tutor_profiles.id"), nullable=False, index=True
    )

    subject = Column(String(100), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    hourly_rate = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value, index=True)
    notes = Column(Text, nullable=True)
    idempotency_key = Column(String(128), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now(), nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)

    student = relationship("User", foreign_keys=[student_id], backref="student_bookings")
    tutor_profile = relationship("TutorProfile", backref="bookings")
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        CheckConstraint("hourly_rate > 0", name="check_rate_positive"),
        CheckConstraint("start_time < end_time", name="check_time_order"),
        Index(
            "uq_bookings_tutor_start_scheduled",
            "tutor_profile_id",
            "start_time",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
        Index(
            "uq_bookings_student_idempotency_key",
            "student_id",
            "idempotency_key",
            unique=True,
        ),
        Index("ix_bookings_tutor_window", "tutor_profile_id", "status", "start_time", "end_time"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.SCHEDULED.value
        logger.info(
            f"Creating booking for student {self.student_id} with tutor {self.tutor_profile_id}"
        )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: student={self.student_id}, "
            f"tutor={self.tutor_profile_id}, time={self.start_time}-{self.end_time}, "
            f"status={self.status}>"
        )

    def cancel(self, cancelled_by_user_id: str) -> None:
        """Cancel this booking."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)
        self.cancelled_by_id = cancelled_by_user_id
        logger.info(f"Booking {self.id} cancelled by user {cancelled_by_user_id}")

    @property
    def is_scheduled(self) -> bool:
        return self.status == BookingStatus.SCHEDULED

    def has_started(self, now: Optional[datetime] = None) -> bool:
        return self.start_time <= (now or datetime.now(timezone.utc))
