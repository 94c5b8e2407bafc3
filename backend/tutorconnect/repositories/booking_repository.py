# backend/tutorconnect/repositories/booking_repository.py
"""
Booking data access: overlap queries for the booking engine, dashboard
listings and aggregate statistics.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import BookingStatus
from ..models.booking import Booking
from ..models.tutor import TutorProfile
from .base_repository import BaseRepository, wrap_db_error

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    # Booking engine queries

    def find_overlapping_scheduled(
        self,
        tutor_profile_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Booking]:
        """
        Scheduled bookings of a tutor intersecting the half-open range [start, end).

        Cancelled and completed bookings never block a slot.
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.tutor_profile_id == tutor_profile_id,
                Booking.status == BookingStatus.SCHEDULED.value,
                Booking.start_time < end,
                Booking.end_time > start,
            )
            return query.order_by(Booking.start_time.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking booking overlap: {str(e)}")
            raise wrap_db_error(e, "Failed to check booking conflicts") from e

    def get_by_idempotency_key(self, student_id: str, key: str) -> Optional[Booking]:
        return self.find_one_by(student_id=student_id, idempotency_key=key)

    # Dashboards

    def list_for_student(self, student_id: str) -> List[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.tutor_profile).joinedload(TutorProfile.user))
                .filter(Booking.student_id == student_id)
                .order_by(Booking.start_time.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions for student {student_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to list sessions") from e

    def list_for_tutor(self, tutor_profile_id: str) -> List[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.student))
                .filter(Booking.tutor_profile_id == tutor_profile_id)
                .order_by(Booking.start_time.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions for tutor {tutor_profile_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to list sessions") from e

    def has_attended_session(self, student_id: str, tutor_profile_id: str, now: datetime) -> bool:
        """True when the student has a completed or already-started scheduled session."""
        try:
            return (
                self.db.query(Booking.id)
                .filter(
                    Booking.student_id == student_id,
                    Booking.tutor_profile_id == tutor_profile_id,
                    (Booking.status == BookingStatus.COMPLETED.value)
                    | (
                        (Booking.status == BookingStatus.SCHEDULED.value)
                        & (Booking.start_time <= now)
                    ),
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking session history: {str(e)}")
            raise wrap_db_error(e, "Failed to check session history") from e

    # Admin statistics

    def total_earnings(self) -> Decimal:
        try:
            total = (
                self.db.query(func.coalesce(func.sum(Booking.total_price), 0))
                .filter(
                    Booking.status.in_(
                        [BookingStatus.SCHEDULED.value, BookingStatus.COMPLETED.value]
                    )
                )
                .scalar()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error summing earnings: {str(e)}")
            raise wrap_db_error(e, "Failed to compute earnings") from e
        return Decimal(str(total or 0)).quantize(Decimal("0.01"))

    def count_upcoming_scheduled(self, now: datetime) -> int:
        try:
            return (
                self.db.query(func.count(Booking.id))
                .filter(
                    Booking.status == BookingStatus.SCHEDULED.value,
                    Booking.start_time > now,
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting active sessions: {str(e)}")
            raise wrap_db_error(e, "Failed to count active sessions") from e

    def recent(self, limit: int = 10) -> List[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(
                    joinedload(Booking.student),
                    joinedload(Booking.tutor_profile).joinedload(TutorProfile.user),
                )
                .order_by(Booking.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing recent bookings: {str(e)}")
            raise wrap_db_error(e, "Failed to list recent bookings") from e
