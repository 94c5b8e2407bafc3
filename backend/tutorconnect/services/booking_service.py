# backend/tutorconnect/services/booking_service.py
"""
Booking Engine for the TutorConnect marketplace.

Validates a booking request against the tutor's verification state, subjects,
weekly availability and existing bookings, then persists it. The overlap
check and the insert run under a per-tutor lock so two concurrent requests
for intersecting intervals can never both succeed.
"""

from collections import Counter
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.booking_lock import tutor_booking_lock
from ..core.config import settings
from ..core.enums import BookingStatus, DayOfWeek, RoleName
from ..core.exceptions import (
    AlreadyPastException,
    DuplicateRecordException,
    ForbiddenException,
    InvalidStateTransitionException,
    InvalidSubjectException,
    NotFoundException,
    OutsideAvailabilityException,
    SlotConflictException,
    TutorNotEligibleException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, local_to_utc, utc_now, utc_to_local
from ..models.booking import Booking
from ..models.tutor import TutorProfile
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate
from .base import BaseService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def calculate_price(hourly_rate: Decimal, duration_minutes: int) -> Decimal:
    """Price of a session, rounded half-up to the cent."""
    return (Decimal(hourly_rate) * Decimal(duration_minutes) / Decimal(60)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


class BookingService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        student: User,
        booking_data: BookingCreate,
        idempotency_key: Optional[str] = None,
    ) -> Booking:
        """
        Reserve an interval of a tutor's time for a student.

        Args:
            student: The acting user; must hold the student role
            booking_data: Either UTC instants or a local date, clock time and duration
            idempotency_key: Optional client key; a repeat returns the first booking

        Returns:
            The scheduled booking

        Raises:
            ForbiddenException: acting user is not a student
            NotFoundException: tutor profile does not exist
            TutorNotEligibleException: tutor is not verified
            InvalidSubjectException: tutor does not teach the subject
            ValidationException: duration not allowed or start not in the future
            OutsideAvailabilityException: interval not inside a declared window
            SlotConflictException: interval overlaps a scheduled booking
            ServiceException: (retryable) booking lock or database unavailable
        """
        if student.role != RoleName.STUDENT:
            raise ForbiddenException("Only students can book sessions")

        if idempotency_key:
            existing = self.repository.get_by_idempotency_key(student.id, idempotency_key)
            if existing is not None:
                self.logger.info(
                    "Idempotent booking replay",
                    extra={"booking_id": existing.id, "student_id": student.id},
                )
                return existing

        self.log_operation(
            "create_booking",
            student_id=student.id,
            tutor_profile_id=booking_data.tutor_id,
            subject=booking_data.subject,
        )

        # 1. Tutor exists and may take bookings
        profile = self.tutor_repository.get_by_id(booking_data.tutor_id)
        if profile is None:
            raise NotFoundException("Tutor not found")
        if not profile.is_verified or profile.hourly_rate is None:
            raise TutorNotEligibleException(profile.id, profile.verification_state)
        if profile.user_id == student.id:
            raise ForbiddenException("You cannot book your own profile")

        # 2. Subject is offered
        if not profile.teaches(booking_data.subject):
            raise InvalidSubjectException(
                booking_data.subject, [subject.name for subject in profile.subjects]
            )

        # 3. Input checks
        start, end, duration = self._resolve_interval(booking_data, profile)
        self._validate_duration(duration)
        if start <= utc_now():
            raise ValidationException(
                "Bookings must start in the future",
                details={"start_time": start.isoformat()},
            )

        # 4. Availability in the tutor's timezone
        self._validate_against_availability(profile, start, end)

        # 5. Overlap check and insert, serialized per tutor
        booking = self._insert_booking(
            profile, student, booking_data, start, end, duration, idempotency_key
        )

        self.logger.info(
            "Booking created",
            extra={
                "event": "booking.created",
                "booking_id": booking.id,
                "tutor_profile_id": profile.id,
                "student_id": student.id,
                "start_time": start.isoformat(),
                "price": str(booking.total_price),
            },
        )
        return booking

    def _resolve_interval(
        self, booking_data: BookingCreate, profile: TutorProfile
    ) -> Tuple[datetime, datetime, int]:
        """UTC [start, end) and duration in minutes for either request shape."""
        if isinstance(booking_data.start_time, datetime):
            start = ensure_utc(booking_data.start_time)
            end = ensure_utc(booking_data.end_time)
            delta = end - start
            if delta % timedelta(minutes=1):
                raise ValidationException(
                    "Booking length must be a whole number of minutes",
                    details={"start_time": start.isoformat(), "end_time": end.isoformat()},
                )
            duration = int(delta.total_seconds() // 60)
            if booking_data.duration_minutes is not None and booking_data.duration_minutes != duration:
                raise ValidationException(
                    "durationMinutes does not match startTime and endTime",
                    details={"duration_minutes": booking_data.duration_minutes, "computed": duration},
                )
            return start, end, duration

        duration = booking_data.duration_minutes
        start = local_to_utc(booking_data.date, booking_data.start_time, profile.timezone)
        return start, start + timedelta(minutes=duration), duration

    @staticmethod
    def _validate_duration(duration: int) -> None:
        if duration not in settings.allowed_durations:
            raise ValidationException(
                f"Invalid duration {duration}. Available options: {settings.allowed_durations}",
                details={"duration_minutes": duration, "allowed": settings.allowed_durations},
            )

    @staticmethod
    def _validate_against_availability(
        profile: TutorProfile, start: datetime, end: datetime
    ) -> None:
        local_start = utc_to_local(start, profile.timezone)
        local_end = utc_to_local(end, profile.timezone)
        day = DayOfWeek.from_date(local_start.date())
        requested = f"{local_start:%H:%M}-{local_end:%H:%M}"

        # windows never cross midnight
        if local_end.date() != local_start.date():
            raise OutsideAvailabilityException(day.value, requested)

        windows = profile.windows_for_day(day.value)
        if not any(w.contains(local_start.time(), local_end.time()) for w in windows):
            raise OutsideAvailabilityException(day.value, requested)

    def _insert_booking(
        self,
        profile: TutorProfile,
        student: User,
        booking_data: BookingCreate,
        start: datetime,
        end: datetime,
        duration: int,
        idempotency_key: Optional[str],
    ) -> Booking:
        conflict_details: Dict[str, Any] = {
            "tutor_profile_id": profile.id,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
        }

        with tutor_booking_lock(profile.id):
            try:
                with self.transaction():
                    # row lock on backends that support it
                    self.tutor_repository.get_for_update(profile.id)

                    if idempotency_key:
                        existing = self.repository.get_by_idempotency_key(
                            student.id, idempotency_key
                        )
                        if existing is not None:
                            return existing

                    conflicts = self.repository.find_overlapping_scheduled(profile.id, start, end)
                    if conflicts:
                        conflict_details["conflicting_booking_ids"] = [b.id for b in conflicts]
                        raise SlotConflictException(details=conflict_details)

                    hourly_rate = Decimal(profile.hourly_rate)
                    booking = self.repository.create(
                        student_id=student.id,
                        tutor_profile_id=profile.id,
                        subject=self._canonical_subject(profile, booking_data.subject),
                        start_time=start,
                        end_time=end,
                        duration_minutes=duration,
                        hourly_rate=hourly_rate,
                        total_price=calculate_price(hourly_rate, duration),
                        status=BookingStatus.SCHEDULED.value,
                        notes=booking_data.notes,
                        idempotency_key=idempotency_key,
                    )
            except DuplicateRecordException as exc:
                # lost the race at the unique index
                if idempotency_key:
                    existing = self.repository.get_by_idempotency_key(student.id, idempotency_key)
                    if existing is not None:
                        return existing
                self.logger.warning(
                    "Booking insert hit unique constraint",
                    extra={"event": "booking.conflict", **conflict_details},
                )
                raise SlotConflictException(details=conflict_details) from exc

        return booking

    @staticmethod
    def _canonical_subject(profile: TutorProfile, requested: str) -> str:
        wanted = requested.strip().lower()
        for subject in profile.subjects:
            if subject.name.lower() == wanted:
                return subject.name
        return requested.strip()

    # Cancellation

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, user: User) -> Booking:
        """
        Cancel a scheduled booking that has not started yet.

        Raises:
            NotFoundException: booking does not exist
            AlreadyPastException: booking has already started, whoever asks
            ForbiddenException: requester is not the booking's student
            InvalidStateTransitionException: booking is not scheduled
        """
        booking = self.repository.get_by_id(booking_id, load_relationships=False)
        if booking is None:
            raise NotFoundException("Booking not found")
        if booking.has_started(utc_now()):
            raise AlreadyPastException(booking.id, booking.start_time.isoformat())
        if booking.student_id != user.id:
            raise ForbiddenException("You can only cancel your own bookings")
        if not booking.is_scheduled:
            raise InvalidStateTransitionException("booking", booking.status, "cancel")

        with self.transaction():
            booking.cancel(user.id)

        self.logger.info(
            "Booking cancelled",
            extra={
                "event": "booking.cancelled",
                "booking_id": booking.id,
                "tutor_profile_id": booking.tutor_profile_id,
                "cancelled_by": user.id,
            },
        )
        return booking

    # Dashboards

    def get_student_sessions(self, student: User) -> Tuple[List[Booking], List[Booking]]:
        """(upcoming, past) split by start time; upcoming soonest first, past latest first."""
        bookings = self.read_with_retry(
            "student_sessions", lambda: self.repository.list_for_student(student.id)
        )
        now = utc_now()
        upcoming = [b for b in bookings if b.start_time > now]
        past = [b for b in bookings if b.start_time <= now]
        past.reverse()
        return upcoming, past

    def get_student_stats(self, student: User) -> Dict[str, Any]:
        bookings = self.read_with_retry(
            "student_stats", lambda: self.repository.list_for_student(student.id)
        )
        now = utc_now()
        active = [b for b in bookings if b.status != BookingStatus.CANCELLED]
        attended_minutes = sum(
            b.duration_minutes
            for b in active
            if b.status == BookingStatus.COMPLETED or b.has_started(now)
        )

        favorite: Optional[str] = None
        if active:
            counts = Counter(b.subject for b in active)
            # ties go to the alphabetically first subject
            favorite = min(counts, key=lambda name: (-counts[name], name))

        return {
            "total_sessions": len(active),
            "hours_learned": round(attended_minutes / 60, 1),
            "favorite_subject": favorite,
        }

    def get_tutor_stats(self, user: User) -> Dict[str, Any]:
        """
        Totals for the tutor dashboard.

        A session counts as completed once marked completed or once a
        scheduled session has ended; earnings sum the prices snapshotted on
        those bookings, so later rate changes never alter them.

        Raises:
            ForbiddenException: requester is not a tutor
            NotFoundException: tutor has no profile
        """
        if user.role != RoleName.TUTOR:
            raise ForbiddenException("Tutor access required")
        profile = self.tutor_repository.get_by_user_id(user.id)
        if profile is None:
            raise NotFoundException("Tutor profile not found")

        bookings = self.read_with_retry(
            "tutor_stats", lambda: self.repository.list_for_tutor(profile.id)
        )
        now = utc_now()
        completed = [
            b
            for b in bookings
            if b.status == BookingStatus.COMPLETED
            or (b.status == BookingStatus.SCHEDULED and b.end_time <= now)
        ]
        upcoming = [
            b for b in bookings if b.status == BookingStatus.SCHEDULED and b.start_time > now
        ]
        earnings = sum((Decimal(b.total_price) for b in completed), Decimal("0"))

        return {
            "completed_sessions": len(completed),
            "upcoming_sessions": len(upcoming),
            "earnings": earnings.quantize(CENT),
            "rating": profile.rating,
            "review_count": profile.review_count or 0,
        }

    def get_tutor_sessions(self, tutor_profile_id: str, user: User) -> List[Booking]:
        """
        Sessions booked with a tutor, visible to the owning tutor or an admin.

        Raises:
            NotFoundException: profile does not exist
            ForbiddenException: requester is neither owner nor admin
        """
        profile = self.tutor_repository.get_by_id(tutor_profile_id, load_relationships=False)
        if profile is None:
            raise NotFoundException("Tutor not found")
        if user.role != RoleName.ADMIN and profile.user_id != user.id:
            raise ForbiddenException("You can only view your own sessions")
        return self.read_with_retry(
            "tutor_sessions", lambda: self.repository.list_for_tutor(tutor_profile_id)
        )
