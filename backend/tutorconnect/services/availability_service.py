# backend/tutorconnect/services/availability_service.py
"""
Open-slot listing for the TutorConnect marketplace.

Open intervals are the tutor's declared weekly windows, expanded over a date
range in the tutor's timezone, minus scheduled bookings. Data is read once
when the listing is built; the intervals themselves are produced lazily and
the listing can be iterated any number of times with the same result.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from typing import Iterator, List, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import DayOfWeek
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import local_to_utc, utc_now
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenSlot:
    start: datetime
    end: datetime


class AvailableSlots:
    """
    Restartable iterable of open intervals, ascending by start.

    Each call to ``iter()`` starts a fresh walk over the snapshot taken at
    construction, so consumers may iterate it repeatedly.
    """

    def __init__(
        self,
        from_date: date,
        to_date: date,
        tz_name: str,
        windows: Sequence[Tuple[str, time, time]],
        booked: Sequence[Tuple[datetime, datetime]],
        now: datetime,
    ):
        self.from_date = from_date
        self.to_date = to_date
        self.tz_name = tz_name
        self._windows = sorted(windows, key=lambda w: w[1])
        self._booked = sorted(booked)
        self._now = now

    def __iter__(self) -> Iterator[OpenSlot]:
        day = self.from_date
        while day <= self.to_date:
            day_name = DayOfWeek.from_date(day).value
            for window_day, window_start, window_end in self._windows:
                if window_day != day_name:
                    continue
                slot_start = local_to_utc(day, window_start, self.tz_name)
                slot_end = local_to_utc(day, window_end, self.tz_name)
                for opening in self._open_intervals(slot_start, slot_end):
                    if opening.end > self._now:
                        yield opening
            day += timedelta(days=1)

    def _open_intervals(self, slot_start: datetime, slot_end: datetime) -> Iterator[OpenSlot]:
        """Gaps in [slot_start, slot_end) left by the booked intervals."""
        cursor = slot_start
        for booked_start, booked_end in self._booked:
            if booked_end <= cursor:
                continue
            if booked_start >= slot_end:
                break
            if booked_start > cursor:
                yield OpenSlot(cursor, booked_start)
            cursor = max(cursor, booked_end)
        if cursor < slot_end:
            yield OpenSlot(cursor, slot_end)


class AvailabilityService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("list_available_slots")
    def list_available_slots(
        self, tutor_profile_id: str, from_date: date, to_date: date
    ) -> AvailableSlots:
        """
        Open intervals for a public tutor over the inclusive date range.

        Raises:
            ValidationException: from_date after to_date, or range too long
            NotFoundException: tutor missing or not publicly listed
        """
        if from_date > to_date:
            raise ValidationException(
                "'from' must not be after 'to'",
                details={"from": from_date.isoformat(), "to": to_date.isoformat()},
            )
        span_days = (to_date - from_date).days + 1
        if span_days > settings.max_slot_range_days:
            raise ValidationException(
                f"Date range cannot exceed {settings.max_slot_range_days} days",
                details={"days": span_days, "max_days": settings.max_slot_range_days},
            )

        profile = self.read_with_retry(
            "load_tutor_for_slots", lambda: self.tutor_repository.get_by_id(tutor_profile_id)
        )
        if profile is None or not profile.is_public:
            raise NotFoundException("Tutor not found")

        range_start = local_to_utc(from_date, time.min, profile.timezone)
        range_end = local_to_utc(to_date + timedelta(days=1), time.min, profile.timezone)
        bookings = self.read_with_retry(
            "load_bookings_for_slots",
            lambda: self.booking_repository.find_overlapping_scheduled(
                profile.id, range_start, range_end
            ),
        )

        windows: List[Tuple[str, time, time]] = [
            (w.day_of_week, w.start_time, w.end_time) for w in profile.availability
        ]
        return AvailableSlots(
            from_date=from_date,
            to_date=to_date,
            tz_name=profile.timezone,
            windows=windows,
            booked=[(b.start_time, b.end_time) for b in bookings],
            now=utc_now(),
        )
