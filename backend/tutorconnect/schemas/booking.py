"""Booking request and response schemas."""

from datetime import date as date_type, datetime, time
from typing import List, Optional, Union

from pydantic import Field, field_validator, model_validator

from ..core.config import settings
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking
from .base import Money, StandardizedModel, StrictRequestModel, parse_hhmm


class BookingCreate(StrictRequestModel):
    """
    Body of ``POST /bookings``.

    Two equivalent shapes are accepted:

    * ``startTime`` and ``endTime`` as ISO-8601 instants (naive values are UTC)
    * ``date`` plus ``startTime`` as "HH:MM" in the tutor's timezone and
      ``durationMinutes``
    """

    tutor_id: str = Field(..., min_length=1, max_length=26)
    subject: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None
    start_time: Union[datetime, time] = Field(..., union_mode="left_to_right")
    end_time: Optional[datetime] = None
    date: Optional[date_type] = None
    duration_minutes: Optional[int] = Field(None, gt=0)

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_clock(cls, value: object) -> object:
        if isinstance(value, str) and len(value.strip()) == 5:
            return parse_hhmm(value)
        return value

    @field_validator("notes")
    @classmethod
    def _limit_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > settings.max_notes_length:
            raise ValueError(f"Notes must be at most {settings.max_notes_length} characters")
        return value or None

    @model_validator(mode="after")
    def _check_shape(self) -> "BookingCreate":
        if isinstance(self.start_time, datetime):
            if self.end_time is None:
                raise ValueError("endTime is required when startTime is a full timestamp")
            if self.date is not None:
                raise ValueError("date cannot be combined with a full startTime timestamp")
            if ensure_utc(self.end_time) <= ensure_utc(self.start_time):
                raise ValueError("endTime must be after startTime")
        else:
            if self.date is None or self.duration_minutes is None:
                raise ValueError("date and durationMinutes are required with an HH:MM startTime")
            if self.end_time is not None:
                raise ValueError("endTime cannot be combined with an HH:MM startTime")
        return self


class BookingResponse(StandardizedModel):
    id: str
    tutor_id: str
    student_id: str
    subject: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    hourly_rate: Money
    price: Money
    notes: Optional[str] = None
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            tutor_id=booking.tutor_profile_id,
            student_id=booking.student_id,
            subject=booking.subject,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration_minutes=booking.duration_minutes,
            hourly_rate=booking.hourly_rate,
            price=booking.total_price,
            notes=booking.notes,
            status=booking.status,
            created_at=booking.created_at,
            cancelled_at=booking.cancelled_at,
        )


class StudentSessionResponse(StandardizedModel):
    id: str
    tutor_id: str
    tutor_name: str
    subject: str
    start_time: datetime
    end_time: datetime
    duration: int
    price: Money
    status: str
    notes: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "StudentSessionResponse":
        owner = booking.tutor_profile.user if booking.tutor_profile else None
        return cls(
            id=booking.id,
            tutor_id=booking.tutor_profile_id,
            tutor_name=owner.full_name if owner else "",
            subject=booking.subject,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration=booking.duration_minutes,
            price=booking.total_price,
            status=booking.status,
            notes=booking.notes,
        )


class StudentSessionsResponse(StandardizedModel):
    upcoming: List[StudentSessionResponse]
    past: List[StudentSessionResponse]


class StudentStatsResponse(StandardizedModel):
    total_sessions: int
    hours_learned: float
    favorite_subject: Optional[str] = None


class TutorStatsResponse(StandardizedModel):
    completed_sessions: int
    upcoming_sessions: int
    earnings: Money
    rating: Optional[Money] = None
    review_count: int


class TutorSessionResponse(StandardizedModel):
    id: str
    student_name: str
    subject: str
    status: str
    start_time: datetime
    end_time: datetime
    price: Money
    duration: int

    @classmethod
    def from_booking(cls, booking: Booking) -> "TutorSessionResponse":
        return cls(
            id=booking.id,
            student_name=booking.student.full_name if booking.student else "",
            subject=booking.subject,
            status=booking.status,
            start_time=booking.start_time,
            end_time=booking.end_time,
            price=booking.total_price,
            duration=booking.duration_minutes,
        )


class OpenSlotResponse(StandardizedModel):
    start: datetime
    end: datetime
