"""Tutor profile request and response schemas."""

from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_serializer, field_validator, model_validator

from ..core.enums import DayOfWeek, SubjectLevel
from ..core.timezone_utils import is_valid_timezone
from ..models.review import Review
from ..models.tutor import TutorProfile
from .base import Money, StandardizedModel, StrictRequestModel, parse_hhmm


class SubjectIn(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    level: SubjectLevel


class EducationIn(StrictRequestModel):
    degree: str = Field(..., min_length=1, max_length=200)
    institution: str = Field(..., min_length=1, max_length=200)
    year_completed: Optional[int] = Field(None, ge=1900, le=2100)


class ExperienceIn(StrictRequestModel):
    years: int = Field(0, ge=0, le=80)
    description: Optional[str] = Field(None, max_length=2000)


class TimeSlotIn(StrictRequestModel):
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, value: object) -> time:
        return parse_hhmm(value)

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlotIn":
        if self.start_time >= self.end_time:
            raise ValueError("Slot end time must be after start time")
        return self


class DayAvailabilityIn(StrictRequestModel):
    day: DayOfWeek
    slots: List[TimeSlotIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_no_overlap(self) -> "DayAvailabilityIn":
        ordered = sorted(self.slots, key=lambda s: s.start_time)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start_time < previous.end_time:
                raise ValueError(
                    f"Overlapping availability on {self.day.value}: "
                    f"{previous.start_time:%H:%M}-{previous.end_time:%H:%M} and "
                    f"{current.start_time:%H:%M}-{current.end_time:%H:%M}"
                )
        return self


class TeachingMethodsIn(StrictRequestModel):
    online: bool = False
    in_person: bool = False


class LocationIn(StrictRequestModel):
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class TutorProfileSubmit(StrictRequestModel):
    """
    Full profile body for ``PUT /tutors/profile``.

    Shape is validated here; completeness (at least one subject, education
    entry and teaching method, a rate above the minimum) is checked by the
    profile service so every missing field is reported together.
    """

    subjects: List[SubjectIn] = Field(default_factory=list)
    education: List[EducationIn] = Field(default_factory=list)
    experience: Optional[ExperienceIn] = None
    bio: Optional[str] = Field(None, max_length=5000)
    hourly_rate: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    availability: List[DayAvailabilityIn] = Field(default_factory=list)
    teaching_methods: TeachingMethodsIn = Field(default_factory=TeachingMethodsIn)
    location: Optional[LocationIn] = None
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        if not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone '{value}'")
        return value

    @field_validator("subjects")
    @classmethod
    def _unique_subjects(cls, value: List[SubjectIn]) -> List[SubjectIn]:
        seen: set[str] = set()
        for subject in value:
            key = subject.name.lower()
            if key in seen:
                raise ValueError(f"Subject '{subject.name}' listed more than once")
            seen.add(key)
        return value

    @field_validator("availability")
    @classmethod
    def _unique_days(cls, value: List[DayAvailabilityIn]) -> List[DayAvailabilityIn]:
        days = [entry.day for entry in value]
        if len(days) != len(set(days)):
            raise ValueError("Each day may appear only once in availability")
        return value


# Responses


class SubjectOut(StandardizedModel):
    name: str
    level: str


class EducationOut(StandardizedModel):
    degree: str
    institution: str
    year_completed: Optional[int] = None


class ExperienceOut(StandardizedModel):
    years: Optional[int] = None
    description: Optional[str] = None


class TimeSlotOut(StandardizedModel):
    start_time: time
    end_time: time

    @field_serializer("start_time", "end_time")
    def _format_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class DayAvailabilityOut(StandardizedModel):
    day: str
    slots: List[TimeSlotOut]


class TeachingMethodsOut(StandardizedModel):
    online: bool
    in_person: bool


class LocationOut(StandardizedModel):
    city: Optional[str] = None
    country: Optional[str] = None


class ReviewOut(StandardizedModel):
    id: str
    author_id: str
    author_name: str
    rating: int
    comment: Optional[str] = None
    date: datetime

    @classmethod
    def from_review(cls, review: Review) -> "ReviewOut":
        return cls(
            id=review.id,
            author_id=review.author_id,
            author_name=review.author.full_name if review.author else "",
            rating=review.rating,
            comment=review.comment,
            date=review.created_at,
        )


class TutorProfileResponse(StandardizedModel):
    id: str
    user_id: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    subjects: List[SubjectOut]
    education: List[EducationOut]
    experience: ExperienceOut
    hourly_rate: Optional[Money] = None
    availability: List[DayAvailabilityOut]
    teaching_methods: TeachingMethodsOut
    location: LocationOut
    timezone: str
    verification_state: str
    profile_completed: bool
    is_verified: bool
    rating: Optional[Money] = None
    review_count: int

    @classmethod
    def from_profile(cls, profile: TutorProfile, **extra: object) -> "TutorProfileResponse":
        user = profile.user
        days: dict[str, List[TimeSlotOut]] = {}
        for window in sorted(profile.availability, key=lambda w: w.start_time):
            days.setdefault(window.day_of_week, []).append(
                TimeSlotOut(start_time=window.start_time, end_time=window.end_time)
            )
        availability = [
            DayAvailabilityOut(day=day.value, slots=days[day.value])
            for day in DayOfWeek
            if day.value in days
        ]
        return cls(
            id=profile.id,
            user_id=profile.user_id,
            first_name=user.first_name if user else "",
            last_name=user.last_name if user else "",
            bio=profile.bio,
            subjects=[SubjectOut(name=s.name, level=s.level) for s in profile.subjects],
            education=[
                EducationOut(
                    degree=entry.get("degree", ""),
                    institution=entry.get("institution", ""),
                    year_completed=entry.get("yearCompleted"),
                )
                for entry in (profile.education or [])
            ],
            experience=ExperienceOut(
                years=profile.experience_years, description=profile.experience_description
            ),
            hourly_rate=profile.hourly_rate,
            availability=availability,
            teaching_methods=TeachingMethodsOut(
                online=bool(profile.teaches_online), in_person=bool(profile.teaches_in_person)
            ),
            location=LocationOut(city=profile.city, country=profile.country),
            timezone=profile.timezone,
            verification_state=profile.verification_state,
            profile_completed=bool(profile.profile_completed),
            is_verified=profile.is_verified,
            rating=profile.rating,
            review_count=profile.review_count or 0,
            **extra,
        )


class TutorDetailResponse(TutorProfileResponse):
    reviews: List[ReviewOut] = Field(default_factory=list)

    @classmethod
    def from_profile_with_reviews(cls, profile: TutorProfile) -> "TutorDetailResponse":
        reviews = [ReviewOut.from_review(review) for review in profile.reviews]
        return cls.from_profile(profile, reviews=reviews)  # type: ignore[return-value]
