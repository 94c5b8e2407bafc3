# backend/tutorconnect/core/enums.py
"""
Core enums for the TutorConnect marketplace.

Values are stored as plain strings in the database and appear verbatim in
API payloads.
"""

from enum import Enum


class RoleName(str, Enum):
    """Account roles. Fixed at signup; there is no upgrade path."""

    ADMIN = "admin"
    TUTOR = "tutor"
    STUDENT = "student"


class VerificationState(str, Enum):
    """Lifecycle of a tutor profile through admin review."""

    INCOMPLETE = "incomplete"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class SubjectLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class DayOfWeek(str, Enum):
    """Weekday names in ``date.weekday()`` order."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, value) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class VerificationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class TeachingMethodFilter(str, Enum):
    """Values accepted by the ``teachingMethod`` search filter."""

    ONLINE = "online"
    IN_PERSON = "inPerson"
    BOTH = "both"
    ALL = "all"
