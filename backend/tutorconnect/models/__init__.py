# backend/tutorconnect/models/__init__.py
"""
SQLAlchemy models for the TutorConnect marketplace.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import Booking
from .favorite import Favorite
from .review import Review
from .tutor import AvailabilityWindow, TutorProfile, TutorSubject
from .user import User

__all__ = [
    "AvailabilityWindow",
    "Booking",
    "Favorite",
    "Review",
    "TutorProfile",
    "TutorSubject",
    "User",
]
