# backend/tutorconnect/repositories/__init__.py
"""
Repository layer for the TutorConnect marketplace.

Usage:
    from tutorconnect.repositories import RepositoryFactory

    booking_repo = RepositoryFactory.create_booking_repository(db)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .favorite_repository import FavoriteRepository
from .factory import RepositoryFactory
from .review_repository import ReviewRepository
from .tutor_repository import TutorProfileRepository, TutorSearchFilters
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "FavoriteRepository",
    "RepositoryFactory",
    "ReviewRepository",
    "TutorProfileRepository",
    "TutorSearchFilters",
    "UserRepository",
]
