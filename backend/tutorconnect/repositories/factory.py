# backend/tutorconnect/repositories/factory.py
"""
Repository Factory for the TutorConnect marketplace.

Provides centralized creation of repository instances so services never
construct repositories directly.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .favorite_repository import FavoriteRepository
    from .review_repository import ReviewRepository
    from .tutor_repository import TutorProfileRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_tutor_profile_repository(db: Session) -> "TutorProfileRepository":
        from .tutor_repository import TutorProfileRepository

        return TutorProfileRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_review_repository(db: Session) -> "ReviewRepository":
        from .review_repository import ReviewRepository

        return ReviewRepository(db)

    @staticmethod
    def create_favorite_repository(db: Session) -> "FavoriteRepository":
        from .favorite_repository import FavoriteRepository

        return FavoriteRepository(db)
