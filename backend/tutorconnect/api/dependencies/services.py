# backend/tutorconnect/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Every service is built per request around the request's database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.favorites_service import FavoritesService
from ...services.review_service import ReviewService
from ...services.tutor_profile_service import TutorProfileService
from ...services.user_service import UserService
from ...services.verification_service import VerificationService
from .database import get_db


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_tutor_profile_service(db: Session = Depends(get_db)) -> TutorProfileService:
    return TutorProfileService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_verification_service(db: Session = Depends(get_db)) -> VerificationService:
    return VerificationService(db)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_favorites_service(db: Session = Depends(get_db)) -> FavoritesService:
    return FavoritesService(db)
