# backend/tutorconnect/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import (
    get_current_user,
    get_identity_claims,
    require_admin,
    require_student,
    require_tutor,
)
from .database import get_db
from .services import (
    get_availability_service,
    get_booking_service,
    get_favorites_service,
    get_review_service,
    get_tutor_profile_service,
    get_user_service,
    get_verification_service,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_identity_claims",
    "require_admin",
    "require_student",
    "require_tutor",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_favorites_service",
    "get_review_service",
    "get_tutor_profile_service",
    "get_user_service",
    "get_verification_service",
]
