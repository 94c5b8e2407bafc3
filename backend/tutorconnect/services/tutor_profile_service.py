# backend/tutorconnect/services/tutor_profile_service.py
"""
Tutor Profile Store service.

Handles profile submission (which feeds the verification queue), public
search and the public profile view.
"""

from decimal import Decimal
import logging
from typing import List

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import RoleName
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.tutor import AvailabilityWindow, TutorProfile, TutorSubject
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..repositories.tutor_repository import TutorSearchFilters
from ..schemas.tutor import TutorProfileSubmit
from .base import BaseService

logger = logging.getLogger(__name__)


class TutorProfileService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_tutor_profile_repository(db)

    @staticmethod
    def missing_required_fields(data: TutorProfileSubmit) -> List[str]:
        """Names of required profile fields that are absent or below the minimum."""
        missing: List[str] = []
        if not data.subjects:
            missing.append("subjects")
        if not data.education:
            missing.append("education")
        if data.hourly_rate is None or data.hourly_rate < Decimal(str(settings.min_hourly_rate)):
            missing.append("hourlyRate")
        if not (data.teaching_methods.online or data.teaching_methods.in_person):
            missing.append("teachingMethods")
        return missing

    @BaseService.measure_operation("submit_profile")
    def submit_profile(
        self, tutor_profile_id: str, data: TutorProfileSubmit, acting_user: User
    ) -> TutorProfile:
        """
        Replace the profile contents and queue it for verification.

        incomplete and rejected profiles move to pending. A pending profile is
        re-validated and stays pending; a verified profile stays verified.

        Raises:
            NotFoundException: profile does not exist
            ForbiddenException: acting user does not own the profile
            ValidationException: required fields missing (all listed at once)
        """
        profile = self.repository.get_by_id(tutor_profile_id)
        if profile is None:
            raise NotFoundException("Tutor profile not found")
        if acting_user.role != RoleName.TUTOR or profile.user_id != acting_user.id:
            raise ForbiddenException("Only the owning tutor may edit this profile")

        missing = self.missing_required_fields(data)
        if missing:
            raise ValidationException(
                f"Profile is missing required fields: {', '.join(missing)}",
                details={
                    "missing_fields": missing,
                    "min_hourly_rate": settings.min_hourly_rate,
                },
            )

        previous_state = profile.verification_state
        with self.transaction():
            self._apply_profile_data(profile, data)
            profile.mark_submitted()

        self.log_operation(
            "submit_profile",
            tutor_profile_id=profile.id,
            previous_state=previous_state,
            verification_state=profile.verification_state,
        )
        if previous_state != profile.verification_state:
            # delivery belongs to the notification collaborator
            self.logger.info(
                "notify_admin_profile_submitted",
                extra={"event": "tutor.profile_submitted", "tutor_profile_id": profile.id},
            )
        return profile

    def _apply_profile_data(self, profile: TutorProfile, data: TutorProfileSubmit) -> None:
        profile.bio = data.bio
        profile.hourly_rate = data.hourly_rate
        profile.education = [
            {
                "degree": entry.degree,
                "institution": entry.institution,
                "yearCompleted": entry.year_completed,
            }
            for entry in data.education
        ]
        profile.experience_years = data.experience.years if data.experience else None
        profile.experience_description = data.experience.description if data.experience else None
        profile.teaches_online = data.teaching_methods.online
        profile.teaches_in_person = data.teaching_methods.in_person
        profile.city = data.location.city if data.location else None
        profile.country = data.location.country if data.location else None
        profile.timezone = data.timezone

        # delete the old child rows first so re-used subject names do not collide
        profile.subjects.clear()
        profile.availability.clear()
        self.db.flush()

        profile.subjects = [
            TutorSubject(name=subject.name, level=subject.level.value) for subject in data.subjects
        ]
        profile.availability = [
            AvailabilityWindow(
                day_of_week=day.day.value,
                start_time=slot.start_time,
                end_time=slot.end_time,
            )
            for day in data.availability
            for slot in day.slots
        ]

    def get_profile_for_user(self, user: User) -> TutorProfile:
        if user.role != RoleName.TUTOR:
            raise ForbiddenException("Only tutors have a tutor profile")
        profile = self.repository.get_by_user_id(user.id)
        if profile is None:
            raise NotFoundException("Tutor profile not found")
        return profile

    @BaseService.measure_operation("search_tutors")
    def search_tutors(self, filters: TutorSearchFilters) -> List[TutorProfile]:
        """Verified, completed profiles matching every supplied filter."""
        if (
            filters.min_rate is not None
            and filters.max_rate is not None
            and filters.min_rate > filters.max_rate
        ):
            raise ValidationException(
                "minRate cannot exceed maxRate",
                details={"min_rate": str(filters.min_rate), "max_rate": str(filters.max_rate)},
            )
        return self.read_with_retry(
            "search_tutors", lambda: self.repository.search_public(filters)
        )

    @BaseService.measure_operation("get_public_tutor")
    def get_public_tutor(self, tutor_profile_id: str) -> TutorProfile:
        """
        Public profile with reviews.

        Unverified profiles are hidden the same way as missing ones.
        """
        profile = self.read_with_retry(
            "get_public_tutor", lambda: self.repository.get_with_reviews(tutor_profile_id)
        )
        if profile is None or not profile.is_public:
            raise NotFoundException("Tutor not found")
        return profile

