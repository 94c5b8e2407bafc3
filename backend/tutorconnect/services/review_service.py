# backend/tutorconnect/services/review_service.py
"""
Tutor reviews.

A student may review a tutor once, and only after a session with that tutor
has been completed or has at least started.
"""

import logging

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    DuplicateRecordException,
    ForbiddenException,
    NotFoundException,
)
from ..core.timezone_utils import utc_now
from ..models.review import Review
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.review import ReviewCreate
from .base import BaseService

logger = logging.getLogger(__name__)


class ReviewService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_review_repository(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("add_review")
    def add_review(self, tutor_profile_id: str, student: User, data: ReviewCreate) -> Review:
        """
        Record a review and refresh the tutor's rating.

        Raises:
            ForbiddenException: author is not a student
            NotFoundException: tutor missing or not publicly listed
            BusinessRuleException: no attended session with this tutor
            ConflictException: student already reviewed this tutor
        """
        if student.role != RoleName.STUDENT:
            raise ForbiddenException("Only students can leave reviews")

        profile = self.tutor_repository.get_by_id(tutor_profile_id, load_relationships=False)
        if profile is None or not profile.is_public:
            raise NotFoundException("Tutor not found")

        if not self.booking_repository.has_attended_session(student.id, profile.id, utc_now()):
            raise BusinessRuleException(
                "You can only review tutors you have had a session with",
                code="NO_ATTENDED_SESSION",
            )
        if self.repository.get_by_author(profile.id, student.id) is not None:
            raise ConflictException("You have already reviewed this tutor", code="REVIEW_EXISTS")

        try:
            with self.transaction():
                review = self.repository.create(
                    tutor_profile_id=profile.id,
                    author_id=student.id,
                    rating=data.rating,
                    comment=data.comment,
                )
                rating, count = self.repository.rating_summary(profile.id)
                profile.rating = rating
                profile.review_count = count
        except DuplicateRecordException as exc:
            raise ConflictException(
                "You have already reviewed this tutor", code="REVIEW_EXISTS"
            ) from exc

        self.log_operation(
            "add_review",
            tutor_profile_id=profile.id,
            author_id=student.id,
            rating=data.rating,
        )
        return review
