# backend/tutorconnect/services/favorites_service.py
"""
Favorite tutors for the student dashboard.

Adding and removing are idempotent: saving a tutor twice or removing one that
was never saved succeeds without change.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..core.exceptions import DuplicateRecordException, ForbiddenException, NotFoundException
from ..models.tutor import TutorProfile
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class FavoritesService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_favorite_repository(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)

    @staticmethod
    def _require_student(user: User) -> None:
        if user.role != RoleName.STUDENT:
            raise ForbiddenException("Only students can keep favorite tutors")

    @BaseService.measure_operation("add_favorite")
    def add_favorite(self, tutor_profile_id: str, student: User) -> bool:
        """
        Save a tutor to the student's favorites.

        Returns:
            True when newly saved, False when it was already a favorite

        Raises:
            ForbiddenException: caller is not a student
            NotFoundException: tutor missing or not publicly listed
        """
        self._require_student(student)
        profile = self.tutor_repository.get_by_id(tutor_profile_id, load_relationships=False)
        if profile is None or not profile.is_public:
            raise NotFoundException("Tutor not found")

        if self.repository.get_for(student.id, profile.id) is not None:
            return False
        try:
            with self.transaction():
                self.repository.create(student_id=student.id, tutor_profile_id=profile.id)
        except DuplicateRecordException:
            # a concurrent request saved it first
            return False

        self.log_operation("add_favorite", student_id=student.id, tutor_profile_id=profile.id)
        return True

    @BaseService.measure_operation("remove_favorite")
    def remove_favorite(self, tutor_profile_id: str, student: User) -> bool:
        """Returns True when a saved favorite was removed."""
        self._require_student(student)
        favorite = self.repository.get_for(student.id, tutor_profile_id)
        if favorite is None:
            return False
        with self.transaction():
            self.repository.delete(favorite)

        self.log_operation(
            "remove_favorite", student_id=student.id, tutor_profile_id=tutor_profile_id
        )
        return True

    def list_favorites(self, student: User) -> List[TutorProfile]:
        self._require_student(student)
        return self.read_with_retry(
            "list_favorites",
            lambda: self.repository.list_public_tutors_for_student(student.id),
        )
