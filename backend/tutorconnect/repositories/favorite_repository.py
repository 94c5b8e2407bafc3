# backend/tutorconnect/repositories/favorite_repository.py
"""
Favorites data access.

Listing only returns tutors that are still publicly visible; a favorite on a
tutor who later loses verification stays stored but is hidden.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..core.enums import VerificationState
from ..models.favorite import Favorite
from ..models.tutor import TutorProfile
from .base_repository import BaseRepository, wrap_db_error


class FavoriteRepository(BaseRepository[Favorite]):
    def __init__(self, db: Session):
        super().__init__(db, Favorite)

    def get_for(self, student_id: str, tutor_profile_id: str) -> Optional[Favorite]:
        return self.find_one_by(student_id=student_id, tutor_profile_id=tutor_profile_id)

    def delete(self, favorite: Favorite) -> None:
        """Note: Does NOT commit."""
        try:
            self.db.delete(favorite)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting favorite {favorite.id}: {str(e)}")
            raise wrap_db_error(e, "Failed to delete favorite") from e

    def list_public_tutors_for_student(self, student_id: str) -> List[TutorProfile]:
        """Favorited tutor profiles, most recently saved first."""
        try:
            return (
                self.db.query(TutorProfile)
                .join(Favorite, Favorite.tutor_profile_id == TutorProfile.id)
                .options(
                    joinedload(TutorProfile.user),
                    selectinload(TutorProfile.subjects),
                    selectinload(TutorProfile.availability),
                )
                .filter(
                    Favorite.student_id == student_id,
                    TutorProfile.verification_state == VerificationState.VERIFIED.value,
                    TutorProfile.profile_completed.is_(True),
                )
                .order_by(Favorite.created_at.desc(), Favorite.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing favorites for student {student_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to list favorites") from e
