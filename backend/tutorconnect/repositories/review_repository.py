# backend/tutorconnect/repositories/review_repository.py
"""Review data access."""

from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.review import Review
from .base_repository import BaseRepository, wrap_db_error


class ReviewRepository(BaseRepository[Review]):
    def __init__(self, db: Session):
        super().__init__(db, Review)

    def get_by_author(self, tutor_profile_id: str, author_id: str) -> Optional[Review]:
        return self.find_one_by(tutor_profile_id=tutor_profile_id, author_id=author_id)

    def rating_summary(self, tutor_profile_id: str) -> Tuple[Optional[Decimal], int]:
        """Mean rating rounded to two places and review count."""
        try:
            avg, count = (
                self.db.query(func.avg(Review.rating), func.count(Review.id))
                .filter(Review.tutor_profile_id == tutor_profile_id)
                .one()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing rating for {tutor_profile_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to compute rating") from e
        if not count:
            return None, 0
        return Decimal(str(avg)).quantize(Decimal("0.01")), int(count)
