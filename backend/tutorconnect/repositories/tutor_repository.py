# backend/tutorconnect/repositories/tutor_repository.py
"""
Tutor Profile Store data access.

Public search is always restricted to verified, completed profiles; callers
cannot widen it.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.enums import TeachingMethodFilter, VerificationState
from ..models.tutor import AvailabilityWindow, TutorProfile, TutorSubject
from .base_repository import BaseRepository, wrap_db_error


@dataclass
class TutorSearchFilters:
    subject: Optional[str] = None
    min_rate: Optional[Decimal] = None
    max_rate: Optional[Decimal] = None
    teaching_method: TeachingMethodFilter = TeachingMethodFilter.ALL
    days: List[str] = field(default_factory=list)
    limit: int = 50
    offset: int = 0


class TutorProfileRepository(BaseRepository[TutorProfile]):
    def __init__(self, db: Session):
        super().__init__(db, TutorProfile)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(TutorProfile.user),
            selectinload(TutorProfile.subjects),
            selectinload(TutorProfile.availability),
        )

    def get_with_reviews(self, profile_id: str) -> Optional[TutorProfile]:
        from ..models.review import Review

        try:
            return (
                self._apply_eager_loading(self.db.query(TutorProfile))
                .options(selectinload(TutorProfile.reviews).joinedload(Review.author))
                .filter(TutorProfile.id == profile_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading tutor profile {profile_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to retrieve tutor profile") from e

    def get_by_user_id(self, user_id: str) -> Optional[TutorProfile]:
        try:
            return (
                self._apply_eager_loading(self.db.query(TutorProfile))
                .filter(TutorProfile.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading tutor profile for user {user_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to retrieve tutor profile") from e

    def get_for_update(self, profile_id: str) -> Optional[TutorProfile]:
        """
        Load a profile with a row lock where the backend supports it.

        SQLite ignores FOR UPDATE; the booking lock covers that case.
        """
        try:
            query = self.db.query(TutorProfile).filter(TutorProfile.id == profile_id)
            if self.dialect_name == "postgresql":
                query = query.with_for_update()
            profile = query.first()
            if profile is not None:
                # load collections outside the locking statement
                _ = profile.subjects, profile.availability
            return profile
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking tutor profile {profile_id}: {str(e)}")
            raise wrap_db_error(e, "Failed to retrieve tutor profile") from e

    def search_public(self, filters: TutorSearchFilters) -> List[TutorProfile]:
        try:
            query = self._apply_eager_loading(self.db.query(TutorProfile)).filter(
                TutorProfile.verification_state == VerificationState.VERIFIED.value,
                TutorProfile.profile_completed.is_(True),
            )

            if filters.subject:
                needle = filters.subject.strip().lower()
                name_match = func.lower(TutorSubject.name).contains(needle, autoescape=True)
                query = query.filter(TutorProfile.subjects.any(name_match))
            if filters.min_rate is not None:
                query = query.filter(TutorProfile.hourly_rate >= filters.min_rate)
            if filters.max_rate is not None:
                query = query.filter(TutorProfile.hourly_rate <= filters.max_rate)

            method = filters.teaching_method
            if method == TeachingMethodFilter.ONLINE:
                query = query.filter(TutorProfile.teaches_online.is_(True))
            elif method == TeachingMethodFilter.IN_PERSON:
                query = query.filter(TutorProfile.teaches_in_person.is_(True))
            elif method == TeachingMethodFilter.BOTH:
                query = query.filter(
                    TutorProfile.teaches_online.is_(True),
                    TutorProfile.teaches_in_person.is_(True),
                )

            if filters.days:
                query = query.filter(
                    TutorProfile.availability.any(AvailabilityWindow.day_of_week.in_(filters.days))
                )

            return (
                query.order_by(
                    TutorProfile.rating.is_(None),
                    TutorProfile.rating.desc(),
                    TutorProfile.created_at.asc(),
                )
                .offset(filters.offset)
                .limit(filters.limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error searching tutors: {str(e)}")
            raise wrap_db_error(e, "Failed to search tutors") from e

    def list_pending(self) -> List[TutorProfile]:
        try:
            return (
                self._apply_eager_loading(self.db.query(TutorProfile))
                .filter(
                    TutorProfile.verification_state == VerificationState.PENDING.value,
                    TutorProfile.profile_completed.is_(True),
                )
                .order_by(TutorProfile.submitted_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing pending tutors: {str(e)}")
            raise wrap_db_error(e, "Failed to list pending tutors") from e

    def count_pending(self) -> int:
        return self.count(
            verification_state=VerificationState.PENDING.value, profile_completed=True
        )
