# backend/tutorconnect/repositories/user_repository.py
"""User Directory data access."""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..models.user import User
from .base_repository import BaseRepository, wrap_db_error


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_firebase_uid(self, firebase_uid: str) -> Optional[User]:
        try:
            return (
                self.db.query(User)
                .options(joinedload(User.tutor_profile))
                .filter(User.firebase_uid == firebase_uid)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting user by provider uid: {str(e)}")
            raise wrap_db_error(e, "Failed to retrieve user") from e

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email.lower())

    def count_by_role(self, role: str) -> int:
        return self.count(role=role)
