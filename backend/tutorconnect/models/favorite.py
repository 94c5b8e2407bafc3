# backend/tutorconnect/models/favorite.py
"""Students' saved tutors."""

from sqlalchemy import Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class Favorite(Base):
    """Junction table for students favoriting tutor profiles."""

    __tablename__ = "favorites"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    student_id = Column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tutor_profile_id = Column(
        String(26), ForeignKey("tutor_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    student = relationship("User")
    tutor_profile = relationship("TutorProfile")

    __table_args__ = (
        UniqueConstraint("student_id", "tutor_profile_id", name="uq_favorites_student_tutor"),
    )

    def __repr__(self) -> str:
        return f"<Favorite student={self.student_id} tutor={self.tutor_profile_id}>"
