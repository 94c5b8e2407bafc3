# backend/tutorconnect/models/review.py
"""Student reviews of tutors."""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime, utcnow


class Review(Base):
    """One review per student per tutor; rating 1..5."""

    __tablename__ = "reviews"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tutor_profile_id = Column(
        String(26), ForeignKey("tutor_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    tutor_profile = relationship("TutorProfile", back_populates="reviews")
    author = relationship("User")

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
        UniqueConstraint("tutor_profile_id", "author_id", name="uq_reviews_tutor_author"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.id} tutor={self.tutor_profile_id} rating={self.rating}>"
