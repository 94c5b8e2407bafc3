# backend/tutorconnect/models/user.py
"""
User model for the TutorConnect marketplace.

One record per identity-provider account. Students, tutors and admins share
this table and are told apart by ``role``, which is fixed at signup.
"""

import logging
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import RoleName
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class User(Base):
    """
    Account record keyed by the identity provider's stable uid.

    Attributes:
        id: ULID primary key
        firebase_uid: Stable subject identifier from the identity token
        email: Unique email address taken from token claims
        first_name: User's first name
        last_name: User's last name
        phone: Optional contact number
        role: student, tutor or admin
        is_active: Inactive accounts are refused at authentication
        last_login: Updated on each ``/auth/me`` call

    Relationships:
        tutor_profile: One-to-one with TutorProfile (tutors only)
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    firebase_uid = Column(String(128), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default=RoleName.STUDENT.value)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now(), nullable=True)

    tutor_profile = relationship(
        "TutorProfile",
        back_populates="user",
        uselist=False,
        foreign_keys="TutorProfile.user_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("role IN ('student', 'tutor', 'admin')", name="ck_users_role"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.role:
            self.role = RoleName.STUDENT.value
        if self.is_active is None:
            self.is_active = True

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
