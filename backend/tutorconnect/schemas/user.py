"""User Directory schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from ..models.user import User
from .base import StandardizedModel, StrictRequestModel


class SignupRequest(StrictRequestModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    # admin accounts are provisioned out of band
    role: Literal["student", "tutor"] = "student"


class UserResponse(StandardizedModel):
    id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    tutor_profile_id: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            role=user.role,
            is_active=bool(user.is_active),
            tutor_profile_id=user.tutor_profile.id if user.tutor_profile else None,
            last_login=user.last_login,
            created_at=user.created_at,
        )
