# backend/tutorconnect/services/user_service.py
"""
User Directory service.

Accounts are created on first sign-in from verified identity claims. A tutor
signup also creates the empty profile the tutor later completes.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session

from ..auth import IdentityClaims
from ..core.enums import RoleName, VerificationState
from ..core.exceptions import (
    ConflictException,
    DuplicateRecordException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from ..schemas.user import SignupRequest
from .base import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)

    @BaseService.measure_operation("signup")
    def signup(self, claims: IdentityClaims, data: SignupRequest) -> User:
        """
        Register the account behind a verified identity token.

        Raises:
            ValidationException: token carries no email
            ConflictException: provider uid or email already registered
        """
        if not claims.email:
            raise ValidationException(
                "Identity token does not include an email address",
                details={"missing_fields": ["email"]},
            )
        email = claims.email.strip().lower()

        if self.user_repository.get_by_firebase_uid(claims.uid):
            raise ConflictException("Account already registered", code="USER_EXISTS")
        if self.user_repository.get_by_email(email):
            raise ConflictException("Email already registered", code="USER_EXISTS")

        try:
            with self.transaction():
                user = self.user_repository.create(
                    firebase_uid=claims.uid,
                    email=email,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    phone=data.phone,
                    role=data.role,
                    is_active=True,
                    last_login=datetime.now(timezone.utc),
                )
                if data.role == RoleName.TUTOR:
                    self.tutor_repository.create(
                        user_id=user.id,
                        verification_state=VerificationState.INCOMPLETE.value,
                        profile_completed=False,
                    )
        except DuplicateRecordException as exc:
            # lost a race with a concurrent signup for the same account
            raise ConflictException("Account already registered", code="USER_EXISTS") from exc

        self.log_operation("signup", user_id=user.id, role=user.role)
        return self.user_repository.get_by_firebase_uid(claims.uid) or user

    def resolve_user(self, claims: IdentityClaims) -> User:
        """
        Map verified claims to an active account.

        Raises:
            NotFoundException: no account registered for this identity
            ForbiddenException: account deactivated
        """
        user = self.user_repository.get_by_firebase_uid(claims.uid)
        if user is None:
            raise NotFoundException("User not registered", code="USER_NOT_REGISTERED")
        if not user.is_active:
            raise ForbiddenException("Account is deactivated", code="ACCOUNT_INACTIVE")
        return user

    @BaseService.measure_operation("record_login")
    def record_login(self, user: User) -> User:
        with self.transaction():
            user.last_login = datetime.now(timezone.utc)
        return user
