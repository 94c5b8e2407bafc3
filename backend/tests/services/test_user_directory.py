"""User Directory: signup from identity claims and account resolution."""

import pytest

from tutorconnect.auth import IdentityClaims
from tutorconnect.core.enums import RoleName, VerificationState
from tutorconnect.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from tutorconnect.schemas.user import SignupRequest
from tutorconnect.services.user_service import UserService


@pytest.fixture
def service(db):
    return UserService(db)


def _claims(uid="firebase-uid-1", email="Learner@Example.com"):
    return IdentityClaims(uid=uid, email=email, email_verified=True)


class TestSignup:
    def test_student_signup(self, service):
        user = service.signup(_claims(), SignupRequest(first_name="Lee", last_name="Park"))

        assert user.role == RoleName.STUDENT.value
        assert user.email == "learner@example.com"
        assert user.is_active is True
        assert user.tutor_profile is None

    def test_tutor_signup_creates_incomplete_profile(self, service):
        user = service.signup(
            _claims(), SignupRequest(first_name="Ana", last_name="Silva", role="tutor")
        )

        assert user.role == RoleName.TUTOR.value
        assert user.tutor_profile is not None
        assert user.tutor_profile.verification_state == VerificationState.INCOMPLETE.value
        assert user.tutor_profile.profile_completed is False

    def test_admin_role_cannot_be_requested(self):
        with pytest.raises(ValueError):
            SignupRequest(first_name="Eve", last_name="Root", role="admin")

    def test_duplicate_uid(self, service):
        service.signup(_claims(), SignupRequest(first_name="Lee", last_name="Park"))

        with pytest.raises(ConflictException) as exc_info:
            service.signup(
                _claims(email="other@example.com"),
                SignupRequest(first_name="Lee", last_name="Park"),
            )

        assert exc_info.value.code == "USER_EXISTS"

    def test_duplicate_email_case_insensitive(self, service):
        service.signup(_claims(), SignupRequest(first_name="Lee", last_name="Park"))

        with pytest.raises(ConflictException):
            service.signup(
                _claims(uid="firebase-uid-2", email="LEARNER@example.com"),
                SignupRequest(first_name="Lee", last_name="Park"),
            )

    def test_token_without_email(self, service):
        with pytest.raises(ValidationException):
            service.signup(_claims(email=None), SignupRequest(first_name="Lee", last_name="Park"))


class TestResolveUser:
    def test_registered_user(self, service, student):
        claims = IdentityClaims(uid=student.firebase_uid, email=student.email)

        assert service.resolve_user(claims).id == student.id

    def test_unknown_identity(self, service):
        with pytest.raises(NotFoundException) as exc_info:
            service.resolve_user(_claims(uid="never-signed-up"))

        assert exc_info.value.code == "USER_NOT_REGISTERED"

    def test_deactivated_account(self, service, make_user):
        inactive = make_user(RoleName.STUDENT, is_active=False)

        with pytest.raises(ForbiddenException) as exc_info:
            service.resolve_user(IdentityClaims(uid=inactive.firebase_uid, email=inactive.email))

        assert exc_info.value.code == "ACCOUNT_INACTIVE"

    def test_record_login_stamps_time(self, service, student):
        assert student.last_login is None

        service.record_login(student)

        assert student.last_login is not None
