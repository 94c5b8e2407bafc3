"""Error taxonomy: every domain exception carries a stable code and status."""

import pytest

from tutorconnect.core.exceptions import (
    AlreadyPastException,
    ForbiddenException,
    InvalidActionException,
    InvalidStateTransitionException,
    InvalidSubjectException,
    NotFoundException,
    OutsideAvailabilityException,
    ServiceException,
    SlotConflictException,
    TutorNotEligibleException,
    UnauthorizedException,
    ValidationException,
)


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (ValidationException("bad"), 422, "VALIDATION_ERROR"),
        (NotFoundException("missing"), 404, "NOT_FOUND"),
        (UnauthorizedException("no token"), 401, "AUTHENTICATION_ERROR"),
        (ForbiddenException("nope"), 403, "FORBIDDEN"),
        (TutorNotEligibleException("T1", "pending"), 422, "TUTOR_NOT_ELIGIBLE"),
        (InvalidSubjectException("Art", ["Maths"]), 422, "INVALID_SUBJECT"),
        (OutsideAvailabilityException("Monday", "13:00-14:00"), 422, "OUTSIDE_AVAILABILITY"),
        (SlotConflictException(), 409, "SLOT_CONFLICT"),
        (InvalidStateTransitionException("booking", "cancelled", "cancel"), 409,
         "INVALID_STATE_TRANSITION"),
        (InvalidActionException("pause", ["approve", "reject"]), 400, "INVALID_ACTION"),
        (AlreadyPastException("B1", "2030-01-01T10:00:00+00:00"), 422, "ALREADY_PAST"),
        (ServiceException(), 500, "SERVER_ERROR"),
    ],
)
def test_status_and_code(exc, status_code, code):
    http_exc = exc.to_http_exception()

    assert exc.code == code
    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code
    assert http_exc.detail["message"] == exc.message


def test_unauthorized_sets_challenge_header():
    http_exc = UnauthorizedException("Not authenticated").to_http_exception()

    assert http_exc.headers == {"WWW-Authenticate": "Bearer"}


def test_retryable_service_error_is_503_with_retry_after():
    exc = ServiceException("Database unavailable", retryable=True)
    http_exc = exc.to_http_exception()

    assert exc.retryable is True
    assert http_exc.status_code == 503
    assert http_exc.headers == {"Retry-After": "1"}


def test_explicit_code_overrides_default():
    exc = NotFoundException("User not registered", code="USER_NOT_REGISTERED")

    assert exc.code == "USER_NOT_REGISTERED"
    assert exc.status_code == 404


def test_details_are_exposed():
    exc = OutsideAvailabilityException("Friday", "18:00-19:00")

    assert exc.details == {"day": "Friday", "requested": "18:00-19:00"}
    assert "Friday" in exc.message
