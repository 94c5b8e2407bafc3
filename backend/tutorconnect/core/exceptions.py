# backend/tutorconnect/core/exceptions.py
"""
Domain-specific exceptions for the TutorConnect marketplace.

Every rejected precondition maps to a distinct exception with a stable
``code`` so clients can render a specific message. Services raise these;
routes convert them with ``to_http_exception()``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.default_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is malformed or required fields are missing."""

    status_code = HTTP_422_UNPROCESSABLE
    default_code = "VALIDATION_ERROR"


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE
    default_code = "BUSINESS_RULE_VIOLATION"


class UnauthorizedException(DomainException):
    """Raised when the bearer token is missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTHENTICATION_ERROR"

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"WWW-Authenticate": "Bearer"}
        return exc


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class ServiceException(DomainException):
    """
    Raised when infrastructure fails (database, identity provider, lock).

    ``retryable`` marks transient failures such as timeouts or connection
    loss; those surface as 503 so clients may retry reads.
    """

    default_code = "SERVER_ERROR"

    def __init__(
        self,
        message: str = "An error occurred processing your request",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, code=code, details=details)
        self.retryable = retryable
        self.status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if retryable
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        if self.retryable:
            exc.headers = {"Retry-After": "1"}
        return exc


# Specific business exceptions


class TutorNotEligibleException(BusinessRuleException):
    """Raised when a tutor profile has not been verified for bookings."""

    default_code = "TUTOR_NOT_ELIGIBLE"

    def __init__(self, tutor_profile_id: str, verification_state: str):
        super().__init__(
            message="This tutor is not accepting bookings yet",
            details={
                "tutor_profile_id": tutor_profile_id,
                "verification_state": verification_state,
            },
        )


class InvalidSubjectException(BusinessRuleException):
    """Raised when a booking names a subject the tutor does not teach."""

    default_code = "INVALID_SUBJECT"

    def __init__(self, subject: str, offered: list[str]):
        super().__init__(
            message=f"This tutor does not teach '{subject}'",
            details={"subject": subject, "offered_subjects": offered},
        )


class OutsideAvailabilityException(BusinessRuleException):
    """Raised when a requested interval is not inside a declared availability slot."""

    default_code = "OUTSIDE_AVAILABILITY"

    def __init__(self, day: str, requested_range: str):
        super().__init__(
            message=f"Requested time {requested_range} on {day} is outside the tutor's availability",
            details={"day": day, "requested": requested_range},
        )


class SlotConflictException(ConflictException):
    """Raised when a booking overlaps an existing scheduled booking."""

    default_code = "SLOT_CONFLICT"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            details=details or {},
        )


class InvalidStateTransitionException(ConflictException):
    """Raised when an entity is not in a state that allows the requested change."""

    default_code = "INVALID_STATE_TRANSITION"

    def __init__(self, entity: str, current_state: str, attempted: str):
        super().__init__(
            message=f"Cannot {attempted} a {entity} that is {current_state}",
            details={
                "entity": entity,
                "current_state": current_state,
                "attempted": attempted,
            },
        )


class InvalidActionException(DomainException):
    """Raised when an admin action value is not recognised."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_ACTION"

    def __init__(self, action: str, allowed: list[str]):
        super().__init__(
            message="Invalid action",
            details={"action": action, "allowed": allowed},
        )


class AlreadyPastException(BusinessRuleException):
    """Raised when an operation targets a booking whose start time has passed."""

    default_code = "ALREADY_PAST"

    def __init__(self, booking_id: str, start_time: str):
        super().__init__(
            message="This session has already started and can no longer be cancelled",
            details={"booking_id": booking_id, "start_time": start_time},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Wraps SQLAlchemy failures so services never see driver specifics.
    ``retryable`` is set for operational errors (timeouts, lost connections).
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class DuplicateRecordException(RepositoryException):
    """Raised when an insert or update violates a unique or foreign-key constraint."""
