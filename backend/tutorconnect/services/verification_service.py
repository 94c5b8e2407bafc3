# backend/tutorconnect/services/verification_service.py
"""
Admin Verification Workflow.

Only pending profiles can be decided. Approval makes the tutor searchable and
bookable; a rejected tutor may edit and resubmit, which returns the profile
to pending.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, RoleName, VerificationAction, VerificationState
from ..core.exceptions import (
    ForbiddenException,
    InvalidActionException,
    InvalidStateTransitionException,
    NotFoundException,
)
from ..core.timezone_utils import utc_now
from ..models.booking import Booking
from ..models.tutor import TutorProfile
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


class VerificationService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.tutor_repository = RepositoryFactory.create_tutor_profile_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @staticmethod
    def _require_admin(user: User) -> None:
        if user.role != RoleName.ADMIN:
            raise ForbiddenException("Admin access required")

    @BaseService.measure_operation("verify_tutor")
    def verify_tutor(self, tutor_profile_id: str, action: str, admin: User) -> str:
        """
        Approve or reject a pending tutor profile.

        Returns:
            "Tutor approved" or "Tutor rejected"

        Raises:
            ForbiddenException: acting user is not an admin
            InvalidActionException: action is not approve or reject
            NotFoundException: profile does not exist
            InvalidStateTransitionException: profile is not pending
        """
        self._require_admin(admin)

        allowed = [a.value for a in VerificationAction]
        if action not in allowed:
            raise InvalidActionException(action, allowed)
        decision = VerificationAction(action)

        profile = self.tutor_repository.get_for_update(tutor_profile_id)
        if profile is None:
            raise NotFoundException("Tutor profile not found")
        if profile.verification_state != VerificationState.PENDING:
            raise InvalidStateTransitionException(
                "tutor profile", profile.verification_state, decision.value
            )

        with self.transaction():
            if decision is VerificationAction.APPROVE:
                profile.approve(admin.id)
            else:
                profile.reject(admin.id)

        self.logger.info(
            "Tutor verification decided",
            extra={
                "event": f"tutor.{profile.verification_state}",
                "tutor_profile_id": profile.id,
                "admin_id": admin.id,
            },
        )
        return "Tutor approved" if decision is VerificationAction.APPROVE else "Tutor rejected"

    def list_pending_tutors(self, admin: User) -> List[TutorProfile]:
        """Completed profiles awaiting review, oldest submission first."""
        self._require_admin(admin)
        return self.read_with_retry("list_pending_tutors", self.tutor_repository.list_pending)

    @BaseService.measure_operation("admin_stats")
    def get_admin_stats(self, admin: User) -> Dict[str, Any]:
        self._require_admin(admin)
        now = utc_now()

        def _collect() -> Dict[str, Any]:
            return {
                "total_users": self.user_repository.count(),
                "total_tutors": self.user_repository.count_by_role(RoleName.TUTOR.value),
                "total_earnings": self.booking_repository.total_earnings(),
                "pending_verifications": self.tutor_repository.count_pending(),
                "active_sessions": self.booking_repository.count_upcoming_scheduled(now),
                "recent_activity": [
                    {"description": self._describe(b), "timestamp": b.created_at}
                    for b in self.booking_repository.recent(RECENT_ACTIVITY_LIMIT)
                ],
            }

        return self.read_with_retry("admin_stats", _collect)

    @staticmethod
    def _describe(booking: Booking) -> str:
        student = booking.student.full_name if booking.student else "A student"
        owner = booking.tutor_profile.user if booking.tutor_profile else None
        tutor = owner.full_name if owner else "a tutor"
        if booking.status == BookingStatus.CANCELLED:
            return f"{student} cancelled a {booking.subject} session with {tutor}"
        return f"{student} booked a {booking.subject} session with {tutor}"
