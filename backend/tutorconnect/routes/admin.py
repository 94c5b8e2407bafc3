# backend/tutorconnect/routes/admin.py
"""
Admin routes.

Endpoints:
    POST /admin/verify-tutor - Approve or reject a pending tutor
    GET /admin/pending-tutors - Verification queue, oldest first
    GET /admin/stats - Platform totals and recent booking activity
"""

import asyncio
import logging
from typing import List, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..api.dependencies import get_verification_service, require_admin
from ..core.exceptions import DomainException
from ..models.user import User
from ..schemas.admin import (
    AdminStatsResponse,
    MessageResponse,
    RecentActivity,
    VerifyTutorRequest,
)
from ..schemas.tutor import TutorProfileResponse
from ..services.verification_service import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/verify-tutor",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid action"},
        404: {"description": "Tutor profile not found"},
        409: {"description": "Profile is not pending verification"},
    },
)
async def verify_tutor(
    payload: VerifyTutorRequest = Body(...),
    current_user: User = Depends(require_admin),
    service: VerificationService = Depends(get_verification_service),
) -> MessageResponse:
    try:
        message = await asyncio.to_thread(
            service.verify_tutor, payload.tutor_id, payload.action, current_user
        )
        return MessageResponse(message=message)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/pending-tutors", response_model=List[TutorProfileResponse])
async def list_pending_tutors(
    current_user: User = Depends(require_admin),
    service: VerificationService = Depends(get_verification_service),
) -> List[TutorProfileResponse]:
    try:
        profiles = await asyncio.to_thread(service.list_pending_tutors, current_user)
        return [TutorProfileResponse.from_profile(p) for p in profiles]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    current_user: User = Depends(require_admin),
    service: VerificationService = Depends(get_verification_service),
) -> AdminStatsResponse:
    try:
        stats = await asyncio.to_thread(service.get_admin_stats, current_user)
        return AdminStatsResponse(
            total_users=stats["total_users"],
            total_tutors=stats["total_tutors"],
            total_earnings=stats["total_earnings"],
            pending_verifications=stats["pending_verifications"],
            active_sessions=stats["active_sessions"],
            recent_activity=[RecentActivity(**item) for item in stats["recent_activity"]],
        )
    except DomainException as e:
        handle_domain_exception(e)
