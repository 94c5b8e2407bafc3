# backend/tutorconnect/routes/tutors.py
"""
Tutor routes.

Endpoints:
    GET /tutors - Search verified tutors
    GET /tutors/profile - Own profile (tutor only)
    GET /tutors/stats - Own completed sessions and earnings (tutor only)
    PUT /tutors/profile - Submit or update own profile (tutor only)
    GET /tutors/{tutor_id} - Public profile with reviews
    GET /tutors/{tutor_id}/slots - Open booking intervals in a date range
    GET /tutors/{tutor_id}/sessions - Sessions with the tutor (owner or admin)
    POST /tutors/{tutor_id}/reviews - Review a tutor (student only)
"""

import asyncio
from datetime import date
from decimal import Decimal
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ..api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_current_user,
    get_review_service,
    get_tutor_profile_service,
    require_student,
    require_tutor,
)
from ..core.enums import DayOfWeek, TeachingMethodFilter
from ..core.exceptions import DomainException, ValidationException
from ..models.user import User
from ..repositories.tutor_repository import TutorSearchFilters
from ..schemas.booking import OpenSlotResponse, TutorSessionResponse, TutorStatsResponse
from ..schemas.review import ReviewCreate
from ..schemas.tutor import (
    ReviewOut,
    TutorDetailResponse,
    TutorProfileResponse,
    TutorProfileSubmit,
)
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService
from ..services.review_service import ReviewService
from ..services.tutor_profile_service import TutorProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tutors"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _parse_days(raw: Optional[str]) -> List[str]:
    """Comma-separated day names, case-insensitive, to canonical ``DayOfWeek`` values."""
    if not raw:
        return []
    by_name = {day.value.lower(): day.value for day in DayOfWeek}
    days: List[str] = []
    for part in raw.split(","):
        name = part.strip().lower()
        if not name:
            continue
        if name not in by_name:
            raise ValidationException(
                f"Unknown day '{part.strip()}'",
                details={"availability": raw, "allowed": [d.value for d in DayOfWeek]},
            )
        days.append(by_name[name])
    return days


# ============================================================================
# Static routes first (before dynamic routes with path parameters)
# ============================================================================


@router.get("", response_model=List[TutorProfileResponse])
async def search_tutors(
    subject: Optional[str] = Query(None, max_length=100),
    min_rate: Optional[Decimal] = Query(None, alias="minRate", ge=0),
    max_rate: Optional[Decimal] = Query(None, alias="maxRate", ge=0),
    teaching_method: TeachingMethodFilter = Query(
        TeachingMethodFilter.ALL, alias="teachingMethod"
    ),
    availability: Optional[str] = Query(None, description="Comma-separated day names"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: TutorProfileService = Depends(get_tutor_profile_service),
) -> List[TutorProfileResponse]:
    """Verified tutors matching every supplied filter, best rated first."""
    try:
        filters = TutorSearchFilters(
            subject=subject or None,
            min_rate=min_rate,
            max_rate=max_rate,
            teaching_method=teaching_method,
            days=_parse_days(availability),
            limit=limit,
            offset=offset,
        )
        profiles = await asyncio.to_thread(service.search_tutors, filters)
        return [TutorProfileResponse.from_profile(p) for p in profiles]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/profile", response_model=TutorProfileResponse)
async def get_own_profile(
    current_user: User = Depends(require_tutor),
    service: TutorProfileService = Depends(get_tutor_profile_service),
) -> TutorProfileResponse:
    try:
        profile = await asyncio.to_thread(service.get_profile_for_user, current_user)
        return TutorProfileResponse.from_profile(profile)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/profile",
    response_model=TutorProfileResponse,
    responses={422: {"description": "Required profile fields missing"}},
)
async def submit_profile(
    payload: TutorProfileSubmit = Body(...),
    current_user: User = Depends(require_tutor),
    service: TutorProfileService = Depends(get_tutor_profile_service),
) -> TutorProfileResponse:
    """Replace the profile and queue it for admin verification."""
    try:
        profile = await asyncio.to_thread(service.get_profile_for_user, current_user)
        updated = await asyncio.to_thread(
            service.submit_profile, profile.id, payload, current_user
        )
        return TutorProfileResponse.from_profile(updated)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=TutorStatsResponse)
async def get_own_stats(
    current_user: User = Depends(require_tutor),
    service: BookingService = Depends(get_booking_service),
) -> TutorStatsResponse:
    try:
        stats = await asyncio.to_thread(service.get_tutor_stats, current_user)
        return TutorStatsResponse(**stats)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# Dynamic routes
# ============================================================================


@router.get(
    "/{tutor_id}",
    response_model=TutorDetailResponse,
    responses={404: {"description": "Tutor not found"}},
)
async def get_tutor(
    tutor_id: str = Path(..., max_length=26),
    service: TutorProfileService = Depends(get_tutor_profile_service),
) -> TutorDetailResponse:
    try:
        profile = await asyncio.to_thread(service.get_public_tutor, tutor_id)
        return TutorDetailResponse.from_profile_with_reviews(profile)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{tutor_id}/slots", response_model=List[OpenSlotResponse])
async def list_available_slots(
    tutor_id: str = Path(..., max_length=26),
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    service: AvailabilityService = Depends(get_availability_service),
) -> List[OpenSlotResponse]:
    """Open intervals (UTC) within the inclusive date range, ascending."""
    try:
        slots = await asyncio.to_thread(
            service.list_available_slots, tutor_id, from_date, to_date
        )
        return [OpenSlotResponse(start=slot.start, end=slot.end) for slot in slots]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{tutor_id}/sessions", response_model=List[TutorSessionResponse])
async def list_tutor_sessions(
    tutor_id: str = Path(..., max_length=26),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
) -> List[TutorSessionResponse]:
    try:
        bookings = await asyncio.to_thread(service.get_tutor_sessions, tutor_id, current_user)
        return [TutorSessionResponse.from_booking(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{tutor_id}/reviews",
    response_model=ReviewOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_review(
    tutor_id: str = Path(..., max_length=26),
    payload: ReviewCreate = Body(...),
    current_user: User = Depends(require_student),
    service: ReviewService = Depends(get_review_service),
) -> ReviewOut:
    try:
        review = await asyncio.to_thread(service.add_review, tutor_id, current_user, payload)
        return ReviewOut.from_review(review)
    except DomainException as e:
        handle_domain_exception(e)
