# backend/tutorconnect/routes/students.py
"""
Student dashboard routes.

Endpoints:
    GET /students/sessions - Own sessions split into upcoming and past
    GET /students/stats - Session totals, hours learned and favourite subject
    DELETE /students/sessions/{booking_id} - Cancel an upcoming session
    GET /students/favorites - Saved tutors, most recent first
    POST /students/favorites/{tutor_id} - Save a tutor
    DELETE /students/favorites/{tutor_id} - Remove a saved tutor
"""

import asyncio
import logging
from typing import List, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status

from ..api.dependencies import (
    get_booking_service,
    get_current_user,
    get_favorites_service,
    require_student,
)
from ..core.exceptions import DomainException
from ..models.user import User
from ..schemas.booking import (
    StudentSessionResponse,
    StudentSessionsResponse,
    StudentStatsResponse,
)
from ..schemas.favorite import FavoriteStatusResponse
from ..schemas.tutor import TutorProfileResponse
from ..services.booking_service import BookingService
from ..services.favorites_service import FavoritesService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["students"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/sessions", response_model=StudentSessionsResponse)
async def list_sessions(
    current_user: User = Depends(require_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> StudentSessionsResponse:
    try:
        upcoming, past = await asyncio.to_thread(
            booking_service.get_student_sessions, current_user
        )
        return StudentSessionsResponse(
            upcoming=[StudentSessionResponse.from_booking(b) for b in upcoming],
            past=[StudentSessionResponse.from_booking(b) for b in past],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=StudentStatsResponse)
async def get_stats(
    current_user: User = Depends(require_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> StudentStatsResponse:
    try:
        stats = await asyncio.to_thread(booking_service.get_student_stats, current_user)
        return StudentStatsResponse(**stats)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/sessions/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        403: {"description": "Not your booking"},
        404: {"description": "Booking not found"},
        409: {"description": "Booking is not scheduled"},
        422: {"description": "Session already started"},
    },
)
async def cancel_session(
    booking_id: str = Path(..., max_length=26),
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> Response:
    """
    Cancel a scheduled session.

    Any authenticated caller reaches the service so a started session reports
    ALREADY_PAST before ownership is checked.
    """
    try:
        await asyncio.to_thread(booking_service.cancel_booking, booking_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/favorites", response_model=List[TutorProfileResponse])
async def list_favorites(
    current_user: User = Depends(require_student),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> List[TutorProfileResponse]:
    try:
        profiles = await asyncio.to_thread(favorites_service.list_favorites, current_user)
        return [TutorProfileResponse.from_profile(p) for p in profiles]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/favorites/{tutor_id}",
    response_model=FavoriteStatusResponse,
    responses={404: {"description": "Tutor not found"}},
)
async def add_favorite(
    tutor_id: str = Path(..., max_length=26),
    current_user: User = Depends(require_student),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteStatusResponse:
    try:
        added = await asyncio.to_thread(favorites_service.add_favorite, tutor_id, current_user)
        return FavoriteStatusResponse(tutor_id=tutor_id, is_favorite=True, changed=added)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/favorites/{tutor_id}", response_model=FavoriteStatusResponse)
async def remove_favorite(
    tutor_id: str = Path(..., max_length=26),
    current_user: User = Depends(require_student),
    favorites_service: FavoritesService = Depends(get_favorites_service),
) -> FavoriteStatusResponse:
    try:
        removed = await asyncio.to_thread(
            favorites_service.remove_favorite, tutor_id, current_user
        )
        return FavoriteStatusResponse(tutor_id=tutor_id, is_favorite=False, changed=removed)
    except DomainException as e:
        handle_domain_exception(e)
