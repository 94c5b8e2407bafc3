# backend/tutorconnect/routes/bookings.py
"""
Booking routes.

Endpoints:
    POST /bookings - Book a session with a verified tutor (student only)

All business logic is delegated to BookingService.
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, status

from ..api.dependencies import get_booking_service, require_student
from ..core.exceptions import DomainException
from ..models.user import User
from ..schemas.booking import BookingCreate, BookingResponse
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Tutor not found"},
        409: {"description": "Time slot conflicts with an existing booking"},
        422: {"description": "Booking rejected by a business rule"},
        503: {"description": "Booking lock unavailable, retry"},
    },
)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key", max_length=128),
    current_user: User = Depends(require_student),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Create a booking.

    Accepts either ``startTime``/``endTime`` instants or a local ``date``,
    ``startTime`` ("HH:MM") and ``durationMinutes`` in the tutor's timezone.
    Repeating a request with the same ``Idempotency-Key`` returns the original
    booking.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            current_user,
            booking_data,
            idempotency_key or None,
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
