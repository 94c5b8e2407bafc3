# backend/tutorconnect/routes/auth.py
"""
Account routes.

Endpoints:
    POST /auth/signup - Register the identity behind a verified token
    GET /auth/me - Current account, refreshing lastLogin
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..api.dependencies import get_current_user, get_identity_claims, get_user_service
from ..auth import IdentityClaims
from ..core.exceptions import DomainException
from ..models.user import User
from ..schemas.user import SignupRequest, UserResponse
from ..services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/signup",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Account already registered"}},
)
async def signup(
    payload: SignupRequest = Body(...),
    claims: IdentityClaims = Depends(get_identity_claims),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Create the account for a freshly authenticated identity."""
    try:
        user = await asyncio.to_thread(user_service.signup, claims, payload)
        return UserResponse.from_user(user)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/me", response_model=UserResponse)
async def read_me(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    try:
        user = await asyncio.to_thread(user_service.record_login, current_user)
        return UserResponse.from_user(user)
    except DomainException as e:
        handle_domain_exception(e)
