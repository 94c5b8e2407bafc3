# backend/tutorconnect/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token is verified against the identity provider, then mapped to a
registered account. Role guards return the user so routes receive the acting
user explicitly.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...auth import IdentityClaims, verify_token
from ...core.enums import RoleName
from ...core.exceptions import DomainException, ForbiddenException, UnauthorizedException
from ...models.user import User
from ...services.user_service import UserService
from .services import get_user_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_identity_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> IdentityClaims:
    """
    Verify the bearer token.

    Raises:
        HTTPException: 401 when the token is missing or invalid, 503 when the
            identity provider cannot be reached in time
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Not authenticated").to_http_exception()
    try:
        return await verify_token(credentials.credentials)
    except DomainException as exc:
        raise exc.to_http_exception() from exc


async def get_current_user(
    claims: IdentityClaims = Depends(get_identity_claims),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """
    Get the registered, active account behind the token.

    Raises:
        HTTPException: 404 when the identity has not signed up, 403 when the
            account is deactivated
    """
    try:
        # sync DB lookup; keep it off the event loop
        return await asyncio.to_thread(user_service.resolve_user, claims)
    except DomainException as exc:
        raise exc.to_http_exception() from exc


def _require_role(user: User, role: RoleName, message: str) -> User:
    if user.role != role:
        raise ForbiddenException(message, details={"required_role": role.value}).to_http_exception()
    return user


async def require_student(current_user: User = Depends(get_current_user)) -> User:
    return _require_role(current_user, RoleName.STUDENT, "Student access required")


async def require_tutor(current_user: User = Depends(get_current_user)) -> User:
    return _require_role(current_user, RoleName.TUTOR, "Tutor access required")


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that ensures the caller has administrator privileges."""
    return _require_role(current_user, RoleName.ADMIN, "Admin access required")


__all__ = [
    "bearer_scheme",
    "get_current_user",
    "get_identity_claims",
    "require_admin",
    "require_student",
    "require_tutor",
]
