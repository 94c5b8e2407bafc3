"""
Identity token verification.

Bearer tokens are issued by an external identity provider. Production uses
Firebase ID tokens verified with firebase-admin; local development and tests
use HS256 JWTs signed with ``SECRET_KEY``. Both verifiers return the same
``IdentityClaims`` and both are bounded by ``IDENTITY_TIMEOUT_SECONDS``.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
import logging
from typing import Any, Dict, Optional, Protocol, cast

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from firebase_admin.exceptions import FirebaseError
import jwt
from jwt import PyJWTError

from .core.config import settings
from .core.exceptions import ServiceException, UnauthorizedException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityClaims:
    """Subset of token claims the application relies on."""

    uid: str
    email: Optional[str]
    email_verified: bool = False
    name: Optional[str] = None


class TokenVerifier(Protocol):
    def verify(self, token: str) -> IdentityClaims: ...


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


class JWTTokenVerifier:
    """HS256 verifier for local development and tests."""

    def verify(self, token: str) -> IdentityClaims:
        try:
            payload = cast(
                Dict[str, Any],
                jwt.decode(
                    token,
                    _secret_value(settings.secret_key),
                    algorithms=[settings.jwt_algorithm],
                    options={"verify_aud": False, "require": ["sub", "exp"]},
                ),
            )
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedException("Token has expired") from exc
        except PyJWTError as exc:
            raise UnauthorizedException("Could not validate credentials") from exc
        return IdentityClaims(
            uid=str(payload["sub"]),
            email=payload.get("email"),
            email_verified=bool(payload.get("email_verified", False)),
            name=payload.get("name"),
        )


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self) -> None:
        self._app = self._initialize()

    @staticmethod
    def _initialize() -> firebase_admin.App:
        try:
            return firebase_admin.get_app()
        except ValueError:
            options = (
                {"projectId": settings.firebase_project_id}
                if settings.firebase_project_id
                else None
            )
            if settings.firebase_credentials_path:
                cred = credentials.Certificate(settings.firebase_credentials_path)
                app = firebase_admin.initialize_app(cred, options)
            else:
                app = firebase_admin.initialize_app(options=options)
            logger.info("Firebase Admin SDK initialized")
            return app

    def verify(self, token: str) -> IdentityClaims:
        try:
            decoded = firebase_auth.verify_id_token(token, app=self._app)
        except firebase_auth.ExpiredIdTokenError as exc:
            raise UnauthorizedException("Token has expired") from exc
        except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
            raise UnauthorizedException("Could not validate credentials") from exc
        except firebase_auth.CertificateFetchError as exc:
            logger.warning("Firebase certificate fetch failed: %s", exc)
            raise ServiceException(
                "Identity provider unavailable", code="IDENTITY_UNAVAILABLE", retryable=True
            ) from exc
        except FirebaseError as exc:
            logger.error("Firebase token verification error: %s", exc)
            raise ServiceException(
                "Identity provider error", code="IDENTITY_UNAVAILABLE", retryable=True
            ) from exc
        return IdentityClaims(
            uid=decoded["uid"],
            email=decoded.get("email"),
            email_verified=bool(decoded.get("email_verified", False)),
            name=decoded.get("name"),
        )


@lru_cache(maxsize=1)
def get_token_verifier() -> TokenVerifier:
    if settings.identity_provider == "jwt":
        return JWTTokenVerifier()
    return FirebaseTokenVerifier()


async def verify_token(token: str, verifier: Optional[TokenVerifier] = None) -> IdentityClaims:
    """
    Verify a bearer token off the event loop with a bounded wait.

    Raises:
        UnauthorizedException: token missing, malformed or expired
        ServiceException: (retryable) provider timed out or is unreachable
    """
    if not token:
        raise UnauthorizedException("Not authenticated")
    active = verifier or get_token_verifier()
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(active.verify, token),
            timeout=settings.identity_timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        logger.warning(
            "Identity verification timed out",
            extra={"timeout_s": settings.identity_timeout_seconds},
        )
        raise ServiceException(
            "Identity provider timed out", code="IDENTITY_TIMEOUT", retryable=True
        ) from exc


def create_access_token(
    uid: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    **extra_claims: Any,
) -> str:
    """
    Create an HS256 token accepted by ``JWTTokenVerifier``.

    Used by the test-suite and local tooling; production tokens come from
    the identity provider.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    to_encode: Dict[str, Any] = {"sub": uid, "exp": expire, **extra_claims}
    if email:
        to_encode["email"] = email
        to_encode.setdefault("email_verified", True)
    return cast(
        str,
        jwt.encode(to_encode, _secret_value(settings.secret_key), algorithm=settings.jwt_algorithm),
    )
