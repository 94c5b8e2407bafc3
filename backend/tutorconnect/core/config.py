# backend/tutorconnect/core/config.py
import logging
import os
from typing import Annotated, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# firebase-admin reads GOOGLE_APPLICATION_CREDENTIALS straight from os.environ.
load_dotenv(override=False)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    app_name: str = Field(default="TutorConnect", alias="APP_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database
    database_url: str = Field(
        default="sqlite:///./tutorconnect.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL; SQLite for local development, PostgreSQL in production",
    )
    db_pool_timeout_seconds: float = Field(
        default=5.0,
        alias="DB_POOL_TIMEOUT_SECONDS",
        description="Seconds to wait for a pooled connection before failing",
    )
    db_connect_timeout_seconds: int = Field(
        default=5,
        alias="DB_CONNECT_TIMEOUT_SECONDS",
        description="Seconds to wait when opening a new database connection",
    )

    # Booking lock
    redis_url: Optional[str] = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis URL for the distributed booking lock (process-local lock when unset)",
    )
    booking_lock_timeout_seconds: float = Field(
        default=5.0,
        alias="BOOKING_LOCK_TIMEOUT_SECONDS",
        description="Maximum time a booking request waits for the per-tutor lock",
    )
    booking_lock_ttl_seconds: int = Field(
        default=30,
        alias="BOOKING_LOCK_TTL_SECONDS",
        description="Expiry of a Redis booking lock if the holder dies",
    )

    # Identity provider
    identity_provider: Literal["firebase", "jwt"] = Field(
        default="firebase",
        alias="IDENTITY_PROVIDER",
        description="Token verifier: firebase (production) or jwt (local/testing)",
    )
    firebase_project_id: Optional[str] = Field(default=None, alias="FIREBASE_PROJECT_ID")
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description="Service account JSON; application default credentials when unset",
    )
    identity_timeout_seconds: float = Field(
        default=5.0,
        alias="IDENTITY_TIMEOUT_SECONDS",
        description="Upper bound on a single token verification call",
    )
    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        alias="SECRET_KEY",
        description="HS256 signing key used by the jwt identity provider",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Marketplace rules
    min_hourly_rate: float = Field(
        default=10.0,
        alias="MIN_HOURLY_RATE",
        description="Lowest hourly rate a tutor may submit",
    )
    allowed_durations: Annotated[list[int], NoDecode] = Field(
        default=[30, 60, 90, 120],
        alias="ALLOWED_DURATIONS",
        description="Session lengths in minutes a student may book",
    )
    max_slot_range_days: int = Field(
        default=60,
        alias="MAX_SLOT_RANGE_DAYS",
        description="Widest date range accepted by the open-slot listing",
    )
    max_notes_length: int = Field(default=500, alias="MAX_NOTES_LENGTH")

    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )

    is_testing: bool = False  # Set to True when running tests

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [token.strip() for token in value.split(",") if token.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(token).strip() for token in value if str(token).strip()]
        raise ValueError("cors_origins must be a comma-separated string or list")

    @field_validator("allowed_durations", mode="before")
    @classmethod
    def _parse_durations(cls, value: object) -> list[int]:
        if isinstance(value, str):
            return sorted(int(token) for token in value.split(",") if token.strip())
        if isinstance(value, (list, tuple, set)):
            return sorted(int(token) for token in value)
        raise ValueError("allowed_durations must be a comma-separated string or list")

    @field_validator("allowed_durations")
    @classmethod
    def _check_durations(cls, value: list[int]) -> list[int]:
        if not value or any(minutes <= 0 for minutes in value):
            raise ValueError("allowed_durations must contain positive minute values")
        return value


settings = Settings()

if is_running_tests():
    settings.is_testing = True
