# backend/tutorconnect/main.py
"""
TutorConnect API entry point.

Run locally with ``uvicorn tutorconnect.main:app --reload`` from ``backend/``.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from . import __version__
from .api.dependencies import get_db
from .core.config import settings
from .core.exceptions import ServiceException
from .database import init_db, with_db_retry
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes import admin, auth, bookings, students, tutors
from .schemas.health import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{settings.app_name} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if settings.is_testing:
        logger.info("Running under pytest (test mode active)")

    init_db()
    logger.info("Database schema ready")

    yield

    logger.info(f"{settings.app_name} API shutting down...")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Tutoring marketplace: tutor profiles, admin verification and session booking",
    version=__version__,
    lifespan=app_lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(PrometheusMiddleware)

app.include_router(auth.router, prefix="/auth")
app.include_router(tutors.router, prefix="/tutors")
app.include_router(bookings.router, prefix="/bookings")
app.include_router(students.router, prefix="/students")
app.include_router(admin.router, prefix="/admin")


@app.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    try:
        with_db_retry("health_check", lambda: db.execute(text("SELECT 1")))
    except OperationalError as exc:
        logger.error("Health check database probe failed: %s", exc)
        raise ServiceException(
            "Database unavailable", code="DATABASE_UNAVAILABLE", retryable=True
        ).to_http_exception() from exc
    return HealthResponse(
        status="healthy",
        service=f"{settings.app_name.lower()}-api",
        version=__version__,
        environment=settings.environment,
        database="ok",
    )


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Prometheus exposition for the private registry."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
