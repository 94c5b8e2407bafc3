# backend/tutorconnect/services/base.py
"""
Base Service Pattern for the TutorConnect marketplace.

Provides common functionality for all service classes including:
- Transaction management
- Logging
- Performance monitoring
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Iterator, TypeVar, cast

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    DuplicateRecordException,
    RepositoryException,
    ServiceException,
)
from ..database import retry_delay
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """
    Base class for all service layer components.

    Services receive the acting user explicitly on every call; nothing reads
    a request-global "current user".
    """

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                self.db.add(entity)
                # commit is handled automatically

        Domain exceptions propagate unchanged after rollback. Infrastructure
        failures become ServiceException, retryable when transient.
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except DuplicateRecordException:
            self.db.rollback()
            raise
        except RepositoryException as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(
                "Database operation failed", retryable=e.retryable
            ) from e
        except IntegrityError as e:
            self.logger.warning(f"Integrity error on commit: {e.orig}")
            self.db.rollback()
            raise DuplicateRecordException(f"Integrity constraint violated: {e.orig}") from e
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(
                "Database operation failed",
                retryable=isinstance(e, OperationalError),
            ) from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, data):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                success = False
                error_type = None
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - start_time
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            setattr(wrapper, "_operation_name", operation_name)
            return cast(F, wrapper)

        return decorator

    def read_with_retry(self, op_name: str, func: Callable[[], T], *, max_attempts: int = 3) -> T:
        """
        Run a read-only repository call, retrying transient database failures.

        Only reads go through here; a failed write is surfaced, never replayed.
        """
        attempt = 1
        while True:
            try:
                return func()
            except RepositoryException as exc:
                if not exc.retryable:
                    raise ServiceException("Database operation failed") from exc
                if attempt >= max_attempts:
                    raise ServiceException("Database unavailable", retryable=True) from exc
                self.db.rollback()
                delay = retry_delay(attempt)
                self.logger.warning(
                    "Transient DB failure detected, retrying",
                    extra={"event": "db_retry", "op": op_name, "attempt": attempt, "delay": delay},
                )
                time.sleep(delay)
                attempt += 1

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with structured context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
