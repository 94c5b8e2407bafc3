# backend/tutorconnect/repositories/base_repository.py
"""
Base repository pattern for the TutorConnect marketplace.

Repositories own every query; services own transactions. Nothing here
commits. SQLAlchemy failures are wrapped in RepositoryException so the
service layer never handles driver errors directly.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import DuplicateRecordException, RepositoryException
from ..database import is_retryable_db_error

T = TypeVar("T")

logger = logging.getLogger(__name__)


def wrap_db_error(exc: SQLAlchemyError, message: str) -> RepositoryException:
    """Translate a SQLAlchemy error into a repository error, flagging transient ones."""
    if isinstance(exc, IntegrityError):
        return DuplicateRecordException(f"Integrity constraint violated: {exc.orig}")
    retryable = isinstance(exc, OperationalError) and (
        is_retryable_db_error(exc) or "timeout" in str(exc).lower()
    )
    return RepositoryException(f"{message}: {exc}", retryable=retryable)


class BaseRepository(Generic[T]):
    """
    Common data access patterns shared by every repository.

    Attributes:
        db: SQLAlchemy session (managed by service layer)
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        bind = self.db.get_bind()
        return bind.dialect.name if bind is not None else ""

    def _query(self) -> Query:
        return self.db.query(self.model)

    def _apply_eager_loading(self, query: Query) -> Query:
        """Override in subclasses to add joinedload/selectinload options."""
        return query

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        try:
            query = self._query().filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise wrap_db_error(e, f"Failed to retrieve {self.model.__name__}") from e

    def find_one_by(self, **kwargs: Any) -> Optional[T]:
        try:
            return self._query().filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding {self.model.__name__} by {kwargs}: {str(e)}")
            raise wrap_db_error(e, f"Failed to retrieve {self.model.__name__}") from e

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.warning("Integrity error creating %s: %s", self.model.__name__, exc.orig)
            self.db.rollback()
            raise wrap_db_error(exc, f"Failed to create {self.model.__name__}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise wrap_db_error(e, f"Failed to create {self.model.__name__}") from e

    def count(self, **kwargs: Any) -> int:
        try:
            return self._query().filter_by(**kwargs).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting {self.model.__name__}: {str(e)}")
            raise wrap_db_error(e, f"Failed to count {self.model.__name__}") from e
