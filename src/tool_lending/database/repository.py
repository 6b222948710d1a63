"""
Repository pattern implementation for the Tool Lending engine.

Repositories wrap a caller-owned SQLAlchemy session. They add and flush but
never commit: the engine decides where a transaction ends, so a reservation
update, a tool update and a new maintenance window can land in one commit or
not at all.

This module also defines the engine's error hierarchy. Every error a caller
can act on derives from RepositoryException.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.availability import Conflict
from .schema import Base

logger = logging.getLogger(__name__)

# Type variables for generic repository
ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)
T = TypeVar("T")


class RepositoryException(Exception):
    """Base exception for engine and repository operations."""


class NotFoundError(RepositoryException):
    """Raised when a tool, reservation or maintenance window does not exist."""


class DuplicateError(RepositoryException):
    """Raised when attempting to create a duplicate entity."""


class InvalidIntervalError(RepositoryException):
    """Raised for an empty interval or one starting in the past."""


class UnavailableError(RepositoryException):
    """Raised when a tool is globally disabled for booking."""


class InvalidStateError(RepositoryException):
    """Raised for a lifecycle transition the state machine does not allow."""


class LockTimeoutError(RepositoryException):
    """Raised when a per-tool lock could not be acquired in time."""


class ConflictError(RepositoryException):
    """Raised when a requested interval overlaps existing bookings.

    ``conflicts`` holds every overlapping reservation and maintenance window
    so callers can show why the request was rejected.
    """

    def __init__(self, message: str, conflicts: list[Conflict]):
        super().__init__(message)
        self.conflicts = conflicts


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, converting database failures into RepositoryException.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Context for the raised error

    Raises:
        RepositoryException: If the query fails at the database level
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed: %s", error_msg)
        raise RepositoryException(f"{error_msg}: {e!s}") from e


def generate_id(prefix: str) -> str:
    """Generate a prefixed identifier such as ``tool_3f9a0c1d2e4b5a6c``."""
    return f"{prefix}_{uuid4().hex[:16]}"


# SQLite, PostgreSQL and MySQL wording for UNIQUE / primary key violations
UNIQUE_VIOLATION_MARKERS = ("unique constraint", "duplicate key", "duplicate entry")


def is_unique_violation(error: IntegrityError) -> bool:
    """Whether an IntegrityError came from a UNIQUE or primary key constraint."""
    if getattr(error.orig, "pgcode", None) == "23505":
        return True
    message = str(error.orig).lower()
    return any(marker in message for marker in UNIQUE_VIOLATION_MARKERS)


class BaseRepository(ABC, Generic[ModelType, CreateSchemaType, ResponseSchemaType]):
    """
    Abstract base repository providing common CRUD operations.

    All reads go through safe_query. Writes are flushed so database
    constraints fire inside the caller's transaction.
    """

    id_prefix: str = ""

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def to_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database row to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def get_row(self, id: str, for_update: bool = False) -> ModelType | None:
        """
        Get the raw database row by ID.

        Args:
            id: Entity ID
            for_update: Lock the row (SELECT ... FOR UPDATE where supported)
        """
        query = select(self.model_class).where(self.model_class.id == str(id))
        if for_update:
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def require_row(self, id: str, for_update: bool = False) -> ModelType:
        """Get the raw row or raise NotFoundError."""
        db_obj = self.get_row(id, for_update=for_update)
        if db_obj is None:
            raise NotFoundError(f"{self.model_class.__name__} {id} not found")
        return db_obj

    def add(self, db_obj: ModelType) -> ModelType:
        """
        Add a new row and flush it.

        Raises:
            DuplicateError: If the row violates a uniqueness constraint
            RepositoryException: On foreign key, check or other database errors
        """
        try:
            self.session.add(db_obj)
            self.session.flush()
            return db_obj
        except IntegrityError as e:
            if is_unique_violation(e):
                raise DuplicateError(
                    f"{self.model_class.__name__} already exists: {e!s}"
                ) from e
            raise RepositoryException(
                f"{self.model_class.__name__} violates a constraint: {e!s}"
            ) from e
        except SQLAlchemyError as e:
            raise RepositoryException(f"Database error: {e!s}") from e

    def flush(self) -> None:
        """Flush pending changes so constraint violations surface now."""
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            raise RepositoryException(
                f"Failed to write {self.model_class.__name__}: {e!s}"
            ) from e

    def count(self, *criteria) -> int:
        """Count rows matching optional WHERE criteria."""
        query = select(func.count()).select_from(self.model_class)
        if criteria:
            query = query.where(*criteria)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                f"Failed to count {self.model_class.__name__}",
            )
            or 0
        )

    def exists(self, id: str) -> bool:
        return self.count(self.model_class.id == str(id)) > 0
