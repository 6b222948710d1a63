"""
Database package for the Tool Lending engine.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and the transaction boundary (session.py)
- Repositories for tools, reservations and maintenance windows
- The interval index answering overlap queries (interval_index.py)
- The engine's exception hierarchy (repository.py)
"""

from .interval_index import IntervalIndex
from .maintenance_repository import MaintenanceCreateSchema, MaintenanceRepository
from .repository import (
    BaseRepository,
    ConflictError,
    DuplicateError,
    InvalidIntervalError,
    InvalidStateError,
    LockTimeoutError,
    NotFoundError,
    RepositoryException,
    UnavailableError,
)
from .reservation_repository import ReservationCreateSchema, ReservationRepository
from .schema import Base, MaintenanceWindow, Reservation, Tool
from .session import DatabaseManager
from .tool_repository import ToolCreateSchema, ToolRepository

__all__ = [
    "Base",
    "BaseRepository",
    "ConflictError",
    "DatabaseManager",
    "DuplicateError",
    "IntervalIndex",
    "InvalidIntervalError",
    "InvalidStateError",
    "LockTimeoutError",
    "MaintenanceCreateSchema",
    "MaintenanceRepository",
    "MaintenanceWindow",
    "NotFoundError",
    "RepositoryException",
    "Reservation",
    "ReservationCreateSchema",
    "ReservationRepository",
    "Tool",
    "ToolCreateSchema",
    "ToolRepository",
    "UnavailableError",
]
