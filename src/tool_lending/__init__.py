"""
Tool Lending Engine Package.

Reservation and availability engine for a member tool-lending library:
members book tools for time windows, returns are charged late fees, and a
daily pass ages tool condition and schedules maintenance.

Key Components:
- models: Pydantic models for tools, reservations, maintenance and results
- database: SQLAlchemy schema, session management, repositories
- config: Configuration management with pydantic-settings
- lending: Business logic and the LendingEngine facade
- observability: Logging setup and logfire tracing
"""

__version__ = "0.1.0"

from . import database
from .lending import LendingEngine

__all__ = [
    "LendingEngine",
    "__version__",
    "database",
]
