"""
Tool Lending Models.

Pydantic models for the entities and results of the lending engine:
- Tool: rentable resources and their condition tier
- Reservation: interval claims and their lifecycle
- MaintenanceWindow: service intervals that block bookings
- Availability: conflicts and calendar days
- Results: return outcomes and daily reconciliation reports
"""

from .availability import AvailabilityResult, Conflict, ConflictKind, DayReason, DayStatus
from .maintenance import (
    ACTIVE_MAINTENANCE_STATUSES,
    MaintenanceStatus,
    MaintenanceType,
    MaintenanceWindow,
)
from .reservation import (
    ACTIVE_RESERVATION_STATUSES,
    Reservation,
    ReservationStatus,
    billable_days,
)
from .results import (
    ConditionChange,
    DailyStatistics,
    DamageInfo,
    ReconciliationReport,
    ReturnResult,
    ToolUtilization,
)
from .tool import Tool, ToolCondition

__all__ = [
    "ACTIVE_MAINTENANCE_STATUSES",
    "ACTIVE_RESERVATION_STATUSES",
    "AvailabilityResult",
    "ConditionChange",
    "Conflict",
    "ConflictKind",
    "DailyStatistics",
    "DamageInfo",
    "DayReason",
    "DayStatus",
    "MaintenanceStatus",
    "MaintenanceType",
    "MaintenanceWindow",
    "ReconciliationReport",
    "Reservation",
    "ReservationStatus",
    "ReturnResult",
    "Tool",
    "ToolCondition",
    "ToolUtilization",
    "billable_days",
]
