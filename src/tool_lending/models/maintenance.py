"""
Maintenance window model for the Tool Lending engine.

A maintenance window occupies ``[scheduled_date, completed_date or end_date)``.
When neither end is known the window is open-ended and blocks every booking
from its scheduled date onwards until it is completed or cancelled.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MaintenanceType(str, Enum):
    """Kind of service performed."""

    INSPECTION = "INSPECTION"
    REPAIR = "REPAIR"
    CLEANING = "CLEANING"


class MaintenanceStatus(str, Enum):
    """Status of a maintenance window."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED)

    @property
    def holds_interval(self) -> bool:
        return self in ACTIVE_MAINTENANCE_STATUSES

    def can_transition_to(self, target: "MaintenanceStatus") -> bool:
        return target in MAINTENANCE_TRANSITIONS[self]


ACTIVE_MAINTENANCE_STATUSES: frozenset[MaintenanceStatus] = frozenset(
    {MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS}
)

MAINTENANCE_TRANSITIONS: dict[MaintenanceStatus, frozenset[MaintenanceStatus]] = {
    MaintenanceStatus.SCHEDULED: frozenset(
        {MaintenanceStatus.IN_PROGRESS, MaintenanceStatus.CANCELLED}
    ),
    MaintenanceStatus.IN_PROGRESS: frozenset(
        {MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED}
    ),
    MaintenanceStatus.COMPLETED: frozenset(),
    MaintenanceStatus.CANCELLED: frozenset(),
}


class MaintenanceWindow(BaseModel):
    """Represents a scheduled or in-progress service interval for a tool."""

    id: str = Field(
        ...,
        description="Unique identifier for the maintenance window",
        pattern=r"^maintenance_[a-zA-Z0-9]{6,}$",
        examples=["maintenance_9c8b7a6d5e4f"],
    )

    tool_id: str = Field(..., description="ID of the tool being serviced")

    maintenance_type: MaintenanceType = Field(
        default=MaintenanceType.INSPECTION,
        description="Kind of service",
    )

    status: MaintenanceStatus = Field(
        default=MaintenanceStatus.SCHEDULED,
        description="Current status of the window",
    )

    scheduled_date: datetime = Field(..., description="Start of the window")

    end_date: datetime | None = Field(
        None,
        description="Expected end of the window, if known",
    )

    completed_date: datetime | None = Field(
        None,
        description="When the work was completed",
    )

    description: str = Field(
        ...,
        description="What needs to be done",
        max_length=1000,
    )

    notes: str | None = None

    cost: Decimal | None = Field(
        None,
        description="Cost of the work, once known",
        ge=0,
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_dates(self) -> "MaintenanceWindow":
        if self.end_date is not None and self.end_date <= self.scheduled_date:
            raise ValueError("Maintenance end_date must be after scheduled_date")
        return self

    @property
    def is_active(self) -> bool:
        return self.status.holds_interval

    @property
    def occupied_until(self) -> datetime | None:
        """Exclusive end of the occupied interval; None when open-ended."""
        return self.completed_date or self.end_date

    model_config = ConfigDict(
        validate_assignment=True,
        populate_by_name=True,
        from_attributes=True,
    )
