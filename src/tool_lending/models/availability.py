"""
Availability models: conflicts and calendar days.

These are read-side shapes produced by the conflict detector and the
availability calculator. They carry enough detail for a caller to explain
why a slot was rejected.
"""

import datetime as dt
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConflictKind(str, Enum):
    RESERVATION = "RESERVATION"
    MAINTENANCE = "MAINTENANCE"


class Conflict(BaseModel):
    """An existing reservation or maintenance window overlapping a candidate interval."""

    kind: ConflictKind
    id: str
    start: datetime
    end: datetime | None = Field(
        None,
        description="Exclusive end; None for an open-ended maintenance window",
    )
    status: str

    model_config = ConfigDict(frozen=True)


class AvailabilityResult(BaseModel):
    """Answer to "can this tool be booked for this interval?"."""

    tool_id: str
    start: datetime
    end: datetime
    available: bool
    tool_available: bool = Field(
        ...,
        description="The tool's global availability flag at query time",
    )
    conflicts: list[Conflict] = Field(default_factory=list)


class DayReason(str, Enum):
    """Why a calendar day is (un)available, in precedence order."""

    NONE = "NONE"
    TOOL_UNAVAILABLE = "TOOL_UNAVAILABLE"
    RESERVED = "RESERVED"
    MAINTENANCE = "MAINTENANCE"


class DayStatus(BaseModel):
    date: dt.date
    available: bool
    reason: DayReason = DayReason.NONE

    model_config = ConfigDict(frozen=True)
