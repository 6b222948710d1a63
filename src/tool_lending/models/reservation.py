"""
Reservation model for the Tool Lending engine.

A reservation holds one tool for a half-open interval ``[start_date, end_date)``.
The lifecycle is an explicit state machine:

    PENDING ──> CONFIRMED ──> CHECKED_OUT ──> RETURNED
       │            │
       └────────────┴──> CANCELLED

RETURNED and CANCELLED are terminal.
"""

import math
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .tool import ToolCondition

ONE_DAY = timedelta(days=1)


class ReservationStatus(str, Enum):
    """Status of a reservation."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_OUT = "CHECKED_OUT"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.RETURNED, ReservationStatus.CANCELLED)

    @property
    def holds_interval(self) -> bool:
        """Whether a reservation in this status blocks its interval."""
        return self in ACTIVE_RESERVATION_STATUSES

    def can_transition_to(self, target: "ReservationStatus") -> bool:
        return target in RESERVATION_TRANSITIONS[self]


ACTIVE_RESERVATION_STATUSES: frozenset[ReservationStatus] = frozenset(
    {ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_OUT}
)

RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset(
        {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CHECKED_OUT: frozenset({ReservationStatus.RETURNED}),
    ReservationStatus.RETURNED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def billable_days(start: datetime, end: datetime) -> int:
    """Whole days covered by ``[start, end)``, partial days rounded up."""
    if end <= start:
        return 0
    return math.ceil((end - start) / ONE_DAY)


class Reservation(BaseModel):
    """
    Represents a member's claim on a tool for a date interval.

    Reservations are created by the lifecycle manager after a successful
    conflict check and only ever change status along RESERVATION_TRANSITIONS.
    """

    id: str = Field(
        ...,
        description="Unique identifier for the reservation",
        pattern=r"^reservation_[a-zA-Z0-9]{6,}$",
        examples=["reservation_5b1e2f3a4c6d"],
    )

    tool_id: str = Field(
        ...,
        description="ID of the reserved tool",
    )

    member_id: str = Field(
        ...,
        description="ID of the member holding the reservation",
        min_length=1,
    )

    start_date: datetime = Field(
        ...,
        description="Start of the reserved interval (inclusive)",
    )

    end_date: datetime = Field(
        ...,
        description="End of the reserved interval (exclusive)",
    )

    status: ReservationStatus = Field(
        default=ReservationStatus.PENDING,
        description="Current lifecycle status",
    )

    checkout_condition: ToolCondition | None = Field(
        None,
        description="Condition staff recorded at pickup",
    )

    return_condition: ToolCondition | None = Field(
        None,
        description="Condition recorded when the tool came back",
    )

    late_fees: Decimal = Field(
        default=Decimal("0.00"),
        description="Late fees assessed for this reservation",
        ge=0,
    )

    total_cost: Decimal = Field(
        default=Decimal("0.00"),
        description="Rental cost at the daily rate for the booked interval",
        ge=0,
    )

    notes: str | None = Field(
        None,
        description="Member and staff notes",
    )

    checked_out_at: datetime | None = None
    returned_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def validate_interval(self) -> "Reservation":
        """Ensure the interval is non-empty."""
        if self.start_date >= self.end_date:
            raise ValueError("Reservation start_date must be before end_date")
        return self

    @property
    def is_active(self) -> bool:
        return self.status.holds_interval

    @property
    def duration_days(self) -> int:
        return billable_days(self.start_date, self.end_date)

    def is_overdue(self, as_of: datetime) -> bool:
        """A checked-out reservation whose end has passed."""
        return self.status == ReservationStatus.CHECKED_OUT and self.end_date < as_of

    model_config = ConfigDict(
        validate_assignment=True,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "reservation_5b1e2f3a4c6d",
                "tool_id": "tool_3f9a0c1d2e4b",
                "member_id": "member_042",
                "start_date": "2030-01-01T00:00:00",
                "end_date": "2030-01-05T00:00:00",
                "status": "CONFIRMED",
                "late_fees": "0.00",
                "total_cost": "100.00",
            }
        },
    )
