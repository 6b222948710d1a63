"""
SQLAlchemy database schema for the Tool Lending engine.

Three tables back the engine:
1. tools - the resource store (condition tier, availability flag, daily rate)
2. reservations - interval claims on a tool, indexed for overlap queries
3. maintenance_windows - service intervals, indexed the same way

Children reference their tool by id only; tools are never cascade-deleted so
historical reservations keep their parent.

created_at / updated_at carry no database defaults: every write path stamps
them from the engine clock, which the cleanup and degradation passes compare
against.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, validates

from ..models.maintenance import MaintenanceStatus, MaintenanceType
from ..models.reservation import ReservationStatus
from ..models.tool import ToolCondition

# Base class for all SQLAlchemy models
Base = declarative_base()

MONEY = Numeric(10, 2)


class Tool(Base):
    """
    Tools table - the lending inventory.

    Only the return processor, the condition engine and the maintenance
    scheduler write condition / is_available.
    """

    __tablename__ = "tools"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    daily_rate = Column(MONEY, nullable=False)
    condition = Column(Enum(ToolCondition), nullable=False, default=ToolCondition.EXCELLENT)
    is_available = Column(Boolean, nullable=False, default=True)
    requires_training = Column(Boolean, nullable=False, default=False)
    condition_degraded_on = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_tool_availability", "is_available"),
        CheckConstraint("id LIKE 'tool_%'", name="check_tool_id_format"),
        CheckConstraint("daily_rate > 0", name="check_daily_rate_positive"),
    )


class Reservation(Base):
    """
    Reservations table - interval claims on a tool.

    The (tool_id, start_date, end_date) index serves the interval index's
    overlap queries. No-overlap is enforced by the per-tool lock together with
    the serialized write transaction around the check and the insert.
    """

    __tablename__ = "reservations"

    id = Column(String(50), primary_key=True)
    tool_id = Column(String(50), ForeignKey("tools.id"), nullable=False)
    member_id = Column(String(100), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(
        Enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING
    )
    checkout_condition = Column(Enum(ToolCondition), nullable=True)
    return_condition = Column(Enum(ToolCondition), nullable=True)
    late_fees = Column(MONEY, nullable=False, default=0)
    total_cost = Column(MONEY, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    checked_out_at = Column(DateTime, nullable=True)
    returned_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_reservation_interval", "tool_id", "start_date", "end_date"),
        Index("idx_reservation_status", "status"),
        Index("idx_reservation_member", "member_id"),
        CheckConstraint("id LIKE 'reservation_%'", name="check_reservation_id_format"),
        CheckConstraint("start_date < end_date", name="check_reservation_interval"),
        CheckConstraint("late_fees >= 0", name="check_late_fees_non_negative"),
    )

    @validates("end_date")
    def validate_end_date(self, key, value):  # noqa: ARG002
        """Ensure end date is after start date."""
        if value is not None and self.start_date is not None and value <= self.start_date:
            raise ValueError("Reservation end_date must be after start_date")
        return value


class MaintenanceWindow(Base):
    """
    Maintenance windows table - service intervals for a tool.

    Active windows (SCHEDULED / IN_PROGRESS) block bookings over
    [scheduled_date, coalesce(completed_date, end_date)), open-ended when both
    are null.
    """

    __tablename__ = "maintenance_windows"

    id = Column(String(50), primary_key=True)
    tool_id = Column(String(50), ForeignKey("tools.id"), nullable=False)
    maintenance_type = Column(
        Enum(MaintenanceType), nullable=False, default=MaintenanceType.INSPECTION
    )
    status = Column(
        Enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.SCHEDULED
    )
    scheduled_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)
    description = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    cost = Column(MONEY, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_maintenance_interval", "tool_id", "scheduled_date"),
        Index("idx_maintenance_status", "status"),
        CheckConstraint("id LIKE 'maintenance_%'", name="check_maintenance_id_format"),
    )
