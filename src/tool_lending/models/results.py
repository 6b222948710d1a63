"""
Result and report models returned by engine operations.

- DamageInfo: caller-supplied damage assessment at return time
- ReturnResult: outcome of processing a return
- ConditionChange / DailyStatistics / ReconciliationReport: daily pass output
- ToolUtilization: per-tool usage and revenue over a period
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from .maintenance import MaintenanceType, MaintenanceWindow
from .reservation import Reservation
from .tool import ToolCondition


class DamageInfo(BaseModel):
    """Staff assessment of damage found on return."""

    requires_maintenance: bool = Field(
        default=False,
        description="Force a maintenance window regardless of condition",
    )
    maintenance_type: MaintenanceType | None = Field(
        None,
        description="Type of maintenance to schedule; INSPECTION when omitted",
    )
    description: str | None = Field(
        None,
        description="Description copied onto the maintenance window",
        max_length=1000,
    )


class ReturnResult(BaseModel):
    reservation: Reservation
    late_fees: Decimal
    days_late: int = 0
    is_late: bool
    maintenance_created: bool
    maintenance_window: MaintenanceWindow | None = None


class ConditionChange(BaseModel):
    """A condition tier change applied by the degradation pass."""

    tool_id: str
    previous: ToolCondition
    current: ToolCondition
    usage_days: int
    recently_repaired: bool
    rule: str


class DailyStatistics(BaseModel):
    """Snapshot of inventory and circulation at the end of a daily pass."""

    total_tools: int = 0
    available_tools: int = 0
    utilization_rate: float = Field(
        default=0.0,
        description="(total - available) / total; 0 when there are no tools",
        ge=0.0,
        le=1.0,
    )
    active_reservations: int = 0
    overdue_reservations: int = 0
    active_maintenance: int = 0
    maintenance_completed_last_24h: int = 0


class ReconciliationReport(BaseModel):
    """Everything the daily reconciliation pass did for one run date."""

    run_date: date
    started_at: datetime
    finished_at: datetime | None = None
    cancelled_reservations_removed: int = 0
    late_fees_accrued: int = 0
    condition_changes: list[ConditionChange] = Field(default_factory=list)
    maintenance_scheduled: list[MaintenanceWindow] = Field(default_factory=list)
    overdue_notifications: int = 0
    statistics: DailyStatistics | None = None
    errors: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.errors


class ToolUtilization(BaseModel):
    tool_id: str
    tool_name: str
    category: str
    total_days: int
    reserved_days: int
    utilization_rate: float
    revenue: Decimal
    maintenance_cost: Decimal
    net_revenue: Decimal
