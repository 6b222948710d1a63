"""
Maintenance scheduler.

Owns every write to maintenance windows and keeps the tool's availability
flag consistent with them: a tool with a SCHEDULED or IN_PROGRESS window is
never available, and it becomes available again once its last active window
is completed or cancelled.

Automatic scheduling (run by the daily pass) looks at usage over a trailing
window and applies these rules, first match wins:

    NEEDS_REPAIR                     -> REPAIR      (+1 day)
    FAIR and usage > inspection days -> INSPECTION  (+2 days)
    usage > cleaning days            -> CLEANING    (+5 days)

Tools that already have an active window are skipped, so a second run never
doubles up.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..database.maintenance_repository import (
    MaintenanceCreateSchema,
    MaintenanceRepository,
)
from ..database.repository import InvalidStateError
from ..database.reservation_repository import ReservationRepository
from ..database.schema import Tool as ToolDB
from ..database.tool_repository import ToolRepository
from ..models.maintenance import MaintenanceStatus, MaintenanceType, MaintenanceWindow
from ..models.reservation import billable_days
from ..models.tool import ToolCondition

logger = logging.getLogger(__name__)


class MaintenancePlan(BaseModel):
    """What automatic scheduling decided for one tool."""

    maintenance_type: MaintenanceType
    description: str
    days_from_now: int

    model_config = ConfigDict(frozen=True)


def plan_maintenance(
    condition: ToolCondition,
    usage_days: int,
    config: EngineConfig,
) -> MaintenancePlan | None:
    """Pick the maintenance a tool needs from its condition and recent usage."""
    if condition == ToolCondition.NEEDS_REPAIR:
        return MaintenancePlan(
            maintenance_type=MaintenanceType.REPAIR,
            description="Tool requires immediate repair",
            days_from_now=1,
        )
    if condition == ToolCondition.FAIR and usage_days > config.fair_inspection_usage_days:
        return MaintenancePlan(
            maintenance_type=MaintenanceType.INSPECTION,
            description="Tool showing wear, requires detailed inspection",
            days_from_now=2,
        )
    if usage_days > config.routine_cleaning_usage_days:
        return MaintenancePlan(
            maintenance_type=MaintenanceType.CLEANING,
            description="High usage tool requires routine maintenance",
            days_from_now=5,
        )
    return None


class MaintenanceScheduler:
    """Creates maintenance windows and moves them through their statuses."""

    def __init__(self, session: Session, config: EngineConfig):
        self.session = session
        self.config = config
        self.tools = ToolRepository(session)
        self.windows = MaintenanceRepository(session)
        self.reservations = ReservationRepository(session)

    def schedule(
        self,
        tool_id: str,
        maintenance_type: MaintenanceType,
        description: str,
        now: datetime,
        scheduled_date: datetime | None = None,
        end_date: datetime | None = None,
        cost: Decimal | None = None,
        notes: str | None = None,
        tool: ToolDB | None = None,
    ) -> MaintenanceWindow:
        """
        Create a SCHEDULED window and take the tool out of circulation.

        Raises:
            NotFoundError: If the tool does not exist
        """
        if tool is None:
            tool = self.tools.require_row(tool_id, for_update=True)

        db_window = self.windows.create(
            MaintenanceCreateSchema(
                tool_id=tool_id,
                maintenance_type=maintenance_type,
                scheduled_date=scheduled_date or now,
                end_date=end_date,
                description=description,
                notes=notes,
                cost=cost,
            ),
            now=now,
        )
        if tool.is_available:
            self.tools.set_availability(tool, False, now)

        logger.info(
            "Scheduled %s maintenance %s for tool %s at %s",
            maintenance_type.value,
            db_window.id,
            tool_id,
            db_window.scheduled_date,
        )
        return self.windows.to_model(db_window)

    def update_status(
        self,
        window_id: str,
        status: MaintenanceStatus,
        now: datetime,
        completed_date: datetime | None = None,
        cost: Decimal | None = None,
    ) -> MaintenanceWindow:
        """
        Move a window to ``status``.

        COMPLETED stamps ``completed_date`` (defaulting to ``now``). Leaving
        the active statuses makes the tool available again unless another
        active window remains.

        Raises:
            NotFoundError: If the window does not exist
            InvalidStateError: If the transition is not allowed
        """
        db_window = self.windows.require_row(window_id, for_update=True)
        current = db_window.status
        if not current.can_transition_to(status):
            raise InvalidStateError(
                f"Maintenance {window_id} cannot move from {current.value} to {status.value}"
            )

        db_window.status = status
        db_window.updated_at = now
        if status == MaintenanceStatus.COMPLETED:
            db_window.completed_date = completed_date or now
        if cost is not None:
            db_window.cost = cost
        self.windows.flush()

        if status.is_terminal and not self.windows.has_active(
            db_window.tool_id, exclude_id=window_id
        ):
            tool = self.tools.require_row(db_window.tool_id, for_update=True)
            self.tools.set_availability(tool, True, now)
            logger.info("Tool %s back in circulation after maintenance %s", tool.id, window_id)

        logger.info("Maintenance %s: %s -> %s", window_id, current.value, status.value)
        return self.windows.to_model(db_window)

    def list_for_tool(self, tool_id: str, active_only: bool = False) -> list[MaintenanceWindow]:
        return self.windows.list_for_tool(tool_id, active_only=active_only)

    def usage_days(self, tool_id: str, since: datetime, until: datetime) -> int:
        """Billable days of RETURNED reservations ending in ``[since, until)``."""
        return sum(
            billable_days(r.start_date, r.end_date)
            for r in self.reservations.returned_between(since, until, tool_id=tool_id)
        )

    def schedule_automatic(self, tool_id: str, run_at: datetime) -> MaintenanceWindow | None:
        """Apply the automatic scheduling rules to one tool as of ``run_at``."""
        tool = self.tools.require_row(tool_id, for_update=True)
        if self.windows.has_active(tool_id):
            return None

        since = run_at - timedelta(days=self.config.maintenance_usage_window_days)
        usage = self.usage_days(tool_id, since, run_at)
        plan = plan_maintenance(tool.condition, usage, self.config)
        if plan is None:
            return None

        logger.debug(
            "Tool %s (%s, %d usage days) needs %s",
            tool_id,
            tool.condition.value,
            usage,
            plan.maintenance_type.value,
        )
        return self.schedule(
            tool_id,
            plan.maintenance_type,
            plan.description,
            now=run_at,
            scheduled_date=run_at + timedelta(days=plan.days_from_now),
            tool=tool,
        )
