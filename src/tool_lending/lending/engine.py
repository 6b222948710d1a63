"""
LendingEngine: the public operation set of the tool lending system.

Each call opens one transaction (``DatabaseManager.session_scope``) and, for
operations that mutate a tool's bookings or state, holds that tool's lock for
the whole transaction. Notifications go out only after the commit.

Usage:

    engine = LendingEngine(DatabaseManager())
    tool = engine.register_tool(ToolCreateSchema(name="Drill", category="power_tools",
                                                 daily_rate=Decimal("25")))
    reservation = engine.create_reservation(tool.id, "member_1", start, end)
"""

import logging
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal

from ..config import EngineConfig, get_config
from ..database.maintenance_repository import MaintenanceRepository
from ..database.repository import ConflictError, InvalidIntervalError
from ..database.reservation_repository import ReservationRepository
from ..database.session import DatabaseManager
from ..database.tool_repository import ToolCreateSchema, ToolRepository
from ..models.availability import AvailabilityResult, DayStatus
from ..models.maintenance import MaintenanceStatus, MaintenanceType, MaintenanceWindow
from ..models.reservation import Reservation, ReservationStatus
from ..models.results import DamageInfo, ReconciliationReport, ReturnResult, ToolUtilization
from ..models.tool import Tool, ToolCondition
from ..observability import metrics
from ..observability.context import trace_operation
from .availability import AvailabilityCalculator
from .lifecycle import ReservationLifecycleManager
from .locks import ToolLockRegistry
from .maintenance import MaintenanceScheduler
from .notifications import LoggingNotificationSink, NotificationSink, notify_safely
from .reconciliation import DailyReconciliationRunner
from .returns import ReturnProcessor
from .utilization import build_utilization_report

logger = logging.getLogger(__name__)


class LendingEngine:
    """Facade over availability, lifecycle, returns, maintenance and the daily pass."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        config: EngineConfig | None = None,
        notifier: NotificationSink | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_manager = db_manager
        self.config = config or get_config()
        self.notifier = notifier or LoggingNotificationSink()
        self.clock = clock
        self.locks = ToolLockRegistry(self.config.lock_timeout_seconds)

    def _tool_id_of_reservation(self, reservation_id: str) -> str:
        with self.db_manager.session_scope() as session:
            return ReservationRepository(session).require_row(reservation_id).tool_id

    def _tool_id_of_window(self, window_id: str) -> str:
        with self.db_manager.session_scope() as session:
            return MaintenanceRepository(session).require_row(window_id).tool_id

    # === Inventory ===

    def register_tool(self, data: ToolCreateSchema) -> Tool:
        with trace_operation("register_tool", tool_name=data.name):
            with self.db_manager.session_scope() as session:
                tool = ToolRepository(session).create(data, now=self.clock())
        logger.info("Registered tool %s (%s)", tool.id, tool.name)
        return tool

    def get_tool(self, tool_id: str) -> Tool:
        with self.db_manager.session_scope() as session:
            repo = ToolRepository(session)
            return repo.to_model(repo.require_row(tool_id))

    # === Availability ===

    def check_availability(self, tool_id: str, start: datetime, end: datetime) -> AvailabilityResult:
        """Whether ``tool_id`` can be booked for ``[start, end)``, with any conflicts."""
        with trace_operation("check_availability", tool_id=tool_id) as span:
            with self.db_manager.session_scope() as session:
                result = AvailabilityCalculator(
                    session, self.config.max_calendar_days
                ).check_availability(tool_id, start, end)
            span.set_attribute("lending.available", result.available)
        return result

    def build_calendar(self, tool_id: str, start: date, end: date) -> list[DayStatus]:
        """Per-day availability for ``start`` through ``end`` inclusive."""
        with trace_operation("build_calendar", tool_id=tool_id):
            with self.db_manager.session_scope() as session:
                return AvailabilityCalculator(
                    session, self.config.max_calendar_days
                ).build_calendar(tool_id, start, end)

    # === Reservation lifecycle ===

    def create_reservation(
        self,
        tool_id: str,
        member_id: str,
        start: datetime,
        end: datetime,
        notes: str | None = None,
        confirm: bool | None = None,
    ) -> Reservation:
        """
        Reserve a tool after an atomic conflict check.

        Raises:
            InvalidIntervalError: Empty interval or a start in the past
            NotFoundError: Unknown tool
            UnavailableError: The tool is disabled for booking
            ConflictError: The interval overlaps active bookings
            LockTimeoutError: The tool's lock could not be acquired in time
        """
        if start >= end:
            raise InvalidIntervalError(f"Start {start} must be before end {end}")

        with trace_operation("create_reservation", tool_id=tool_id, member_id=member_id) as span:
            try:
                with self.locks.hold(tool_id), self.db_manager.session_scope() as session:
                    reservation = ReservationLifecycleManager(session, self.config).create(
                        tool_id,
                        member_id,
                        start,
                        end,
                        now=self.clock(),
                        notes=notes,
                        confirm=confirm,
                    )
            except ConflictError as e:
                metrics.record_conflict(tool_id, len(e.conflicts))
                raise
            span.set_attribute("lending.reservation_id", reservation.id)

        metrics.record_reservation_event("created", tool_id)
        return reservation

    def _transition(self, operation: str, reservation_id: str, **kwargs) -> Reservation:
        tool_id = self._tool_id_of_reservation(reservation_id)
        with trace_operation(operation, reservation_id=reservation_id, tool_id=tool_id):
            with self.locks.hold(tool_id), self.db_manager.session_scope() as session:
                manager = ReservationLifecycleManager(session, self.config)
                reservation = getattr(manager, operation)(
                    reservation_id, now=self.clock(), **kwargs
                )
        metrics.record_reservation_event(operation, tool_id)
        return reservation

    def confirm_reservation(self, reservation_id: str) -> Reservation:
        return self._transition("confirm", reservation_id)

    def check_out(
        self,
        reservation_id: str,
        checkout_condition: ToolCondition | None = None,
        staff_notes: str | None = None,
    ) -> Reservation:
        """
        Hand the tool to the member.

        Raises:
            InvalidStateError: The reservation is not CONFIRMED
            InvalidIntervalError: Pickup outside ``checkout_window_days`` of the start
        """
        return self._transition(
            "check_out",
            reservation_id,
            checkout_condition=checkout_condition,
            staff_notes=staff_notes,
        )

    def cancel_reservation(self, reservation_id: str) -> Reservation:
        return self._transition("cancel", reservation_id)

    def get_reservation(self, reservation_id: str) -> Reservation:
        with self.db_manager.session_scope() as session:
            return ReservationLifecycleManager(session, self.config).get(reservation_id)

    def list_reservations(
        self, tool_id: str, statuses: list[ReservationStatus] | None = None
    ) -> list[Reservation]:
        with self.db_manager.session_scope() as session:
            return ReservationLifecycleManager(session, self.config).list_for_tool(
                tool_id, statuses
            )

    def list_member_reservations(
        self, member_id: str, statuses: list[ReservationStatus] | None = None
    ) -> list[Reservation]:
        """A member's reservations across all tools, most recent first."""
        with self.db_manager.session_scope() as session:
            return ReservationLifecycleManager(session, self.config).list_for_member(
                member_id, statuses
            )

    # === Returns ===

    def process_return(
        self,
        reservation_id: str,
        return_condition: ToolCondition,
        actual_return_date: datetime | None = None,
        damage: DamageInfo | None = None,
        staff_notes: str | None = None,
    ) -> ReturnResult:
        """
        Close a checked-out reservation.

        The reservation update, tool update and optional maintenance window
        commit together; the notification sink hears about a late return or a
        new window only after that commit.
        """
        tool_id = self._tool_id_of_reservation(reservation_id)
        with trace_operation(
            "process_return",
            reservation_id=reservation_id,
            tool_id=tool_id,
            return_condition=return_condition.value,
        ) as span:
            with self.locks.hold(tool_id), self.db_manager.session_scope() as session:
                result = ReturnProcessor(session, self.config).process_return(
                    reservation_id,
                    return_condition,
                    now=self.clock(),
                    actual_return_date=actual_return_date,
                    damage=damage,
                    staff_notes=staff_notes,
                )
            span.set_attribute("lending.is_late", result.is_late)
            span.set_attribute("lending.maintenance_created", result.maintenance_created)

        metrics.record_return(result.is_late, return_condition.value, float(result.late_fees))
        if result.is_late:
            notify_safely(self.notifier, "late_return", result.reservation, result.days_late)
        if result.maintenance_window is not None:
            metrics.record_maintenance(result.maintenance_window.maintenance_type.value, "return")
            notify_safely(self.notifier, "maintenance_scheduled", result.maintenance_window)
        return result

    # === Maintenance ===

    def schedule_maintenance(
        self,
        tool_id: str,
        maintenance_type: MaintenanceType,
        description: str,
        scheduled_date: datetime | None = None,
        end_date: datetime | None = None,
        cost: Decimal | None = None,
        notes: str | None = None,
    ) -> MaintenanceWindow:
        with trace_operation(
            "schedule_maintenance", tool_id=tool_id, maintenance_type=maintenance_type.value
        ):
            with self.locks.hold(tool_id), self.db_manager.session_scope() as session:
                window = MaintenanceScheduler(session, self.config).schedule(
                    tool_id,
                    maintenance_type,
                    description,
                    now=self.clock(),
                    scheduled_date=scheduled_date,
                    end_date=end_date,
                    cost=cost,
                    notes=notes,
                )
        metrics.record_maintenance(maintenance_type.value, "manual")
        notify_safely(self.notifier, "maintenance_scheduled", window)
        return window

    def update_maintenance_status(
        self,
        window_id: str,
        status: MaintenanceStatus,
        completed_date: datetime | None = None,
        cost: Decimal | None = None,
    ) -> MaintenanceWindow:
        tool_id = self._tool_id_of_window(window_id)
        with trace_operation("update_maintenance_status", window_id=window_id, status=status.value):
            with self.locks.hold(tool_id), self.db_manager.session_scope() as session:
                return MaintenanceScheduler(session, self.config).update_status(
                    window_id,
                    status,
                    now=self.clock(),
                    completed_date=completed_date,
                    cost=cost,
                )

    def list_maintenance(self, tool_id: str, active_only: bool = False) -> list[MaintenanceWindow]:
        with self.db_manager.session_scope() as session:
            return MaintenanceScheduler(session, self.config).list_for_tool(tool_id, active_only)

    # === Batch and reporting ===

    def run_daily_reconciliation(self, as_of: date | None = None) -> ReconciliationReport:
        """Run the daily pass for ``as_of`` (today by the engine clock when omitted)."""
        as_of = as_of or self.clock().date()
        with trace_operation("run_daily_reconciliation", run_date=as_of.isoformat()) as span:
            report = DailyReconciliationRunner(
                self.db_manager, self.config, self.notifier, clock=self.clock
            ).run(as_of)
            span.set_attribute("lending.errors", len(report.errors))
        return report

    def utilization_report(
        self,
        start: datetime,
        end: datetime,
        tool_ids: list[str] | None = None,
    ) -> list[ToolUtilization]:
        with trace_operation("utilization_report"):
            with self.db_manager.session_scope() as session:
                return build_utilization_report(session, start, end, tool_ids)
