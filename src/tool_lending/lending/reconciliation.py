"""
Daily reconciliation runner.

One pass per calendar day, run by cron. The steps run in a fixed order and
each is guarded on its own: a failing step (or a failing tool inside a
per-tool step) is logged, recorded in the report and skipped, and the rest of
the pass still runs.

    1. cleanup              purge old CANCELLED reservations
    2. late fee accrual     recompute fees of overdue checkouts as of run time
    3. condition            per-tool degradation, one transaction per tool
    4. maintenance          automatic scheduling, one transaction per tool
    5. overdue notices      tell the sink about every overdue checkout
    6. statistics           inventory and circulation snapshot

Every step is a function of the stored state and the run date, so running
the pass twice for the same date leaves the same final state.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta

from ..config import EngineConfig
from ..database.maintenance_repository import MaintenanceRepository
from ..database.reservation_repository import ReservationRepository
from ..database.session import DatabaseManager
from ..database.tool_repository import ToolRepository
from ..models.results import DailyStatistics, ReconciliationReport
from ..observability import metrics
from ..observability.context import trace_operation
from .condition import ConditionDegradationEngine
from .maintenance import MaintenanceScheduler
from .notifications import NotificationSink, notify_safely
from .returns import calculate_late_fee, days_late

logger = logging.getLogger(__name__)


class DailyReconciliationRunner:
    """Runs the daily pass against a database."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        config: EngineConfig,
        notifier: NotificationSink,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_manager = db_manager
        self.config = config
        self.notifier = notifier
        self.clock = clock

    def run(self, as_of: date) -> ReconciliationReport:
        """Run every step for ``as_of`` and return what was done."""
        run_at = datetime.combine(as_of, time.min)
        report = ReconciliationReport(run_date=as_of, started_at=self.clock())
        logger.info("Starting daily reconciliation for %s", as_of.isoformat())

        self._guarded(report, "cleanup", lambda: self._cleanup(report, run_at))
        self._guarded(report, "late_fees", lambda: self._accrue_late_fees(report, run_at))
        self._guarded(report, "condition", lambda: self._update_conditions(report, run_at))
        self._guarded(report, "maintenance", lambda: self._schedule_maintenance(report, run_at))
        self._guarded(report, "overdue", lambda: self._notify_overdue(report, run_at))
        self._guarded(report, "statistics", lambda: self._collect_statistics(report, run_at))

        report.finished_at = self.clock()
        if report.errors:
            logger.warning(
                "Daily reconciliation for %s finished with %d error(s)",
                as_of.isoformat(),
                len(report.errors),
            )
        else:
            logger.info("Daily reconciliation for %s completed", as_of.isoformat())
        return report

    def _guarded(self, report: ReconciliationReport, step: str, func: Callable[[], None]) -> None:
        with trace_operation(f"reconciliation.{step}", run_date=report.run_date.isoformat()):
            try:
                func()
            except Exception as e:
                logger.exception("Reconciliation step %s failed", step)
                metrics.record_reconciliation_error(step)
                report.errors.append(f"{step}: {e}")

    def _tool_ids(self) -> list[str]:
        with self.db_manager.session_scope() as session:
            return ToolRepository(session).list_ids()

    def _cleanup(self, report: ReconciliationReport, run_at: datetime) -> None:
        cutoff = run_at - timedelta(days=self.config.cancelled_retention_days)
        with self.db_manager.session_scope() as session:
            removed = ReservationRepository(session).delete_cancelled_before(cutoff)
        report.cancelled_reservations_removed = removed
        logger.info("Removed %d cancelled reservation(s) older than %s", removed, cutoff)

    def _accrue_late_fees(self, report: ReconciliationReport, run_at: datetime) -> None:
        updated = 0
        with self.db_manager.session_scope() as session:
            tools = ToolRepository(session)
            reservations = ReservationRepository(session)
            for reservation in reservations.overdue(run_at):
                tool = tools.require_row(reservation.tool_id)
                _, fee = calculate_late_fee(
                    reservation.end_date, run_at, tool.daily_rate, self.config.late_fee_rate
                )
                # Guarded on CHECKED_OUT: a return settled since the read keeps its fee
                if fee != reservation.late_fees and reservations.accrue_late_fee(
                    reservation.id, fee, run_at
                ):
                    updated += 1
        report.late_fees_accrued = updated
        logger.info("Accrued late fees on %d overdue reservation(s)", updated)

    def _update_conditions(self, report: ReconciliationReport, run_at: datetime) -> None:
        for tool_id in self._tool_ids():
            try:
                with self.db_manager.session_scope() as session:
                    change = ConditionDegradationEngine(session, self.config).evaluate_tool(
                        tool_id, run_at
                    )
            except Exception as e:
                logger.exception("Condition update failed for tool %s", tool_id)
                metrics.record_reconciliation_error("condition")
                report.errors.append(f"condition[{tool_id}]: {e}")
                continue
            if change is not None:
                report.condition_changes.append(change)

    def _schedule_maintenance(self, report: ReconciliationReport, run_at: datetime) -> None:
        for tool_id in self._tool_ids():
            try:
                with self.db_manager.session_scope() as session:
                    window = MaintenanceScheduler(session, self.config).schedule_automatic(
                        tool_id, run_at
                    )
            except Exception as e:
                logger.exception("Automatic maintenance failed for tool %s", tool_id)
                metrics.record_reconciliation_error("maintenance")
                report.errors.append(f"maintenance[{tool_id}]: {e}")
                continue
            if window is not None:
                report.maintenance_scheduled.append(window)
                metrics.record_maintenance(window.maintenance_type.value, "automatic")
                notify_safely(self.notifier, "maintenance_scheduled", window)

    def _notify_overdue(self, report: ReconciliationReport, run_at: datetime) -> None:
        with self.db_manager.session_scope() as session:
            repo = ReservationRepository(session)
            overdue = [repo.to_model(r) for r in repo.overdue(run_at)]
        for reservation in overdue:
            if notify_safely(
                self.notifier,
                "reservation_overdue",
                reservation,
                days_late(reservation.end_date, run_at),
            ):
                report.overdue_notifications += 1

    def _collect_statistics(self, report: ReconciliationReport, run_at: datetime) -> None:
        with self.db_manager.session_scope() as session:
            tools = ToolRepository(session)
            reservations = ReservationRepository(session)
            windows = MaintenanceRepository(session)

            total = tools.count_total()
            available = tools.count_available()
            report.statistics = DailyStatistics(
                total_tools=total,
                available_tools=available,
                utilization_rate=(total - available) / total if total else 0.0,
                active_reservations=reservations.count_active(),
                overdue_reservations=reservations.count_overdue(run_at),
                active_maintenance=windows.count_active(),
                maintenance_completed_last_24h=windows.count_completed_between(
                    run_at - timedelta(hours=24), run_at
                ),
            )
        logger.info(
            "Daily statistics: %d tools (%d available), %d active reservation(s), %d overdue",
            report.statistics.total_tools,
            report.statistics.available_tools,
            report.statistics.active_reservations,
            report.statistics.overdue_reservations,
        )
