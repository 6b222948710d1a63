"""
Lending package: the engine's business logic.

- conflicts / availability: read-side interval checks
- lifecycle: reservation creation and state transitions
- returns: late fees and post-return condition handling
- condition: usage-driven degradation rules
- maintenance: maintenance windows and automatic scheduling
- reconciliation: the daily batch pass
- engine: LendingEngine, the public operation set
"""

from .availability import AvailabilityCalculator
from .condition import ConditionDegradationEngine, ConditionPolicy, evaluate_condition
from .conflicts import ConflictDetector, intervals_overlap
from .engine import LendingEngine
from .lifecycle import ReservationLifecycleManager
from .locks import ToolLockRegistry
from .maintenance import MaintenanceScheduler, plan_maintenance
from .notifications import LoggingNotificationSink, NotificationSink
from .reconciliation import DailyReconciliationRunner
from .returns import ReturnProcessor, calculate_late_fee
from .utilization import build_utilization_report

__all__ = [
    "AvailabilityCalculator",
    "ConditionDegradationEngine",
    "ConditionPolicy",
    "ConflictDetector",
    "DailyReconciliationRunner",
    "LendingEngine",
    "LoggingNotificationSink",
    "MaintenanceScheduler",
    "NotificationSink",
    "ReservationLifecycleManager",
    "ReturnProcessor",
    "ToolLockRegistry",
    "build_utilization_report",
    "calculate_late_fee",
    "evaluate_condition",
    "intervals_overlap",
    "plan_maintenance",
]
