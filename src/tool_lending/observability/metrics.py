"""Business metrics for the Tool Lending engine."""

import logfire

reservation_events = logfire.metric_counter(
    "lending.reservations.events",
    description="Reservation lifecycle events (created/confirmed/checked_out/cancelled)",
)

reservation_conflicts = logfire.metric_counter(
    "lending.reservations.conflicts",
    description="Reservation requests rejected because of overlapping bookings",
)

returns_processed = logfire.metric_counter(
    "lending.returns.processed",
    description="Returns processed, by lateness and resulting condition",
)

late_fees_assessed = logfire.metric_histogram(
    "lending.returns.late_fees",
    unit="currency",
    description="Late fees assessed on return",
)

maintenance_scheduled = logfire.metric_counter(
    "lending.maintenance.scheduled",
    description="Maintenance windows scheduled, by type and source",
)

reconciliation_errors = logfire.metric_counter(
    "lending.reconciliation.errors",
    description="Failed steps or tools in the daily reconciliation pass",
)


def record_reservation_event(event_type: str, tool_id: str) -> None:
    reservation_events.add(1, {"event_type": event_type, "tool_id": tool_id})


def record_conflict(tool_id: str, conflict_count: int) -> None:
    reservation_conflicts.add(1, {"tool_id": tool_id, "conflicts": conflict_count})


def record_return(is_late: bool, condition: str, late_fees: float) -> None:
    returns_processed.add(1, {"is_late": is_late, "condition": condition})
    if is_late:
        late_fees_assessed.record(late_fees)


def record_maintenance(maintenance_type: str, source: str) -> None:
    maintenance_scheduled.add(1, {"maintenance_type": maintenance_type, "source": source})


def record_reconciliation_error(step: str) -> None:
    reconciliation_errors.add(1, {"step": step})
