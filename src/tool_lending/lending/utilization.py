"""Utilization and revenue report per tool."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from ..database.maintenance_repository import MaintenanceRepository
from ..database.repository import InvalidIntervalError
from ..database.reservation_repository import ReservationRepository
from ..database.tool_repository import ToolRepository
from ..models.reservation import billable_days
from ..models.results import ToolUtilization


def build_utilization_report(
    session: Session,
    start: datetime,
    end: datetime,
    tool_ids: list[str] | None = None,
) -> list[ToolUtilization]:
    """
    Usage and revenue of each tool between ``start`` and ``end``.

    Only RETURNED reservations and COMPLETED maintenance lying entirely inside
    the period count. Results are sorted by utilization, highest first.
    """
    if start >= end:
        raise InvalidIntervalError(f"Start {start} must be before end {end}")

    tools = ToolRepository(session)
    reservations = ReservationRepository(session)
    windows = MaintenanceRepository(session)
    total_days = billable_days(start, end)

    report = []
    for tool in tools.list_rows(tool_ids):
        returned = reservations.returned_within(start, end, tool.id)
        reserved_days = sum(billable_days(r.start_date, r.end_date) for r in returned)
        revenue = sum(
            (Decimal(r.total_cost) + Decimal(r.late_fees) for r in returned),
            Decimal("0.00"),
        )
        maintenance_cost = sum(
            (Decimal(w.cost or 0) for w in windows.completed_within(start, end, tool.id)),
            Decimal("0.00"),
        )
        report.append(
            ToolUtilization(
                tool_id=tool.id,
                tool_name=tool.name,
                category=tool.category,
                total_days=total_days,
                reserved_days=reserved_days,
                utilization_rate=reserved_days / total_days if total_days else 0.0,
                revenue=revenue,
                maintenance_cost=maintenance_cost,
                net_revenue=revenue - maintenance_cost,
            )
        )

    report.sort(key=lambda u: u.utilization_rate, reverse=True)
    return report
