"""
Interval index: overlap queries over reservations and maintenance windows.

Both tables are indexed on ``tool_id`` plus their start column, so a lookup
for one tool and one candidate interval touches only the rows that can
overlap it. Intervals are half-open: ``[a, b)`` and ``[c, d)`` overlap iff
``a < d and c < b``. Only rows whose status still holds the interval are
returned.
"""

from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..models.maintenance import ACTIVE_MAINTENANCE_STATUSES
from ..models.reservation import ACTIVE_RESERVATION_STATUSES
from .repository import safe_query
from .schema import MaintenanceWindow as MaintenanceDB
from .schema import Reservation as ReservationDB


class IntervalIndex:
    """Range queries for one tool's active bookings."""

    def __init__(self, session: Session):
        self.session = session

    def overlapping_reservations(
        self,
        tool_id: str,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> list[ReservationDB]:
        """Active reservations of ``tool_id`` overlapping ``[start, end)``."""
        query = select(ReservationDB).where(
            ReservationDB.tool_id == tool_id,
            ReservationDB.status.in_(ACTIVE_RESERVATION_STATUSES),
            ReservationDB.start_date < end,
            ReservationDB.end_date > start,
        )
        if exclude_id is not None:
            query = query.where(ReservationDB.id != exclude_id)
        query = query.order_by(ReservationDB.start_date, ReservationDB.id)
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                f"Failed to query reservations overlapping tool {tool_id}",
            )
        )

    def overlapping_maintenance(
        self,
        tool_id: str,
        start: datetime,
        end: datetime,
    ) -> list[MaintenanceDB]:
        """Active maintenance windows of ``tool_id`` overlapping ``[start, end)``.

        A window with neither ``completed_date`` nor ``end_date`` is open-ended.
        """
        occupied_until = func.coalesce(MaintenanceDB.completed_date, MaintenanceDB.end_date)
        query = (
            select(MaintenanceDB)
            .where(
                MaintenanceDB.tool_id == tool_id,
                MaintenanceDB.status.in_(ACTIVE_MAINTENANCE_STATUSES),
                MaintenanceDB.scheduled_date < end,
                or_(occupied_until.is_(None), occupied_until > start),
            )
            .order_by(MaintenanceDB.scheduled_date, MaintenanceDB.id)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                f"Failed to query maintenance overlapping tool {tool_id}",
            )
        )
