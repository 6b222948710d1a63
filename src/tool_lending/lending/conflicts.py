"""
Conflict detection for candidate booking intervals.

All intervals are half-open. A booking ending exactly when another starts
does not conflict with it, so back-to-back rentals are always allowed.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from ..database.interval_index import IntervalIndex
from ..models.availability import Conflict, ConflictKind


def intervals_overlap(
    a_start: datetime,
    a_end: datetime | None,
    b_start: datetime,
    b_end: datetime | None,
) -> bool:
    """Whether ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap.

    An end of ``None`` means the interval never ends.
    """
    return (a_end is None or b_start < a_end) and (b_end is None or a_start < b_end)


class ConflictDetector:
    """Finds active reservations and maintenance windows overlapping an interval."""

    def __init__(self, session: Session):
        self.index = IntervalIndex(session)

    def find_conflicts(
        self,
        tool_id: str,
        start: datetime,
        end: datetime,
        exclude_reservation_id: str | None = None,
    ) -> list[Conflict]:
        """
        Every booking of ``tool_id`` that overlaps ``[start, end)``, ordered by start.

        An unknown tool has no bookings and yields an empty list; callers
        check tool existence themselves.
        """
        conflicts = [
            Conflict(
                kind=ConflictKind.RESERVATION,
                id=r.id,
                start=r.start_date,
                end=r.end_date,
                status=r.status.value,
            )
            for r in self.index.overlapping_reservations(
                tool_id, start, end, exclude_id=exclude_reservation_id
            )
        ]
        conflicts.extend(
            Conflict(
                kind=ConflictKind.MAINTENANCE,
                id=w.id,
                start=w.scheduled_date,
                end=w.completed_date or w.end_date,
                status=w.status.value,
            )
            for w in self.index.overlapping_maintenance(tool_id, start, end)
        )
        conflicts.sort(key=lambda c: (c.start, c.id))
        return conflicts
