"""
Availability calculator.

Answers two read-only questions about a tool: can it be booked for one
interval, and what does each day of a date range look like.
"""

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from ..database.repository import InvalidIntervalError
from ..database.tool_repository import ToolRepository
from ..models.availability import (
    AvailabilityResult,
    Conflict,
    ConflictKind,
    DayReason,
    DayStatus,
)
from .conflicts import ConflictDetector, intervals_overlap

logger = logging.getLogger(__name__)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """The half-open interval ``[day 00:00, next day 00:00)``."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def classify_day(day: date, tool_available: bool, conflicts: list[Conflict]) -> DayStatus:
    """Status of one calendar day given the conflicts touching the range.

    Precedence is TOOL_UNAVAILABLE, then RESERVED, then MAINTENANCE.
    """
    if not tool_available:
        return DayStatus(date=day, available=False, reason=DayReason.TOOL_UNAVAILABLE)

    day_start, day_end = day_bounds(day)
    kinds = {
        c.kind for c in conflicts if intervals_overlap(day_start, day_end, c.start, c.end)
    }
    if ConflictKind.RESERVATION in kinds:
        return DayStatus(date=day, available=False, reason=DayReason.RESERVED)
    if ConflictKind.MAINTENANCE in kinds:
        return DayStatus(date=day, available=False, reason=DayReason.MAINTENANCE)
    return DayStatus(date=day, available=True, reason=DayReason.NONE)


class AvailabilityCalculator:
    def __init__(self, session: Session, max_calendar_days: int):
        self.tools = ToolRepository(session)
        self.detector = ConflictDetector(session)
        self.max_calendar_days = max_calendar_days

    def check_availability(self, tool_id: str, start: datetime, end: datetime) -> AvailabilityResult:
        """
        Whether ``tool_id`` can be booked for ``[start, end)``.

        Raises:
            InvalidIntervalError: If ``start >= end``
            NotFoundError: If the tool does not exist
        """
        if start >= end:
            raise InvalidIntervalError(f"Start {start} must be before end {end}")

        tool = self.tools.require_row(tool_id)
        conflicts = self.detector.find_conflicts(tool_id, start, end)
        return AvailabilityResult(
            tool_id=tool_id,
            start=start,
            end=end,
            available=bool(tool.is_available) and not conflicts,
            tool_available=bool(tool.is_available),
            conflicts=conflicts,
        )

    def build_calendar(self, tool_id: str, range_start: date, range_end: date) -> list[DayStatus]:
        """
        One DayStatus per day from ``range_start`` to ``range_end`` inclusive.

        Conflicts are fetched once for the whole range and then classified
        per day.

        Raises:
            InvalidIntervalError: If the range is reversed or longer than
                ``max_calendar_days``
            NotFoundError: If the tool does not exist
        """
        if range_end < range_start:
            raise InvalidIntervalError(
                f"Calendar end {range_end} is before start {range_start}"
            )
        day_count = (range_end - range_start).days + 1
        if day_count > self.max_calendar_days:
            raise InvalidIntervalError(
                f"Calendar spans {day_count} days; the maximum is {self.max_calendar_days}"
            )

        tool = self.tools.require_row(tool_id)
        window_start, _ = day_bounds(range_start)
        _, window_end = day_bounds(range_end)
        conflicts = self.detector.find_conflicts(tool_id, window_start, window_end)
        logger.debug(
            "Building %d-day calendar for tool %s with %d conflict(s)",
            day_count,
            tool_id,
            len(conflicts),
        )

        return [
            classify_day(range_start + timedelta(days=offset), bool(tool.is_available), conflicts)
            for offset in range(day_count)
        ]
