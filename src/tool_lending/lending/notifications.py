"""
Notification sink for lending events.

The engine tells the sink about late returns, new maintenance windows and
overdue reservations after the corresponding transaction has committed.
Delivery is someone else's job; the default sink only logs.
"""

import logging
from typing import Protocol

from ..models.maintenance import MaintenanceWindow
from ..models.reservation import Reservation

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def late_return(self, reservation: Reservation, days_late: int) -> None: ...

    def maintenance_scheduled(self, window: MaintenanceWindow) -> None: ...

    def reservation_overdue(self, reservation: Reservation, days_overdue: int) -> None: ...


class LoggingNotificationSink:
    """Default sink: writes one log line per event."""

    def late_return(self, reservation: Reservation, days_late: int) -> None:
        logger.info(
            "Late return: reservation %s (member %s) returned %d day(s) late, fees %s",
            reservation.id,
            reservation.member_id,
            days_late,
            reservation.late_fees,
        )

    def maintenance_scheduled(self, window: MaintenanceWindow) -> None:
        logger.info(
            "Maintenance %s scheduled for tool %s on %s: %s",
            window.maintenance_type.value,
            window.tool_id,
            window.scheduled_date.isoformat(),
            window.description,
        )

    def reservation_overdue(self, reservation: Reservation, days_overdue: int) -> None:
        logger.info(
            "Overdue: reservation %s (member %s) is %d day(s) past its end date",
            reservation.id,
            reservation.member_id,
            days_overdue,
        )


def notify_safely(sink: NotificationSink, event: str, *args) -> bool:
    """Invoke ``sink.<event>(*args)``; failures are logged, never raised."""
    try:
        getattr(sink, event)(*args)
        return True
    except Exception:
        logger.exception("Notification sink failed on %s", event)
        return False
