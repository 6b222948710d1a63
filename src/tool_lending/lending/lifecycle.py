"""
Reservation lifecycle manager.

Creates reservations after a conflict check and moves them along the state
machine in ``RESERVATION_TRANSITIONS``. Methods work inside the caller's
session; the engine wraps each call in one transaction and holds the tool's
lock around it.
"""

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..database.repository import (
    ConflictError,
    InvalidIntervalError,
    InvalidStateError,
    UnavailableError,
)
from ..database.reservation_repository import (
    ReservationCreateSchema,
    ReservationRepository,
)
from ..database.schema import Reservation as ReservationDB
from ..database.tool_repository import ToolRepository
from ..models.reservation import Reservation, ReservationStatus, billable_days
from ..models.tool import ToolCondition
from .conflicts import ConflictDetector

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def rental_cost(start: datetime, end: datetime, daily_rate: Decimal) -> Decimal:
    """Price of ``[start, end)`` at ``daily_rate``, partial days billed in full."""
    return (Decimal(billable_days(start, end)) * Decimal(daily_rate)).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )


def append_staff_notes(notes: str | None, heading: str, staff_notes: str | None) -> str | None:
    """Append a headed block of staff notes, e.g. ``Checkout Notes: ...``."""
    if not staff_notes:
        return notes
    return f"{notes or ''}\n\n{heading}: {staff_notes}"


class ReservationLifecycleManager:
    """Creates reservations and applies lifecycle transitions."""

    def __init__(self, session: Session, config: EngineConfig):
        self.session = session
        self.config = config
        self.tools = ToolRepository(session)
        self.reservations = ReservationRepository(session)
        self.detector = ConflictDetector(session)

    def create(
        self,
        tool_id: str,
        member_id: str,
        start: datetime,
        end: datetime,
        now: datetime,
        notes: str | None = None,
        confirm: bool | None = None,
    ) -> Reservation:
        """
        Reserve ``tool_id`` for ``[start, end)``.

        Args:
            tool_id: Tool to reserve
            member_id: Member making the reservation
            start: Inclusive start, not earlier than ``now``
            end: Exclusive end
            now: Current engine time
            notes: Optional member notes
            confirm: Create as CONFIRMED; defaults to ``auto_confirm_reservations``

        Raises:
            InvalidIntervalError: Empty interval or a start in the past
            NotFoundError: Unknown tool
            UnavailableError: The tool is disabled for booking
            ConflictError: The interval overlaps active bookings
        """
        if start >= end:
            raise InvalidIntervalError(f"Start {start} must be before end {end}")
        if start < now:
            raise InvalidIntervalError(f"Start {start} is in the past")

        tool = self.tools.require_row(tool_id, for_update=True)
        if not tool.is_available:
            raise UnavailableError(f"Tool {tool_id} is not available for booking")

        conflicts = self.detector.find_conflicts(tool_id, start, end)
        if conflicts:
            logger.info(
                "Rejected reservation of tool %s for %s - %s: %d conflict(s)",
                tool_id,
                start,
                end,
                len(conflicts),
            )
            raise ConflictError(
                f"Tool {tool_id} is already booked for part of {start} - {end}",
                conflicts,
            )

        if confirm is None:
            confirm = self.config.auto_confirm_reservations
        status = ReservationStatus.CONFIRMED if confirm else ReservationStatus.PENDING

        db_reservation = self.reservations.create(
            ReservationCreateSchema(
                tool_id=tool_id,
                member_id=member_id,
                start_date=start,
                end_date=end,
                status=status,
                total_cost=rental_cost(start, end, tool.daily_rate),
                notes=notes,
            ),
            now=now,
        )
        logger.info(
            "Created %s reservation %s of tool %s for member %s",
            status.value,
            db_reservation.id,
            tool_id,
            member_id,
        )
        return self.reservations.to_model(db_reservation)

    def _transition(
        self, reservation_id: str, target: ReservationStatus, now: datetime
    ) -> ReservationDB:
        db_reservation = self.reservations.require_row(reservation_id, for_update=True)
        current = db_reservation.status
        if not current.can_transition_to(target):
            raise InvalidStateError(
                f"Reservation {reservation_id} cannot move from {current.value} to {target.value}"
            )
        db_reservation.status = target
        db_reservation.updated_at = now
        logger.info(
            "Reservation %s: %s -> %s", reservation_id, current.value, target.value
        )
        return db_reservation

    def confirm(self, reservation_id: str, now: datetime) -> Reservation:
        """PENDING -> CONFIRMED."""
        db_reservation = self._transition(reservation_id, ReservationStatus.CONFIRMED, now)
        self.reservations.flush()
        return self.reservations.to_model(db_reservation)

    def check_out(
        self,
        reservation_id: str,
        now: datetime,
        checkout_condition: ToolCondition | None = None,
        staff_notes: str | None = None,
    ) -> Reservation:
        """
        CONFIRMED -> CHECKED_OUT, stamping the pickup time.

        The pickup must fall within ``checkout_window_days`` of the reserved
        start, before or after it. The condition staff record at pickup is kept
        on the reservation only; the tool's own condition is left alone.

        Raises:
            InvalidStateError: The reservation is not CONFIRMED
            InvalidIntervalError: The pickup is too far from the reserved start
        """
        db_reservation = self.reservations.require_row(reservation_id, for_update=True)
        window = timedelta(days=self.config.checkout_window_days)
        if (
            db_reservation.status == ReservationStatus.CONFIRMED
            and abs(now - db_reservation.start_date) > window
        ):
            raise InvalidIntervalError(
                f"Checkout at {now} is too far from reservation start "
                f"{db_reservation.start_date}"
            )

        self._transition(reservation_id, ReservationStatus.CHECKED_OUT, now)
        db_reservation.checked_out_at = now
        db_reservation.checkout_condition = checkout_condition
        db_reservation.notes = append_staff_notes(
            db_reservation.notes, "Checkout Notes", staff_notes
        )
        self.reservations.flush()
        return self.reservations.to_model(db_reservation)

    def cancel(self, reservation_id: str, now: datetime) -> Reservation:
        """PENDING/CONFIRMED -> CANCELLED; the interval is free as soon as this commits."""
        db_reservation = self._transition(reservation_id, ReservationStatus.CANCELLED, now)
        db_reservation.cancelled_at = now
        self.reservations.flush()
        return self.reservations.to_model(db_reservation)

    def get(self, reservation_id: str) -> Reservation:
        return self.reservations.to_model(self.reservations.require_row(reservation_id))

    def list_for_tool(
        self, tool_id: str, statuses: list[ReservationStatus] | None = None
    ) -> list[Reservation]:
        return self.reservations.list_for_tool(tool_id, statuses)

    def list_for_member(
        self, member_id: str, statuses: list[ReservationStatus] | None = None
    ) -> list[Reservation]:
        return self.reservations.list_for_member(member_id, statuses)
