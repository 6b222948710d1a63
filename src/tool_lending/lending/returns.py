"""
Return & fee processor.

Closes a checked-out reservation: computes late fees, records the returned
condition on the tool and, when the tool came back worn or damaged, takes it
out of circulation with a maintenance window. All writes land in the caller's
transaction.
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..database.repository import InvalidStateError
from ..database.reservation_repository import ReservationRepository
from ..database.tool_repository import ToolRepository
from ..models.maintenance import MaintenanceType
from ..models.reservation import ONE_DAY, ReservationStatus
from ..models.results import DamageInfo, ReturnResult
from ..models.tool import ToolCondition
from .lifecycle import append_staff_notes
from .maintenance import MaintenanceScheduler

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def days_late(end_date: datetime, returned_at: datetime) -> int:
    """Started days past ``end_date``; 0 for an on-time return."""
    if returned_at <= end_date:
        return 0
    return math.ceil((returned_at - end_date) / ONE_DAY)


def calculate_late_fee(
    end_date: datetime,
    returned_at: datetime,
    daily_rate: Decimal,
    late_fee_rate: Decimal,
) -> tuple[int, Decimal]:
    """
    Late fee for a return at ``returned_at``.

    Returns:
        ``(days_late, fee)`` where ``fee = days_late * daily_rate * late_fee_rate``
        rounded to cents
    """
    late = days_late(end_date, returned_at)
    fee = Decimal(late) * Decimal(daily_rate) * Decimal(late_fee_rate)
    return late, fee.quantize(CENTS, rounding=ROUND_HALF_UP)


class ReturnProcessor:
    """Processes tool returns for checked-out reservations."""

    def __init__(self, session: Session, config: EngineConfig):
        self.session = session
        self.config = config
        self.tools = ToolRepository(session)
        self.reservations = ReservationRepository(session)
        self.scheduler = MaintenanceScheduler(session, config)

    def process_return(
        self,
        reservation_id: str,
        return_condition: ToolCondition,
        now: datetime,
        actual_return_date: datetime | None = None,
        damage: DamageInfo | None = None,
        staff_notes: str | None = None,
    ) -> ReturnResult:
        """
        Return the tool held by ``reservation_id``.

        Args:
            reservation_id: A CHECKED_OUT reservation
            return_condition: Condition the tool came back in
            now: Current engine time
            actual_return_date: When the tool actually came back; ``now`` if omitted
            damage: Optional staff damage assessment
            staff_notes: Appended to the reservation notes

        Raises:
            NotFoundError: If the reservation does not exist
            InvalidStateError: If the reservation is not CHECKED_OUT
        """
        reservation = self.reservations.require_row(reservation_id, for_update=True)
        if reservation.status != ReservationStatus.CHECKED_OUT:
            raise InvalidStateError(
                f"Only checked out tools can be returned; reservation {reservation_id} "
                f"is {reservation.status.value}"
            )

        tool = self.tools.require_row(reservation.tool_id, for_update=True)
        effective_return = actual_return_date or now

        late, late_fees = calculate_late_fee(
            reservation.end_date,
            effective_return,
            tool.daily_rate,
            self.config.late_fee_rate,
        )
        is_late = late > 0

        needs_maintenance = return_condition.needs_maintenance or bool(
            damage and damage.requires_maintenance
        )

        reservation.status = ReservationStatus.RETURNED
        reservation.return_condition = return_condition
        reservation.late_fees = late_fees
        reservation.returned_at = effective_return
        reservation.notes = append_staff_notes(
            reservation.notes, "Return Notes", staff_notes
        )
        reservation.updated_at = now
        if is_late:
            reservation.end_date = effective_return
        self.reservations.flush()

        tool.condition = return_condition
        self.tools.set_availability(tool, not needs_maintenance, now)

        window = None
        if needs_maintenance:
            maintenance_type = (damage and damage.maintenance_type) or MaintenanceType.INSPECTION
            description = (damage and damage.description) or (
                f"Tool returned in {return_condition.value} condition, requires inspection"
            )
            window = self.scheduler.schedule(
                tool.id,
                maintenance_type,
                description,
                now=now,
                scheduled_date=now + timedelta(days=self.config.maintenance_lead_days),
                notes=f"Triggered by return from reservation {reservation_id}. {staff_notes or ''}".strip(),
                tool=tool,
            )

        logger.info(
            "Returned reservation %s (tool %s, %s)%s%s",
            reservation_id,
            tool.id,
            return_condition.value,
            f" {late} day(s) late, fees {late_fees}" if is_late else "",
            " - maintenance scheduled" if window else "",
        )

        return ReturnResult(
            reservation=self.reservations.to_model(reservation),
            late_fees=late_fees,
            days_late=late,
            is_late=is_late,
            maintenance_created=window is not None,
            maintenance_window=window,
        )
