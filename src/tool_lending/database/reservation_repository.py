"""
Reservation repository implementation for the Tool Lending engine.

Handles reservation rows:

1. **Creation**: inserting a reservation once the conflict check passed
2. **History**: returned reservations in a trailing window (usage days)
3. **Housekeeping**: purging old cancelled reservations
4. **Accrual**: late fees on rows that are still checked out
5. **Reporting**: active and overdue counts for the daily summary

Overlap queries live in the interval index; this repository never decides
whether an interval is free.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import delete, func, select, update

from ..models.reservation import (
    ACTIVE_RESERVATION_STATUSES,
    ReservationStatus,
)
from ..models.reservation import Reservation as ReservationModel
from .repository import BaseRepository, RepositoryException, generate_id, safe_query
from .schema import Reservation as ReservationDB


class ReservationCreateSchema(BaseModel):
    """Schema for inserting a reservation."""

    tool_id: str
    member_id: str
    start_date: datetime
    end_date: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    total_cost: Decimal = Decimal("0.00")
    notes: str | None = None


class ReservationRepository(
    BaseRepository[ReservationDB, ReservationCreateSchema, ReservationModel]
):
    """Repository for reservation rows."""

    id_prefix = "reservation"

    @property
    def model_class(self):
        return ReservationDB

    @property
    def response_schema(self):
        return ReservationModel

    def create(self, data: ReservationCreateSchema, now: datetime) -> ReservationDB:
        """Insert a reservation row and return it (still attached to the session)."""
        db_reservation = ReservationDB(
            id=generate_id(self.id_prefix),
            tool_id=data.tool_id,
            member_id=data.member_id,
            start_date=data.start_date,
            end_date=data.end_date,
            status=data.status,
            total_cost=data.total_cost,
            late_fees=Decimal("0.00"),
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )
        return self.add(db_reservation)

    def list_for_tool(
        self,
        tool_id: str,
        statuses: list[ReservationStatus] | None = None,
    ) -> list[ReservationModel]:
        """Reservations of a tool ordered by start date."""
        query = select(ReservationDB).where(ReservationDB.tool_id == tool_id)
        if statuses:
            query = query.where(ReservationDB.status.in_(statuses))
        query = query.order_by(ReservationDB.start_date)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list reservations for tool {tool_id}",
        )
        return [self.to_model(r) for r in results]

    def list_for_member(
        self,
        member_id: str,
        statuses: list[ReservationStatus] | None = None,
    ) -> list[ReservationModel]:
        """A member's reservation history, most recent start first."""
        query = select(ReservationDB).where(ReservationDB.member_id == member_id)
        if statuses:
            query = query.where(ReservationDB.status.in_(statuses))
        query = query.order_by(ReservationDB.start_date.desc())
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list reservations for member {member_id}",
        )
        return [self.to_model(r) for r in results]

    def returned_between(
        self,
        since: datetime,
        until: datetime,
        tool_id: str | None = None,
    ) -> list[ReservationDB]:
        """RETURNED reservations whose end_date falls in ``[since, until)``."""
        query = select(ReservationDB).where(
            ReservationDB.status == ReservationStatus.RETURNED,
            ReservationDB.end_date >= since,
            ReservationDB.end_date < until,
        )
        if tool_id is not None:
            query = query.where(ReservationDB.tool_id == tool_id)
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to load returned reservations",
            )
        )

    def returned_within(self, start: datetime, end: datetime, tool_id: str) -> list[ReservationDB]:
        """RETURNED reservations lying entirely inside ``[start, end]``."""
        query = select(ReservationDB).where(
            ReservationDB.tool_id == tool_id,
            ReservationDB.status == ReservationStatus.RETURNED,
            ReservationDB.start_date >= start,
            ReservationDB.end_date <= end,
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                f"Failed to load returned reservations for tool {tool_id}",
            )
        )

    def overdue(self, as_of: datetime) -> list[ReservationDB]:
        """CHECKED_OUT reservations whose end_date is before ``as_of``."""
        query = (
            select(ReservationDB)
            .where(
                ReservationDB.status == ReservationStatus.CHECKED_OUT,
                ReservationDB.end_date < as_of,
            )
            .order_by(ReservationDB.end_date)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to load overdue reservations",
            )
        )

    def accrue_late_fee(self, reservation_id: str, fee: Decimal, now: datetime) -> bool:
        """
        Set the running late fee of a reservation that is still CHECKED_OUT.

        The status guard is part of the UPDATE itself, so a return that
        committed after the overdue rows were read keeps its final fee.

        Returns:
            True if a row was updated
        """
        stmt = (
            update(ReservationDB)
            .where(
                ReservationDB.id == reservation_id,
                ReservationDB.status == ReservationStatus.CHECKED_OUT,
            )
            .values(late_fees=fee, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(stmt)
        except Exception as e:
            raise RepositoryException(
                f"Failed to accrue late fee on reservation {reservation_id}: {e!s}"
            ) from e
        return bool(result.rowcount)

    def delete_cancelled_before(self, cutoff: datetime) -> int:
        """Hard-delete CANCELLED reservations cancelled before ``cutoff``."""
        stmt = delete(ReservationDB).where(
            ReservationDB.status == ReservationStatus.CANCELLED,
            func.coalesce(ReservationDB.cancelled_at, ReservationDB.updated_at) < cutoff,
        )
        try:
            result = self.session.execute(stmt)
        except Exception as e:
            raise RepositoryException(f"Failed to purge cancelled reservations: {e!s}") from e
        return result.rowcount or 0

    def count_active(self) -> int:
        return self.count(ReservationDB.status.in_(ACTIVE_RESERVATION_STATUSES))

    def count_overdue(self, as_of: datetime) -> int:
        return self.count(
            ReservationDB.status == ReservationStatus.CHECKED_OUT,
            ReservationDB.end_date < as_of,
        )
