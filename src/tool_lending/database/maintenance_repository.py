"""
Maintenance window repository for the Tool Lending engine.

Windows are created by returns, by staff and by the daily pass. The queries
here answer the questions those callers ask: is a window still open for this
tool, was the tool repaired recently, and what work finished in a period.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from sqlalchemy import select

from ..models.maintenance import (
    ACTIVE_MAINTENANCE_STATUSES,
    MaintenanceStatus,
    MaintenanceType,
)
from ..models.maintenance import MaintenanceWindow as MaintenanceModel
from .repository import BaseRepository, generate_id, safe_query
from .schema import MaintenanceWindow as MaintenanceDB


class MaintenanceCreateSchema(BaseModel):
    """Schema for scheduling a maintenance window."""

    tool_id: str
    maintenance_type: MaintenanceType = MaintenanceType.INSPECTION
    scheduled_date: datetime
    end_date: datetime | None = None
    description: str = Field(..., min_length=1, max_length=1000)
    notes: str | None = None
    cost: Decimal | None = Field(None, ge=0)


class MaintenanceRepository(
    BaseRepository[MaintenanceDB, MaintenanceCreateSchema, MaintenanceModel]
):
    """Repository for maintenance windows."""

    id_prefix = "maintenance"

    @property
    def model_class(self):
        return MaintenanceDB

    @property
    def response_schema(self):
        return MaintenanceModel

    def create(self, data: MaintenanceCreateSchema, now: datetime) -> MaintenanceDB:
        """Insert a SCHEDULED window."""
        if data.end_date is not None and data.end_date <= data.scheduled_date:
            raise ValueError("Maintenance end_date must be after scheduled_date")

        db_window = MaintenanceDB(
            id=generate_id(self.id_prefix),
            tool_id=data.tool_id,
            maintenance_type=data.maintenance_type,
            status=MaintenanceStatus.SCHEDULED,
            scheduled_date=data.scheduled_date,
            end_date=data.end_date,
            description=data.description,
            notes=data.notes,
            cost=data.cost,
            created_at=now,
            updated_at=now,
        )
        return self.add(db_window)

    def list_for_tool(self, tool_id: str, active_only: bool = False) -> list[MaintenanceModel]:
        query = select(MaintenanceDB).where(MaintenanceDB.tool_id == tool_id)
        if active_only:
            query = query.where(MaintenanceDB.status.in_(ACTIVE_MAINTENANCE_STATUSES))
        query = query.order_by(MaintenanceDB.scheduled_date)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list maintenance for tool {tool_id}",
        )
        return [self.to_model(w) for w in results]

    def has_active(self, tool_id: str, exclude_id: str | None = None) -> bool:
        """Whether the tool has a SCHEDULED or IN_PROGRESS window."""
        criteria = [
            MaintenanceDB.tool_id == tool_id,
            MaintenanceDB.status.in_(ACTIVE_MAINTENANCE_STATUSES),
        ]
        if exclude_id is not None:
            criteria.append(MaintenanceDB.id != exclude_id)
        return self.count(*criteria) > 0

    def completed_repair_between(self, tool_id: str, since: datetime, until: datetime) -> bool:
        """Whether a REPAIR window was completed in ``[since, until]``."""
        return (
            self.count(
                MaintenanceDB.tool_id == tool_id,
                MaintenanceDB.maintenance_type == MaintenanceType.REPAIR,
                MaintenanceDB.status == MaintenanceStatus.COMPLETED,
                MaintenanceDB.completed_date >= since,
                MaintenanceDB.completed_date <= until,
            )
            > 0
        )

    def completed_within(self, start: datetime, end: datetime, tool_id: str) -> list[MaintenanceDB]:
        """COMPLETED windows of a tool lying inside ``[start, end]``."""
        query = select(MaintenanceDB).where(
            MaintenanceDB.tool_id == tool_id,
            MaintenanceDB.status == MaintenanceStatus.COMPLETED,
            MaintenanceDB.scheduled_date >= start,
            MaintenanceDB.completed_date <= end,
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                f"Failed to load completed maintenance for tool {tool_id}",
            )
        )

    def count_active(self) -> int:
        return self.count(MaintenanceDB.status.in_(ACTIVE_MAINTENANCE_STATUSES))

    def count_completed_between(self, since: datetime, until: datetime) -> int:
        """Windows completed in ``[since, until)``."""
        return self.count(
            MaintenanceDB.status == MaintenanceStatus.COMPLETED,
            MaintenanceDB.completed_date >= since,
            MaintenanceDB.completed_date < until,
        )
