"""
Tool repository: the engine's resource store.

Provides creation (for inventory seeding), lookups with optional row locks,
and the aggregate counts the daily report needs.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field
from sqlalchemy import select

from ..models.tool import Tool as ToolModel
from ..models.tool import ToolCondition
from .repository import BaseRepository, generate_id, safe_query
from .schema import Tool as ToolDB


class ToolCreateSchema(BaseModel):
    """Schema for registering a tool."""

    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    daily_rate: Decimal = Field(..., gt=0)
    condition: ToolCondition = ToolCondition.EXCELLENT
    is_available: bool = True
    requires_training: bool = False


class ToolRepository(BaseRepository[ToolDB, ToolCreateSchema, ToolModel]):
    """Repository for tool records."""

    id_prefix = "tool"

    @property
    def model_class(self):
        return ToolDB

    @property
    def response_schema(self):
        return ToolModel

    def create(self, data: ToolCreateSchema, now: datetime | None = None) -> ToolModel:
        """Register a new tool with a generated ID."""
        now = now or datetime.now()
        db_tool = ToolDB(
            id=generate_id(self.id_prefix),
            name=data.name,
            category=data.category,
            daily_rate=data.daily_rate,
            condition=data.condition,
            is_available=data.is_available,
            requires_training=data.requires_training,
            created_at=now,
            updated_at=now,
        )
        self.add(db_tool)
        return self.to_model(db_tool)

    def list_rows(self, tool_ids: list[str] | None = None) -> list[ToolDB]:
        """All tool rows ordered by ID, optionally restricted to ``tool_ids``."""
        query = select(ToolDB).order_by(ToolDB.id)
        if tool_ids:
            query = query.where(ToolDB.id.in_(tool_ids))
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to list tools",
            )
        )

    def list_ids(self) -> list[str]:
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(select(ToolDB.id).order_by(ToolDB.id)).scalars().all(),
                "Failed to list tool IDs",
            )
        )

    def set_condition(
        self,
        tool: ToolDB,
        condition: ToolCondition,
        now: datetime,
        degraded_on: date | None = None,
    ) -> None:
        """Record a new condition tier, optionally stamping a usage downgrade."""
        tool.condition = condition
        if degraded_on is not None:
            tool.condition_degraded_on = degraded_on
        tool.updated_at = now
        self.flush()

    def set_availability(self, tool: ToolDB, is_available: bool, now: datetime) -> None:
        tool.is_available = is_available
        tool.updated_at = now
        self.flush()

    def count_total(self) -> int:
        return self.count()

    def count_available(self) -> int:
        return self.count(ToolDB.is_available.is_(True))
