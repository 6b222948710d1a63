"""
Tool model for the Tool Lending engine.

A tool is a single rentable physical resource. Its condition tier and
availability flag are the only fields the engine mutates; everything else
belongs to inventory management.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ToolCondition(str, Enum):
    """Ordinal condition tier, best first."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    NEEDS_REPAIR = "NEEDS_REPAIR"

    @property
    def rank(self) -> int:
        """Position in the tier ordering (0 is best)."""
        return list(ToolCondition).index(self)

    @property
    def needs_maintenance(self) -> bool:
        """Returns in this condition trigger a maintenance window."""
        return self in (ToolCondition.FAIR, ToolCondition.NEEDS_REPAIR)


class Tool(BaseModel):
    """Represents a rentable tool in the lending inventory."""

    id: str = Field(
        ...,
        description="Unique identifier for the tool",
        pattern=r"^tool_[a-zA-Z0-9_]{6,}$",
        examples=["tool_3f9a0c1d2e4b"],
    )

    name: str = Field(
        ...,
        description="Display name of the tool",
        min_length=1,
        max_length=200,
        examples=["Cordless Drill", "Laser Level"],
    )

    category: str = Field(
        ...,
        description="Inventory category",
        examples=["power_tools", "measuring_tools"],
    )

    daily_rate: Decimal = Field(
        ...,
        description="Rental price per day",
        gt=0,
    )

    condition: ToolCondition = Field(
        default=ToolCondition.EXCELLENT,
        description="Current condition tier",
    )

    is_available: bool = Field(
        default=True,
        description="Global availability flag; false while under maintenance",
    )

    requires_training: bool = Field(
        default=False,
        description="Whether members need training before pickup",
    )

    condition_degraded_on: date | None = Field(
        None,
        description="Date of the last usage-driven condition downgrade",
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(
        validate_assignment=True,
        populate_by_name=True,
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "tool_3f9a0c1d2e4b",
                "name": "Cordless Drill",
                "category": "power_tools",
                "daily_rate": "25.00",
                "condition": "EXCELLENT",
                "is_available": True,
                "requires_training": False,
            }
        },
    )
