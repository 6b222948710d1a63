"""
Condition degradation engine.

Condition changes follow an ordered rule table; the first rule whose
predicate matches decides the new tier:

    1. repaired within the repair window          -> GOOD
    2. EXCELLENT and usage > excellent threshold  -> GOOD
    3. GOOD and usage > good threshold            -> FAIR
    4. otherwise                                  -> unchanged

Usage-driven rules (2 and 3) are suppressed while the tool's last
usage-driven downgrade is still inside the usage window. A single stretch of
heavy use therefore costs at most one tier, and re-running the pass for the
same day changes nothing.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..database.maintenance_repository import MaintenanceRepository
from ..database.reservation_repository import ReservationRepository
from ..database.tool_repository import ToolRepository
from ..models.reservation import billable_days
from ..models.results import ConditionChange
from ..models.tool import ToolCondition

logger = logging.getLogger(__name__)


class ConditionPolicy(BaseModel):
    """Usage thresholds for the degradation rules."""

    excellent_to_good_usage_days: int = 20
    good_to_fair_usage_days: int = 15

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "ConditionPolicy":
        return cls(
            excellent_to_good_usage_days=config.excellent_to_good_usage_days,
            good_to_fair_usage_days=config.good_to_fair_usage_days,
        )


class ConditionInputs(BaseModel):
    condition: ToolCondition
    usage_days: int
    recently_repaired: bool
    degraded_recently: bool = False


class ConditionRule(BaseModel):
    """One row of the rule table."""

    name: str
    applies: Callable[[ConditionInputs, ConditionPolicy], bool]
    result: ToolCondition
    usage_driven: bool = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


CONDITION_RULES: tuple[ConditionRule, ...] = (
    ConditionRule(
        name="recently_repaired",
        applies=lambda i, p: i.recently_repaired,
        result=ToolCondition.GOOD,
    ),
    ConditionRule(
        name="excellent_heavy_use",
        applies=lambda i, p: (
            i.condition == ToolCondition.EXCELLENT
            and i.usage_days > p.excellent_to_good_usage_days
        ),
        result=ToolCondition.GOOD,
        usage_driven=True,
    ),
    ConditionRule(
        name="good_heavy_use",
        applies=lambda i, p: (
            i.condition == ToolCondition.GOOD and i.usage_days > p.good_to_fair_usage_days
        ),
        result=ToolCondition.FAIR,
        usage_driven=True,
    ),
)


def evaluate_condition(
    condition: ToolCondition,
    usage_days: int,
    recently_repaired: bool,
    degraded_recently: bool = False,
    policy: ConditionPolicy | None = None,
) -> tuple[ToolCondition, str | None]:
    """
    Apply the rule table to one tool.

    Returns:
        ``(new_condition, rule_name)``; ``rule_name`` is None when no rule
        matched and the condition is unchanged
    """
    policy = policy or ConditionPolicy()
    inputs = ConditionInputs(
        condition=condition,
        usage_days=usage_days,
        recently_repaired=recently_repaired,
        degraded_recently=degraded_recently,
    )
    for rule in CONDITION_RULES:
        if rule.usage_driven and inputs.degraded_recently:
            continue
        if rule.applies(inputs, policy):
            return rule.result, rule.name
    return condition, None


class ConditionDegradationEngine:
    """Re-evaluates tool conditions from recent usage and repairs."""

    def __init__(self, session: Session, config: EngineConfig):
        self.session = session
        self.config = config
        self.policy = ConditionPolicy.from_config(config)
        self.tools = ToolRepository(session)
        self.reservations = ReservationRepository(session)
        self.windows = MaintenanceRepository(session)

    def usage_days(self, tool_id: str, run_at: datetime) -> int:
        """Billable days of RETURNED reservations ending in the trailing usage window."""
        since = run_at - timedelta(days=self.config.usage_window_days)
        return sum(
            billable_days(r.start_date, r.end_date)
            for r in self.reservations.returned_between(since, run_at, tool_id=tool_id)
        )

    def recently_repaired(self, tool_id: str, run_at: datetime) -> bool:
        since = run_at - timedelta(days=self.config.repair_window_days)
        return self.windows.completed_repair_between(tool_id, since, run_at)

    def degraded_recently(self, degraded_on: date | None, run_at: datetime) -> bool:
        if degraded_on is None:
            return False
        window_start = (run_at - timedelta(days=self.config.usage_window_days)).date()
        return degraded_on >= window_start

    def evaluate_tool(self, tool_id: str, run_at: datetime) -> ConditionChange | None:
        """Evaluate one tool and persist any change; returns the change applied."""
        tool = self.tools.require_row(tool_id, for_update=True)
        usage = self.usage_days(tool_id, run_at)
        repaired = self.recently_repaired(tool_id, run_at)
        previous = tool.condition

        new_condition, rule = evaluate_condition(
            previous,
            usage,
            repaired,
            degraded_recently=self.degraded_recently(tool.condition_degraded_on, run_at),
            policy=self.policy,
        )
        if new_condition == previous:
            return None

        usage_driven = new_condition.rank > previous.rank and not repaired
        self.tools.set_condition(
            tool,
            new_condition,
            now=run_at,
            degraded_on=run_at.date() if usage_driven else None,
        )
        logger.info(
            "Tool %s condition %s -> %s (rule %s, %d usage days)",
            tool_id,
            previous.value,
            new_condition.value,
            rule,
            usage,
        )
        return ConditionChange(
            tool_id=tool_id,
            previous=previous,
            current=new_condition,
            usage_days=usage,
            recently_repaired=repaired,
            rule=rule,
        )
