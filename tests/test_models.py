"""Tests for the pydantic models and their state machines."""

from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from tool_lending.models import (
    MaintenanceStatus,
    MaintenanceWindow,
    Reservation,
    ReservationStatus,
    Tool,
    ToolCondition,
    billable_days,
)

from helpers import day


class TestToolModel:
    def test_valid_tool(self):
        tool = Tool(
            id="tool_3f9a0c1d2e4b",
            name="Laser Level",
            category="measuring_tools",
            daily_rate=Decimal("12.50"),
        )
        assert tool.condition == ToolCondition.EXCELLENT
        assert tool.is_available is True

    def test_id_format(self):
        with pytest.raises(ValidationError):
            Tool(id="drill-1", name="Drill", category="power_tools", daily_rate=Decimal("5"))

    def test_daily_rate_must_be_positive(self):
        with pytest.raises(ValidationError):
            Tool(id="tool_abcdef", name="Drill", category="power_tools", daily_rate=Decimal("0"))

    def test_condition_ordering(self):
        ranks = [c.rank for c in ToolCondition]
        assert ranks == sorted(ranks)
        assert ToolCondition.EXCELLENT.rank < ToolCondition.NEEDS_REPAIR.rank

    @pytest.mark.parametrize(
        ("condition", "expected"),
        [
            (ToolCondition.EXCELLENT, False),
            (ToolCondition.GOOD, False),
            (ToolCondition.FAIR, True),
            (ToolCondition.NEEDS_REPAIR, True),
        ],
    )
    def test_needs_maintenance(self, condition, expected):
        assert condition.needs_maintenance is expected


class TestReservationModel:
    def _reservation(self, **overrides) -> Reservation:
        data = {
            "id": "reservation_5b1e2f3a4c6d",
            "tool_id": "tool_3f9a0c1d2e4b",
            "member_id": "member_042",
            "start_date": day(1),
            "end_date": day(5),
        }
        data.update(overrides)
        return Reservation(**data)

    def test_empty_interval_rejected(self):
        with pytest.raises(ValidationError, match="before end_date"):
            self._reservation(start_date=day(5), end_date=day(5))

    def test_duration_rounds_partial_days_up(self):
        reservation = self._reservation(start_date=day(1), end_date=day(3, hour=1))
        assert reservation.duration_days == 3

    def test_is_overdue_only_when_checked_out(self):
        confirmed = self._reservation(status=ReservationStatus.CONFIRMED)
        checked_out = self._reservation(status=ReservationStatus.CHECKED_OUT)
        assert confirmed.is_overdue(day(10)) is False
        assert checked_out.is_overdue(day(10)) is True
        assert checked_out.is_overdue(day(5)) is False

    def test_late_fees_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            self._reservation(late_fees=Decimal("-1"))


class TestReservationStateMachine:
    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
            (ReservationStatus.PENDING, ReservationStatus.CANCELLED),
            (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_OUT),
            (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED),
            (ReservationStatus.CHECKED_OUT, ReservationStatus.RETURNED),
        ],
    )
    def test_allowed_transitions(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED),
            (ReservationStatus.PENDING, ReservationStatus.CHECKED_OUT),
            (ReservationStatus.RETURNED, ReservationStatus.CONFIRMED),
            (ReservationStatus.CANCELLED, ReservationStatus.PENDING),
        ],
    )
    def test_rejected_transitions(self, source, target):
        assert not source.can_transition_to(target)

    def test_terminal_statuses_hold_no_interval(self):
        for status in ReservationStatus:
            assert status.holds_interval is not status.is_terminal


class TestMaintenanceWindowModel:
    def test_occupied_until_prefers_completed_date(self):
        window = MaintenanceWindow(
            id="maintenance_9c8b7a6d5e4f",
            tool_id="tool_3f9a0c1d2e4b",
            scheduled_date=day(2),
            end_date=day(6),
            completed_date=day(4),
            status=MaintenanceStatus.COMPLETED,
            description="Blade replacement",
        )
        assert window.occupied_until == day(4)
        assert window.is_active is False

    def test_open_ended_window(self):
        window = MaintenanceWindow(
            id="maintenance_9c8b7a6d5e4f",
            tool_id="tool_3f9a0c1d2e4b",
            scheduled_date=day(2),
            description="Inspection",
        )
        assert window.occupied_until is None
        assert window.is_active is True

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            MaintenanceWindow(
                id="maintenance_9c8b7a6d5e4f",
                tool_id="tool_3f9a0c1d2e4b",
                scheduled_date=day(5),
                end_date=day(2),
                description="Inspection",
            )

    def test_in_progress_cannot_go_back_to_scheduled(self):
        assert not MaintenanceStatus.IN_PROGRESS.can_transition_to(MaintenanceStatus.SCHEDULED)
        assert MaintenanceStatus.SCHEDULED.can_transition_to(MaintenanceStatus.IN_PROGRESS)


def test_billable_days():
    assert billable_days(datetime(2030, 1, 1), datetime(2030, 1, 2)) == 1
    assert billable_days(datetime(2030, 1, 1), datetime(2030, 1, 2, 0, 1)) == 2
    assert billable_days(datetime(2030, 1, 2), datetime(2030, 1, 1)) == 0
