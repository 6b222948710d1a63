"""Tests for the utilization report."""

from decimal import Decimal

import pytest

from tool_lending.database import InvalidIntervalError
from tool_lending.models import MaintenanceStatus, MaintenanceType, ToolCondition

from helpers import day, returned_rental


def test_report_sorted_by_utilization(engine, make_tool):
    busy = make_tool(name="Busy Drill", daily_rate=Decimal("10.00"))
    idle = make_tool(name="Idle Saw")
    returned_rental(engine, busy.id, day(2), day(12))

    report = engine.utilization_report(day(1), day(31))

    assert [u.tool_id for u in report] == [busy.id, idle.id]
    assert report[0].total_days == 30
    assert report[0].reserved_days == 10
    assert report[0].utilization_rate == pytest.approx(10 / 30)
    assert report[0].revenue == Decimal("100.00")
    assert report[1].reserved_days == 0
    assert report[1].revenue == Decimal("0.00")


def test_revenue_includes_late_fees_and_nets_maintenance(engine, make_tool):
    tool = make_tool(daily_rate=Decimal("20.00"))
    reservation = engine.create_reservation(tool.id, "m1", day(2), day(5))
    engine.check_out(reservation.id)
    result = engine.process_return(
        reservation.id, ToolCondition.NEEDS_REPAIR, actual_return_date=day(7)
    )
    window_id = result.maintenance_window.id
    engine.update_maintenance_status(window_id, MaintenanceStatus.IN_PROGRESS)
    engine.update_maintenance_status(
        window_id, MaintenanceStatus.COMPLETED, completed_date=day(9), cost=Decimal("12.50")
    )

    (usage,) = engine.utilization_report(day(1), day(31), tool_ids=[tool.id])

    # 3 booked days at 20 plus 2 late days at 10
    assert usage.revenue == Decimal("80.00")
    assert usage.maintenance_cost == Decimal("12.50")
    assert usage.net_revenue == Decimal("67.50")
    assert usage.reserved_days == 5


def test_rentals_outside_period_excluded(engine, make_tool):
    tool = make_tool()
    returned_rental(engine, tool.id, day(2), day(12))
    (usage,) = engine.utilization_report(day(5), day(31))
    assert usage.reserved_days == 0


def test_unreturned_rentals_excluded(engine, make_tool):
    tool = make_tool()
    engine.create_reservation(tool.id, "m1", day(2), day(4))
    engine.schedule_maintenance(
        tool.id, MaintenanceType.CLEANING, "Clean", scheduled_date=day(5), cost=Decimal("9")
    )
    (usage,) = engine.utilization_report(day(1), day(31))
    assert usage.reserved_days == 0
    assert usage.maintenance_cost == Decimal("0.00")


def test_empty_period_rejected(engine):
    with pytest.raises(InvalidIntervalError):
        engine.utilization_report(day(5), day(5))
