"""Tests for reservation creation and lifecycle transitions."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from tool_lending.database import (
    ConflictError,
    InvalidIntervalError,
    InvalidStateError,
    LockTimeoutError,
    NotFoundError,
    UnavailableError,
)
from tool_lending.lending import ConflictDetector, LendingEngine, ToolLockRegistry
from tool_lending.models import MaintenanceType, ReservationStatus, ToolCondition

from helpers import day


class TestCreateReservation:
    def test_created_confirmed_by_default(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "member_1", day(2), day(4), notes="Deck job")

        assert reservation.id.startswith("reservation_")
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.notes == "Deck job"
        assert reservation.late_fees == Decimal("0")

    def test_created_pending_when_not_confirmed(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "member_1", day(2), day(4), confirm=False)
        assert reservation.status == ReservationStatus.PENDING

    def test_auto_confirm_disabled_in_config(self, db_manager, test_config, clock, tool):
        config = test_config.model_copy(update={"auto_confirm_reservations": False})
        engine = LendingEngine(db_manager, config=config, clock=clock)

        reservation = engine.create_reservation(tool.id, "member_1", day(2), day(4))

        assert reservation.status == ReservationStatus.PENDING

    def test_total_cost_bills_started_days(self, engine, tool):
        # 2 days and 3 hours at 50/day bills 3 days
        reservation = engine.create_reservation(tool.id, "member_1", day(2), day(4, hour=3))
        assert reservation.total_cost == Decimal("150.00")

    def test_empty_interval_rejected(self, engine, tool):
        with pytest.raises(InvalidIntervalError):
            engine.create_reservation(tool.id, "member_1", day(4), day(2))

    def test_start_in_past_rejected(self, engine, tool, clock):
        clock.set(day(10))
        with pytest.raises(InvalidIntervalError, match="past"):
            engine.create_reservation(tool.id, "member_1", day(9), day(12))

    def test_unknown_tool(self, engine):
        with pytest.raises(NotFoundError):
            engine.create_reservation("tool_missing00", "member_1", day(2), day(4))

    def test_unavailable_tool(self, engine, tool):
        engine.schedule_maintenance(
            tool.id, MaintenanceType.REPAIR, "Cracked housing", scheduled_date=day(30)
        )
        with pytest.raises(UnavailableError):
            engine.create_reservation(tool.id, "member_1", day(2), day(4))

    def test_overlap_raises_conflict_with_existing_set(self, engine, tool):
        first = engine.create_reservation(tool.id, "member_1", day(2), day(6))

        with pytest.raises(ConflictError) as exc_info:
            engine.create_reservation(tool.id, "member_2", day(4), day(5))

        assert [c.id for c in exc_info.value.conflicts] == [first.id]

    def test_adjacent_reservations_allowed(self, engine, tool):
        engine.create_reservation(tool.id, "member_1", day(2), day(4))
        second = engine.create_reservation(tool.id, "member_2", day(4), day(6))
        assert second.status == ReservationStatus.CONFIRMED

    def test_pending_reservation_blocks_interval(self, engine, tool):
        engine.create_reservation(tool.id, "member_1", day(2), day(4), confirm=False)
        with pytest.raises(ConflictError):
            engine.create_reservation(tool.id, "member_2", day(3), day(5))

    def test_other_tools_are_independent(self, engine, make_tool):
        drill = make_tool(name="Drill")
        saw = make_tool(name="Saw")
        engine.create_reservation(drill.id, "member_1", day(2), day(4))
        assert engine.create_reservation(saw.id, "member_1", day(2), day(4)).tool_id == saw.id


class TestTransitions:
    def test_confirm_pending(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4), confirm=False)
        assert engine.confirm_reservation(reservation.id).status == ReservationStatus.CONFIRMED

    def test_check_out_stamps_pickup_time(self, engine, tool, clock):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4))
        clock.set(day(2, hour=9))

        checked_out = engine.check_out(reservation.id)

        assert checked_out.status == ReservationStatus.CHECKED_OUT
        assert checked_out.checked_out_at == day(2, hour=9)

    def test_pending_cannot_be_checked_out(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4), confirm=False)
        with pytest.raises(InvalidStateError):
            engine.check_out(reservation.id)

    def test_check_out_records_condition_and_notes(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4), notes="Deck job")

        checked_out = engine.check_out(
            reservation.id, checkout_condition=ToolCondition.GOOD, staff_notes="Spare battery"
        )

        assert checked_out.checkout_condition == ToolCondition.GOOD
        assert checked_out.notes == "Deck job\n\nCheckout Notes: Spare battery"
        assert engine.get_tool(tool.id).condition == ToolCondition.EXCELLENT

    def test_check_out_without_notes_keeps_notes(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4), notes="Deck job")
        assert engine.check_out(reservation.id).notes == "Deck job"

    def test_check_out_too_early_rejected(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(5), day(7))

        with pytest.raises(InvalidIntervalError, match="too far"):
            engine.check_out(reservation.id)

        assert engine.get_reservation(reservation.id).status == ReservationStatus.CONFIRMED

    def test_check_out_too_late_rejected(self, engine, tool, clock):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(10))
        clock.set(day(4, hour=1))

        with pytest.raises(InvalidIntervalError):
            engine.check_out(reservation.id)

    def test_check_out_at_window_edge(self, engine, tool, clock):
        reservation = engine.create_reservation(tool.id, "m1", day(3), day(6))
        assert engine.check_out(reservation.id).status == ReservationStatus.CHECKED_OUT

    def test_checkout_window_configurable(self, db_manager, test_config, clock, tool):
        config = test_config.model_copy(update={"checkout_window_days": 0})
        engine = LendingEngine(db_manager, config=config, clock=clock)
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4))

        with pytest.raises(InvalidIntervalError):
            engine.check_out(reservation.id)

        clock.set(day(2))
        assert engine.check_out(reservation.id).checked_out_at == day(2)

    def test_cancel_frees_interval(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4))

        cancelled = engine.cancel_reservation(reservation.id)
        replacement = engine.create_reservation(tool.id, "m2", day(2), day(4))

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert replacement.status == ReservationStatus.CONFIRMED

    def test_checked_out_cannot_be_cancelled(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4))
        engine.check_out(reservation.id)
        with pytest.raises(InvalidStateError):
            engine.cancel_reservation(reservation.id)

    def test_cancelled_is_terminal(self, engine, tool):
        reservation = engine.create_reservation(tool.id, "m1", day(2), day(4))
        engine.cancel_reservation(reservation.id)
        with pytest.raises(InvalidStateError):
            engine.confirm_reservation(reservation.id)
        with pytest.raises(InvalidStateError):
            engine.cancel_reservation(reservation.id)

    def test_unknown_reservation(self, engine):
        with pytest.raises(NotFoundError):
            engine.cancel_reservation("reservation_missing0")
        with pytest.raises(NotFoundError):
            engine.get_reservation("reservation_missing0")

    def test_get_and_list(self, engine, tool):
        late = engine.create_reservation(tool.id, "m1", day(8), day(9))
        early = engine.create_reservation(tool.id, "m2", day(2), day(3))
        engine.cancel_reservation(late.id)

        assert engine.get_reservation(early.id).member_id == "m2"
        assert [r.id for r in engine.list_reservations(tool.id)] == [early.id, late.id]
        assert [
            r.id for r in engine.list_reservations(tool.id, [ReservationStatus.CONFIRMED])
        ] == [early.id]

    def test_member_history_across_tools(self, engine, make_tool):
        drill = make_tool(name="Drill")
        saw = make_tool(name="Saw")
        first = engine.create_reservation(drill.id, "member_a", day(2), day(3))
        second = engine.create_reservation(saw.id, "member_a", day(6), day(8))
        engine.create_reservation(saw.id, "member_b", day(2), day(3))
        engine.cancel_reservation(first.id)

        history = engine.list_member_reservations("member_a")

        assert [r.id for r in history] == [second.id, first.id]
        assert [
            r.id for r in engine.list_member_reservations(
                "member_a", [ReservationStatus.CANCELLED]
            )
        ] == [first.id]
        assert engine.list_member_reservations("member_nobody") == []


class TestConcurrency:
    def test_concurrent_overlapping_requests_book_once(self, engine, tool):
        barrier = threading.Barrier(8)

        def attempt(member: int):
            barrier.wait()
            try:
                return engine.create_reservation(tool.id, f"member_{member}", day(2), day(5))
            except ConflictError:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(8)))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        active = engine.list_reservations(
            tool.id, [ReservationStatus.PENDING, ReservationStatus.CONFIRMED]
        )
        assert len(active) == 1

    def test_concurrent_disjoint_requests_all_succeed(self, engine, tool):
        def attempt(offset: int):
            return engine.create_reservation(
                tool.id, f"member_{offset}", day(2 + 2 * offset), day(4 + 2 * offset)
            )

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(attempt, range(6)))

        assert len({r.id for r in results}) == 6

    def test_two_engines_sharing_a_database_book_once(
        self, db_manager, test_config, clock, tool, monkeypatch
    ):
        find_conflicts = ConflictDetector.find_conflicts

        def slow_find_conflicts(self, *args, **kwargs):
            conflicts = find_conflicts(self, *args, **kwargs)
            time.sleep(0.2)
            return conflicts

        monkeypatch.setattr(ConflictDetector, "find_conflicts", slow_find_conflicts)
        engines = [LendingEngine(db_manager, config=test_config, clock=clock) for _ in range(2)]
        barrier = threading.Barrier(2)

        def attempt(index: int):
            barrier.wait()
            try:
                return engines[index].create_reservation(
                    tool.id, f"member_{index}", day(2), day(5)
                )
            except ConflictError:
                return None

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(attempt, range(2)))

        assert len([r for r in results if r is not None]) == 1
        active = engines[0].list_reservations(
            tool.id, [ReservationStatus.PENDING, ReservationStatus.CONFIRMED]
        )
        assert len(active) == 1


class TestToolLockRegistry:
    def test_lock_timeout(self):
        locks = ToolLockRegistry(timeout_seconds=0.05)
        acquired = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold("tool_busy01"):
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        acquired.wait(5)
        try:
            with pytest.raises(LockTimeoutError):
                with locks.hold("tool_busy01"):
                    pass
        finally:
            release.set()
            thread.join()

    def test_different_tools_do_not_block(self):
        locks = ToolLockRegistry(timeout_seconds=0.05)
        with locks.hold("tool_aaaaaa"), locks.hold("tool_bbbbbb"):
            pass

    def test_lock_released_after_error(self):
        locks = ToolLockRegistry(timeout_seconds=0.05)
        with pytest.raises(ValueError):
            with locks.hold("tool_aaaaaa"):
                raise ValueError("boom")
        with locks.hold("tool_aaaaaa"):
            pass
