"""Shared test helpers: dates, a movable clock and a recording notification sink."""

from datetime import datetime, timedelta

from tool_lending.models import ToolCondition

START_OF_TEST_TIME = datetime(2030, 1, 1)


def day(n: int, hour: int = 0) -> datetime:
    """Midnight (or ``hour``) of January ``n``, 2030."""
    return datetime(2030, 1, 1, hour) + timedelta(days=n - 1)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = START_OF_TEST_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingSink:
    """Notification sink that remembers every event."""

    def __init__(self):
        self.events: list[tuple] = []

    def late_return(self, reservation, days_late):
        self.events.append(("late_return", reservation.id, days_late))

    def maintenance_scheduled(self, window):
        self.events.append(("maintenance_scheduled", window.id, window.tool_id))

    def reservation_overdue(self, reservation, days_overdue):
        self.events.append(("reservation_overdue", reservation.id, days_overdue))

    def of_kind(self, kind: str) -> list[tuple]:
        return [e for e in self.events if e[0] == kind]


class FailingSink(RecordingSink):
    """Sink whose every delivery raises."""

    def late_return(self, reservation, days_late):
        raise RuntimeError("mail server down")

    def maintenance_scheduled(self, window):
        raise RuntimeError("mail server down")

    def reservation_overdue(self, reservation, days_overdue):
        raise RuntimeError("mail server down")


def returned_rental(
    engine, tool_id, start, end, condition=ToolCondition.EXCELLENT, damage=None
):
    """Book, check out and return a tool on time; returns the ReturnResult."""
    reservation = engine.create_reservation(tool_id, "member_1", start, end)
    engine.check_out(reservation.id)
    return engine.process_return(
        reservation.id, condition, actual_return_date=end, damage=damage
    )
