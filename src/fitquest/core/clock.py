"""Injectable time source for streak and power-day computations."""

from datetime import date, datetime, timedelta


class Clock:
    """Local wall clock."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """
    Clock frozen at a given instant, for tests and replays.

    advance() moves it forward so multi-day scenarios can be simulated.
    """

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, days: int = 0, hours: int = 0, minutes: int = 0) -> None:
        self._instant += timedelta(days=days, hours=hours, minutes=minutes)


def iso_week_key(day: date) -> tuple[int, int]:
    """Return (iso_week, iso_year) for a calendar day."""
    iso = day.isocalendar()
    return iso[1], iso[0]
