"""
Power-day accounting.

A power day is a local calendar day with at least
``power_day_min_activities`` qualifying activities (a structured workout
plus a manual submission, or any two).  It raises that day's XP cap from
the base daily cap to the power-day cap, at most ``power_days_per_week``
times per ISO week.  Exhausted availability is a normal branch: the cap
is simply not raised.
"""

import logging
from dataclasses import dataclass
from datetime import date

from ..io.notifications import NotificationEvent, NotificationSink, notify
from .clock import Clock, iso_week_key
from .config import EngineRules
from .engine.config_loader import get_default_rules
from .errors import require_id

logger = logging.getLogger(__name__)


@dataclass
class PowerDayAvailability:
    available: bool
    week: int
    year: int
    used: int = 0


@dataclass
class ActiveCap:
    """The XP cap in force for one day."""

    cap: int
    power_day: bool
    activated: bool = False


class PowerDayAccountant:
    def __init__(
        self,
        store,
        clock: Clock | None = None,
        rules: EngineRules | None = None,
        sink: NotificationSink | None = None,
    ):
        self.store = store
        self.clock = clock or Clock()
        self.rules = rules or get_default_rules()
        self.sink = sink

    def is_power_day(self, user_id: str, day: date | None = None) -> bool:
        """True if the day holds enough qualifying activities."""
        require_id(user_id, "user_id")
        day = day or self.clock.today()
        activities = self.store.list_activities(user_id, day)
        distinct = {(a.kind, a.source_id) for a in activities}
        return len(distinct) >= self.rules.power_day_min_activities

    def check_power_day_availability(
        self, user_id: str, day: date | None = None
    ) -> PowerDayAvailability:
        require_id(user_id, "user_id")
        week, year = iso_week_key(day or self.clock.today())
        used = len(self.store.power_day_usage(user_id, week, year))
        return PowerDayAvailability(
            available=used < self.rules.power_days_per_week,
            week=week,
            year=year,
            used=used,
        )

    def is_active(self, user_id: str, day: date | None = None) -> bool:
        """True if a power day was already recorded for this exact day."""
        day = day or self.clock.today()
        week, year = iso_week_key(day)
        return day in self.store.power_day_usage(user_id, week, year)

    def record_power_day_usage(self, user_id: str, day: date | None = None) -> bool:
        """
        Record a power day for the day's ISO week.

        Idempotent: recording the same day twice, or recording when the
        week's allowance is spent, changes nothing.

        Returns:
            True if a new usage was recorded
        """
        require_id(user_id, "user_id")
        day = day or self.clock.today()
        week, year = iso_week_key(day)
        with self.store.transaction(user_id):
            usage = self.store.power_day_usage(user_id, week, year)
            if day in usage or len(usage) >= self.rules.power_days_per_week:
                return False
            self.store.add_power_day_usage(user_id, week, year, day)
        return True

    def resolve_daily_cap(self, user_id: str, day: date | None = None) -> ActiveCap:
        """
        Cap in force for the day, activating a power day when it qualifies.

        The raised cap only ever applies to the given day.  ``activated``
        is set when this call recorded the usage; pass the result to
        announce() once the surrounding award has committed.
        """
        day = day or self.clock.today()
        if self.is_active(user_id, day):
            return ActiveCap(self.rules.power_day_xp_cap, True)
        if self.is_power_day(user_id, day) and self.record_power_day_usage(user_id, day):
            logger.info("Power day activated for %s on %s", user_id, day.isoformat())
            return ActiveCap(self.rules.power_day_xp_cap, True, activated=True)
        return ActiveCap(self.rules.daily_xp_cap, False)

    def announce(self, user_id: str, day: date | None = None) -> None:
        day = day or self.clock.today()
        notify(
            self.sink,
            NotificationEvent(
                kind="power_day",
                user_id=user_id,
                title="Power Day!",
                payload={"day": day.isoformat(), "cap": self.rules.power_day_xp_cap},
                created_at=self.clock.now(),
            ),
        )
