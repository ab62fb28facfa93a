"""
Streak accounting.

A streak counts consecutive local calendar days with at least one
qualifying activity.  Update rules for today's activity:

- last activity today: unchanged
- last activity yesterday: +1
- one missed day, class may preserve, weekly charge unused: +1 and the
  charge for the missed day's ISO week is consumed
- anything else: back to 1
"""

import logging
from datetime import date, timedelta

from .class_bonus import ClassBonusCalculator
from .clock import Clock, iso_week_key
from .config import EngineRules
from .engine.config_loader import get_default_rules
from .errors import require_id

logger = logging.getLogger(__name__)


def get_streak_multiplier(streak: int, rules: EngineRules | None = None) -> float:
    """Step multiplier for a streak length (1.0 below the first breakpoint)."""
    steps = (rules or get_default_rules()).streak_multiplier_steps
    for minimum, mult in steps:
        if streak >= minimum:
            return mult
    return 1.0


def crossed_milestones(previous: int, current: int, rules: EngineRules | None = None) -> list[int]:
    """Milestones reached when the streak moved from previous to current."""
    milestones = (rules or get_default_rules()).streak_milestones
    return [m for m in milestones if previous < m <= current]


class StreakAccountant:
    """Updates a user's streak against the injected clock."""

    def __init__(self, store, clock: Clock | None = None, rules: EngineRules | None = None):
        self.store = store
        self.clock = clock or Clock()
        self.rules = rules or get_default_rules()

    def get_streak_multiplier(self, streak: int) -> float:
        return get_streak_multiplier(streak, self.rules)

    def update_streak(self, user_id: str) -> int:
        """
        Count today's qualifying activity toward the user's streak.

        Returns:
            The new streak value
        """
        require_id(user_id, "user_id")
        today = self.clock.today()
        with self.store.transaction(user_id):
            state = self.store.load_state(user_id)
            last = state.last_activity_date
            previous = state.streak

            if last == today:
                new_streak = max(previous, 1)
            elif last is None or last > today:
                new_streak = 1
            else:
                gap = (today - last).days
                if gap == 1:
                    new_streak = previous + 1
                elif gap == 2 and self._preserve(state, today):
                    new_streak = previous + 1
                else:
                    new_streak = 1

            state.streak = new_streak
            state.last_activity_date = today
            self.store.save_state(state)

        if new_streak != previous:
            logger.debug("Streak for %s: %d -> %d", user_id, previous, new_streak)
        return new_streak

    def _preserve(self, state, today: date) -> bool:
        """Consume the weekly preservation charge when the class allows it."""
        if not ClassBonusCalculator.for_class(state.user_class).preserves_streak:
            return False
        used = getattr(self.store, "streak_preservation_used", None)
        mark = getattr(self.store, "mark_streak_preserved", None)
        if used is None or mark is None:
            return False

        missed = today - timedelta(days=1)
        week, year = iso_week_key(missed)
        if used(state.user_id, week, year):
            return False
        mark(state.user_id, week, year)
        logger.info("Streak of %s preserved across %s", state.user_id, missed.isoformat())
        return True
