"""
XP engine.

Computes base workout XP, applies the class bonus, the streak multiplier
and the active daily cap, and commits the award to the user's progression
state.  Award algorithm:

    raw      = base + class bonus
    streaked = round(raw * streak multiplier)
    final    = clamp(streaked, 0, active cap - XP already earned today)

Hitting the cap is a normal outcome and is reported on the XPAward.
The engine does not deduplicate awards by workout id; the caller must
award each workout exactly once.
"""

import logging
from datetime import datetime

from ..io.notifications import NotificationEvent, NotificationSink, notify
from .class_bonus import ClassBonusCalculator
from .clock import Clock
from .config import MAX_LEVEL, EngineRules, level_for_xp, round_xp, xp_for_level
from .engine.config_loader import get_default_rules
from .errors import ValidationFailure, require_id
from .models import (
    ClassBonusResult,
    Difficulty,
    LevelInfo,
    PersonalRecord,
    UserProgressionState,
    WorkoutRecord,
    XPAward,
)
from .power_day import PowerDayAccountant
from .streak import get_streak_multiplier

logger = logging.getLogger(__name__)


def calculate_workout_xp(
    workout: WorkoutRecord,
    difficulty: Difficulty | None = None,
    rules: EngineRules | None = None,
) -> int:
    """
    Base XP for a workout.

        round((min(exercises, 10) * 10
               + min(completed sets, 40) * 2
               + min(minutes, 90)) * difficulty multiplier)

    A workout without exercises earns nothing.  Class and streak are not
    part of the base; they are applied by award_xp.
    """
    rules = rules or get_default_rules()
    if not workout.exercises:
        return 0
    exercise_xp = min(len(workout.exercises), rules.max_counted_exercises) * rules.xp_per_exercise
    completed = sum(e.completed_sets for e in workout.exercises)
    set_xp = min(completed, rules.max_counted_sets) * rules.xp_per_completed_set
    time_xp = min(workout.duration_minutes * rules.xp_per_minute, rules.max_time_xp)
    mult = rules.difficulty_multiplier(difficulty or workout.difficulty)
    return round_xp((exercise_xp + set_xp + time_xp) * mult)


class XPEngine:
    """Awards XP to users held in a progression store."""

    def __init__(
        self,
        store,
        clock: Clock | None = None,
        rules: EngineRules | None = None,
        sink: NotificationSink | None = None,
        power_days: PowerDayAccountant | None = None,
    ):
        self.store = store
        self.clock = clock or Clock()
        self.rules = rules or get_default_rules()
        self.sink = sink
        self.power_days = power_days or PowerDayAccountant(store, self.clock, self.rules, sink)

    def calculate_workout_xp(self, workout: WorkoutRecord, difficulty: Difficulty | None = None) -> int:
        return calculate_workout_xp(workout, difficulty, self.rules)

    def award_xp(
        self,
        user_id: str,
        workout: WorkoutRecord,
        base_xp: int,
        personal_records: list[PersonalRecord] | None = None,
    ) -> XPAward:
        """
        Award XP for a completed workout.

        Args:
            user_id: Receiving user
            workout: The workout (its composition drives class bonuses)
            base_xp: Result of calculate_workout_xp
            personal_records: New records set by this workout

        Returns:
            XPAward with the full breakdown
        """
        require_id(user_id, "user_id")
        with self.store.transaction(user_id):
            state = self.store.load_state(user_id)
            calculator = ClassBonusCalculator.for_class(state.user_class)
            bonus = calculator.apply_class_bonuses(
                max(0, base_xp),
                workout,
                streak=state.streak,
                has_pr=bool(personal_records),
            )
            award, activated = self._apply(
                state, f"workout:{workout.id}", max(0, base_xp), bonus, calculator
            )
        self._after_commit(award, activated)
        return award

    def award_activity_xp(self, user_id: str, activity_type: str | None, source_id: str) -> XPAward:
        """Award the flat manual-activity XP plus the class activity bonus."""
        require_id(user_id, "user_id")
        base_xp = self.rules.manual_activity_xp
        with self.store.transaction(user_id):
            state = self.store.load_state(user_id)
            calculator = ClassBonusCalculator.for_class(state.user_class)
            bonus = calculator.apply_activity_bonus(base_xp, activity_type)
            award, activated = self._apply(state, f"manual:{source_id}", base_xp, bonus, calculator)
        self._after_commit(award, activated)
        return award

    def award_bonus_xp(self, user_id: str, amount: int, source: str) -> XPAward:
        """
        Credit XP outside the daily cap (achievement rewards).

        Bonus XP neither counts toward nor is limited by the day's cap.
        """
        require_id(user_id, "user_id")
        if amount < 0:
            raise ValidationFailure("Bonus XP must be non-negative")
        with self.store.transaction(user_id):
            state = self.store.load_state(user_id)
            previous_level = state.level
            state.total_xp += amount
            state.level = level_for_xp(state.total_xp)
            self.store.save_state(state)
        award = XPAward(
            user_id=user_id,
            source=source,
            base_xp=amount,
            bonus_xp=0,
            breakdown=[],
            streak_multiplier=1.0,
            streak_xp=amount,
            active_cap=None,
            power_day=False,
            final_xp=amount,
            capped=False,
            previous_level=previous_level,
            new_level=state.level,
            total_xp=state.total_xp,
        )
        logger.info("%s received %d bonus XP (%s)", user_id, amount, source)
        return award

    def level_info(self, user_id: str) -> LevelInfo:
        state = self.store.load_state(user_id)
        return level_info_for(state.total_xp)

    def _apply(
        self,
        state: UserProgressionState,
        source: str,
        base_xp: int,
        bonus: ClassBonusResult,
        calculator: ClassBonusCalculator,
    ) -> tuple[XPAward, bool]:
        today = self.clock.today()
        raw_xp = base_xp + bonus.bonus_xp
        streak_mult = get_streak_multiplier(state.streak, self.rules)
        streak_xp = round_xp(raw_xp * streak_mult)

        active = self.power_days.resolve_daily_cap(state.user_id, today)
        earned_today = state.daily_xp_on(today)
        final_xp = max(0, min(streak_xp, active.cap - earned_today))
        capped = final_xp < streak_xp

        previous_level = state.level
        state.total_xp += final_xp
        state.daily_xp_accumulated = earned_today + final_xp
        state.daily_xp_date = today
        state.level = level_for_xp(state.total_xp)
        self.store.save_state(state)

        guild_xp = self._credit_guild(state.user_id, final_xp, calculator)

        logger.debug(
            "%s: base=%d bonus=%d x%.2f -> %d, cap %d (earned %d) -> %d",
            source, base_xp, bonus.bonus_xp, streak_mult, streak_xp,
            active.cap, earned_today, final_xp,
        )
        award = XPAward(
            user_id=state.user_id,
            source=source,
            base_xp=base_xp,
            bonus_xp=bonus.bonus_xp,
            breakdown=bonus.breakdown,
            streak_multiplier=streak_mult,
            streak_xp=streak_xp,
            active_cap=active.cap,
            power_day=active.power_day,
            final_xp=final_xp,
            capped=capped,
            previous_level=previous_level,
            new_level=state.level,
            total_xp=state.total_xp,
            guild_xp=guild_xp,
        )
        return award, active.activated

    def _credit_guild(self, user_id: str, final_xp: int, calculator: ClassBonusCalculator) -> int:
        contribution_of = getattr(self.store, "guild_contribution", None)
        if contribution_of is None or final_xp <= 0:
            return 0
        contribution = contribution_of(user_id)
        if contribution is None:
            return 0
        guild_xp = round_xp(final_xp * calculator.guild_multiplier(contribution))
        self.store.add_guild_contribution(user_id, guild_xp)
        return guild_xp

    def _after_commit(self, award: XPAward, power_day_activated: bool) -> None:
        if power_day_activated:
            self.power_days.announce(award.user_id, self.clock.today())
        if award.capped:
            logger.warning(
                "%s hit the daily cap (%d): %d of %d XP awarded",
                award.user_id, award.active_cap, award.final_xp, award.streak_xp,
            )
        logger.info("%s earned %d XP from %s", award.user_id, award.final_xp, award.source)
        if award.leveled_up:
            notify(self.sink, level_up_event(award, self.clock.now()))


def level_info_for(total_xp: int) -> LevelInfo:
    level = level_for_xp(total_xp)
    return LevelInfo(
        level=level,
        total_xp=total_xp,
        level_floor_xp=xp_for_level(level),
        next_level_xp=xp_for_level(level + 1) if level < MAX_LEVEL else None,
    )


def level_up_event(award: XPAward, created_at: datetime) -> NotificationEvent:
    return NotificationEvent(
        kind="level_up",
        user_id=award.user_id,
        title=f"Level {award.new_level}!",
        payload={"previous": award.previous_level, "level": award.new_level},
        created_at=created_at,
    )
