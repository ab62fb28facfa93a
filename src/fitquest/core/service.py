"""
Service layer: the entry points used by the CLI and other callers.

Each public method returns a Result.  Workout completion runs in this
order:

1. duplicate check, workout and activity log entry
2. streak update (the multiplier uses the new streak)
3. personal records, detected and stored with their progress rows
4. XP award (class bonus sees has_pr)
5. achievement evaluation on the committed totals

Steps 1-4 commit together.  A failure in step 5 leaves them committed
and is reported on the outcome, so partial success is distinguishable
from total failure.  Notifications are delivered only after the
operation has committed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..io.notifications import NotificationEvent, NotificationSink, Outbox
from .achievements import AchievementEvaluator, AchievementStatus
from .catalog import AchievementCatalog, get_default_catalog
from .classifier import workout_categories
from .clock import Clock
from .config import EngineRules
from .engine.config_loader import get_default_rules
from .errors import Failure, FitquestError, Result, ValidationFailure, require_id, run_operation
from .models import (
    ActivityEntry,
    AchievementStats,
    CharacterClass,
    LevelInfo,
    PersonalRecord,
    UserProgressionState,
    WorkoutRecord,
    XPAward,
)
from .power_day import PowerDayAccountant, PowerDayAvailability
from .progress import AchievementProgressTracker
from .records import PersonalRecordDetector
from .streak import StreakAccountant, crossed_milestones
from .xp_engine import XPEngine

logger = logging.getLogger(__name__)


@dataclass
class CompletionOutcome:
    streak: int
    award: XPAward
    streak_milestones: list[int] = field(default_factory=list)
    unlocked: list[str] = field(default_factory=list)
    achievement_error: Failure | None = None
    events: list[NotificationEvent] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        """XP committed but achievement evaluation failed."""
        return self.achievement_error is not None


@dataclass
class WorkoutCompletionOutcome(CompletionOutcome):
    workout_id: str = ""
    base_xp: int = 0
    personal_records: list[PersonalRecord] = field(default_factory=list)


@dataclass
class ManualActivityOutcome(CompletionOutcome):
    activity_id: str = ""


@dataclass
class StatusSummary:
    state: UserProgressionState
    level: LevelInfo
    achievements: AchievementStats
    power_day: PowerDayAvailability
    power_day_active: bool
    daily_xp: int
    daily_cap: int
    guild_contribution: float | None = None


class FitquestService:
    """Wires the engine components around one store, clock and sink."""

    def __init__(
        self,
        store,
        clock: Clock | None = None,
        rules: EngineRules | None = None,
        catalog: AchievementCatalog | None = None,
        sink: NotificationSink | None = None,
    ):
        self.store = store
        self.clock = clock or Clock()
        self.rules = rules or get_default_rules()
        self.catalog = catalog or get_default_catalog()
        self.outbox = Outbox(sink)

        self.streaks = StreakAccountant(store, self.clock, self.rules)
        self.power_days = PowerDayAccountant(store, self.clock, self.rules, self.outbox)
        self.xp = XPEngine(store, self.clock, self.rules, self.outbox, self.power_days)
        self.progress = AchievementProgressTracker(store, self.catalog)
        self.records = PersonalRecordDetector(store, self.progress, self.clock, self.outbox)
        self.achievements = AchievementEvaluator(
            store, self.xp, self.catalog, self.clock, self.outbox, self.progress
        )

    def _run(self, operation: str, fn) -> Result:
        result = run_operation(operation, fn)
        if result.ok:
            self.outbox.flush()
        else:
            self.outbox.discard()
        return result

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------

    def create_user(self, user_id: str, user_class: str | None = None) -> Result[UserProgressionState]:
        def create() -> UserProgressionState:
            require_id(user_id, "user_id")
            state = UserProgressionState(user_id=user_id, user_class=_parse_class(user_class))
            with self.store.transaction(user_id):
                self.store.create_user(state)
                self.progress.initialize_progress(user_id)
            return state

        return self._run("create_user", create)

    def set_class(self, user_id: str, user_class: str | None) -> Result[UserProgressionState]:
        def assign() -> UserProgressionState:
            require_id(user_id, "user_id")
            with self.store.transaction(user_id):
                state = self.store.load_state(user_id)
                state.user_class = _parse_class(user_class)
                self.store.save_state(state)
            logger.info("%s is now %s", user_id, state.user_class.value if state.user_class else "classless")
            return state

        return self._run("set_class", assign)

    def join_guild(self, user_id: str, name: str) -> Result[None]:
        def join() -> None:
            require_id(user_id, "user_id")
            require_id(name, "guild name")
            self.store.join_guild(user_id, name)
            logger.info("%s joined guild %s", user_id, name)

        return self._run("join_guild", join)

    # ------------------------------------------------------------------
    # completions
    # ------------------------------------------------------------------

    def complete_workout(self, user_id: str, workout: WorkoutRecord) -> Result[WorkoutCompletionOutcome]:
        return self._run("complete_workout", lambda: self._complete_workout(user_id, workout))

    def _complete_workout(self, user_id: str, workout: WorkoutRecord) -> WorkoutCompletionOutcome:
        require_id(user_id, "user_id")
        require_id(workout.id, "workout id")
        if workout.owner_id and workout.owner_id != user_id:
            raise ValidationFailure(f"Workout {workout.id} belongs to {workout.owner_id}")
        workout.owner_id = user_id
        if workout.completed_at is None:
            workout.completed_at = self.clock.now()

        with self.store.transaction(user_id):
            if self.store.has_workout(user_id, workout.id):
                raise ValidationFailure(f"Workout {workout.id} was already completed")
            self.store.append_workout(workout)
            self.store.append_activity(
                user_id, ActivityEntry("workout", workout.id, self.clock.today())
            )
            state = self.store.load_state(user_id)
            previous_streak = state.streak
            state.workouts_count += 1
            for category in workout_categories(workout.exercises):
                state.category_workouts[category] = state.category_workouts.get(category, 0) + 1
            self.store.save_state(state)

            streak = self.streaks.update_streak(user_id)
            base_xp = self.xp.calculate_workout_xp(workout)
            candidates = self.records.check_for_personal_records(user_id, workout)
            new_records = self.records.record_personal_records(user_id, candidates)
            award = self.xp.award_xp(user_id, workout, base_xp, new_records)

            self.progress.update_workout_progress(user_id, state.workouts_count)
            self.progress.update_category_progress(user_id, state.category_workouts)
            self.progress.update_xp_progress(user_id, award.total_xp)
            self.progress.update_streak_progress(user_id, streak)

        outcome = WorkoutCompletionOutcome(
            streak=streak,
            award=award,
            streak_milestones=crossed_milestones(previous_streak, streak, self.rules),
            workout_id=workout.id,
            base_xp=base_xp,
            personal_records=new_records,
        )
        self._evaluate(user_id, outcome)
        outcome.events = self.outbox.pending
        return outcome

    def submit_manual_activity(
        self,
        user_id: str,
        activity_type: str,
        description: str = "",
        performed_at: datetime | None = None,
        activity_id: str | None = None,
    ) -> Result[ManualActivityOutcome]:
        return self._run(
            "submit_manual_activity",
            lambda: self._submit_manual(user_id, activity_type, description, performed_at, activity_id),
        )

    def _submit_manual(
        self,
        user_id: str,
        activity_type: str,
        description: str,
        performed_at: datetime | None,
        activity_id: str | None,
    ) -> ManualActivityOutcome:
        require_id(user_id, "user_id")
        require_id(activity_type, "activity type")
        now = self.clock.now()
        performed_at = performed_at or now
        if performed_at > now:
            raise ValidationFailure("Activity cannot be in the future")
        if now - performed_at > timedelta(hours=self.rules.manual_activity_max_age_hours):
            raise ValidationFailure(
                f"Activity must be submitted within {self.rules.manual_activity_max_age_hours}h"
            )
        last = self.store.last_manual_activity_at(user_id)
        cooldown = timedelta(hours=self.rules.manual_activity_cooldown_hours)
        if last is not None and now - last < cooldown:
            wait = cooldown - (now - last)
            hours = int(wait.total_seconds() // 3600)
            minutes = int(wait.total_seconds() % 3600 // 60)
            raise ValidationFailure(f"Next manual activity allowed in {hours}h {minutes}m")

        activity_id = activity_id or f"manual-{now:%Y%m%d%H%M%S}"
        with self.store.transaction(user_id):
            self.store.append_activity(
                user_id, ActivityEntry("manual", activity_id, self.clock.today(), activity_type)
            )
            self.store.set_last_manual_activity_at(user_id, now)
            state = self.store.load_state(user_id)
            previous_streak = state.streak
            state.manual_count += 1
            self.store.save_state(state)

            streak = self.streaks.update_streak(user_id)
            award = self.xp.award_activity_xp(user_id, activity_type, activity_id)

            self.progress.update_manual_progress(user_id, state.manual_count)
            self.progress.update_xp_progress(user_id, award.total_xp)
            self.progress.update_streak_progress(user_id, streak)

        if description:
            logger.debug("%s manual activity %s: %s", user_id, activity_id, description)
        outcome = ManualActivityOutcome(
            streak=streak,
            award=award,
            streak_milestones=crossed_milestones(previous_streak, streak, self.rules),
            activity_id=activity_id,
        )
        self._evaluate(user_id, outcome)
        outcome.events = self.outbox.pending
        return outcome

    def _evaluate(self, user_id: str, outcome: CompletionOutcome) -> None:
        """Run achievement evaluation; record a failure instead of raising."""
        award = outcome.award
        try:
            unlocked: list[str] = []
            if award.leveled_up:
                unlocked += self.achievements.process_level_up(
                    user_id, award.previous_level, award.new_level
                )
            unlocked += self.achievements.check_achievements(user_id)
            self.progress.refresh(user_id)
            outcome.unlocked = unlocked
        except FitquestError as e:
            logger.error("Achievement evaluation failed for %s: %s", user_id, e)
            outcome.achievement_error = Failure(e.category, str(e), "check_achievements")
        except Exception as e:
            logger.exception("Achievement evaluation failed for %s", user_id)
            outcome.achievement_error = Failure("unknown", str(e), "check_achievements")

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def check_achievements(self, user_id: str) -> Result[list[str]]:
        return self._run("check_achievements", lambda: self.achievements.check_achievements(user_id))

    def status(self, user_id: str) -> Result[StatusSummary]:
        def summarize() -> StatusSummary:
            require_id(user_id, "user_id")
            state = self.store.load_state(user_id)
            today = self.clock.today()
            active = self.power_days.is_active(user_id, today)
            return StatusSummary(
                state=state,
                level=self.xp.level_info(user_id),
                achievements=self.achievements.get_stats(user_id),
                power_day=self.power_days.check_power_day_availability(user_id, today),
                power_day_active=active,
                daily_xp=state.daily_xp_on(today),
                daily_cap=self.rules.power_day_xp_cap if active else self.rules.daily_xp_cap,
                guild_contribution=self.store.guild_contribution(user_id),
            )

        return self._run("status", summarize)

    def personal_records(self, user_id: str) -> Result[list[PersonalRecord]]:
        def collect() -> list[PersonalRecord]:
            require_id(user_id, "user_id")
            records = self.store.get_personal_records(user_id).values()
            return sorted(records, key=lambda r: r.exercise_id)

        return self._run("personal_records", collect)

    def achievement_overview(self, user_id: str) -> Result[list[AchievementStatus]]:
        def collect() -> list[AchievementStatus]:
            require_id(user_id, "user_id")
            return self.achievements.overview(user_id)

        return self._run("achievement_overview", collect)


def _parse_class(user_class: str | None) -> CharacterClass | None:
    try:
        return CharacterClass.parse(user_class)
    except ValueError as e:
        valid = ", ".join(c.value for c in CharacterClass)
        raise ValidationFailure(f"{e}. Valid classes: {valid}") from e
