"""
Achievement progress tracking.

Keeps (current, target) rows for progress bars.  Rows are refreshed after
every counter change whether or not the evaluator unlocks anything in the
same pass.  ``is_complete`` only mirrors current >= target: unlocking is
the AchievementEvaluator's job alone.
"""

import logging
from collections.abc import Callable, Iterable

from .catalog import AchievementCatalog, get_default_catalog
from .errors import require_id
from .models import (
    AchievementDefinition,
    AchievementProgressEntry,
    RequirementType,
    UserProgressionState,
)

logger = logging.getLogger(__name__)


def category_key(category: str) -> str:
    """Counter key of the per-category workout count."""
    return f"category_workouts:{category}"


def requirement_key(definition: AchievementDefinition) -> str:
    """Counter key a definition is measured against."""
    if definition.requirement_type == "category_workouts":
        return category_key(definition.workout_category or "")
    return definition.requirement_type


def counter_values(state: UserProgressionState, records_count: int) -> dict[str, int]:
    """Current value of every requirement counter for a user."""
    counters = {
        "workouts_count": state.workouts_count,
        "streak_days": state.streak,
        "pr_count": records_count,
        "total_xp": state.total_xp,
        "level": state.level,
        "manual_count": state.manual_count,
        "category_variety": state.category_variety,
    }
    for category, count in state.category_workouts.items():
        counters[category_key(category)] = count
    return counters


def load_counters(store, user_id: str) -> dict[str, int]:
    return counter_values(store.load_state(user_id), store.count_personal_records(user_id))


class AchievementProgressTracker:
    def __init__(self, store, catalog: AchievementCatalog | None = None):
        self.store = store
        self.catalog = catalog or get_default_catalog()

    def update_progress(self, user_id: str, achievement_id: str, current: int, target: int) -> None:
        """Set one progress row; completed rows are left untouched."""
        require_id(user_id, "user_id")
        require_id(achievement_id, "achievement_id")
        existing = self.store.get_progress(user_id).get(achievement_id)
        if existing is not None and existing.is_complete:
            return
        self.store.save_progress([self._entry(user_id, achievement_id, current, target)])

    def update_requirement_progress(
        self, user_id: str, requirement_type: RequirementType, current: int
    ) -> int:
        """
        Update every row of one requirement type in a single write.

        Returns:
            Number of rows written
        """
        return self._update_rows(
            user_id, self.catalog.by_requirement(requirement_type), lambda d: current
        )

    def update_streak_progress(self, user_id: str, streak: int) -> int:
        return self.update_requirement_progress(user_id, "streak_days", streak)

    def update_workout_progress(self, user_id: str, workouts_count: int) -> int:
        return self.update_requirement_progress(user_id, "workouts_count", workouts_count)

    def update_record_progress(self, user_id: str, records_count: int) -> int:
        return self.update_requirement_progress(user_id, "pr_count", records_count)

    def update_xp_progress(self, user_id: str, total_xp: int) -> int:
        return self.update_requirement_progress(user_id, "total_xp", total_xp)

    def update_level_progress(self, user_id: str, level: int) -> int:
        return self.update_requirement_progress(user_id, "level", level)

    def update_manual_progress(self, user_id: str, manual_count: int) -> int:
        return self.update_requirement_progress(user_id, "manual_count", manual_count)

    def update_category_progress(self, user_id: str, category_workouts: dict[str, int]) -> int:
        """Per-category workout rows plus the category-variety rows."""
        written = self._update_rows(
            user_id,
            self.catalog.by_requirement("category_workouts"),
            lambda d: category_workouts.get(d.workout_category or "", 0),
        )
        variety = sum(1 for n in category_workouts.values() if n > 0)
        return written + self.update_requirement_progress(user_id, "category_variety", variety)

    def initialize_progress(self, user_id: str) -> int:
        """Create (0, target, False) rows for catalog entries without one."""
        require_id(user_id, "user_id")
        existing = self.store.get_progress(user_id)
        rows = [
            self._entry(user_id, d.id, 0, d.requirement_value)
            for d in self.catalog
            if d.id not in existing
        ]
        if rows:
            self.store.save_progress(rows)
        return len(rows)

    def refresh(self, user_id: str) -> None:
        """Recompute every row from the user's current counters."""
        counters = load_counters(self.store, user_id)
        with self.store.transaction(user_id):
            self._update_rows(user_id, self.catalog, lambda d: counters.get(requirement_key(d), 0))

    def get_progress(self, user_id: str) -> dict[str, AchievementProgressEntry]:
        return self.store.get_progress(user_id)

    def _update_rows(
        self,
        user_id: str,
        definitions: Iterable[AchievementDefinition],
        value_of: Callable[[AchievementDefinition], int],
    ) -> int:
        require_id(user_id, "user_id")
        existing = self.store.get_progress(user_id)
        unlocked = self.store.unlocked_ids(user_id)
        rows = [
            self._entry(user_id, d.id, value_of(d), d.requirement_value)
            for d in definitions
            if d.id not in unlocked
            and not (d.id in existing and existing[d.id].is_complete)
        ]
        if rows:
            self.store.save_progress(rows)
            logger.debug("%s: %d progress rows updated", user_id, len(rows))
        return len(rows)

    @staticmethod
    def _entry(user_id: str, achievement_id: str, current: int, target: int) -> AchievementProgressEntry:
        return AchievementProgressEntry(
            user_id=user_id,
            achievement_id=achievement_id,
            current_value=current,
            target_value=target,
            is_complete=current >= target,
        )
