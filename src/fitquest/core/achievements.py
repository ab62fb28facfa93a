"""
Achievement evaluation.

Every catalog entry is a declarative requirement (requirement_type,
requirement_value) checked as ``counter >= value``.  All satisfied
entries are awarded in the same pass, so a counter that jumps past
several thresholds unlocks each of them.

An award is one transaction: unlock row (insert-if-absent), achievement
points, and the reward XP (which bypasses the daily cap).  A row that is
already present makes the award a no-op: no points, no XP, no event.
Reward XP can itself satisfy XP or level achievements, so evaluation
repeats until a pass unlocks nothing.
"""

import logging
from dataclasses import dataclass

from ..io.notifications import NotificationEvent, NotificationSink, notify
from .catalog import AchievementCatalog, get_default_catalog
from .clock import Clock
from .config import next_rank, points_to_next_rank, rank_for_points
from .errors import require_id
from .models import (
    AchievementDefinition,
    AchievementProgressEntry,
    AchievementStats,
    AchievementUnlock,
)
from .progress import AchievementProgressTracker, load_counters, requirement_key
from .xp_engine import XPEngine, level_up_event

logger = logging.getLogger(__name__)


@dataclass
class AchievementStatus:
    """One catalog entry as seen by a given user."""

    definition: AchievementDefinition
    unlock: AchievementUnlock | None
    progress: AchievementProgressEntry | None

    @property
    def unlocked(self) -> bool:
        return self.unlock is not None


class AchievementEvaluator:
    def __init__(
        self,
        store,
        xp_engine: XPEngine,
        catalog: AchievementCatalog | None = None,
        clock: Clock | None = None,
        sink: NotificationSink | None = None,
        progress: AchievementProgressTracker | None = None,
    ):
        self.store = store
        self.xp_engine = xp_engine
        self.catalog = catalog or get_default_catalog()
        self.clock = clock or Clock()
        self.sink = sink
        self.progress = progress

    def check_achievements(self, user_id: str) -> list[str]:
        """
        Award every achievement whose requirement is now met.

        Returns:
            Ids unlocked by this call, in catalog order per pass
        """
        require_id(user_id, "user_id")
        unlocked_now: list[str] = []
        while True:
            counters = load_counters(self.store, user_id)
            unlocked = self.store.unlocked_ids(user_id)
            due = [
                d for d in self.catalog
                if d.id not in unlocked
                and counters.get(requirement_key(d), 0) >= d.requirement_value
            ]
            awarded = [d for d in due if self._award(user_id, d)]
            if not awarded:
                break
            unlocked_now.extend(d.id for d in awarded)

        if unlocked_now and self.progress is not None:
            self.progress.refresh(user_id)
        return unlocked_now

    def process_level_up(self, user_id: str, previous_level: int, new_level: int) -> list[str]:
        """Level-up path: refresh level progress and evaluate achievements."""
        logger.info("%s leveled up: %d -> %d", user_id, previous_level, new_level)
        if self.progress is not None:
            self.progress.update_level_progress(user_id, new_level)
        return self.check_achievements(user_id)

    def _award(self, user_id: str, definition: AchievementDefinition) -> bool:
        unlock = AchievementUnlock(
            user_id=user_id,
            achievement_id=definition.id,
            achieved_at=self.clock.now(),
        )
        with self.store.transaction(user_id):
            if not self.store.insert_unlock_if_absent(unlock):
                logger.debug("%s already holds %s", user_id, definition.id)
                return False
            state = self.store.load_state(user_id)
            state.achievement_points += definition.points
            state.achievements_count += 1
            self.store.save_state(state)
            bonus = None
            if definition.xp_reward > 0:
                bonus = self.xp_engine.award_bonus_xp(
                    user_id, definition.xp_reward, f"achievement:{definition.id}"
                )

        logger.info(
            "%s unlocked %s (+%d points, +%d XP)",
            user_id, definition.id, definition.points, definition.xp_reward,
        )
        notify(
            self.sink,
            NotificationEvent(
                kind="achievement_unlocked",
                user_id=user_id,
                title=definition.name,
                payload={
                    "achievement_id": definition.id,
                    "rank": definition.rank,
                    "points": definition.points,
                    "xp_reward": definition.xp_reward,
                },
                created_at=unlock.achieved_at,
            ),
        )
        if bonus is not None and bonus.leveled_up:
            logger.info("%s leveled up: %d -> %d", user_id, bonus.previous_level, bonus.new_level)
            notify(self.sink, level_up_event(bonus, unlock.achieved_at))
        return True

    def get_stats(self, user_id: str) -> AchievementStats:
        state = self.store.load_state(user_id)
        points = state.achievement_points
        rank = rank_for_points(points)
        return AchievementStats(
            total=len(self.catalog),
            unlocked=len(self.store.unlocked_ids(user_id) & {d.id for d in self.catalog}),
            points=points,
            rank=rank,
            next_rank=next_rank(rank),
            points_to_next_rank=points_to_next_rank(points),
        )

    def overview(self, user_id: str) -> list[AchievementStatus]:
        unlocks = {u.achievement_id: u for u in self.store.list_unlocks(user_id)}
        progress = self.store.get_progress(user_id)
        return [
            AchievementStatus(d, unlocks.get(d.id), progress.get(d.id))
            for d in self.catalog
        ]
