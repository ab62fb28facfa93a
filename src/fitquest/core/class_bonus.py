"""
Class bonus calculation.

Turns a workout plus the user's class rules into bonus XP and an
auditable breakdown.  Every skill's bonus is rounded on its own, so the
breakdown always sums exactly to bonus_xp.
"""

import logging

from .classes.base import ClassDefinition, SkillContext
from .classes.registry import get_class_rules
from .classifier import category_counts
from .config import round_xp
from .models import BonusBreakdownEntry, CharacterClass, ClassBonusResult, WorkoutRecord

logger = logging.getLogger(__name__)


class ClassBonusCalculator:
    """
    Bonus calculator bound to one class.

    Build it with for_class() when the user's class is known and reuse it;
    a calculator for "no class" always returns an empty result.
    """

    def __init__(self, rules: ClassDefinition | None):
        self.rules = rules

    @classmethod
    def for_class(cls, user_class: CharacterClass | str | None) -> "ClassBonusCalculator":
        return cls(get_class_rules(user_class))

    def apply_class_bonuses(
        self,
        base_xp: int,
        workout: WorkoutRecord,
        streak: int = 0,
        has_pr: bool = False,
    ) -> ClassBonusResult:
        """
        Compute bonus XP for a workout.

        Args:
            base_xp: XP before bonuses
            workout: Completed workout (exercise composition and duration)
            streak: Current streak in days
            has_pr: Whether the workout set at least one personal record

        Returns:
            ClassBonusResult whose breakdown lists every skill that fired
        """
        if self.rules is None or base_xp <= 0 or not workout.exercises:
            return ClassBonusResult()

        ctx = SkillContext(
            base_xp=base_xp,
            category_counts=dict(category_counts(workout.exercises)),
            total_exercises=len(workout.exercises),
            duration_seconds=workout.duration_seconds,
            has_pr=has_pr,
            streak=streak,
        )
        breakdown = self.rules.apply_skills(ctx)
        result = ClassBonusResult(
            bonus_xp=sum(entry.bonus_xp for entry in breakdown),
            breakdown=breakdown,
        )
        logger.debug(
            "%s bonus on %d base XP: %s",
            self.rules.character_class.value,
            base_xp,
            ", ".join(f"{e.skill}={e.bonus_xp}" for e in breakdown) or "none",
        )
        return result

    def apply_activity_bonus(self, base_xp: int, activity_type: str | None) -> ClassBonusResult:
        """Bonus for a manual activity, keyed on its activity type."""
        if self.rules is None or base_xp <= 0:
            return ClassBonusResult()
        match = self.rules.activity_bonus(activity_type)
        if match is None:
            return ClassBonusResult()
        keyword, mult = match
        entry = BonusBreakdownEntry(
            skill=f"Atividade: {keyword}",
            description=f"+{round(mult * 100)}% XP em atividades de {keyword}",
            multiplier=mult,
            bonus_xp=round_xp(base_xp * mult),
        )
        return ClassBonusResult(bonus_xp=entry.bonus_xp, breakdown=[entry])

    @property
    def preserves_streak(self) -> bool:
        return self.rules is not None and self.rules.preserves_streak

    def guild_multiplier(self, contribution: float | None) -> float:
        if self.rules is None:
            return 1.0
        return self.rules.guild_multiplier(contribution)


def apply_class_bonuses(
    base_xp: int,
    workout: WorkoutRecord,
    user_class: CharacterClass | str | None,
    streak: int = 0,
    has_pr: bool = False,
) -> ClassBonusResult:
    """Convenience wrapper: resolve the class and compute its bonus once."""
    return ClassBonusCalculator.for_class(user_class).apply_class_bonuses(
        base_xp, workout, streak=streak, has_pr=has_pr
    )
