"""
Base types for character class rules.

ClassDefinition bundles everything a class changes about XP: its passive
skills, the manual-activity keyword bonuses, whether it may preserve a
streak across a missed day, and how it scales guild contributions.
Each PassiveSkill is evaluated independently against a SkillContext;
multipliers of the skills that fire are added, never compounded.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from ..config import round_xp
from ..models import BonusBreakdownEntry, CharacterClass


@dataclass(frozen=True)
class SkillContext:
    """Workout facts a passive skill may look at."""

    base_xp: int
    category_counts: dict[str, int]
    total_exercises: int
    duration_seconds: int = 0
    has_pr: bool = False
    streak: int = 0

    def ratio(self, *categories: str) -> float:
        """Share of exercises falling into any of the given categories."""
        if self.total_exercises <= 0:
            return 0.0
        hits = sum(self.category_counts.get(c, 0) for c in categories)
        return hits / self.total_exercises

    @property
    def distinct_categories(self) -> int:
        return sum(1 for n in self.category_counts.values() if n > 0)


class PassiveSkill:
    """A named bonus rule."""

    name: str = ""
    description: str = ""

    def is_applicable(self, ctx: SkillContext) -> bool:
        raise NotImplementedError

    def multiplier(self, ctx: SkillContext) -> float:
        raise NotImplementedError

    def apply(self, ctx: SkillContext) -> BonusBreakdownEntry:
        mult = self.multiplier(ctx)
        return BonusBreakdownEntry(
            skill=self.name,
            description=self.description,
            multiplier=mult,
            bonus_xp=round_xp(ctx.base_xp * mult),
        )


class RatioSkill(PassiveSkill):
    """Bonus of ``rate`` scaled by the share of exercises in ``categories``."""

    def __init__(self, name: str, description: str, categories: tuple[str, ...], rate: float):
        self.name = name
        self.description = description
        self.categories = categories
        self.rate = rate

    def is_applicable(self, ctx: SkillContext) -> bool:
        return ctx.ratio(*self.categories) > 0

    def multiplier(self, ctx: SkillContext) -> float:
        return self.rate * ctx.ratio(*self.categories)


class ConditionalSkill(PassiveSkill):
    """Flat bonus of ``rate`` whenever ``condition`` holds."""

    def __init__(
        self,
        name: str,
        description: str,
        rate: float,
        condition: Callable[[SkillContext], bool],
    ):
        self.name = name
        self.description = description
        self.rate = rate
        self.condition = condition

    def is_applicable(self, ctx: SkillContext) -> bool:
        return bool(self.condition(ctx))

    def multiplier(self, ctx: SkillContext) -> float:
        return self.rate


def no_guild_scaling(contribution: float | None) -> float:
    return 1.0


@dataclass(frozen=True)
class ClassDefinition:
    """
    Full rule set for one character class.

    ``activity_bonuses`` maps a keyword of a manual activity type to a
    bonus multiplier; the first matching keyword wins.
    """

    character_class: CharacterClass
    title: str
    skills: tuple[PassiveSkill, ...]
    activity_bonuses: dict[str, float] = field(default_factory=dict)
    preserves_streak: bool = False
    guild_multiplier: Callable[[float | None], float] = no_guild_scaling

    def apply_skills(self, ctx: SkillContext) -> list[BonusBreakdownEntry]:
        """Breakdown entries for every skill that fires."""
        return [skill.apply(ctx) for skill in self.skills if skill.is_applicable(ctx)]

    def activity_bonus(self, activity_type: str | None) -> tuple[str, float] | None:
        """(keyword, multiplier) for a manual activity type, or None."""
        if not activity_type:
            return None
        lowered = activity_type.lower()
        for keyword, mult in self.activity_bonuses.items():
            if keyword in lowered:
                return keyword, mult
        return None
