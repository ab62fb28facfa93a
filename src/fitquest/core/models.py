"""
Data models for fitquest.

All core dataclasses representing workouts, per-user progression state,
personal records, and the achievement catalog with its unlock/progress rows.
Free-text numeric input is coerced by the serializers before it reaches
these models; the models themselves only enforce structural invariants.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Literal

Category = Literal[
    "compound", "strength", "bodyweight", "cardio", "flexibility", "recovery", "sports"
]
Difficulty = Literal["beginner", "intermediate", "advanced"]
ActivityKind = Literal["workout", "manual"]
RequirementType = Literal[
    "workouts_count", "streak_days", "pr_count", "total_xp", "level", "manual_count",
    "category_workouts", "category_variety",
]
AchievementRank = Literal["E", "D", "C", "B", "A", "S"]

CATEGORIES: tuple[str, ...] = (
    "compound", "strength", "bodyweight", "cardio", "flexibility", "recovery", "sports"
)
REQUIREMENT_TYPES: tuple[str, ...] = (
    "workouts_count", "streak_days", "pr_count", "total_xp", "level", "manual_count",
    "category_workouts", "category_variety",
)


class CharacterClass(str, Enum):
    """The five selectable character classes."""

    GUERREIRO = "Guerreiro"
    MONGE = "Monge"
    NINJA = "Ninja"
    BRUXO = "Bruxo"
    PALADINO = "Paladino"

    @classmethod
    def parse(cls, value: "str | CharacterClass | None") -> "CharacterClass | None":
        """Resolve a stored class name; empty / 'none' means no class."""
        if value is None or isinstance(value, CharacterClass):
            return value
        text = value.strip()
        if not text or text.lower() in ("none", "sem classe"):
            return None
        for member in cls:
            if member.value.lower() == text.lower():
                return member
        raise ValueError(f"Unknown class: {value!r}")


@dataclass
class SetEntry:
    """A single set within an exercise."""

    weight: float = 0.0
    reps: int = 0
    completed: bool = False

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")


@dataclass
class ExercisePerformance:
    """
    One exercise within a workout.

    ``exercise_type`` is the raw type label from the exercise catalog
    (e.g. "Musculação", "Cardio"); the semantic category is derived from
    it by core.classifier.
    """

    exercise_id: str
    name: str
    exercise_type: str | None = None
    sets: list[SetEntry] = field(default_factory=list)

    @property
    def max_weight(self) -> float:
        """Heaviest weight across all sets (0 when none)."""
        return max((s.weight for s in self.sets), default=0.0)

    @property
    def completed_sets(self) -> int:
        return sum(1 for s in self.sets if s.completed)


@dataclass
class WorkoutRecord:
    """
    A completed training session.

    Immutable from the engine's point of view once completed_at is set.
    """

    id: str
    owner_id: str
    exercises: list[ExercisePerformance] = field(default_factory=list)
    duration_seconds: int = 0
    difficulty: Difficulty = "intermediate"
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")

    @property
    def duration_minutes(self) -> int:
        return self.duration_seconds // 60


@dataclass
class ActivityEntry:
    """A qualifying activity (structured workout or manual submission) on a day."""

    kind: ActivityKind
    source_id: str
    day: date
    activity_type: str | None = None


@dataclass
class UserProgressionState:
    """
    Per-user mutable progression counters.

    ``daily_xp_accumulated`` is only meaningful for ``daily_xp_date``; a
    different date means nothing has been earned yet today.
    ``category_workouts`` counts completed workouts per category; a
    workout counts once for each category it contains.
    """

    user_id: str
    total_xp: int = 0
    level: int = 1
    user_class: CharacterClass | None = None
    streak: int = 0
    last_activity_date: date | None = None
    daily_xp_accumulated: int = 0
    daily_xp_date: date | None = None
    achievement_points: int = 0
    achievements_count: int = 0
    workouts_count: int = 0
    manual_count: int = 0
    category_workouts: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id must be non-empty")
        if self.total_xp < 0:
            raise ValueError("total_xp must be non-negative")
        if self.streak < 0:
            raise ValueError("streak must be non-negative")

    def daily_xp_on(self, day: date) -> int:
        """XP already earned on the given day."""
        if self.daily_xp_date != day:
            return 0
        return self.daily_xp_accumulated

    @property
    def category_variety(self) -> int:
        """Number of categories trained at least once."""
        return sum(1 for n in self.category_workouts.values() if n > 0)


@dataclass
class PersonalRecord:
    """Best-known weight for one (user, exercise) pair."""

    exercise_id: str
    weight: float
    previous_weight: float = 0.0
    recorded_at: datetime | None = None

    @property
    def improvement_pct(self) -> float | None:
        if self.previous_weight <= 0:
            return None
        return (self.weight - self.previous_weight) / self.previous_weight * 100.0


@dataclass(frozen=True)
class AchievementDefinition:
    """A static catalog entry."""

    id: str
    name: str
    description: str
    category: str
    rank: AchievementRank
    points: int
    xp_reward: int
    requirement_type: RequirementType
    requirement_value: int
    icon: str = ""
    workout_category: str | None = None


@dataclass
class AchievementUnlock:
    """Fact that a user has achieved a given achievement (at most one per pair)."""

    user_id: str
    achievement_id: str
    achieved_at: datetime


@dataclass
class AchievementProgressEntry:
    """Partial progress toward an achievement, used for progress bars."""

    user_id: str
    achievement_id: str
    current_value: int
    target_value: int
    is_complete: bool = False

    @property
    def fraction(self) -> float:
        if self.target_value <= 0:
            return 1.0
        return min(1.0, self.current_value / self.target_value)


@dataclass
class BonusBreakdownEntry:
    """One passive skill that fired during a bonus calculation."""

    skill: str
    description: str
    multiplier: float
    bonus_xp: int


@dataclass
class ClassBonusResult:
    """Outcome of a class bonus calculation; breakdown sums to bonus_xp."""

    bonus_xp: int = 0
    breakdown: list[BonusBreakdownEntry] = field(default_factory=list)


@dataclass
class XPAward:
    """
    Full audit trail of one XP award.

    ``capped`` is True when the active cap cut the award; that is a normal
    outcome, not an error.
    """

    user_id: str
    source: str
    base_xp: int
    bonus_xp: int
    breakdown: list[BonusBreakdownEntry]
    streak_multiplier: float
    streak_xp: int
    active_cap: int | None
    power_day: bool
    final_xp: int
    capped: bool
    previous_level: int
    new_level: int
    total_xp: int
    guild_xp: int = 0

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.previous_level

    @property
    def clamped_xp(self) -> int:
        """XP that the cap withheld."""
        return max(0, self.streak_xp - self.final_xp)


@dataclass
class AchievementStats:
    """Summary used by the profile view."""

    total: int
    unlocked: int
    points: int
    rank: str
    next_rank: str | None
    points_to_next_rank: int | None


@dataclass
class LevelInfo:
    """Where a user sits on the level curve."""

    level: int
    total_xp: int
    level_floor_xp: int
    next_level_xp: int | None

    @property
    def xp_into_level(self) -> int:
        return self.total_xp - self.level_floor_xp

    @property
    def xp_to_next_level(self) -> int | None:
        if self.next_level_xp is None:
            return None
        return self.next_level_xp - self.total_xp
