"""
Configuration constants for the XP and achievement rules engine.

All adjustable parameters are centralized here for easy tuning.
Values can be overridden at runtime through rules.yaml (see
core/engine/config_loader.py); these are the fallbacks.
"""

import math
from dataclasses import dataclass, field
from typing import Final

# =============================================================================
# DAILY CAPS
# =============================================================================

DAILY_XP_CAP: Final[int] = 500  # Base XP cap per local calendar day
POWER_DAY_XP_CAP: Final[int] = 750  # Raised cap on an active power day
POWER_DAYS_PER_WEEK: Final[int] = 1  # Power-day uses per ISO week
POWER_DAY_MIN_ACTIVITIES: Final[int] = 2  # Qualifying activities on the same day

# =============================================================================
# BASE WORKOUT XP
# =============================================================================

DIFFICULTY_MULTIPLIERS: Final[dict[str, float]] = {
    "beginner": 1.0,
    "intermediate": 1.2,
    "advanced": 1.5,
}
DEFAULT_DIFFICULTY: Final[str] = "intermediate"

XP_PER_EXERCISE: Final[int] = 10
MAX_COUNTED_EXERCISES: Final[int] = 10
XP_PER_COMPLETED_SET: Final[int] = 2
MAX_COUNTED_SETS: Final[int] = 40
XP_PER_MINUTE: Final[int] = 1
MAX_TIME_XP: Final[int] = 90

# =============================================================================
# STREAKS
# =============================================================================

# (minimum streak, multiplier), highest breakpoint first
STREAK_MULTIPLIER_STEPS: Final[tuple[tuple[int, float], ...]] = (
    (100, 1.50),
    (60, 1.35),
    (30, 1.25),
    (14, 1.15),
    (7, 1.10),
    (3, 1.05),
)
STREAK_MILESTONES: Final[tuple[int, ...]] = (7, 14, 30, 60, 100)

# =============================================================================
# CLASS PASSIVE SKILLS
# =============================================================================

GUERREIRO_FORCA_BRUTA: Final[float] = 0.20  # scaled by compound+strength ratio
GUERREIRO_SAINDO_DA_JAULA: Final[float] = 0.10  # flat, workout has a PR
MONGE_MESTRE_DO_CORPO: Final[float] = 0.20  # scaled by bodyweight ratio
MONGE_DISCIPLINA: Final[float] = 0.10  # flat, streak >= threshold
MONGE_STREAK_THRESHOLD: Final[int] = 7
NINJA_PASSOS_SILENCIOSOS: Final[float] = 0.20  # scaled by cardio ratio
NINJA_GOLPE_RAPIDO: Final[float] = 0.10  # flat, short workout
NINJA_SHORT_WORKOUT_SECONDS: Final[int] = 30 * 60
BRUXO_FLUXO_ARCANO: Final[float] = 0.30  # scaled by flexibility+recovery ratio
PALADINO_ESPIRITO_DE_EQUIPE: Final[float] = 0.30  # scaled by sports ratio
PALADINO_VERSATILIDADE: Final[float] = 0.10  # flat, category variety
PALADINO_VARIETY_CATEGORIES: Final[int] = 3

# (minimum cumulative contribution, multiplier), highest first.
# Anything above zero earns the lowest step.
PALADINO_GUILD_STEPS: Final[tuple[tuple[float, float], ...]] = (
    (1000.0, 1.3),
    (500.0, 1.2),
)
PALADINO_GUILD_BASE: Final[float] = 1.1

# Manual-activity bonuses per class, keyword on the activity type -> multiplier
ACTIVITY_CLASS_BONUSES: Final[dict[str, dict[str, float]]] = {
    "Guerreiro": {"strength": 0.20, "lifting": 0.20},
    "Monge": {"bodyweight": 0.20, "mobility": 0.15},
    "Ninja": {"running": 0.20, "cardio": 0.20, "hiit": 0.20, "short": 0.15},
    "Bruxo": {"yoga": 0.40, "stretching": 0.40, "flexibility": 0.40, "meditation": 0.20},
    "Paladino": {"sports": 0.40, "team": 0.30, "outdoor": 0.20},
}

# =============================================================================
# LEVEL CURVE
# =============================================================================

LEVEL_BASE_XP: Final[int] = 100
LEVEL_EXPONENT: Final[float] = 1.5
MAX_LEVEL: Final[int] = 99

# =============================================================================
# ACHIEVEMENT RANKS
# =============================================================================

# (rank, minimum points), lowest first
RANK_LADDER: Final[tuple[tuple[str, int], ...]] = (
    ("Unranked", 0),
    ("E", 10),
    ("D", 50),
    ("C", 100),
    ("B", 250),
    ("A", 500),
    ("S", 1000),
)

# =============================================================================
# MANUAL ACTIVITIES
# =============================================================================

MANUAL_ACTIVITY_XP: Final[int] = 100
MANUAL_ACTIVITY_MAX_AGE_HOURS: Final[int] = 24
MANUAL_ACTIVITY_COOLDOWN_HOURS: Final[int] = 24


@dataclass(frozen=True)
class EngineRules:
    """
    Snapshot of every tunable number the engine reads.

    Built by load_rules() from rules.yaml merged over the constants above.
    Components accept an explicit instance so tests can pin exact values.
    """

    daily_xp_cap: int = DAILY_XP_CAP
    power_day_xp_cap: int = POWER_DAY_XP_CAP
    power_days_per_week: int = POWER_DAYS_PER_WEEK
    power_day_min_activities: int = POWER_DAY_MIN_ACTIVITIES

    difficulty_multipliers: dict[str, float] = field(
        default_factory=lambda: dict(DIFFICULTY_MULTIPLIERS)
    )
    xp_per_exercise: int = XP_PER_EXERCISE
    max_counted_exercises: int = MAX_COUNTED_EXERCISES
    xp_per_completed_set: int = XP_PER_COMPLETED_SET
    max_counted_sets: int = MAX_COUNTED_SETS
    xp_per_minute: int = XP_PER_MINUTE
    max_time_xp: int = MAX_TIME_XP

    streak_multiplier_steps: tuple[tuple[int, float], ...] = STREAK_MULTIPLIER_STEPS
    streak_milestones: tuple[int, ...] = STREAK_MILESTONES

    manual_activity_xp: int = MANUAL_ACTIVITY_XP
    manual_activity_max_age_hours: int = MANUAL_ACTIVITY_MAX_AGE_HOURS
    manual_activity_cooldown_hours: int = MANUAL_ACTIVITY_COOLDOWN_HOURS

    def __post_init__(self) -> None:
        if self.daily_xp_cap < 0 or self.power_day_xp_cap < 0:
            raise ValueError("XP caps must be non-negative")
        if self.power_day_xp_cap < self.daily_xp_cap:
            raise ValueError("power_day_xp_cap must not be below daily_xp_cap")
        if self.power_days_per_week < 0:
            raise ValueError("power_days_per_week must be non-negative")

    def difficulty_multiplier(self, difficulty: str | None) -> float:
        """Multiplier for a difficulty tier; unknown tiers use the default."""
        if difficulty in self.difficulty_multipliers:
            return self.difficulty_multipliers[difficulty]
        return self.difficulty_multipliers.get(DEFAULT_DIFFICULTY, 1.0)


def xp_for_level(level: int) -> int:
    """
    Total XP needed to reach a level.

        xp(L) = round(LEVEL_BASE_XP * (L - 1) ** LEVEL_EXPONENT)

    Strictly increasing in L, so level_for_xp below is monotonic.
    """
    level = max(1, min(level, MAX_LEVEL))
    return round(LEVEL_BASE_XP * (level - 1) ** LEVEL_EXPONENT)


def level_for_xp(total_xp: int) -> int:
    """Highest level whose threshold is covered by total_xp, capped at MAX_LEVEL."""
    level = 1
    while level < MAX_LEVEL and xp_for_level(level + 1) <= total_xp:
        level += 1
    return level


def rank_for_points(points: int) -> str:
    """Achievement rank for a cumulative point total."""
    current = RANK_LADDER[0][0]
    for rank, minimum in RANK_LADDER:
        if points >= minimum:
            current = rank
    return current


def next_rank(rank: str) -> str | None:
    """Rank after the given one, or None at the terminal rank."""
    names = [name for name, _ in RANK_LADDER]
    idx = names.index(rank) if rank in names else 0
    if idx + 1 >= len(names):
        return None
    return names[idx + 1]


def points_to_next_rank(points: int) -> int | None:
    """Points still missing for the next rank (None at S)."""
    upcoming = next_rank(rank_for_points(points))
    if upcoming is None:
        return None
    threshold = dict(RANK_LADDER)[upcoming]
    return threshold - points


def round_xp(value: float) -> int:
    """Round half up to a whole XP amount (never below zero)."""
    if value <= 0:
        return 0
    return int(math.floor(value + 0.5))
