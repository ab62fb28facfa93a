"""
JSON serialization for progression data models.

Handles conversion between dataclasses and JSON-compatible dicts, plus the
coercion of free-text numeric input coming from workout forms.
"""

import re
from datetime import date, datetime
from typing import Any

from ..core.models import (
    ActivityEntry,
    AchievementProgressEntry,
    AchievementUnlock,
    CharacterClass,
    Difficulty,
    ExercisePerformance,
    PersonalRecord,
    SetEntry,
    UserProgressionState,
    WorkoutRecord,
    XPAward,
)


class ValidationError(ValueError):
    """Raised when data validation fails."""

    pass


DIFFICULTY_ALIASES: dict[str, Difficulty] = {
    "beginner": "beginner",
    "iniciante": "beginner",
    "intermediate": "intermediate",
    "intermediario": "intermediate",
    "intermediário": "intermediate",
    "advanced": "advanced",
    "avancado": "advanced",
    "avançado": "advanced",
}


def coerce_number(value: Any) -> float:
    """
    Interpret free-text numeric input.

    Accepts numbers and strings such as "80", "80.5" or "80,5"; anything
    else (None, "", "abc", negative values) becomes 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if number != number or number < 0:  # NaN or negative
        return 0.0
    return number


def normalize_difficulty(value: Any) -> Difficulty:
    """Map a difficulty label (English or Portuguese) to its tier; default intermediate."""
    if isinstance(value, str):
        tier = DIFFICULTY_ALIASES.get(value.strip().lower())
        if tier is not None:
            return tier
    return "intermediate"


def validate_date(date_str: str) -> date:
    """
    Validate an ISO date string.

    Raises:
        ValidationError: If date format is invalid
    """
    if not isinstance(date_str, str) or not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO timestamp; None stays None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}") from e


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_day(value: Any) -> date | None:
    if value is None or value == "":
        return None
    return validate_date(value)


def set_entry_to_dict(entry: SetEntry) -> dict[str, Any]:
    return {"weight": entry.weight, "reps": entry.reps, "completed": entry.completed}


def dict_to_set_entry(data: dict[str, Any]) -> SetEntry:
    """Build a SetEntry, coercing free-text weight/reps to numbers."""
    return SetEntry(
        weight=coerce_number(data.get("weight")),
        reps=int(coerce_number(data.get("reps"))),
        completed=bool(data.get("completed", True)),
    )


def exercise_to_dict(exercise: ExercisePerformance) -> dict[str, Any]:
    return {
        "exercise_id": exercise.exercise_id,
        "name": exercise.name,
        "exercise_type": exercise.exercise_type,
        "sets": [set_entry_to_dict(s) for s in exercise.sets],
    }


def dict_to_exercise(data: dict[str, Any]) -> ExercisePerformance:
    """
    Convert dict to ExercisePerformance.

    ``exercise_id`` falls back to the name when absent, so hand-written
    workout files only need a name.

    Raises:
        ValidationError: If neither id nor name is present
    """
    name = str(data.get("name") or "").strip()
    exercise_id = str(data.get("exercise_id") or data.get("id") or name).strip()
    if not exercise_id:
        raise ValidationError("Exercise needs an exercise_id or a name")
    return ExercisePerformance(
        exercise_id=exercise_id,
        name=name or exercise_id,
        exercise_type=data.get("exercise_type") or data.get("type"),
        sets=[dict_to_set_entry(s) for s in data.get("sets") or []],
    )


def workout_to_dict(workout: WorkoutRecord) -> dict[str, Any]:
    return {
        "id": workout.id,
        "owner_id": workout.owner_id,
        "exercises": [exercise_to_dict(e) for e in workout.exercises],
        "duration_seconds": workout.duration_seconds,
        "difficulty": workout.difficulty,
        "completed_at": _iso(workout.completed_at),
    }


def dict_to_workout(data: dict[str, Any], owner_id: str | None = None) -> WorkoutRecord:
    """
    Convert dict to WorkoutRecord.

    Missing or negative duration becomes 0 and unknown difficulty becomes
    "intermediate"; only a missing id is rejected.

    Raises:
        ValidationError: If the workout id is missing
    """
    workout_id = str(data.get("id") or "").strip()
    if not workout_id:
        raise ValidationError("Workout id is required")
    return WorkoutRecord(
        id=workout_id,
        owner_id=str(data.get("owner_id") or owner_id or ""),
        exercises=[dict_to_exercise(e) for e in data.get("exercises") or []],
        duration_seconds=int(coerce_number(data.get("duration_seconds"))),
        difficulty=normalize_difficulty(data.get("difficulty")),
        completed_at=parse_datetime(data.get("completed_at")),
    )


def activity_to_dict(entry: ActivityEntry) -> dict[str, Any]:
    return {
        "kind": entry.kind,
        "source_id": entry.source_id,
        "day": entry.day.isoformat(),
        "activity_type": entry.activity_type,
    }


def dict_to_activity(data: dict[str, Any]) -> ActivityEntry:
    kind = data.get("kind")
    if kind not in ("workout", "manual"):
        raise ValidationError(f"Invalid activity kind: {kind!r}")
    return ActivityEntry(
        kind=kind,
        source_id=str(data.get("source_id", "")),
        day=validate_date(data.get("day")),
        activity_type=data.get("activity_type"),
    )


def state_to_dict(state: UserProgressionState) -> dict[str, Any]:
    return {
        "user_id": state.user_id,
        "total_xp": state.total_xp,
        "level": state.level,
        "user_class": state.user_class.value if state.user_class else None,
        "streak": state.streak,
        "last_activity_date": _iso(state.last_activity_date),
        "daily_xp_accumulated": state.daily_xp_accumulated,
        "daily_xp_date": _iso(state.daily_xp_date),
        "achievement_points": state.achievement_points,
        "achievements_count": state.achievements_count,
        "workouts_count": state.workouts_count,
        "manual_count": state.manual_count,
        "category_workouts": dict(state.category_workouts),
    }


def dict_to_state(data: dict[str, Any]) -> UserProgressionState:
    """
    Convert dict to UserProgressionState.

    Raises:
        ValidationError: If the class name or a date is invalid
    """
    try:
        user_class = CharacterClass.parse(data.get("user_class"))
    except ValueError as e:
        raise ValidationError(str(e)) from e
    try:
        return UserProgressionState(
            user_id=str(data.get("user_id", "")),
            total_xp=int(data.get("total_xp", 0)),
            level=int(data.get("level", 1)),
            user_class=user_class,
            streak=int(data.get("streak", 0)),
            last_activity_date=_parse_day(data.get("last_activity_date")),
            daily_xp_accumulated=int(data.get("daily_xp_accumulated", 0)),
            daily_xp_date=_parse_day(data.get("daily_xp_date")),
            achievement_points=int(data.get("achievement_points", 0)),
            achievements_count=int(data.get("achievements_count", 0)),
            workouts_count=int(data.get("workouts_count", 0)),
            manual_count=int(data.get("manual_count", 0)),
            category_workouts={
                str(k): int(v) for k, v in (data.get("category_workouts") or {}).items()
            },
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, ValidationError):
            raise
        raise ValidationError(f"Invalid progression state: {e}") from e


def record_to_dict(record: PersonalRecord) -> dict[str, Any]:
    return {
        "exercise_id": record.exercise_id,
        "weight": record.weight,
        "previous_weight": record.previous_weight,
        "recorded_at": _iso(record.recorded_at),
    }


def dict_to_record(data: dict[str, Any]) -> PersonalRecord:
    return PersonalRecord(
        exercise_id=str(data["exercise_id"]),
        weight=coerce_number(data.get("weight")),
        previous_weight=coerce_number(data.get("previous_weight")),
        recorded_at=parse_datetime(data.get("recorded_at")),
    )


def unlock_to_dict(unlock: AchievementUnlock) -> dict[str, Any]:
    return {
        "achievement_id": unlock.achievement_id,
        "achieved_at": unlock.achieved_at.isoformat(),
    }


def dict_to_unlock(user_id: str, data: dict[str, Any]) -> AchievementUnlock:
    return AchievementUnlock(
        user_id=user_id,
        achievement_id=str(data["achievement_id"]),
        achieved_at=parse_datetime(data.get("achieved_at")) or datetime.min,
    )


def progress_to_dict(entry: AchievementProgressEntry) -> dict[str, Any]:
    return {
        "achievement_id": entry.achievement_id,
        "current_value": entry.current_value,
        "target_value": entry.target_value,
        "is_complete": entry.is_complete,
    }


def dict_to_progress(user_id: str, data: dict[str, Any]) -> AchievementProgressEntry:
    return AchievementProgressEntry(
        user_id=user_id,
        achievement_id=str(data["achievement_id"]),
        current_value=int(data.get("current_value", 0)),
        target_value=int(data.get("target_value", 0)),
        is_complete=bool(data.get("is_complete", False)),
    )


def parse_sets_string(sets_str: str) -> list[SetEntry]:
    """
    Parse a compact set notation into completed SetEntry objects.

    Format: comma-separated ``weightxreps`` items, e.g. "80x8, 85x6, 90x4".
    A bare number is read as reps at bodyweight ("12" -> 0 kg x 12).

    Raises:
        ValidationError: If an item cannot be read
    """
    entries: list[SetEntry] = []
    for raw in sets_str.split(","):
        item = raw.strip().lower()
        if not item:
            continue
        match = re.match(r"^(\d+(?:[.,]\d+)?)\s*x\s*(\d+)$", item)
        if match:
            entries.append(
                SetEntry(
                    weight=coerce_number(match.group(1)),
                    reps=int(match.group(2)),
                    completed=True,
                )
            )
        elif item.isdigit():
            entries.append(SetEntry(weight=0.0, reps=int(item), completed=True))
        else:
            raise ValidationError(f"Invalid set format: {raw.strip()!r}. Expected WEIGHTxREPS")
    return entries


def parse_exercise_option(option: str) -> ExercisePerformance:
    """
    Parse a CLI exercise option "Name[:type]=sets".

    Examples:
        "Supino=80x8,85x6"
        "Corrida:Cardio="
        "Flexao:Calistenia=15,12,10"
    """
    if "=" not in option:
        raise ValidationError(f"Invalid exercise {option!r}. Expected NAME[:TYPE]=SETS")
    head, sets_str = option.split("=", 1)
    name, _, exercise_type = head.partition(":")
    name = name.strip()
    if not name:
        raise ValidationError(f"Exercise name missing in {option!r}")
    return ExercisePerformance(
        exercise_id=name.lower().replace(" ", "-"),
        name=name,
        exercise_type=exercise_type.strip() or None,
        sets=parse_sets_string(sets_str),
    )


def award_to_dict(award: XPAward) -> dict[str, Any]:
    """JSON-compatible view of an XP award (CLI --json output)."""
    return {
        "source": award.source,
        "base_xp": award.base_xp,
        "bonus_xp": award.bonus_xp,
        "breakdown": [
            {
                "skill": e.skill,
                "description": e.description,
                "multiplier": e.multiplier,
                "bonus_xp": e.bonus_xp,
            }
            for e in award.breakdown
        ],
        "streak_multiplier": award.streak_multiplier,
        "streak_xp": award.streak_xp,
        "active_cap": award.active_cap,
        "power_day": award.power_day,
        "final_xp": award.final_xp,
        "capped": award.capped,
        "previous_level": award.previous_level,
        "new_level": award.new_level,
        "total_xp": award.total_xp,
        "guild_xp": award.guild_xp,
    }
