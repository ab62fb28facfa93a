"""Completion commands: log-workout, log-activity."""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.models import WorkoutRecord
from ...core.service import CompletionOutcome, WorkoutCompletionOutcome
from ...io.serializers import (
    ValidationError,
    award_to_dict,
    dict_to_workout,
    normalize_difficulty,
    parse_exercise_option,
)
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_service, unwrap


def _outcome_json(outcome: CompletionOutcome) -> dict:
    data = {
        "award": award_to_dict(outcome.award),
        "streak": outcome.streak,
        "streak_milestones": outcome.streak_milestones,
        "unlocked": outcome.unlocked,
        "partial": outcome.partial,
        "achievement_error": outcome.achievement_error.message if outcome.achievement_error else None,
    }
    if isinstance(outcome, WorkoutCompletionOutcome):
        data["workout_id"] = outcome.workout_id
        data["personal_records"] = [
            {"exercise_id": r.exercise_id, "weight": r.weight, "previous_weight": r.previous_weight}
            for r in outcome.personal_records
        ]
    return data


def _load_workout_file(path: Path, user_id: str) -> WorkoutRecord:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read workout file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: expected a JSON object")
    data.setdefault("owner_id", user_id)
    return dict_to_workout(data, owner_id=user_id)


@app.command("log-workout")
def log_workout(
    exercises: Annotated[
        Optional[list[str]],
        typer.Option(
            "--exercise", "-e",
            help='Exercise as NAME[:TYPE]=SETS, e.g. "Supino:Musculação=80x8,85x6". Repeatable.',
        ),
    ] = None,
    workout_file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="Workout JSON file (id, exercises, duration_seconds, difficulty)"),
    ] = None,
    minutes: Annotated[
        int,
        typer.Option("--minutes", "-m", help="Workout duration in minutes"),
    ] = 0,
    difficulty: Annotated[
        str,
        typer.Option("--difficulty", "-d", help="beginner, intermediate or advanced"),
    ] = "intermediate",
    workout_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Workout id (default: timestamp)"),
    ] = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Complete a workout: records, XP (class, streak, cap) and achievements.

    Examples:

      fitquest log-workout -e "Supino=80x8,85x6" -e "Agachamento=100x5" -m 45

      fitquest log-workout --file treino.json
    """
    try:
        if workout_file is not None:
            workout = _load_workout_file(workout_file, user_id)
        else:
            if not exercises:
                raise ValidationError("Provide --file or at least one --exercise")
            workout = WorkoutRecord(
                id=workout_id or f"w-{datetime.now():%Y%m%d%H%M%S}",
                owner_id=user_id,
                exercises=[parse_exercise_option(e) for e in exercises],
                duration_seconds=max(0, minutes) * 60,
                difficulty=normalize_difficulty(difficulty),
            )
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    service = get_service(data_dir)
    outcome = unwrap(service.complete_workout(user_id, workout), json_out)

    if json_out:
        print(json.dumps(_outcome_json(outcome), indent=2))
        return

    views.print_success(f"Workout {outcome.workout_id} logged (+{outcome.award.final_xp} XP)")
    views.print_completion(outcome)


@app.command("log-activity")
def log_activity(
    activity_type: Annotated[str, typer.Argument(help="Activity type, e.g. running, yoga, sports")],
    description: Annotated[
        str,
        typer.Option("--description", "-D", help="Free-text description"),
    ] = "",
    hours_ago: Annotated[
        float,
        typer.Option("--hours-ago", help="When it happened, in hours before now (max 24)"),
    ] = 0.0,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Submit a manual activity (one per 24 h, performed within the last 24 h).
    """
    service = get_service(data_dir)
    performed_at = service.clock.now() - timedelta(hours=hours_ago)
    outcome = unwrap(
        service.submit_manual_activity(user_id, activity_type, description, performed_at),
        json_out,
    )

    if json_out:
        data = _outcome_json(outcome)
        data["activity_id"] = outcome.activity_id
        print(json.dumps(data, indent=2))
        return

    views.print_success(f"Activity '{activity_type}' logged (+{outcome.award.final_xp} XP)")
    views.print_completion(outcome)
