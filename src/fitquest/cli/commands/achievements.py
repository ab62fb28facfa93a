"""Achievement and record commands: achievements, records."""

import json
from typing import Annotated

import typer

from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_service, unwrap


@app.command()
def achievements(
    unlocked_only: Annotated[
        bool,
        typer.Option("--unlocked", help="Only list unlocked achievements"),
    ] = False,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List the achievement catalog with unlock state and progress.
    """
    service = get_service(data_dir)
    statuses = unwrap(service.achievement_overview(user_id), json_out)

    if json_out:
        print(json.dumps([
            {
                "id": s.definition.id,
                "name": s.definition.name,
                "rank": s.definition.rank,
                "points": s.definition.points,
                "unlocked": s.unlocked,
                "achieved_at": s.unlock.achieved_at.isoformat() if s.unlock else None,
                "current": s.progress.current_value if s.progress else 0,
                "target": s.definition.requirement_value,
            }
            for s in statuses
            if s.unlocked or not unlocked_only
        ], indent=2))
        return

    views.console.print(views.format_achievements_table(statuses, show_locked=not unlocked_only))


@app.command()
def records(
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show personal records (heaviest weight per exercise).
    """
    service = get_service(data_dir)
    prs = unwrap(service.personal_records(user_id), json_out)

    if json_out:
        print(json.dumps([
            {
                "exercise_id": r.exercise_id,
                "weight": r.weight,
                "previous_weight": r.previous_weight,
                "recorded_at": r.recorded_at.isoformat() if r.recorded_at else None,
            }
            for r in prs
        ], indent=2))
        return

    if not prs:
        views.print_info("No personal records yet.")
        return
    views.console.print(views.format_records_table(prs))
