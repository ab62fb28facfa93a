"""Profile commands: init, set-class, join-guild, status."""

import json
from typing import Annotated, Optional

import typer

from ...core.models import CharacterClass
from .. import views
from ..app import DEFAULT_USER, DataDirOption, JsonOption, UserOption, app, get_service, unwrap

CLASS_HELP = "Class: " + ", ".join(c.value for c in CharacterClass) + " (or none)"


@app.command()
def init(
    user_class: Annotated[
        Optional[str],
        typer.Option("--class", "-c", help=CLASS_HELP),
    ] = None,
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
) -> None:
    """
    Create a user with zeroed progression and achievement progress rows.
    """
    service = get_service(data_dir)
    state = unwrap(service.create_user(user_id, user_class))
    label = state.user_class.value if state.user_class else "no class"
    views.print_success(f"Created {state.user_id} ({label})")
    views.print_info(f"Data stored in {service.store.root}")


@app.command("set-class")
def set_class(
    user_class: Annotated[str, typer.Argument(help=CLASS_HELP)],
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
) -> None:
    """
    Change the user's class. Bonuses apply from the next award on.
    """
    service = get_service(data_dir)
    state = unwrap(service.set_class(user_id, user_class))
    label = state.user_class.value if state.user_class else "no class"
    views.print_success(f"{state.user_id} is now: {label}")


@app.command("join-guild")
def join_guild(
    name: Annotated[str, typer.Argument(help="Guild name")],
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
) -> None:
    """
    Join a guild. Awarded XP is credited to it from then on.
    """
    service = get_service(data_dir)
    unwrap(service.join_guild(user_id, name))
    views.print_success(f"{user_id} joined {name}")


@app.command()
def status(
    user_id: UserOption = DEFAULT_USER,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show XP, level, streak, rank and today's XP against the cap.
    """
    service = get_service(data_dir)
    summary = unwrap(service.status(user_id), json_out)

    if json_out:
        state = summary.state
        print(json.dumps({
            "user_id": state.user_id,
            "class": state.user_class.value if state.user_class else None,
            "total_xp": state.total_xp,
            "level": summary.level.level,
            "xp_to_next_level": summary.level.xp_to_next_level,
            "streak": state.streak,
            "last_activity_date": state.last_activity_date.isoformat() if state.last_activity_date else None,
            "daily_xp": summary.daily_xp,
            "daily_cap": summary.daily_cap,
            "power_day_active": summary.power_day_active,
            "power_day_available": summary.power_day.available,
            "workouts_count": state.workouts_count,
            "manual_count": state.manual_count,
            "category_workouts": dict(sorted(state.category_workouts.items())),
            "guild_contribution": summary.guild_contribution,
            "achievement_points": summary.achievements.points,
            "rank": summary.achievements.rank,
            "next_rank": summary.achievements.next_rank,
            "points_to_next_rank": summary.achievements.points_to_next_rank,
            "achievements_unlocked": summary.achievements.unlocked,
            "achievements_total": summary.achievements.total,
        }, indent=2))
        return

    views.format_status_display(summary)
