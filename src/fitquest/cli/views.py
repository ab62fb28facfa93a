"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of progression data.
"""

from rich.console import Console
from rich.table import Table

from ..core.achievements import AchievementStatus
from ..core.models import PersonalRecord, XPAward
from ..core.service import CompletionOutcome, StatusSummary, WorkoutCompletionOutcome

console = Console()

RANK_STYLES = {
    "Unranked": "dim",
    "E": "white",
    "D": "green",
    "C": "cyan",
    "B": "blue",
    "A": "magenta",
    "S": "bold yellow",
}


def progress_bar(fraction: float, width: int = 20) -> str:
    """Text progress bar, e.g. '█████░░░░░'."""
    fraction = max(0.0, min(1.0, fraction))
    filled = int(round(fraction * width))
    return "█" * filled + "░" * (width - filled)


def _rank(rank: str) -> str:
    style = RANK_STYLES.get(rank, "white")
    return f"[{style}]{rank}[/{style}]"


def format_award_table(award: XPAward) -> Table:
    """
    Itemized XP award: base, each class skill, streak, cap.

    Args:
        award: Award to display

    Returns:
        Rich Table
    """
    table = Table(title="XP", show_header=False, box=None)
    table.add_column("Item", style="cyan")
    table.add_column("XP", justify="right")

    table.add_row("Base", str(award.base_xp))
    for entry in award.breakdown:
        table.add_row(f"  {entry.skill} (+{entry.multiplier:.0%})", f"+{entry.bonus_xp}")
    if award.streak_multiplier != 1.0:
        table.add_row(f"Streak x{award.streak_multiplier:.2f}", str(award.streak_xp))
    if award.capped:
        label = "Power day cap" if award.power_day else "Daily cap"
        table.add_row(f"[yellow]{label} ({award.active_cap})[/yellow]", f"[yellow]-{award.clamped_xp}[/yellow]")
    table.add_row("[bold]Awarded[/bold]", f"[bold green]{award.final_xp}[/bold green]")
    if award.guild_xp:
        table.add_row("Guild", f"+{award.guild_xp}")
    return table


def print_completion(outcome: CompletionOutcome) -> None:
    """Print the result of a workout or manual activity."""
    console.print()
    console.print(format_award_table(outcome.award))
    console.print()

    if isinstance(outcome, WorkoutCompletionOutcome):
        for record in outcome.personal_records:
            console.print(f"[bold magenta]New record:[/bold magenta] {_record_line(record)}")

    if outcome.award.power_day:
        console.print("[bold yellow]Power day active![/bold yellow]")
    console.print(f"Streak: [bold]{outcome.streak}[/bold] day(s)")
    for milestone in outcome.streak_milestones:
        console.print(f"[bold]{milestone}-day streak reached![/bold]")
    if outcome.award.leveled_up:
        console.print(f"[bold green]Level up! {outcome.award.previous_level} → {outcome.award.new_level}[/bold green]")
    for achievement_id in outcome.unlocked:
        console.print(f"[bold yellow]Achievement unlocked:[/bold yellow] {achievement_id}")
    if outcome.achievement_error is not None:
        print_warning(f"XP saved, but achievements were not updated: {outcome.achievement_error.message}")


def format_status_display(summary: StatusSummary) -> None:
    """Print the status overview."""
    state = summary.state
    level = summary.level
    stats = summary.achievements

    console.print()
    console.print(f"[bold cyan]{state.user_id}[/bold cyan]"
                  f"  class: [bold]{state.user_class.value if state.user_class else 'none'}[/bold]")
    console.print()

    if level.next_level_xp is not None:
        span = level.next_level_xp - level.level_floor_xp
        bar = progress_bar(level.xp_into_level / span if span else 1.0)
        console.print(f"Level [bold]{level.level}[/bold]  {bar}  {level.total_xp} / {level.next_level_xp} XP")
    else:
        console.print(f"Level [bold]{level.level}[/bold] (max)  {level.total_xp} XP")

    console.print(f"Streak: [bold]{state.streak}[/bold] day(s)"
                  + (f" (last: {state.last_activity_date.isoformat()})" if state.last_activity_date else ""))

    cap_label = "power day" if summary.power_day_active else "daily"
    console.print(f"Today: {summary.daily_xp} / {summary.daily_cap} XP ({cap_label} cap)")
    remaining = "available" if summary.power_day.available else "used"
    console.print(f"Power day (week {summary.power_day.week}/{summary.power_day.year}): {remaining}")

    rank_line = f"Rank: {_rank(stats.rank)}  {stats.points} pts  ({stats.unlocked}/{stats.total} achievements)"
    if stats.next_rank is not None:
        rank_line += f"  {stats.points_to_next_rank} pts to {stats.next_rank}"
    console.print(rank_line)
    console.print(f"Workouts: {state.workouts_count}  Manual activities: {state.manual_count}")
    if summary.guild_contribution is not None:
        console.print(f"Guild contribution: {summary.guild_contribution:.0f} XP")


def format_achievements_table(statuses: list[AchievementStatus], show_locked: bool = True) -> Table:
    table = Table(title="Achievements")
    table.add_column("", width=2)
    table.add_column("Achievement", style="cyan")
    table.add_column("Rank", justify="center")
    table.add_column("Pts", justify="right")
    table.add_column("Progress")

    for status in statuses:
        d = status.definition
        if status.unlocked:
            progress = f"[green]unlocked {status.unlock.achieved_at:%Y-%m-%d}[/green]"
        elif not show_locked:
            continue
        else:
            current = status.progress.current_value if status.progress else 0
            fraction = min(1.0, current / d.requirement_value)
            progress = f"{progress_bar(fraction, 12)} {min(current, d.requirement_value)}/{d.requirement_value}"
        table.add_row(d.icon, f"{d.name}\n[dim]{d.description}[/dim]", _rank(d.rank), str(d.points), progress)

    return table


def _record_line(record: PersonalRecord) -> str:
    line = f"{record.exercise_id} {record.weight:g} kg"
    if record.improvement_pct is not None:
        line += f" (+{record.improvement_pct:.1f}% from {record.previous_weight:g} kg)"
    return line


def format_records_table(records: list[PersonalRecord]) -> Table:
    table = Table(title="Personal Records")
    table.add_column("Exercise", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Previous", justify="right")
    table.add_column("Date")

    for record in records:
        table.add_row(
            record.exercise_id,
            f"{record.weight:g} kg",
            f"{record.previous_weight:g} kg" if record.previous_weight else "-",
            record.recorded_at.strftime("%Y-%m-%d") if record.recorded_at else "-",
        )
    return table


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")
