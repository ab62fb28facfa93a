"""
CLI entry point using Typer.

Provides commands for progression tracking:
- init: Create a user, optionally with a class
- set-class: Change the user's class
- log-workout: Complete a workout and award XP
- log-activity: Submit a manual activity
- status: XP, level, streak, rank and today's cap
- achievements: Catalog with unlock state and progress
- records: Personal records
"""

from typing import Annotated

import typer

from .app import app, setup_logging
from .commands import achievements, profile, workouts  # noqa: F401


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show engine debug logging"),
    ] = False,
) -> None:
    """
    XP and achievement tracker. Run a command with --help for its options.
    """
    setup_logging(verbose)


if __name__ == "__main__":
    app()
