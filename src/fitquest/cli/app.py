"""Shared Typer app object, shared option types, and service utility."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..core.service import FitquestService
from ..io.notifications import LoggingSink
from ..io.progression_store import ProgressionStore, get_default_store
from . import views

DEFAULT_USER = "default"

# Shared options used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-p", help="Data directory (default: ~/.fitquest or $FITQUEST_HOME)"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="fitquest",
    help="XP, classes, streaks and achievements for your training log.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool) -> None:
    """Route library logging through Rich (DEBUG with --verbose, else WARNING)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_service(data_dir: Path | None) -> FitquestService:
    """Get a service backed by the store in data_dir (or the default location)."""
    store = ProgressionStore(data_dir / "users") if data_dir is not None else get_default_store()
    return FitquestService(store, sink=LoggingSink())


def unwrap(result, json_out: bool = False):
    """Return a Success value, or report the Failure and exit with code 1."""
    if result.ok:
        return result.value
    if json_out:
        print(json.dumps({"error": result.category, "message": result.message}))
    else:
        views.print_error(result.message)
    raise typer.Exit(1)
