"""
FILE: focusflow/cli/app.py
PURPOSE: Shared CLI objects - Typer apps, consoles and the store session
EXPORTS:
  - app (Typer application) and its sub-apps
    (zone_app, task_app, workspace_app, history_app, template_app)
  - console, error_console (rich consoles)
  - open_store() - context manager yielding a persisted AppStore
  - fail(message) - print an error and exit 1
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - focusflow.core.store (AppStore)
  - focusflow.core.sync (PersistenceSync)
  - focusflow.logs (setup_logging)
NOTES:
  - Command modules import from here, main.py imports the command modules;
    nothing imports main.py back
"""

from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console

from ..core.store import AppStore
from ..core.sync import PersistenceSync
from ..logs import setup_logging

# Typer app setup
app = typer.Typer(
    name="focusflow",
    help="Hierarchical tasks in zones, with archived workspaces",
    add_completion=False,
    no_args_is_help=True,
)

zone_app = typer.Typer(name="zone", help="Zone commands", no_args_is_help=True)
task_app = typer.Typer(name="task", help="Task commands", no_args_is_help=True)
workspace_app = typer.Typer(name="workspace", help="Current workspace commands", no_args_is_help=True)
history_app = typer.Typer(name="history", help="Archived workspace commands", no_args_is_help=True)
template_app = typer.Typer(name="template", help="Zone template commands", no_args_is_help=True)
app.add_typer(zone_app, name="zone")
app.add_typer(task_app, name="task")
app.add_typer(workspace_app, name="workspace")
app.add_typer(history_app, name="history")
app.add_typer(template_app, name="template")

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)


@app.callback()
def startup():
    """Hierarchical tasks in zones, with archived workspaces."""
    setup_logging()


@contextmanager
def open_store() -> Iterator[AppStore]:
    """
    Load the persisted state into an AppStore wired to both backends.

    Pending writes are flushed when the block exits, even on error.
    """
    sync = PersistenceSync.from_config()
    try:
        store = AppStore(sync.load())
        sync.attach(store)
        yield store
    finally:
        sync.close()


def fail(message: str) -> None:
    """Print an error to stderr and exit with code 1."""
    error_console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)
