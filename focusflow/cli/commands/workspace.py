"""
FILE: focusflow/cli/commands/workspace.py
PURPOSE: Current-workspace commands (workspace new, archive, restore, show,
         autosave, overwrite)
"""

import json
from typing import Optional

import typer

from ..app import console, fail, open_store, workspace_app
from .templates import find_template
from ...core.exceptions import FocusFlowError, HistoryNotFoundError
from ...formatting import format_timestamp
from ...utils import resolve_ref, short_id


def find_history(store, ref: str):
    return resolve_ref(store.state.history_workspaces, ref, HistoryNotFoundError, by_name=True)


@workspace_app.command("new")
def workspace_new(
    name: Optional[str] = typer.Argument(None, help="Workspace name"),
    template_ref: Optional[str] = typer.Option(None, "--template", "-t", help="Template id or name for the zones"),
):
    """
    Start a new workspace.

    The current one is archived to history if it has tasks, discarded otherwise.
    """
    try:
        with open_store() as store:
            had_tasks = bool(store.tasks)
            template = find_template(store, template_ref) if template_ref else None
            store.create_new_workspace(name, template.id if template else None)
            workspace = store.workspace

        if had_tasks:
            console.print("[dim]Previous workspace archived to history.[/dim]")
        console.print(
            f"[green]✓ New workspace[/green] {workspace.name} "
            f"[dim]({len(workspace.zones)} zones)[/dim]"
        )
    except FocusFlowError as e:
        fail(str(e))


@workspace_app.command("archive")
def workspace_archive(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="History entry name (default: workspace name)"),
    summary: Optional[str] = typer.Option(None, "--summary", "-s", help="Summary text"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Save a copy of the current workspace to history and keep working on it."""
    try:
        with open_store() as store:
            history_id = store.archive_current_workspace(name, summary)
            history = store.get_history(history_id)

        if json_output:
            console.print_json(json.dumps({"id": history.id, "name": history.name, "summary": history.summary}))
        else:
            console.print(f"[green]✓ Archived as [bold]{short_id(history.id)}[/bold]:[/green] {history.name}")
    except FocusFlowError as e:
        fail(str(e))


@workspace_app.command("restore")
def workspace_restore(
    history_ref: str = typer.Argument(..., help="History entry id or name"),
):
    """
    Replace the current workspace with a copy of a history entry.

    The history entry itself is kept.
    """
    try:
        with open_store() as store:
            history = find_history(store, history_ref)
            store.restore_from_history(history.id)
        console.print(f"[green]✓ Restored[/green] {history.name}")
    except FocusFlowError as e:
        fail(str(e))


@workspace_app.command("overwrite")
def workspace_overwrite(
    history_ref: str = typer.Argument(..., help="History entry id or name"),
):
    """Replace a history entry's content with the current workspace."""
    try:
        with open_store() as store:
            history = find_history(store, history_ref)
            store.overwrite_history_workspace(history.id)
        console.print(f"[green]✓ Overwrote[/green] {history.name}")
    except FocusFlowError as e:
        fail(str(e))


@workspace_app.command("autosave")
def workspace_autosave():
    """Write the current workspace into the auto-save history slot."""
    try:
        with open_store() as store:
            history_id = store.auto_save_snapshot()
        if history_id is None:
            console.print("[dim]Nothing to save.[/dim]")
        else:
            console.print("[green]✓ Auto-saved[/green]")
    except FocusFlowError as e:
        fail(str(e))


@workspace_app.command("show")
def workspace_show(
    json_output: bool = typer.Option(False, "--json", help="Output the full workspace as JSON"),
):
    """Show the current workspace."""
    try:
        with open_store() as store:
            workspace = store.workspace
            stats = store.get_stats()
            state = store.state

        if json_output:
            console.print_json(json.dumps(workspace.to_dict()))
            return

        console.print(f"[bold cyan]{workspace.name}[/bold cyan] [dim]{workspace.id}[/dim]")
        console.print(f"  Created:   {format_timestamp(workspace.created_at)}")
        console.print(f"  Modified:  {format_timestamp(workspace.last_modified)}")
        console.print(f"  Zones:     {len(workspace.zones)}")
        console.print(f"  Tasks:     {stats['total']} ({stats['completed']} done)")
        console.print(f"  Sessions:  {len(workspace.sessions)}")
        if state.active_history_id:
            console.print(f"  From:      history {short_id(state.active_history_id)}")
        console.print(f"  History:   {len(state.history_workspaces)} entries")
    except FocusFlowError as e:
        fail(str(e))
