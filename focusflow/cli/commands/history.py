"""
FILE: focusflow/cli/commands/history.py
PURPOSE: History commands (history ls, rename, summary, rm, export, import)
"""

from pathlib import Path
from typing import Optional

import typer

from ..app import console, fail, history_app, open_store
from .workspace import find_history
from ...core.exceptions import FocusFlowError, InvalidInputError
from ...formatting import HistoryFormatter
from ...utils import parse_refs


@history_app.command("ls")
def history_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List archived workspaces, most recently modified first."""
    try:
        with open_store() as store:
            history = store.sorted_history()
            active_history_id = store.state.active_history_id

        if json_output:
            console.print_json(HistoryFormatter.to_json_array(history))
        elif not history:
            console.print("[dim]History is empty.[/dim]")
        else:
            console.print(HistoryFormatter.create_table(history, active_history_id))
    except FocusFlowError as e:
        fail(str(e))


@history_app.command("rename")
def history_rename(
    history_ref: str = typer.Argument(..., help="History entry id or name"),
    name: str = typer.Argument(..., help="New name"),
):
    """Rename a history entry."""
    try:
        with open_store() as store:
            history = find_history(store, history_ref)
            store.rename_history_workspace(history.id, name)
        console.print(f"[green]✓ Renamed[/green] {history.name} → {name.strip()}")
    except FocusFlowError as e:
        fail(str(e))


@history_app.command("summary")
def history_summary(
    history_ref: str = typer.Argument(..., help="History entry id or name"),
    summary: str = typer.Argument(..., help="Summary text"),
):
    """Set the summary of a history entry."""
    try:
        with open_store() as store:
            history = find_history(store, history_ref)
            store.update_history_summary(history.id, summary)
        console.print(f"[green]✓ Updated summary of[/green] {history.name}")
    except FocusFlowError as e:
        fail(str(e))


@history_app.command("rm")
def history_rm(
    history_refs: str = typer.Argument(..., help="History entry id(s), comma-separated"),
):
    """Delete history entries permanently."""
    try:
        with open_store() as store:
            for ref in parse_refs(history_refs):
                history = find_history(store, ref)
                store.delete_history_workspace(history.id)
                console.print(f"[green]✓ Deleted[/green] {history.name}")
    except FocusFlowError as e:
        fail(str(e))


@history_app.command("export")
def history_export(
    history_ref: Optional[str] = typer.Argument(None, help="History entry id or name (omit for all)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Export one history entry (or all of them) as JSON."""
    try:
        with open_store() as store:
            if history_ref:
                history = find_history(store, history_ref)
                data = store.export_history(history.id)
            else:
                data = store.export_all_history()

        if output:
            output.write_text(data, encoding="utf-8")
            console.print(f"[green]✓ Exported to[/green] {output}")
        else:
            print(data)
    except OSError as e:
        fail(f"Cannot write {output}: {e}")
    except FocusFlowError as e:
        fail(str(e))


@history_app.command("import")
def history_import(
    source: Path = typer.Argument(..., help="JSON file from 'history export'"),
):
    """Import exported history entries under fresh ids."""
    try:
        data = source.read_text(encoding="utf-8")
    except OSError as e:
        fail(f"Cannot read {source}: {e}")

    try:
        with open_store() as store:
            count = store.import_all_history(data)
        if not count:
            raise InvalidInputError(f"No valid history entries in {source}")
        console.print(f"[green]✓ Imported {count} history entr{'y' if count == 1 else 'ies'}[/green]")
    except FocusFlowError as e:
        fail(str(e))
