"""
FILE: focusflow/cli/commands/zones.py
PURPOSE: Zone commands (zone add, zone ls, zone rm, zone rename, zone use)
"""

import json
from typing import Optional

import typer

from ..app import console, fail, open_store, zone_app
from ...core.exceptions import FocusFlowError, ZoneNotFoundError
from ...formatting import ZoneFormatter
from ...utils import parse_refs, resolve_ref, short_id


def find_zone(store, ref: str):
    """Zone by id, id suffix or name."""
    return resolve_ref(store.zones, ref, ZoneNotFoundError, by_name=True)


@zone_app.command("add")
def zone_add(
    name: str = typer.Argument(..., help="Zone name"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="Hex color (default: next palette color)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a zone after the existing ones.

    Example:
        focusflow zone add "Errands"
        focusflow zone add "Reading" --color "#8b5cf6"
    """
    try:
        with open_store() as store:
            zone = store.add_zone(name, color)

        if json_output:
            console.print_json(json.dumps(zone.to_dict()))
        else:
            console.print(f"[green]✓ Created zone [bold]{short_id(zone.id)}[/bold]:[/green] {zone.name}")
    except FocusFlowError as e:
        fail(str(e))


@zone_app.command("ls")
def zone_ls(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List zones of the current workspace (* marks the active zone)."""
    try:
        with open_store() as store:
            zones = store.zones
            tasks = store.tasks
            active_zone_id = store.state.active_zone_id

        if json_output:
            console.print_json(json.dumps([z.to_dict() for z in zones]))
        elif not zones:
            console.print("[dim]No zones.[/dim]")
        else:
            console.print(ZoneFormatter.create_table(zones, tasks, active_zone_id))
    except FocusFlowError as e:
        fail(str(e))


@zone_app.command("rm")
def zone_rm(
    zone_refs: str = typer.Argument(..., help="Zone id(s) or name(s), comma-separated"),
):
    """
    Delete zones together with their tasks.

    Deleting the last zone leaves a fresh default zone behind.
    """
    try:
        with open_store() as store:
            for ref in parse_refs(zone_refs):
                zone = find_zone(store, ref)
                store.delete_zone(zone.id)
                console.print(f"[green]✓ Deleted zone[/green] {zone.name}")
    except FocusFlowError as e:
        fail(str(e))


@zone_app.command("rename")
def zone_rename(
    zone_ref: str = typer.Argument(..., help="Zone id or name"),
    name: str = typer.Argument(..., help="New name"),
):
    """Rename a zone."""
    try:
        with open_store() as store:
            zone = find_zone(store, zone_ref)
            store.update_zone(zone.id, name=name)
        console.print(f"[green]✓ Renamed zone[/green] {zone.name} → {name.strip()}")
    except FocusFlowError as e:
        fail(str(e))


@zone_app.command("use")
def zone_use(
    zone_ref: str = typer.Argument(..., help="Zone id or name"),
):
    """Make a zone the active one (new tasks go there by default)."""
    try:
        with open_store() as store:
            zone = find_zone(store, zone_ref)
            store.set_active_zone_id(zone.id)
        console.print(f"[green]✓ Active zone:[/green] {zone.name}")
    except FocusFlowError as e:
        fail(str(e))
