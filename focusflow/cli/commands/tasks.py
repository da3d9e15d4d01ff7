"""
FILE: focusflow/cli/commands/tasks.py
PURPOSE: Task commands (task add, ls, done, rm, edit, mv, drop, collapse,
         focus, clear, time, stats)
"""

import json
from typing import Optional

import typer

from ..app import console, error_console, fail, open_store, task_app
from .zones import find_zone
from ...core.constants import DEFAULT_DEADLINE_TYPE, DEFAULT_PRIORITY, DEFAULT_URGENCY, INDENT_WIDTH
from ...core.exceptions import FocusFlowError, InvalidInputError, TaskNotFoundError, ZoneNotFoundError
from ...formatting import TaskFormatter
from ...utils import format_duration, parse_deadline, parse_refs, resolve_ref, short_id


def find_task(store, ref: str):
    return resolve_ref(store.tasks, ref, TaskNotFoundError)


def _zone_or_active(store, zone_ref: Optional[str]):
    if zone_ref:
        return find_zone(store, zone_ref)
    zone = store.get_zone(store.state.active_zone_id) if store.state.active_zone_id else None
    if zone is None and store.zones:
        zone = store.zones[0]
    if zone is None:
        raise ZoneNotFoundError("(no zones)")
    return zone


@task_app.command("add")
def task_add(
    title: str = typer.Argument(..., help="Task title"),
    zone_ref: Optional[str] = typer.Option(None, "--zone", "-z", help="Zone id or name (default: active zone)"),
    parent_ref: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent task id"),
    description: str = typer.Option("", "--desc", "-d", help="Description"),
    priority: str = typer.Option(DEFAULT_PRIORITY, "--priority", help="low, medium or high"),
    urgency: str = typer.Option(DEFAULT_URGENCY, "--urgency", help="low, medium, high or urgent"),
    deadline: Optional[str] = typer.Option(None, "--deadline", help="ISO date, e.g. 2024-06-30"),
    deadline_type: str = typer.Option(DEFAULT_DEADLINE_TYPE, "--deadline-type", help="none, exact, today, tomorrow or week"),
    estimate: Optional[int] = typer.Option(None, "--estimate", "-e", help="Estimated minutes"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a task, as a root of its zone or as the last child of --parent.

    Example:
        focusflow task add "Write report"
        focusflow task add "Outline" --parent 3f9a1c2de
        focusflow task add "Call bank" --zone Life --urgency urgent
    """
    try:
        with open_store() as store:
            parent = find_task(store, parent_ref) if parent_ref else None
            if parent is not None and zone_ref is None:
                zone = store.get_zone(parent.zone_id)
            else:
                zone = _zone_or_active(store, zone_ref)

            if deadline and deadline_type == DEFAULT_DEADLINE_TYPE:
                deadline_type = "exact"
            task = store.add_task(
                zone.id,
                title,
                description=description,
                priority=priority,
                urgency=urgency,
                deadline=parse_deadline(deadline),
                deadline_type=deadline_type,
                parent_id=parent.id if parent else None,
                estimated_time=estimate,
            )
            if task is None:
                raise InvalidInputError(f"Parent {short_id(parent.id)} is not in zone {zone.name}")

        if json_output:
            console.print_json(json.dumps(task.to_dict()))
        else:
            console.print(f"[green]✓ Created task [bold]{short_id(task.id)}[/bold]:[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("ls")
def task_ls(
    zone_ref: Optional[str] = typer.Option(None, "--zone", "-z", help="Zone id or name (default: active zone)"),
    show_all: bool = typer.Option(False, "--all", "-a", help="All zones of the workspace"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Show the task tree of a zone (collapsed subtasks stay hidden).

    When a task is focused, only the path down to it and its subtree are shown.
    """
    try:
        with open_store() as store:
            zone = None if show_all else _zone_or_active(store, zone_ref)
            rows = store.flattened(zone.id if zone else None)
            tasks = store.tasks
            zones = {z.id: z for z in store.zones}

        if json_output:
            console.print_json(TaskFormatter.to_json_array(rows))
        elif raw:
            for line in TaskFormatter.to_raw_lines(rows):
                print(line)
        elif not rows:
            console.print("[dim]No tasks.[/dim]")
        else:
            title = zone.name if zone else "All zones"
            console.print(TaskFormatter.create_table(rows, tasks, title, None if zone else zones))
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("done")
def task_done(
    task_refs: str = typer.Argument(..., help="Task id(s), comma-separated"),
):
    """
    Toggle completion. Subtasks follow; parents complete when all children do.
    """
    try:
        with open_store() as store:
            for ref in parse_refs(task_refs):
                task = find_task(store, ref)
                store.toggle_task(task.id)
                state = "completed" if store.get_task(task.id).completed else "reopened"
                console.print(f"[green]✓ {state.capitalize()}[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("rm")
def task_rm(
    task_refs: str = typer.Argument(..., help="Task id(s), comma-separated"),
):
    """Delete tasks together with their subtasks."""
    try:
        with open_store() as store:
            for ref in parse_refs(task_refs):
                try:
                    task = find_task(store, ref)
                except TaskNotFoundError as e:
                    # Already removed with an earlier task's subtree
                    error_console.print(f"[yellow]Skipped:[/yellow] {e}")
                    continue
                store.delete_task(task.id)
                console.print(f"[green]✓ Deleted[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("edit")
def task_edit(
    task_ref: str = typer.Argument(..., help="Task id"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description"),
    priority: Optional[str] = typer.Option(None, "--priority", help="low, medium or high"),
    urgency: Optional[str] = typer.Option(None, "--urgency", help="low, medium, high or urgent"),
    estimate: Optional[int] = typer.Option(None, "--estimate", "-e", help="Estimated minutes"),
    keep_open: Optional[bool] = typer.Option(
        None, "--keep-open/--auto-complete", help="Stop (or allow) completion when all subtasks are done"
    ),
):
    """Change a task's fields."""
    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if priority is not None:
        changes["priority"] = priority
    if urgency is not None:
        changes["urgency"] = urgency
    if estimate is not None:
        changes["estimated_time"] = estimate
    if keep_open is not None:
        changes["prevent_auto_complete"] = keep_open

    try:
        if not changes:
            raise InvalidInputError("Nothing to change")
        with open_store() as store:
            task = find_task(store, task_ref)
            store.update_task(task.id, **changes)
        console.print(f"[green]✓ Updated[/green] {short_id(task.id)}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("mv")
def task_mv(
    task_ref: str = typer.Argument(..., help="Task id"),
    parent_ref: Optional[str] = typer.Option(None, "--parent", "-p", help="New parent task id"),
    after_ref: Optional[str] = typer.Option(None, "--after", help="Sibling to place it after (default: first)"),
    zone_ref: Optional[str] = typer.Option(None, "--zone", "-z", help="Target zone for a root task"),
):
    """
    Move a task (with its subtasks) under a new parent or to the root level.

    Example:
        focusflow task mv 3f9a1c2de --parent 8be10a4f1
        focusflow task mv 3f9a1c2de --after 8be10a4f1
        focusflow task mv 3f9a1c2de --zone Work
    """
    try:
        with open_store() as store:
            task = find_task(store, task_ref)
            parent = find_task(store, parent_ref) if parent_ref else None
            anchor = find_task(store, after_ref) if after_ref else None
            zone = find_zone(store, zone_ref) if zone_ref else None

            if parent is None and zone is None and anchor is not None:
                zone = store.get_zone(anchor.zone_id)
            moved = store.move_task(
                task.id,
                parent.id if parent else None,
                anchor.id if anchor else None,
                zone.id if zone else None,
            )
            if not moved:
                raise InvalidInputError(
                    "Move rejected: the parent is the task itself, one of its subtasks, or in another zone"
                )
        console.print(f"[green]✓ Moved[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("drop")
def task_drop(
    task_ref: str = typer.Argument(..., help="Task being dragged"),
    over_ref: Optional[str] = typer.Argument(None, help="Row it is dropped on (it lands above it); omit to drop below the last row"),
    offset: float = typer.Option(0, "--offset", "-x", help="Horizontal drag in pixels (+ = deeper)"),
    indent: int = typer.Option(INDENT_WIDTH, "--indent", help="Pixels per tree level"),
    zone_ref: Optional[str] = typer.Option(None, "--zone", "-z", help="Zone the rows belong to (default: active zone)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Replay a drag-and-drop gesture on the zone's task tree.
    """
    try:
        with open_store() as store:
            task = find_task(store, task_ref)
            over_id = find_task(store, over_ref).id if over_ref else None
            zone = _zone_or_active(store, zone_ref) if zone_ref else store.get_zone(task.zone_id)
            projection = store.drop_task(task.id, over_id, offset, zone.id, indent)

        if projection is None:
            fail("Drop ignored: the row is not visible or lies inside the dragged subtree")
        if json_output:
            console.print_json(json.dumps({
                "depth": projection.depth,
                "parentId": projection.parent_id,
                "anchorId": projection.anchor_id,
            }))
        else:
            parent = short_id(projection.parent_id) if projection.parent_id else "root"
            console.print(f"[green]✓ Dropped[/green] {task.title} at depth {projection.depth} under {parent}")
    except (FocusFlowError, ValueError) as e:
        fail(str(e))


@task_app.command("collapse")
def task_collapse(
    task_ref: str = typer.Argument(..., help="Task id"),
):
    """Toggle whether a task's subtasks are hidden."""
    try:
        with open_store() as store:
            task = find_task(store, task_ref)
            store.toggle_collapsed(task.id)
            collapsed = store.get_task(task.id).is_collapsed
        console.print(f"[green]✓ {'Collapsed' if collapsed else 'Expanded'}[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("focus")
def task_focus(
    task_ref: Optional[str] = typer.Argument(None, help="Task id (omit to clear focus)"),
):
    """Focus the tree on one task: its ancestors and subtasks stay visible, the rest is hidden."""
    try:
        with open_store() as store:
            if task_ref is None:
                store.set_focused_task_id(None)
                console.print("[green]✓ Focus cleared[/green]")
                return
            task = find_task(store, task_ref)
            store.set_focused_task_id(task.id)
        console.print(f"[green]✓ Focused[/green] {task.title}")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("clear")
def task_clear(
    zone_ref: Optional[str] = typer.Option(None, "--zone", "-z", help="Only this zone"),
):
    """Remove completed tasks (and their subtasks)."""
    try:
        with open_store() as store:
            zone = find_zone(store, zone_ref) if zone_ref else None
            removed = store.clear_completed(zone.id if zone else None)
        console.print(f"[green]✓ Removed {removed} completed task(s)[/green]")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("time")
def task_time(
    task_ref: str = typer.Argument(..., help="Task id"),
    minutes: float = typer.Argument(..., help="Minutes worked"),
):
    """Log work time on a task; totals roll up to its ancestors."""
    try:
        if minutes <= 0:
            raise InvalidInputError("Minutes must be positive")
        with open_store() as store:
            task = find_task(store, task_ref)
            store.add_work_time(task.id, int(round(minutes * 60)))
            total = store.get_task(task.id).total_work_time
        console.print(f"[green]✓ Logged[/green] {task.title} [dim](total {format_duration(total)})[/dim]")
    except FocusFlowError as e:
        fail(str(e))


@task_app.command("stats")
def task_stats(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Counts for the current workspace."""
    try:
        with open_store() as store:
            stats = store.get_stats()

        if json_output:
            console.print_json(json.dumps(stats))
        else:
            console.print(
                f"{stats['total']} tasks: [green]{stats['completed']} done[/green], "
                f"{stats['pending']} pending, [red]{stats['highPriority']} high priority[/red], "
                f"[bold red]{stats['urgent']} urgent[/bold red]"
            )
    except FocusFlowError as e:
        fail(str(e))
