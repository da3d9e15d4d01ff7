"""
FILE: focusflow/formatting.py
PURPOSE: Shared rich rendering for the CLI
EXPORTS:
  - TaskFormatter: flattened task tree as a table, JSON and raw lines
  - ZoneFormatter: zones table
  - HistoryFormatter: history and templates tables
  - format_timestamp(ms) -> str
DEPENDENCIES:
  - rich (tables)
  - json (stdlib)
  - focusflow.core.models, focusflow.core.tree (FlattenedTask)
NOTES:
  - Tables show short ids (see utils.short_id); JSON keeps full ids
  - Indentation in the task table mirrors the flattened depth
"""

import json
from datetime import datetime
from typing import Dict, List, Optional

from rich.table import Table

from .core.models import HistorySnapshot, Task, Template, Zone
from .core.tree import FlattenedTask
from .utils import format_duration, short_id

PRIORITY_STYLES = {"high": "red", "medium": "yellow", "low": "dim"}
URGENCY_STYLES = {"urgent": "bold red", "high": "red", "medium": "yellow", "low": "dim"}


def format_timestamp(ms: Optional[int]) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


class TaskFormatter:
    """Centralized task display formatting."""

    @staticmethod
    def create_table(
        rows: List[FlattenedTask],
        tasks: List[Task],
        title: str = "Tasks",
        zones: Optional[Dict[str, Zone]] = None,
    ) -> Table:
        """
        Create Rich table for a flattened task sequence.

        Args:
            rows: Output of flatten(); order and depth are kept as is
            tasks: All tasks (to mark collapsed rows that hide children)
            title: Table title
            zones: Zone lookup; adds a Zone column when given

        Returns:
            Rich Table object ready for display
        """
        parents = {t.parent_id for t in tasks if t.parent_id}

        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Pri", width=6)
        table.add_column("Urg", width=6)
        table.add_column("Time", justify="right", style="blue")
        if zones is not None:
            table.add_column("Zone", style="magenta")

        for row in rows:
            task = row.task
            marker = "[green]✓[/green]" if task.completed else "·"
            fold = ""
            if task.id in parents:
                fold = "▸ " if task.is_collapsed else "▾ "
            title_text = f"{'  ' * row.depth}{fold}{marker} {task.title}"
            if task.completed:
                title_text = f"[dim]{title_text}[/dim]"

            pri_style = PRIORITY_STYLES.get(task.priority, "white")
            urg_style = URGENCY_STYLES.get(task.urgency, "white")
            cells = [
                short_id(task.id),
                title_text,
                f"[{pri_style}]{task.priority}[/{pri_style}]",
                f"[{urg_style}]{task.urgency}[/{urg_style}]",
                format_duration(task.total_work_time) if task.total_work_time else "",
            ]
            if zones is not None:
                zone = zones.get(task.zone_id)
                cells.append(zone.name if zone else "-")
            table.add_row(*cells)

        return table

    @staticmethod
    def to_json_array(rows: List[FlattenedTask]) -> str:
        """Flattened rows as JSON: each task dict plus its depth."""
        return json.dumps(
            [{**row.task.to_dict(), "depth": row.depth} for row in rows],
            indent=2,
            ensure_ascii=False,
        )

    @staticmethod
    def to_raw_lines(rows: List[FlattenedTask]) -> List[str]:
        lines = []
        for row in rows:
            status_marker = "x" if row.task.completed else " "
            lines.append(f"{'  ' * row.depth}{short_id(row.task.id)}: [{status_marker}] {row.task.title}")
        return lines


class ZoneFormatter:

    @staticmethod
    def create_table(zones: List[Zone], tasks: List[Task], active_zone_id: Optional[str]) -> Table:
        table = Table(title="Zones", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Color")
        table.add_column("Tasks", justify="right")
        table.add_column("Done", justify="right", style="green")

        for zone in sorted(zones, key=lambda z: z.order):
            zone_tasks = [t for t in tasks if t.zone_id == zone.id]
            name = f"[bold]{zone.name}[/bold] *" if zone.id == active_zone_id else zone.name
            table.add_row(
                short_id(zone.id),
                name,
                f"[{zone.color}]■[/{zone.color}] {zone.color}",
                str(len(zone_tasks)),
                str(sum(1 for t in zone_tasks if t.completed)),
            )
        return table


class HistoryFormatter:

    @staticmethod
    def create_table(history: List[HistorySnapshot], active_history_id: Optional[str] = None) -> Table:
        """History snapshots in the order given (callers pass newest-modified first)."""
        table = Table(title="History", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Summary", style="dim")
        table.add_column("Tasks", justify="right")
        table.add_column("Modified", style="blue")

        for snapshot in history:
            name = snapshot.name
            if snapshot.id == active_history_id:
                name = f"[bold]{name}[/bold] *"
            table.add_row(
                short_id(snapshot.id),
                name,
                snapshot.summary,
                str(len(snapshot.tasks)),
                format_timestamp(snapshot.last_modified),
            )
        return table

    @staticmethod
    def to_json_array(history: List[HistorySnapshot]) -> str:
        """Listing form: metadata only, no zones/tasks."""
        return json.dumps(
            [
                {
                    "id": h.id,
                    "name": h.name,
                    "summary": h.summary,
                    "zones": len(h.zones),
                    "tasks": len(h.tasks),
                    "createdAt": h.created_at,
                    "lastModified": h.last_modified,
                }
                for h in history
            ],
            indent=2,
            ensure_ascii=False,
        )

    @staticmethod
    def create_template_table(templates: List[Template], custom_ids: List[str]) -> Table:
        table = Table(title="Templates", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Zones")
        table.add_column("Kind", style="dim")

        for template in templates:
            zones = ", ".join(z.name for z in sorted(template.zones, key=lambda z: z.order))
            kind = "custom" if template.id in custom_ids else "built-in"
            table.add_row(short_id(template.id), template.name, zones or "-", kind)
        return table
