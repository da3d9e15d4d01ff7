"""
FILE: focusflow/core/tasks.py
PURPOSE: Pure zone and task operations on the current workspace's lists
EXPORTS:
  - default_zone() -> Zone
  - add_zone(zones, name, color) -> (List[Zone], Zone)
  - delete_zone(zones, tasks, zone_id) -> (List[Zone], List[Task]) | None
  - reorder_zones(zones, zone_ids) -> List[Zone] | None
  - add_task(tasks, zone_id, title, ...) -> (List[Task], Task)
  - update_task(tasks, task_id, changes) -> List[Task] | None
  - toggle_task(tasks, task_id) -> List[Task] | None
  - delete_task(tasks, task_id) -> List[Task] | None
  - clear_completed(tasks, zone_id) -> (List[Task], int)
  - toggle_collapsed(tasks, task_id) / toggle_expanded(...) / expand_task(...)
  - add_work_time(tasks, task_id, seconds) -> List[Task] | None
  - effective_estimated_time(tasks, task_id) -> int
  - task_stats(tasks) -> dict
  - renumber_siblings(tasks, zone_id, parent_id) -> List[Task]
DEPENDENCIES:
  - dataclasses (stdlib)
  - focusflow.core.models, focusflow.core.tree, focusflow.core.constants
NOTES:
  - Lists are never mutated; changed items are replaced with new objects
  - None means "id not found, nothing changed"
  - Input validation (titles, zone membership) lives in the store
"""

from dataclasses import fields, replace
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    DEFAULT_DEADLINE_TYPE,
    DEFAULT_PRIORITY,
    DEFAULT_URGENCY,
    DEFAULT_ZONE_COLOR,
    DEFAULT_ZONE_NAME,
    ZONE_COLORS,
)
from .exceptions import InvalidInputError
from .models import Task, Zone, generate_id, now_ms
from .tree import child_tasks, get_ancestor_ids, get_descendant_ids

# Fields that change tree structure; those go through tree.move_task_node
STRUCTURAL_FIELDS = ("id", "zone_id", "parent_id", "order")
TASK_FIELDS = tuple(f.name for f in fields(Task))


# --- Zone Operations ---


def default_zone() -> Zone:
    """The zone synthesized for new workspaces and after the last zone is deleted."""
    return Zone(
        id=generate_id("zone"),
        name=DEFAULT_ZONE_NAME,
        color=DEFAULT_ZONE_COLOR,
        order=0,
        created_at=now_ms(),
    )


def next_zone_color(zones: List[Zone]) -> str:
    return ZONE_COLORS[len(zones) % len(ZONE_COLORS)]


def add_zone(zones: List[Zone], name: str, color: Optional[str] = None) -> Tuple[List[Zone], Zone]:
    """Append a zone after the current highest order."""
    max_order = max((z.order for z in zones), default=-1)
    zone = Zone(
        id=generate_id("zone"),
        name=name,
        color=color or next_zone_color(zones),
        order=max_order + 1,
        created_at=now_ms(),
    )
    return zones + [zone], zone


def delete_zone(
    zones: List[Zone], tasks: List[Task], zone_id: str
) -> Optional[Tuple[List[Zone], List[Task]]]:
    """
    Remove a zone and every task in it.

    Deleting the last zone leaves exactly one synthesized default zone.
    """
    if not any(z.id == zone_id for z in zones):
        return None

    remaining = [z for z in zones if z.id != zone_id]
    if not remaining:
        remaining = [default_zone()]
    remaining = [replace(z, order=i) for i, z in enumerate(sorted(remaining, key=lambda z: z.order))]
    return remaining, [t for t in tasks if t.zone_id != zone_id]


def reorder_zones(zones: List[Zone], zone_ids: List[str]) -> Optional[List[Zone]]:
    """Renumber zones densely following zone_ids; must name every zone exactly once."""
    by_id = {z.id: z for z in zones}
    if sorted(zone_ids) != sorted(by_id):
        return None
    return [replace(by_id[zone_id], order=i) for i, zone_id in enumerate(zone_ids)]


# --- Task Operations ---


def renumber_siblings(tasks: List[Task], zone_id: str, parent_id: Optional[str]) -> List[Task]:
    """Give one sibling group dense zero-based orders, keeping their sequence."""
    siblings = child_tasks(tasks, parent_id, zone_id)
    updates = {t.id: i for i, t in enumerate(siblings) if t.order != i}
    if not updates:
        return tasks
    return [replace(t, order=updates[t.id]) if t.id in updates else t for t in tasks]


def add_task(
    tasks: List[Task],
    zone_id: str,
    title: str,
    description: str = "",
    priority: str = DEFAULT_PRIORITY,
    urgency: str = DEFAULT_URGENCY,
    deadline: Optional[int] = None,
    deadline_type: str = DEFAULT_DEADLINE_TYPE,
    parent_id: Optional[str] = None,
    estimated_time: Optional[int] = None,
) -> Tuple[List[Task], Task]:
    """Append a task as the last child of parent_id (or last root of the zone)."""
    siblings = child_tasks(tasks, parent_id, zone_id)
    max_order = max((t.order for t in siblings), default=-1)
    task = Task(
        id=generate_id("task"),
        zone_id=zone_id,
        parent_id=parent_id,
        title=title,
        description=description,
        priority=priority,
        urgency=urgency,
        deadline=deadline,
        deadline_type=deadline_type,
        estimated_time=estimated_time,
        order=max_order + 1,
        created_at=now_ms(),
    )
    return tasks + [task], task


def update_task(tasks: List[Task], task_id: str, changes: Dict[str, Any]) -> Optional[List[Task]]:
    """
    Apply non-structural field changes to one task.

    Raises:
        InvalidInputError: Unknown field, or a structural field (use move_task)
    """
    for name in changes:
        if name not in TASK_FIELDS:
            raise InvalidInputError(f"Unknown task field '{name}'")
        if name in STRUCTURAL_FIELDS:
            raise InvalidInputError(f"Field '{name}' can only be changed by moving the task")

    if not any(t.id == task_id for t in tasks):
        return None
    return [replace(t, **changes) if t.id == task_id else t for t in tasks]


def toggle_task(tasks: List[Task], task_id: str) -> Optional[List[Task]]:
    """
    Flip completion of a task, cascading down and re-evaluating up.

    Notes:
        - Every descendant takes the new completion state
        - Each ancestor becomes complete when all its children are complete and
          incomplete otherwise, unless prevent_auto_complete is set on it
    """
    by_id = {t.id: t for t in tasks}
    target = by_id.get(task_id)
    if target is None:
        return None

    now = now_ms()
    completed = not target.completed

    def mark(task: Task, value: bool) -> Task:
        return replace(task, completed=value, completed_at=now if value else None)

    by_id[task_id] = mark(target, completed)
    for descendant_id in get_descendant_ids(tasks, task_id):
        by_id[descendant_id] = mark(by_id[descendant_id], completed)

    for ancestor_id in get_ancestor_ids(tasks, task_id):
        ancestor = by_id[ancestor_id]
        children = [t for t in by_id.values() if t.parent_id == ancestor_id]
        all_done = all(t.completed for t in children)
        if all_done != ancestor.completed and not ancestor.prevent_auto_complete:
            by_id[ancestor_id] = mark(ancestor, all_done)

    return [by_id[t.id] for t in tasks]


def delete_task(tasks: List[Task], task_id: str) -> Optional[List[Task]]:
    """Remove a task with its whole subtree and close the gap among its siblings."""
    target = next((t for t in tasks if t.id == task_id), None)
    if target is None:
        return None

    doomed = {task_id, *get_descendant_ids(tasks, task_id)}
    remaining = [t for t in tasks if t.id not in doomed]
    return renumber_siblings(remaining, target.zone_id, target.parent_id)


def clear_completed(tasks: List[Task], zone_id: Optional[str] = None) -> Tuple[List[Task], int]:
    """Remove completed tasks (and anything they own) in one zone or everywhere."""
    doomed = set()
    for task in tasks:
        if task.completed and (zone_id is None or task.zone_id == zone_id):
            doomed.add(task.id)
            doomed.update(get_descendant_ids(tasks, task.id))

    if not doomed:
        return tasks, 0

    remaining = [t for t in tasks if t.id not in doomed]
    groups = {(t.zone_id, t.parent_id) for t in remaining}
    for group_zone, group_parent in groups:
        remaining = renumber_siblings(remaining, group_zone, group_parent)
    return remaining, len(doomed)


def _replace_one(tasks: List[Task], task_id: str, **changes) -> Optional[List[Task]]:
    if not any(t.id == task_id for t in tasks):
        return None
    return [replace(t, **changes) if t.id == task_id else t for t in tasks]


def toggle_collapsed(tasks: List[Task], task_id: str) -> Optional[List[Task]]:
    """Show or hide a task's subtasks in the flattened view."""
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        return None
    return _replace_one(tasks, task_id, is_collapsed=not task.is_collapsed)


def toggle_expanded(tasks: List[Task], task_id: str) -> Optional[List[Task]]:
    """Show or hide a task's detail panel."""
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        return None
    return _replace_one(tasks, task_id, expanded=not task.expanded)


def expand_task(tasks: List[Task], task_id: str) -> Optional[List[Task]]:
    return _replace_one(tasks, task_id, expanded=True, is_collapsed=False)


# --- Time Tracking ---


def add_work_time(tasks: List[Task], task_id: str, seconds: int) -> Optional[List[Task]]:
    """
    Add seconds to a task's own time and roll totals up the ancestor chain.

    total_work_time = own_time + sum(children's total_work_time)
    """
    by_id = {t.id: t for t in tasks}
    task = by_id.get(task_id)
    if task is None:
        return None

    by_id[task_id] = replace(task, own_time=task.own_time + seconds)

    for current_id in [task_id, *get_ancestor_ids(tasks, task_id)]:
        current = by_id[current_id]
        children_total = sum(
            t.total_work_time for t in by_id.values() if t.parent_id == current_id
        )
        by_id[current_id] = replace(current, total_work_time=current.own_time + children_total)

    return [by_id[t.id] for t in tasks]


def effective_estimated_time(tasks: List[Task], task_id: str) -> int:
    """A task's own estimate (minutes), or the sum of its children's estimates."""
    by_id = {t.id: t for t in tasks}
    seen = set()

    def estimate(current_id: str) -> int:
        seen.add(current_id)
        current = by_id[current_id]
        if current.estimated_time:
            return current.estimated_time
        return sum(
            estimate(child.id)
            for child in child_tasks(tasks, current_id)
            if child.id not in seen
        )

    if task_id not in by_id:
        return 0
    return estimate(task_id)


def task_stats(tasks: List[Task]) -> Dict[str, int]:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "highPriority": sum(1 for t in tasks if t.priority == "high" and not t.completed),
        "urgent": sum(1 for t in tasks if t.urgency == "urgent" and not t.completed),
    }
