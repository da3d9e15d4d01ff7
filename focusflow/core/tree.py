"""
FILE: focusflow/core/tree.py
PURPOSE: Task hierarchy engine - flattening, drag projection and structural moves
EXPORTS:
  - FlattenedTask (dataclass)
  - DropProjection (dataclass)
  - child_tasks(tasks, parent_id, zone_id) -> List[Task]
  - get_ancestor_ids(tasks, task_id) -> List[str]
  - get_descendant_ids(tasks, task_id) -> List[str]
  - would_create_cycle(tasks, task_id, new_parent_id) -> bool
  - flatten(tasks, zone_id, focused_task_id) -> List[FlattenedTask]
  - resolve_position(flattened, active_id, over_id, offset_px, indent_width) -> DropProjection | None
  - move_task_node(tasks, active_id, new_parent_id, anchor_id, zone_id) -> List[Task] | None
DEPENDENCIES:
  - dataclasses (stdlib)
  - focusflow.core.models (Task)
  - focusflow.core.constants (INDENT_WIDTH)
NOTES:
  - Every function is pure: task lists are never mutated, changed tasks are
    replaced with new objects
  - The flattened sequence is regenerated for every render and never persisted
  - Drops resolve to an anchor id (sibling above the insertion point) instead
    of an index so a re-sorted list doesn't invalidate the result
  - Structural violations return None; the caller leaves the tree untouched
"""

import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Set

from .constants import INDENT_WIDTH
from .models import Task
from ..logs import get_logger

log = get_logger("tree")


@dataclass(frozen=True)
class FlattenedTask:
    """One visible row: a task and its distance from the effective roots."""

    task: Task
    depth: int

    @property
    def id(self) -> str:
        return self.task.id


@dataclass(frozen=True)
class DropProjection:
    """Structural edit a drag gesture resolves to."""

    depth: int
    parent_id: Optional[str]
    anchor_id: Optional[str]
    min_depth: int = 0
    max_depth: int = 0


def _by_order(tasks: Iterable[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: t.order)


def child_tasks(tasks: List[Task], parent_id: Optional[str], zone_id: Optional[str] = None) -> List[Task]:
    """Direct children of parent_id (roots when None), sorted by order."""
    return _by_order(
        t for t in tasks
        if t.parent_id == parent_id and (zone_id is None or t.zone_id == zone_id)
    )


def get_ancestor_ids(tasks: List[Task], task_id: str) -> List[str]:
    """
    Ids on the path from task_id up to its root, nearest parent first.

    Stops at a missing parent or a repeated id, so corrupted data with a
    parent cycle still terminates.
    """
    by_id = {t.id: t for t in tasks}
    ancestors: List[str] = []
    seen = {task_id}
    current = by_id.get(task_id)

    while current is not None and current.parent_id is not None:
        parent_id = current.parent_id
        if parent_id in seen or parent_id not in by_id:
            break
        ancestors.append(parent_id)
        seen.add(parent_id)
        current = by_id[parent_id]

    return ancestors


def get_descendant_ids(tasks: List[Task], task_id: str) -> List[str]:
    """All ids below task_id, depth-first."""
    children: Dict[str, List[Task]] = {}
    for task in tasks:
        if task.parent_id is not None:
            children.setdefault(task.parent_id, []).append(task)

    result: List[str] = []
    seen = {task_id}
    stack = [task_id]
    while stack:
        current = stack.pop()
        for child in children.get(current, []):
            if child.id not in seen:
                seen.add(child.id)
                result.append(child.id)
                stack.append(child.id)
    return result


def would_create_cycle(tasks: List[Task], task_id: str, new_parent_id: Optional[str]) -> bool:
    """True when making new_parent_id the parent of task_id closes a loop."""
    if new_parent_id is None:
        return False
    if new_parent_id == task_id:
        return True
    return task_id in get_ancestor_ids(tasks, new_parent_id)


def flatten(
    tasks: List[Task],
    zone_id: Optional[str] = None,
    focused_task_id: Optional[str] = None,
) -> List[FlattenedTask]:
    """
    Convert the task set into a depth-annotated pre-order sequence.

    Args:
        tasks: All tasks of the workspace (any order)
        zone_id: Restrict to one zone (None = whole workspace)
        focused_task_id: Task the view is focused on; only its ancestors,
            itself and its subtree are shown

    Returns:
        Ordered list of FlattenedTask; siblings follow their order field

    Notes:
        - Roots are tasks whose parent is absent from the filtered set
        - A collapsed task is shown but its children are skipped, unless the
          task is an ancestor of the focused task
        - Ancestors keep their depth from the real root so the path back to
          it stays visible; their other children are left out
        - An unknown focused_task_id behaves like no focus
    """
    scoped = [t for t in tasks if zone_id is None or t.zone_id == zone_id]
    scoped_ids = {t.id for t in scoped}

    children: Dict[str, List[Task]] = {}
    roots: List[Task] = []
    for task in scoped:
        if task.parent_id is None or task.parent_id not in scoped_ids:
            roots.append(task)
        else:
            children.setdefault(task.parent_id, []).append(task)

    forced: Set[str] = set()
    path: Set[str] = set()
    if focused_task_id is not None and focused_task_id in scoped_ids:
        forced = set(get_ancestor_ids(scoped, focused_task_id))
        path = forced | {focused_task_id}

    flattened: List[FlattenedTask] = []
    visited: Set[str] = set()

    def visit(items: List[Task], depth: int, inside: bool) -> None:
        for task in _by_order(items):
            if task.id in visited:
                continue
            # Above the focused task only the ancestor path is shown
            if path and not inside and task.id not in path:
                continue
            visited.add(task.id)
            flattened.append(FlattenedTask(task=task, depth=depth))
            if task.id in forced or not task.is_collapsed:
                visit(children.get(task.id, []), depth + 1, inside or task.id == focused_task_id)

    visit(roots, 0, False)
    return flattened


def _round_half_up(value: float) -> int:
    # Pixel deltas of exactly half an indent snap to the next level
    return int(math.floor(value + 0.5))


def resolve_position(
    flattened: List[FlattenedTask],
    active_id: str,
    over_id: Optional[str],
    offset_px: float,
    indent_width: int = INDENT_WIDTH,
) -> Optional[DropProjection]:
    """
    Translate a drag gesture into depth, parent and anchor.

    Args:
        flattened: Sequence produced by flatten()
        active_id: Task being dragged
        over_id: Row the pointer is over; the task is inserted directly above
            it (over_id == active_id means "stay in place"). None drops below
            the last visible row
        offset_px: Horizontal pointer offset in pixels. The candidate depth is
            the over row's depth plus the offset in whole indents, not the
            dragged row's depth, so that dropping on a row with no offset
            lands at that row's level. With over_id None the last row is
            the base
        indent_width: Pixels per tree level

    Returns:
        DropProjection, or None if either id is missing from the sequence or
        the drop targets the dragged task's own subtree

    Notes:
        - Depth is clamped to [next row's depth, previous row's depth + 1];
          below the last row the bounds are [0, last row's depth + 1]
        - With no previous row the drop is at the top of the list: depth 0,
          no parent, no anchor
        - Extreme offsets are clamped, never rejected
    """
    if indent_width <= 0:
        raise ValueError("indent_width must be positive")

    ids = [item.id for item in flattened]
    if active_id not in ids or (over_id is not None and over_id not in ids):
        log.debug(f"Drop ignored: {active_id} or {over_id} not visible")
        return None

    # The visible subtree of the dragged row travels with it
    start = ids.index(active_id)
    active_depth = flattened[start].depth
    subtree: Set[str] = set()
    for item in flattened[start + 1:]:
        if item.depth <= active_depth:
            break
        subtree.add(item.id)
    if over_id in subtree:
        log.debug(f"Drop ignored: {over_id} is inside the dragged subtree of {active_id}")
        return None

    items = [item for item in flattened if item.id not in subtree]
    item_ids = [item.id for item in items]
    active_index = item_ids.index(active_id)
    rest = items[:active_index] + items[active_index + 1:]

    if over_id is None:
        drop_index = len(rest)
    else:
        over_index = item_ids.index(over_id)
        # Insertion slot sits directly above the over row; dragging downward
        # shifts it by one because the active row no longer precedes it
        drop_index = over_index - 1 if active_index < over_index else over_index

    previous = rest[drop_index - 1] if drop_index > 0 else None
    following = rest[drop_index] if drop_index < len(rest) else None

    if previous is None:
        return DropProjection(depth=0, parent_id=None, anchor_id=None, min_depth=0, max_depth=0)

    max_depth = previous.depth + 1
    min_depth = min(following.depth if following is not None else 0, max_depth)

    base_depth = previous.depth if over_id is None else items[over_index].depth
    projected = base_depth + _round_half_up(offset_px / indent_width)
    depth = max(min_depth, min(projected, max_depth))

    return DropProjection(
        depth=depth,
        parent_id=_resolve_parent(rest, drop_index, depth, previous),
        anchor_id=_resolve_anchor(rest, drop_index, depth),
        min_depth=min_depth,
        max_depth=max_depth,
    )


def _resolve_parent(
    rest: List[FlattenedTask],
    drop_index: int,
    depth: int,
    previous: FlattenedTask,
) -> Optional[str]:
    if depth == 0:
        return None
    if depth == previous.depth + 1:
        return previous.id
    for item in reversed(rest[:drop_index]):
        if item.depth == depth - 1:
            return item.id
    return None


def _resolve_anchor(rest: List[FlattenedTask], drop_index: int, depth: int) -> Optional[str]:
    # Nearest row above the slot at the same depth, without leaving the parent
    for item in reversed(rest[:drop_index]):
        if item.depth < depth:
            return None
        if item.depth == depth:
            return item.id
    return None


def move_task_node(
    tasks: List[Task],
    active_id: str,
    new_parent_id: Optional[str],
    anchor_id: Optional[str],
    zone_id: Optional[str] = None,
) -> Optional[List[Task]]:
    """
    Reparent/reorder a task and renumber the affected sibling groups.

    Args:
        tasks: All tasks of the workspace
        active_id: Task to move (its subtree follows it)
        new_parent_id: New parent (None = root)
        anchor_id: Sibling to insert after (None = first position)
        zone_id: Target zone for root moves; ignored in favor of the parent's
            zone when new_parent_id is set (must match if both are given)

    Returns:
        New task list, or None when the move is rejected (unknown ids, a
        parent in another zone, or a move that would create a cycle)

    Notes:
        - Insert after anchor, then order = 0..n-1 for the target siblings
        - The former sibling group is renumbered densely as well
        - Descendants follow a zone change
        - An anchor that isn't a target sibling means "insert first"
    """
    by_id = {t.id: t for t in tasks}
    active = by_id.get(active_id)
    if active is None:
        return None

    if new_parent_id is not None:
        parent = by_id.get(new_parent_id)
        if parent is None:
            return None
        if would_create_cycle(tasks, active_id, new_parent_id):
            log.debug(f"Move rejected: {new_parent_id} is inside the subtree of {active_id}")
            return None
        if zone_id is not None and parent.zone_id != zone_id:
            log.debug(f"Move rejected: parent {new_parent_id} is not in zone {zone_id}")
            return None
        zone_id = parent.zone_id
    elif zone_id is None:
        zone_id = active.zone_id

    old_zone_id = active.zone_id
    old_parent_id = active.parent_id
    moved = replace(active, zone_id=zone_id, parent_id=new_parent_id)

    siblings = child_tasks(
        [t for t in tasks if t.id != active_id], new_parent_id, zone_id
    )
    insert_index = 0
    if anchor_id is not None:
        for index, sibling in enumerate(siblings):
            if sibling.id == anchor_id:
                insert_index = index + 1
                break
    siblings.insert(insert_index, moved)

    updates: Dict[str, Task] = {}
    for index, sibling in enumerate(siblings):
        updates[sibling.id] = replace(sibling, order=index)

    if (old_zone_id, old_parent_id) != (zone_id, new_parent_id):
        former = child_tasks(
            [t for t in tasks if t.id != active_id], old_parent_id, old_zone_id
        )
        for index, sibling in enumerate(former):
            updates[sibling.id] = replace(sibling, order=index)

    if zone_id != old_zone_id:
        for descendant_id in get_descendant_ids(tasks, active_id):
            current = updates.get(descendant_id, by_id[descendant_id])
            updates[descendant_id] = replace(current, zone_id=zone_id)

    return [updates.get(t.id, t) for t in tasks]
