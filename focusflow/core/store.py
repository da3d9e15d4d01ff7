"""
FILE: focusflow/core/store.py
PURPOSE: In-memory application store - the mutation API the UI layers call
EXPORTS:
  - AppStore (class)
  - Listener (type alias)
DEPENDENCIES:
  - dataclasses (stdlib)
  - focusflow.core.models (AppState, Zone, Task, Session, ...)
  - focusflow.core.tasks (pure zone/task operations)
  - focusflow.core.tree (flatten, resolve_position, move_task_node)
  - focusflow.core.workspace (lifecycle transitions)
  - focusflow.core.exceptions (InvalidInputError)
NOTES:
  - One AppState value is held; each mutation computes a new value from the
    current one and swaps it in, then notifies listeners
  - Mutations run to completion before returning; nothing awaits I/O
  - Missing ids return False/None and leave the state untouched
  - Empty titles/names raise InvalidInputError (same rule as task creation)
  - Persistence subscribes as a listener (see focusflow.core.sync)
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import tasks as task_ops
from . import workspace as lifecycle
from .constants import (
    DEFAULT_DEADLINE_TYPE,
    DEFAULT_PRIORITY,
    DEFAULT_URGENCY,
    INDENT_WIDTH,
    MAX_UNDO,
    VALID_DEADLINE_TYPES,
    VALID_PRIORITIES,
    VALID_URGENCIES,
    VALID_VIEWS,
)
from .exceptions import InvalidInputError
from .models import (
    AppState,
    HistorySnapshot,
    Session,
    Task,
    Template,
    Zone,
    generate_id,
    merge_settings,
    now_ms,
)
from .tree import DropProjection, FlattenedTask, flatten, move_task_node, resolve_position
from ..logs import get_logger

log = get_logger("store")

Listener = Callable[[AppState], None]

# (zones, tasks) of the current workspace before a destructive edit
UndoEntry = Tuple[List[Zone], List[Task]]


def _require_text(value: str, what: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(f"{what} cannot be empty")
    return value


_CHOICES = {
    "priority": VALID_PRIORITIES,
    "urgency": VALID_URGENCIES,
    "deadline_type": VALID_DEADLINE_TYPES,
}


def _check_choices(**values: Optional[str]) -> None:
    """Raise InvalidInputError for a value outside its allowed set (None is skipped)."""
    for name, value in values.items():
        allowed = _CHOICES[name]
        if value is not None and value not in allowed:
            label = name.replace("_", " ")
            raise InvalidInputError(f"Invalid {label} '{value}'. Must be one of: {', '.join(allowed)}")


class AppStore:
    """
    Holds the live AppState and exposes every mutation on it.

    Listeners receive the new state after each committed change, in
    subscription order. A failing listener is logged and skipped.
    """

    def __init__(self, state: Optional[AppState] = None):
        self._state = state if state is not None else lifecycle.default_state()
        self._listeners: List[Listener] = []
        self._past: List[UndoEntry] = []
        self._future: List[UndoEntry] = []

    # --- State & Listeners ---

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def workspace(self):
        return self._state.current_workspace

    @property
    def zones(self) -> List[Zone]:
        return sorted(self._state.current_workspace.zones, key=lambda z: z.order)

    @property
    def tasks(self) -> List[Task]:
        return self._state.current_workspace.tasks

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: AppState, touch: bool = False) -> None:
        if touch:
            state = replace(
                state,
                current_workspace=replace(state.current_workspace, last_modified=now_ms()),
            )
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception(f"State listener {listener!r} failed")

    def _commit_workspace(self, undoable: bool = False, **changes) -> None:
        if undoable:
            self._remember()
        workspace = replace(self._state.current_workspace, **changes)
        self._commit(replace(self._state, current_workspace=workspace), touch=True)

    def _switch(self, state: AppState) -> None:
        # Undo history only covers the workspace it was recorded in
        self._past.clear()
        self._future.clear()
        self._commit(state)

    # --- Undo / Redo ---

    def _remember(self) -> None:
        workspace = self._state.current_workspace
        self._past = (self._past + [(list(workspace.zones), list(workspace.tasks))])[-MAX_UNDO:]
        self._future = []

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self) -> bool:
        if not self._past:
            return False
        zones, tasks = self._past.pop()
        workspace = self._state.current_workspace
        self._future.insert(0, (list(workspace.zones), list(workspace.tasks)))
        self._commit_workspace(zones=zones, tasks=tasks)
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        zones, tasks = self._future.pop(0)
        workspace = self._state.current_workspace
        self._past.append((list(workspace.zones), list(workspace.tasks)))
        self._commit_workspace(zones=zones, tasks=tasks)
        return True

    # --- Bulk Updates & UI Selection ---

    def update_zones(self, zones: List[Zone]) -> None:
        """Replace the zone list; an empty list becomes one default zone."""
        zones = list(zones) or [task_ops.default_zone()]
        self._commit_workspace(undoable=True, zones=zones)

    def update_tasks(self, tasks: List[Task]) -> None:
        self._commit_workspace(undoable=True, tasks=list(tasks))

    def update_settings(self, changes: Dict[str, Any]) -> None:
        """Merge changes into the settings; nested objects merge one level deep."""
        settings = dict(self._state.settings)
        for key, value in changes.items():
            current = settings.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                value = {**current, **value}
            settings[key] = value
        settings = merge_settings(settings)
        self._commit(replace(self._state, settings=settings))

    def set_current_view(self, view: str) -> None:
        if view not in VALID_VIEWS:
            raise InvalidInputError(f"Invalid view '{view}'. Must be one of: {', '.join(VALID_VIEWS)}")
        self._commit(replace(self._state, current_view=view))

    def set_active_zone_id(self, zone_id: Optional[str]) -> None:
        self._commit(replace(self._state, active_zone_id=zone_id, focused_task_id=None))

    def set_active_history_id(self, history_id: Optional[str]) -> None:
        self._commit(replace(self._state, active_history_id=history_id))

    def set_focused_task_id(self, task_id: Optional[str]) -> bool:
        if task_id is not None and self.get_task(task_id) is None:
            return False
        self._commit(replace(self._state, focused_task_id=task_id))
        return True

    # --- Queries ---

    def get_zone(self, zone_id: str) -> Optional[Zone]:
        return next((z for z in self.workspace.zones if z.id == zone_id), None)

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.workspace.tasks if t.id == task_id), None)

    def get_history(self, history_id: str) -> Optional[HistorySnapshot]:
        return next((h for h in self._state.history_workspaces if h.id == history_id), None)

    def flattened(self, zone_id: Optional[str] = None) -> List[FlattenedTask]:
        """Visible rows of one zone (or all zones) honoring collapse and focus."""
        return flatten(self.workspace.tasks, zone_id, self._state.focused_task_id)

    def sorted_history(self) -> List[HistorySnapshot]:
        return lifecycle.sorted_history(self._state)

    def templates(self) -> List[Template]:
        return lifecycle.all_templates(self._state)

    def get_stats(self) -> Dict[str, int]:
        return task_ops.task_stats(self.workspace.tasks)

    def estimated_time(self, task_id: str) -> int:
        return task_ops.effective_estimated_time(self.workspace.tasks, task_id)

    # --- Zone Operations ---

    def add_zone(self, name: str, color: Optional[str] = None) -> Zone:
        name = _require_text(name, "Zone name")
        zones, zone = task_ops.add_zone(self.workspace.zones, name, color)
        self._commit_workspace(undoable=True, zones=zones)
        return zone

    def update_zone(self, zone_id: str, **changes) -> bool:
        """Change a zone's name or color."""
        if self.get_zone(zone_id) is None:
            return False
        unknown = set(changes) - {"name", "color"}
        if unknown:
            raise InvalidInputError(f"Zone fields not editable: {', '.join(sorted(unknown))}")
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "Zone name")
        zones = [replace(z, **changes) if z.id == zone_id else z for z in self.workspace.zones]
        self._commit_workspace(undoable=True, zones=zones)
        return True

    def delete_zone(self, zone_id: str) -> bool:
        """Delete a zone with its tasks; the last zone is replaced by a default one."""
        result = task_ops.delete_zone(self.workspace.zones, self.workspace.tasks, zone_id)
        if result is None:
            return False

        zones, tasks = result
        self._remember()
        workspace = replace(self.workspace, zones=zones, tasks=tasks)
        active = self._state.active_zone_id
        if active == zone_id or not any(z.id == active for z in zones):
            active = zones[0].id
        focused = self._state.focused_task_id
        if focused is not None and not any(t.id == focused for t in tasks):
            focused = None
        self._commit(
            replace(self._state, current_workspace=workspace, active_zone_id=active, focused_task_id=focused),
            touch=True,
        )
        return True

    def reorder_zones(self, zone_ids: List[str]) -> bool:
        zones = task_ops.reorder_zones(self.workspace.zones, zone_ids)
        if zones is None:
            return False
        self._commit_workspace(undoable=True, zones=zones)
        return True

    # --- Task Operations ---

    def add_task(
        self,
        zone_id: str,
        title: str,
        description: str = "",
        priority: str = DEFAULT_PRIORITY,
        urgency: str = DEFAULT_URGENCY,
        deadline: Optional[int] = None,
        deadline_type: str = DEFAULT_DEADLINE_TYPE,
        parent_id: Optional[str] = None,
        estimated_time: Optional[int] = None,
    ) -> Optional[Task]:
        """
        Create a task as the last child of parent_id (or last root of the zone).

        Returns:
            The new Task, or None if the zone or parent doesn't exist or the
            parent lives in another zone

        Raises:
            InvalidInputError: Empty title or invalid priority/urgency/deadline type
        """
        title = _require_text(title, "Task title")
        _check_choices(priority=priority, urgency=urgency, deadline_type=deadline_type)

        if self.get_zone(zone_id) is None:
            return None
        if parent_id is not None:
            parent = self.get_task(parent_id)
            if parent is None or parent.zone_id != zone_id:
                return None

        tasks, task = task_ops.add_task(
            self.workspace.tasks,
            zone_id,
            title,
            description=(description or "").strip(),
            priority=priority,
            urgency=urgency,
            deadline=deadline,
            deadline_type=deadline_type,
            parent_id=parent_id,
            estimated_time=estimated_time,
        )
        self._commit_workspace(undoable=True, tasks=tasks)
        return task

    def update_task(self, task_id: str, **changes) -> bool:
        """Edit non-structural fields of a task (title, description, priority, ...)."""
        if "title" in changes:
            changes["title"] = _require_text(changes["title"], "Task title")
        _check_choices(
            priority=changes.get("priority"),
            urgency=changes.get("urgency"),
            deadline_type=changes.get("deadline_type"),
        )
        tasks = task_ops.update_task(self.workspace.tasks, task_id, changes)
        if tasks is None:
            return False
        self._commit_workspace(undoable=True, tasks=tasks)
        return True

    def _apply_tasks(self, tasks: Optional[List[Task]], undoable: bool = True) -> bool:
        if tasks is None:
            return False
        self._commit_workspace(undoable=undoable, tasks=tasks)
        return True

    def toggle_task(self, task_id: str) -> bool:
        return self._apply_tasks(task_ops.toggle_task(self.workspace.tasks, task_id))

    def delete_task(self, task_id: str) -> bool:
        tasks = task_ops.delete_task(self.workspace.tasks, task_id)
        if tasks is None:
            return False
        self._remember()
        workspace = replace(self.workspace, tasks=tasks)
        focused = self._state.focused_task_id
        if focused is not None and not any(t.id == focused for t in tasks):
            focused = None
        self._commit(replace(self._state, current_workspace=workspace, focused_task_id=focused), touch=True)
        return True

    def clear_completed(self, zone_id: Optional[str] = None) -> int:
        tasks, removed = task_ops.clear_completed(self.workspace.tasks, zone_id)
        if removed:
            self._commit_workspace(undoable=True, tasks=tasks)
        return removed

    def toggle_collapsed(self, task_id: str) -> bool:
        return self._apply_tasks(task_ops.toggle_collapsed(self.workspace.tasks, task_id), undoable=False)

    def toggle_expanded(self, task_id: str) -> bool:
        return self._apply_tasks(task_ops.toggle_expanded(self.workspace.tasks, task_id), undoable=False)

    def expand_task(self, task_id: str) -> bool:
        return self._apply_tasks(task_ops.expand_task(self.workspace.tasks, task_id), undoable=False)

    def add_work_time(self, task_id: str, seconds: int) -> bool:
        return self._apply_tasks(
            task_ops.add_work_time(self.workspace.tasks, task_id, seconds), undoable=False
        )

    def move_task(
        self,
        active_id: str,
        new_parent_id: Optional[str],
        anchor_id: Optional[str],
        zone_id: Optional[str] = None,
    ) -> bool:
        """Reparent/reorder a task; False when the edit is rejected."""
        if zone_id is not None and self.get_zone(zone_id) is None:
            return False
        tasks = move_task_node(self.workspace.tasks, active_id, new_parent_id, anchor_id, zone_id)
        return self._apply_tasks(tasks)

    def drop_task(
        self,
        active_id: str,
        over_id: Optional[str],
        offset_px: float = 0,
        zone_id: Optional[str] = None,
        indent_width: int = INDENT_WIDTH,
    ) -> Optional[DropProjection]:
        """
        Resolve a drag gesture on the flattened view of zone_id and apply it.

        over_id None drops below the last visible row. Returns the projection
        that was applied, or None for a no-op drop.
        """
        rows = self.flattened(zone_id)
        projection = resolve_position(rows, active_id, over_id, offset_px, indent_width)
        if projection is None:
            return None

        target_zone = zone_id
        if projection.parent_id is None and target_zone is None:
            # Whole-workspace view: a root drop joins the zone of its anchor,
            # or of the row it lands above
            neighbor = self.get_task(projection.anchor_id or over_id)
            target_zone = neighbor.zone_id if neighbor else None

        if not self.move_task(active_id, projection.parent_id, projection.anchor_id, target_zone):
            return None
        return projection

    # --- Sessions ---

    def start_session(self, task_id: str) -> Optional[Session]:
        if self.get_task(task_id) is None:
            return None
        session = Session(id=generate_id("session"), task_id=task_id, start_time=now_ms())
        self._commit_workspace(sessions=self.workspace.sessions + [session])
        return session

    def finish_session(self, session_id: str, completed: bool = True) -> bool:
        sessions = self.workspace.sessions
        if not any(s.id == session_id for s in sessions):
            return False
        sessions = [
            replace(s, end_time=now_ms(), completed=completed) if s.id == session_id else s
            for s in sessions
        ]
        self._commit_workspace(sessions=sessions)
        return True

    # --- Workspace Lifecycle ---

    def archive_current_workspace(self, name: Optional[str] = None, summary: Optional[str] = None) -> str:
        """Save the current workspace to history without resetting it."""
        state, history_id = lifecycle.archive_workspace(self._state, name, summary)
        self._commit(state)
        return history_id

    def restore_from_history(self, history_id: str) -> bool:
        state = lifecycle.restore_from_history(self._state, history_id)
        if state is None:
            return False
        self._switch(state)
        return True

    def create_new_workspace(self, name: Optional[str] = None, template_id: Optional[str] = None) -> str:
        """Archive (or discard, when empty) the current workspace and start a new one."""
        state = lifecycle.create_workspace(self._state, name, template_id)
        self._switch(state)
        return state.current_workspace.id

    def delete_history_workspace(self, history_id: str) -> bool:
        return self._apply_state(lifecycle.delete_history(self._state, history_id))

    def rename_history_workspace(self, history_id: str, name: str) -> bool:
        name = _require_text(name, "Workspace name")
        return self._apply_state(lifecycle.rename_history(self._state, history_id, name))

    def update_history_summary(self, history_id: str, summary: str) -> bool:
        return self._apply_state(lifecycle.update_history_summary(self._state, history_id, summary))

    def overwrite_history_workspace(self, history_id: str) -> bool:
        return self._apply_state(lifecycle.overwrite_history(self._state, history_id))

    def auto_save_snapshot(self) -> Optional[str]:
        result = lifecycle.auto_save_snapshot(self._state)
        if result is None:
            return None
        state, history_id = result
        self._commit(state)
        return history_id

    def export_history(self, history_id: str) -> Optional[str]:
        return lifecycle.export_history(self._state, history_id)

    def export_all_history(self) -> str:
        return lifecycle.export_all_history(self._state)

    def import_history(self, json_string: str) -> bool:
        return self._apply_state(lifecycle.import_history(self._state, json_string))

    def import_all_history(self, json_string: str) -> int:
        state, count = lifecycle.import_all_history(self._state, json_string)
        if count:
            self._commit(state)
        return count

    def _apply_state(self, state: Optional[AppState]) -> bool:
        if state is None:
            return False
        self._commit(state)
        return True

    # --- Templates ---

    def apply_template(self, template_id: str) -> bool:
        state = lifecycle.apply_template(self._state, template_id)
        if state is None:
            return False
        self._remember()
        self._commit(state)
        return True

    def save_custom_template(self, name: str) -> Template:
        name = _require_text(name, "Template name")
        state, template = lifecycle.save_custom_template(self._state, name)
        self._commit(state)
        return template

    def rename_custom_template(self, template_id: str, name: str) -> bool:
        name = _require_text(name, "Template name")
        return self._apply_state(lifecycle.rename_custom_template(self._state, template_id, name))

    def delete_custom_template(self, template_id: str) -> bool:
        return self._apply_state(lifecycle.delete_custom_template(self._state, template_id))
