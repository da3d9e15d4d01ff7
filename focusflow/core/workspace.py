"""
FILE: focusflow/core/workspace.py
PURPOSE: Workspace lifecycle - the live workspace slot and the history collection
EXPORTS:
  - new_workspace(name, zones) -> Workspace
  - default_state() -> AppState
  - archive_workspace(state, name, summary) -> (AppState, history_id)
  - create_workspace(state, name, template_id) -> AppState
  - restore_from_history(state, history_id) -> AppState | None
  - delete_history(state, history_id) -> AppState | None
  - rename_history(state, history_id, name) -> AppState | None
  - update_history_summary(state, history_id, summary) -> AppState | None
  - overwrite_history(state, history_id) -> AppState | None
  - auto_save_snapshot(state) -> (AppState, history_id) | None
  - sorted_history(state) -> List[HistorySnapshot]
  - export_history(state, history_id) / export_all_history(state) -> str
  - import_history(state, json_string) / import_all_history(state, json_string)
  - all_templates(state) / find_template(state, template_id)
  - apply_template(state, template_id) -> AppState | None
  - save_custom_template(state, name) -> (AppState, Template)
  - rename_custom_template / delete_custom_template -> AppState | None
DEPENDENCIES:
  - copy, json, dataclasses (stdlib)
  - focusflow.core.models, focusflow.core.tasks, focusflow.core.constants
NOTES:
  - Transitions are pure: they take a state value and return a new one
  - Content crossing between the live slot and history is deep-copied, never aliased
  - Restore is non-destructive: the snapshot stays in history
  - A missing id returns None so the caller can no-op
"""

import copy
import json
from dataclasses import replace
from typing import List, Optional, Tuple

from .constants import (
    AUTO_SAVE_ID,
    AUTO_SAVE_NAME,
    DEFAULT_WORKSPACE_NAME,
    MAX_HISTORY,
    NEW_WORKSPACE_NAME,
    PREDEFINED_TEMPLATES,
    VIEW_ZONES,
)
from .models import (
    AppState,
    HistorySnapshot,
    Template,
    Workspace,
    Zone,
    ZoneBlueprint,
    generate_id,
    now_ms,
)
from .tasks import default_zone
from ..logs import get_logger

log = get_logger("workspace")


def new_workspace(name: Optional[str] = None, zones: Optional[List[Zone]] = None) -> Workspace:
    """Fresh workspace; without zones it gets one synthesized default zone."""
    now = now_ms()
    return Workspace(
        id=generate_id("workspace"),
        name=name or DEFAULT_WORKSPACE_NAME,
        zones=zones if zones is not None else [default_zone()],
        tasks=[],
        sessions=[],
        created_at=now,
        last_modified=now,
    )


def default_state() -> AppState:
    """The authoritative defaults stored documents are merged onto."""
    workspace = new_workspace()
    return AppState(current_workspace=workspace, active_zone_id=workspace.zones[0].id)


def summarize(workspace) -> str:
    return f"{len(workspace.zones)} zones, {len(workspace.tasks)} tasks"


def _find_history(state: AppState, history_id: str) -> Optional[HistorySnapshot]:
    return next((h for h in state.history_workspaces if h.id == history_id), None)


def _replace_history(state: AppState, history_id: str, **changes) -> Optional[AppState]:
    if _find_history(state, history_id) is None:
        return None
    return replace(
        state,
        history_workspaces=[
            replace(h, **changes) if h.id == history_id else h
            for h in state.history_workspaces
        ],
    )


# --- Archive / Create / Restore ---


def archive_workspace(
    state: AppState,
    name: Optional[str] = None,
    summary: Optional[str] = None,
) -> Tuple[AppState, str]:
    """
    Snapshot the current workspace into a new history entry.

    The snapshot is prepended to history; the current workspace is left as is.
    """
    current = state.current_workspace
    history = HistorySnapshot(
        id=generate_id("history"),
        name=(name or "").strip() or current.name,
        summary=(summary or "").strip() or summarize(current),
        zones=copy.deepcopy(current.zones),
        tasks=copy.deepcopy(current.tasks),
        sessions=copy.deepcopy(current.sessions),
        created_at=current.created_at,
        last_modified=now_ms(),
    )
    log.info(f"Archived workspace {current.id} as {history.id} ({history.summary})")
    return replace(state, history_workspaces=[history] + state.history_workspaces), history.id


def create_workspace(
    state: AppState,
    name: Optional[str] = None,
    template_id: Optional[str] = None,
) -> AppState:
    """
    Replace the current workspace with a new one.

    Notes:
        - A current workspace holding at least one task is archived first;
          an empty one is discarded silently
        - template_id supplies re-identified zones; an unknown id falls back
          to a single default zone
    """
    if state.current_workspace.tasks:
        state, _ = archive_workspace(state)
    else:
        log.debug(f"Discarding empty workspace {state.current_workspace.id}")

    zones = None
    if template_id is not None:
        template = find_template(state, template_id)
        if template is not None:
            zones = zones_from_template(template)
        else:
            log.warning(f"Unknown template {template_id}, using a default zone")

    workspace = new_workspace((name or "").strip() or NEW_WORKSPACE_NAME, zones)
    return replace(
        state,
        current_workspace=workspace,
        active_zone_id=workspace.zones[0].id if workspace.zones else None,
        active_history_id=None,
        focused_task_id=None,
        current_view=VIEW_ZONES,
    )


def restore_from_history(state: AppState, history_id: str) -> Optional[AppState]:
    """
    Make a deep copy of a history snapshot the current workspace.

    The new current workspace gets a fresh id and timestamps; zones, tasks
    and sessions keep their ids. The snapshot itself stays in history.
    """
    history = _find_history(state, history_id)
    if history is None:
        return None

    now = now_ms()
    workspace = Workspace(
        id=generate_id("workspace"),
        name=history.name,
        zones=copy.deepcopy(history.zones),
        tasks=copy.deepcopy(history.tasks),
        sessions=copy.deepcopy(history.sessions),
        created_at=now,
        last_modified=now,
        source_history_id=history_id,
    )
    first_zone = min(workspace.zones, key=lambda z: z.order, default=None)
    return replace(
        state,
        current_workspace=workspace,
        active_zone_id=first_zone.id if first_zone else None,
        active_history_id=history_id,
        focused_task_id=None,
        current_view=VIEW_ZONES,
    )


def overwrite_history(state: AppState, history_id: str) -> Optional[AppState]:
    """Replace a snapshot's content with the current workspace and link the two."""
    history = _find_history(state, history_id)
    if history is None:
        return None

    current = state.current_workspace
    state = _replace_history(
        state,
        history_id,
        zones=copy.deepcopy(current.zones),
        tasks=copy.deepcopy(current.tasks),
        sessions=copy.deepcopy(current.sessions),
        summary=summarize(current),
        last_modified=now_ms(),
    )
    return replace(
        state,
        current_workspace=replace(current, source_history_id=history_id),
        active_history_id=history_id,
    )


def auto_save_snapshot(state: AppState) -> Optional[Tuple[AppState, str]]:
    """
    Write the current workspace into the fixed auto-save slot.

    The slot moves to the front of history; history is capped at MAX_HISTORY.
    Returns None when the workspace has neither zones nor tasks.
    """
    current = state.current_workspace
    if not current.zones and not current.tasks:
        return None

    snapshot = HistorySnapshot(
        id=AUTO_SAVE_ID,
        name=AUTO_SAVE_NAME,
        summary=summarize(current),
        zones=copy.deepcopy(current.zones),
        tasks=copy.deepcopy(current.tasks),
        sessions=copy.deepcopy(current.sessions),
        created_at=current.created_at,
        last_modified=now_ms(),
    )
    others = [h for h in state.history_workspaces if h.id != AUTO_SAVE_ID]
    return replace(state, history_workspaces=([snapshot] + others)[:MAX_HISTORY]), AUTO_SAVE_ID


# --- History Mutations ---


def delete_history(state: AppState, history_id: str) -> Optional[AppState]:
    if _find_history(state, history_id) is None:
        return None
    return replace(
        state,
        history_workspaces=[h for h in state.history_workspaces if h.id != history_id],
        active_history_id=None if state.active_history_id == history_id else state.active_history_id,
    )


def rename_history(state: AppState, history_id: str, name: str) -> Optional[AppState]:
    return _replace_history(state, history_id, name=name.strip(), last_modified=now_ms())


def update_history_summary(state: AppState, history_id: str, summary: str) -> Optional[AppState]:
    return _replace_history(state, history_id, summary=summary.strip(), last_modified=now_ms())


def sorted_history(state: AppState) -> List[HistorySnapshot]:
    """History entries, newest-modified first."""
    return sorted(state.history_workspaces, key=lambda h: h.last_modified, reverse=True)


# --- Export / Import ---


def export_history(state: AppState, history_id: str) -> Optional[str]:
    history = _find_history(state, history_id)
    return history.to_json() if history else None


def export_all_history(state: AppState) -> str:
    return json.dumps(
        [h.to_dict() for h in state.history_workspaces], indent=2, ensure_ascii=False
    )


def _imported_snapshot(data) -> Optional[HistorySnapshot]:
    if not isinstance(data, dict) or not data.get("id") or not data.get("name"):
        return None
    try:
        history = HistorySnapshot.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        log.warning(f"Skipping malformed history entry {data.get('id')}: {e}")
        return None

    now = now_ms()
    return replace(
        history,
        id=generate_id("history"),
        created_at=history.created_at or now,
        last_modified=now,
    )


def import_history(state: AppState, json_string: str) -> Optional[AppState]:
    """Import one exported snapshot under a fresh id. None if the JSON is unusable."""
    try:
        data = json.loads(json_string)
    except ValueError as e:
        log.warning(f"History import rejected: {e}")
        return None

    history = _imported_snapshot(data)
    if history is None:
        return None
    return replace(state, history_workspaces=[history] + state.history_workspaces)


def import_all_history(state: AppState, json_string: str) -> Tuple[AppState, int]:
    """Import a list (or a single object) of snapshots; returns the count imported."""
    try:
        data = json.loads(json_string)
    except ValueError as e:
        log.warning(f"History import rejected: {e}")
        return state, 0

    entries = data if isinstance(data, list) else [data]
    imported = [h for h in (_imported_snapshot(entry) for entry in entries) if h is not None]
    if not imported:
        return state, 0
    return replace(state, history_workspaces=imported + state.history_workspaces), len(imported)


# --- Templates ---


def all_templates(state: AppState) -> List[Template]:
    predefined = [Template.from_dict(t) for t in PREDEFINED_TEMPLATES]
    return predefined + list(state.custom_templates)


def find_template(state: AppState, template_id: str) -> Optional[Template]:
    return next((t for t in all_templates(state) if t.id == template_id), None)


def zones_from_template(template: Template) -> List[Zone]:
    """Instantiate a template's blueprints as freshly identified zones."""
    now = now_ms()
    blueprints = sorted(template.zones, key=lambda z: z.order)
    return [
        Zone(id=generate_id("zone"), name=z.name, color=z.color, order=i, created_at=now)
        for i, z in enumerate(blueprints)
    ]


def apply_template(state: AppState, template_id: str) -> Optional[AppState]:
    """Swap the current zones for a template's zones. Tasks are cleared."""
    template = find_template(state, template_id)
    if template is None:
        return None

    zones = zones_from_template(template)
    workspace = replace(
        state.current_workspace, zones=zones, tasks=[], last_modified=now_ms()
    )
    return replace(
        state,
        current_workspace=workspace,
        active_zone_id=zones[0].id if zones else None,
        focused_task_id=None,
    )


def save_custom_template(state: AppState, name: str) -> Tuple[AppState, Template]:
    """Store the current zone layout as a reusable template."""
    zones = sorted(state.current_workspace.zones, key=lambda z: z.order)
    template = Template(
        id=generate_id("template"),
        name=name.strip(),
        description=f"Custom template - {len(zones)} zones",
        icon="User",
        zones=[ZoneBlueprint(name=z.name, color=z.color, order=i) for i, z in enumerate(zones)],
    )
    return replace(state, custom_templates=state.custom_templates + [template]), template


def rename_custom_template(state: AppState, template_id: str, name: str) -> Optional[AppState]:
    if not any(t.id == template_id for t in state.custom_templates):
        return None
    return replace(
        state,
        custom_templates=[
            replace(t, name=name.strip()) if t.id == template_id else t
            for t in state.custom_templates
        ],
    )


def delete_custom_template(state: AppState, template_id: str) -> Optional[AppState]:
    if not any(t.id == template_id for t in state.custom_templates):
        return None
    return replace(
        state,
        custom_templates=[t for t in state.custom_templates if t.id != template_id],
    )
