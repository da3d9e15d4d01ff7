"""
FILE: focusflow/core/models.py
PURPOSE: Domain models for zones, tasks, sessions, workspaces and templates
EXPORTS:
  - Zone, Task, Session (dataclasses)
  - Workspace, HistorySnapshot (dataclasses)
  - ZoneBlueprint, Template (dataclasses)
  - AppState (dataclass) - the whole in-memory state
  - now_ms() -> int
  - generate_id(prefix) -> str
  - merge_settings(persisted) -> dict
DEPENDENCIES:
  - dataclasses (stdlib)
  - json (stdlib)
  - focusflow.core.constants
NOTES:
  - All models have from_dict()/to_dict() for the snapshot document (camelCase keys)
  - Row-backed models have from_row() for SQLite row conversion (0/1 -> bool)
  - Timestamps are epoch milliseconds
  - parent_id is a plain identifier, never an object reference
"""

import copy
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_DEADLINE_TYPE,
    DEFAULT_PRIORITY,
    DEFAULT_SETTINGS,
    DEFAULT_URGENCY,
    DEFAULT_WORKSPACE_NAME,
    DEFAULT_ZONE_COLOR,
    DEFAULT_ZONE_NAME,
    VIEW_ZONES,
)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id(prefix: str) -> str:
    """Generate a fresh identifier such as ``task-1718000000000-3f9a1c2de``."""
    return f"{prefix}-{now_ms()}-{uuid.uuid4().hex[:9]}"


def _opt_int(value) -> Optional[int]:
    return None if value is None else int(value)


@dataclass
class Zone:
    """A named partition of the task list."""

    id: str
    name: str
    color: str = DEFAULT_ZONE_COLOR
    order: int = 0
    created_at: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Zone":
        return cls(
            id=data["id"],
            name=data.get("name", DEFAULT_ZONE_NAME),
            color=data.get("color", DEFAULT_ZONE_COLOR),
            order=int(data.get("order", 0)),
            created_at=int(data.get("createdAt", 0)),
        )

    @classmethod
    def from_row(cls, row) -> "Zone":
        """Convert SQLite row to Zone object."""
        return cls(
            id=row["id"],
            name=row["name"],
            color=row["color"],
            order=row["sort_order"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "order": self.order,
            "createdAt": self.created_at,
        }


@dataclass
class Task:
    """A task node. Children point at their parent through parent_id."""

    id: str
    zone_id: str
    title: str
    parent_id: Optional[str] = None
    description: str = ""
    completed: bool = False
    priority: str = DEFAULT_PRIORITY
    urgency: str = DEFAULT_URGENCY
    deadline: Optional[int] = None
    deadline_type: str = DEFAULT_DEADLINE_TYPE
    order: int = 0
    created_at: int = 0
    completed_at: Optional[int] = None
    expanded: bool = False
    is_collapsed: bool = False
    total_work_time: int = 0  # seconds, own time plus all descendants
    own_time: int = 0  # seconds spent on this task alone
    estimated_time: Optional[int] = None  # minutes
    prevent_auto_complete: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from a snapshot dict; fields added after v3 are optional."""
        return cls(
            id=data["id"],
            zone_id=data["zoneId"],
            title=data.get("title", ""),
            parent_id=data.get("parentId") or None,
            description=data.get("description") or "",
            completed=bool(data.get("completed", False)),
            priority=data.get("priority") or DEFAULT_PRIORITY,
            urgency=data.get("urgency") or DEFAULT_URGENCY,
            deadline=_opt_int(data.get("deadline")),
            deadline_type=data.get("deadlineType") or DEFAULT_DEADLINE_TYPE,
            order=int(data.get("order", 0)),
            created_at=int(data.get("createdAt", 0)),
            completed_at=_opt_int(data.get("completedAt")),
            expanded=bool(data.get("expanded", False)),
            is_collapsed=bool(data.get("isCollapsed", False)),
            total_work_time=int(data.get("totalWorkTime") or 0),
            own_time=int(data.get("ownTime") or 0),
            estimated_time=_opt_int(data.get("estimatedTime")),
            prevent_auto_complete=bool(data.get("preventAutoComplete", False)),
        )

    @classmethod
    def from_row(cls, row) -> "Task":
        """Convert SQLite row to Task object."""
        return cls(
            id=row["id"],
            zone_id=row["zone_id"],
            title=row["title"],
            parent_id=row["parent_id"],
            description=row["description"] or "",
            completed=bool(row["completed"]),
            priority=row["priority"],
            urgency=row["urgency"],
            deadline=row["deadline"],
            deadline_type=row["deadline_type"],
            order=row["sort_order"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
            expanded=bool(row["expanded"]),
            is_collapsed=bool(row["is_collapsed"]),
            total_work_time=row["total_work_time"],
            own_time=row["own_time"],
            estimated_time=row["estimated_time"],
            prevent_auto_complete=bool(row["prevent_auto_complete"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "zoneId": self.zone_id,
            "parentId": self.parent_id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority,
            "urgency": self.urgency,
            "deadline": self.deadline,
            "deadlineType": self.deadline_type,
            "order": self.order,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "expanded": self.expanded,
            "isCollapsed": self.is_collapsed,
            "totalWorkTime": self.total_work_time,
            "ownTime": self.own_time,
            "estimatedTime": self.estimated_time,
            "preventAutoComplete": self.prevent_auto_complete,
        }


@dataclass
class Session:
    """A pomodoro record. The referenced task may no longer exist."""

    id: str
    task_id: str
    start_time: int
    end_time: Optional[int] = None
    completed: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=data["id"],
            task_id=data.get("taskId", ""),
            start_time=int(data.get("startTime", 0)),
            end_time=_opt_int(data.get("endTime")),
            completed=bool(data.get("completed", False)),
        )

    @classmethod
    def from_row(cls, row) -> "Session":
        """Convert SQLite row to Session object."""
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            completed=bool(row["completed"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "completed": self.completed,
        }


def _items(data: Dict[str, Any], key: str, model) -> list:
    return [model.from_dict(item) for item in (data.get(key) or [])]


@dataclass
class Workspace:
    """The live workspace: zones, tasks and sessions being worked on."""

    id: str
    name: str = DEFAULT_WORKSPACE_NAME
    zones: List[Zone] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    sessions: List[Session] = field(default_factory=list)
    created_at: int = 0
    last_modified: int = 0
    source_history_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workspace":
        return cls(
            id=data["id"],
            name=data.get("name") or DEFAULT_WORKSPACE_NAME,
            zones=_items(data, "zones", Zone),
            tasks=_items(data, "tasks", Task),
            sessions=_items(data, "sessions", Session),
            created_at=int(data.get("createdAt", 0)),
            last_modified=int(data.get("lastModified", 0)),
            source_history_id=data.get("sourceHistoryId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "zones": [z.to_dict() for z in self.zones],
            "tasks": [t.to_dict() for t in self.tasks],
            "sessions": [s.to_dict() for s in self.sessions],
            "createdAt": self.created_at,
            "lastModified": self.last_modified,
        }
        if self.source_history_id:
            data["sourceHistoryId"] = self.source_history_id
        return data


@dataclass
class HistorySnapshot:
    """An archived, restorable copy of a past workspace."""

    id: str
    name: str
    summary: str = ""
    zones: List[Zone] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    sessions: List[Session] = field(default_factory=list)
    created_at: int = 0
    last_modified: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistorySnapshot":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            summary=data.get("summary") or "",
            zones=_items(data, "zones", Zone),
            tasks=_items(data, "tasks", Task),
            sessions=_items(data, "sessions", Session),
            created_at=int(data.get("createdAt", 0)),
            last_modified=int(data.get("lastModified", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "summary": self.summary,
            "zones": [z.to_dict() for z in self.zones],
            "tasks": [t.to_dict() for t in self.tasks],
            "sessions": [s.to_dict() for s in self.sessions],
            "createdAt": self.created_at,
            "lastModified": self.last_modified,
        }

    def to_json(self) -> str:
        """Serialize snapshot to JSON string (the export format)."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


@dataclass
class ZoneBlueprint:
    """Zone shape stored in a template (no id, no timestamp)."""

    name: str
    color: str = DEFAULT_ZONE_COLOR
    order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZoneBlueprint":
        return cls(
            name=data["name"],
            color=data.get("color", DEFAULT_ZONE_COLOR),
            order=int(data.get("order", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "color": self.color, "order": self.order}


@dataclass
class Template:
    """A reusable zone-set blueprint. Templates carry no tasks."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    zones: List[ZoneBlueprint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            icon=data.get("icon") or "",
            zones=_items(data, "zones", ZoneBlueprint),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "zones": [z.to_dict() for z in self.zones],
        }


def merge_settings(persisted: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge persisted settings onto DEFAULT_SETTINGS.

    Every persisted key wins, including keys the defaults don't know about.
    Nested dicts (collapsePosition, globalViewSort) merge one level deep so a
    document that predates a nested field still gets its default.
    """
    merged = copy.deepcopy(DEFAULT_SETTINGS)
    if not isinstance(persisted, dict):
        return merged

    for key, value in persisted.items():
        if value is None:
            continue
        default = merged.get(key)
        if isinstance(default, dict) and isinstance(value, dict):
            merged[key] = {**default, **value}
        else:
            merged[key] = copy.deepcopy(value)
    return merged


_DOCUMENT_KEYS = (
    "currentView",
    "activeZoneId",
    "focusedTaskId",
    "activeHistoryId",
    "currentWorkspace",
    "historyWorkspaces",
    "customTemplates",
    "settings",
)


@dataclass
class AppState:
    """Everything the store holds in memory and the snapshot store persists."""

    current_workspace: Workspace
    current_view: str = VIEW_ZONES
    active_zone_id: Optional[str] = None
    focused_task_id: Optional[str] = None
    active_history_id: Optional[str] = None
    history_workspaces: List[HistorySnapshot] = field(default_factory=list)
    custom_templates: List[Template] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_SETTINGS))
    # Top-level document keys this version doesn't understand, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Snapshot document (§ snapshot document shape), JSON-serializable."""
        document = copy.deepcopy(self.extra)
        document.update({
            "currentView": self.current_view,
            "activeZoneId": self.active_zone_id,
            "focusedTaskId": self.focused_task_id,
            "activeHistoryId": self.active_history_id,
            "currentWorkspace": self.current_workspace.to_dict(),
            "historyWorkspaces": [h.to_dict() for h in self.history_workspaces],
            "customTemplates": [t.to_dict() for t in self.custom_templates],
            "settings": copy.deepcopy(self.settings),
        })
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any], defaults: "AppState") -> "AppState":
        """
        Merge a stored document field-by-field onto defaults.

        Missing fields keep the default value. Raises KeyError/TypeError/ValueError
        when a present field is structurally broken; callers treat that as a
        malformed document.
        """
        if not isinstance(document, dict):
            raise TypeError(f"Snapshot document must be an object, got {type(document).__name__}")

        state = copy.deepcopy(defaults)

        if "currentView" in document and document["currentView"]:
            state.current_view = document["currentView"]
        if "activeZoneId" in document:
            state.active_zone_id = document["activeZoneId"]
        if "focusedTaskId" in document:
            state.focused_task_id = document["focusedTaskId"]
        if "activeHistoryId" in document:
            state.active_history_id = document["activeHistoryId"]
        if isinstance(document.get("currentWorkspace"), dict):
            state.current_workspace = Workspace.from_dict(document["currentWorkspace"])
            if not state.current_workspace.zones:
                # A workspace always has a zone; borrow the default one
                state.current_workspace.zones = copy.deepcopy(defaults.current_workspace.zones)
                zone_ids = [z.id for z in state.current_workspace.zones]
                if state.active_zone_id not in zone_ids:
                    state.active_zone_id = zone_ids[0] if zone_ids else None
        if isinstance(document.get("historyWorkspaces"), list):
            state.history_workspaces = [
                HistorySnapshot.from_dict(h) for h in document["historyWorkspaces"]
            ]
        if isinstance(document.get("customTemplates"), list):
            state.custom_templates = [Template.from_dict(t) for t in document["customTemplates"]]
        state.settings = merge_settings(document.get("settings"))
        state.extra = {
            key: copy.deepcopy(value)
            for key, value in document.items()
            if key not in _DOCUMENT_KEYS
        }
        return state
