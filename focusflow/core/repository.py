"""
FILE: focusflow/core/repository.py
PURPOSE: Relational store - normalized SQLite tables for workspaces, history,
         templates and settings
EXPORTS:
  - Database (class)
    - connection (lazy property), transaction(), close()
    - get_version() / set_version(version)
    - save_workspace(workspace) / load_current_workspace()
    - save_history_workspace(history) / list_history_workspaces()
    - delete_history_workspace(history_id) -> bool
    - save_settings(settings, ui) / load_settings()
    - save_custom_templates(templates) / list_custom_templates()
    - legacy_get(key) / legacy_set(key, value) / legacy_remove(key)
    - count_rows(table) -> int
  - SCHEMA_PATH
DEPENDENCIES:
  - sqlite3 (stdlib)
  - threading (stdlib)
  - focusflow.core.models
  - focusflow.core.exceptions (PersistenceError)
NOTES:
  - One Database object owns one connection, opened on first use and closed
    by close() (or leaving the with-block)
  - Saving a workspace is a full replace: every zone/task/session row of that
    workspace id is deleted, then the in-memory set is inserted
  - Zone and task ids are scoped by workspace_id (composite primary keys)
  - Deleting a workspace row cascades to its zones, tasks and sessions
  - Returns domain objects, never raw rows
  - sqlite3 errors surface as PersistenceError
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .exceptions import PersistenceError
from .models import (
    HistorySnapshot,
    Session,
    Task,
    Template,
    Workspace,
    Zone,
    ZoneBlueprint,
    merge_settings,
    now_ms,
)
from ..logs import get_logger

log = get_logger("repository")

# Schema file ships inside the package
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

TABLES = (
    "workspaces",
    "history_workspaces",
    "zones",
    "tasks",
    "pomodoro_sessions",
    "custom_templates",
    "template_zones",
    "app_settings",
    "store_snapshots",
)

# settings key -> app_settings column, for the flat scalar settings
_SETTINGS_COLUMNS = {
    "workDuration": "work_duration",
    "breakDuration": "break_duration",
    "longBreakDuration": "long_break_duration",
    "autoStartBreak": "auto_start_break",
    "soundEnabled": "sound_enabled",
    "collapsed": "collapsed",
    "globalViewLeafMode": "global_view_leaf_mode",
    "autoSaveEnabled": "auto_save_enabled",
    "autoSaveInterval": "auto_save_interval",
}
_BOOLEAN_SETTINGS = {
    "autoStartBreak",
    "soundEnabled",
    "collapsed",
    "globalViewLeafMode",
    "autoSaveEnabled",
}
_UI_COLUMNS = {
    "currentView": "current_view",
    "activeZoneId": "active_zone_id",
    "activeHistoryId": "active_history_id",
}

_ZONE_INSERT = """
    INSERT INTO zones (workspace_id, id, name, color, sort_order, created_at)
    VALUES (?, ?, ?, ?, ?, ?)
"""

_TASK_INSERT = """
    INSERT INTO tasks (
        workspace_id, id, zone_id, parent_id, title, description, completed,
        priority, urgency, deadline, deadline_type, sort_order, created_at,
        completed_at, expanded, is_collapsed, total_work_time, own_time,
        estimated_time, prevent_auto_complete
    )
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_SESSION_INSERT = """
    INSERT INTO pomodoro_sessions (workspace_id, id, task_id, start_time, end_time, completed)
    VALUES (?, ?, ?, ?, ?, ?)
"""


def _flag(value: Any) -> int:
    return 1 if value else 0


class Database:
    """
    Explicitly owned handle on the relational store.

    The connection opens lazily on first use, is shared by the worker thread
    that persists state (check_same_thread=False) and guarded by a lock.

    Usage:
        with Database(get_db_path()) as db:
            db.save_workspace(workspace)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        """
        Open the SQLite connection on first access.

        Creates the parent directory, enables row_factory for named column
        access and foreign keys (required for ON DELETE CASCADE), and
        initializes the schema.
        """
        with self._lock:
            if self._conn is None:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(str(self.path), check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    conn.execute("PRAGMA foreign_keys = ON")
                    self._init_schema(conn)
                except (sqlite3.Error, OSError) as e:
                    raise PersistenceError("sqlite", f"cannot open {self.path}: {e}") from e
                self._conn = conn
                log.debug(f"Opened database {self.path}")
            return self._conn

    @staticmethod
    def _init_schema(conn: sqlite3.Connection) -> None:
        """Execute schema.sql; safe to repeat (CREATE ... IF NOT EXISTS)."""
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        conn.executescript(schema_sql)
        conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                log.debug(f"Closed database {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block in one transaction; commit on success, roll back on error.

        Raises:
            PersistenceError: Any sqlite3 error inside the block
        """
        with self._lock:
            conn = self.connection
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError("sqlite", str(e)) from e
            except BaseException:
                conn.rollback()
                raise

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            try:
                return self.connection.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise PersistenceError("sqlite", str(e)) from e

    # --- Versioning ---

    def get_version(self) -> int:
        rows = self._query("SELECT version FROM app_settings WHERE id = 1")
        return int(rows[0]["version"]) if rows else 0

    def set_version(self, version: int) -> None:
        with self.transaction() as conn:
            conn.execute("UPDATE app_settings SET version = ? WHERE id = 1", (version,))
        log.info(f"Database schema version set to {version}")

    # --- Workspaces ---

    def _replace_contents(
        self,
        conn: sqlite3.Connection,
        workspace_id: str,
        zones: List[Zone],
        tasks: List[Task],
        sessions: List[Session],
    ) -> None:
        """Delete every zone/task/session row of a workspace, then insert the given set."""
        conn.execute("DELETE FROM pomodoro_sessions WHERE workspace_id = ?", (workspace_id,))
        conn.execute("DELETE FROM tasks WHERE workspace_id = ?", (workspace_id,))
        conn.execute("DELETE FROM zones WHERE workspace_id = ?", (workspace_id,))

        conn.executemany(
            _ZONE_INSERT,
            [(workspace_id, z.id, z.name, z.color, z.order, z.created_at) for z in zones],
        )

        task_ids = {t.id for t in tasks}
        task_rows = []
        for t in tasks:
            parent_id = t.parent_id
            if parent_id is not None and parent_id not in task_ids:
                log.warning(f"Task {t.id} references missing parent {parent_id}; saved as root")
                parent_id = None
            task_rows.append((
                workspace_id, t.id, t.zone_id, parent_id, t.title, t.description,
                _flag(t.completed), t.priority, t.urgency, t.deadline, t.deadline_type,
                t.order, t.created_at, t.completed_at, _flag(t.expanded),
                _flag(t.is_collapsed), t.total_work_time, t.own_time,
                t.estimated_time, _flag(t.prevent_auto_complete),
            ))
        conn.executemany(_TASK_INSERT, task_rows)

        conn.executemany(
            _SESSION_INSERT,
            [
                (workspace_id, s.id, s.task_id, s.start_time, s.end_time, _flag(s.completed))
                for s in sessions
            ],
        )

    def save_workspace(self, workspace: Workspace) -> None:
        """
        Persist the live workspace (full replace).

        Any other workspace still marked current is removed together with its
        rows: exactly one workspace is live.
        """
        with self.transaction() as conn:
            conn.execute(
                "DELETE FROM workspaces WHERE is_current = 1 AND id != ?", (workspace.id,)
            )
            conn.execute(
                """
                INSERT INTO workspaces (id, name, created_at, last_modified, is_current, source_history_id)
                VALUES (?, ?, ?, ?, 1, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    created_at = excluded.created_at,
                    last_modified = excluded.last_modified,
                    is_current = 1,
                    source_history_id = excluded.source_history_id
                """,
                (
                    workspace.id,
                    workspace.name,
                    workspace.created_at,
                    workspace.last_modified,
                    workspace.source_history_id,
                ),
            )
            self._replace_contents(
                conn, workspace.id, workspace.zones, workspace.tasks, workspace.sessions
            )
        log.debug(
            f"Saved workspace {workspace.id} ({len(workspace.zones)} zones, {len(workspace.tasks)} tasks)"
        )

    def save_history_workspace(self, history: HistorySnapshot) -> None:
        """Persist one history snapshot (full replace of its rows)."""
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO workspaces (id, name, created_at, last_modified, is_current)
                VALUES (?, ?, ?, ?, 0)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    created_at = excluded.created_at,
                    last_modified = excluded.last_modified,
                    is_current = 0
                """,
                (history.id, history.name, history.created_at, history.last_modified),
            )
            conn.execute(
                """
                INSERT INTO history_workspaces (id, summary) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET summary = excluded.summary
                """,
                (history.id, history.summary),
            )
            self._replace_contents(
                conn, history.id, history.zones, history.tasks, history.sessions
            )

    def _load_contents(self, workspace_id: str) -> Dict[str, list]:
        zones = self._query(
            "SELECT * FROM zones WHERE workspace_id = ? ORDER BY sort_order", (workspace_id,)
        )
        tasks = self._query(
            "SELECT * FROM tasks WHERE workspace_id = ? ORDER BY zone_id, sort_order", (workspace_id,)
        )
        sessions = self._query(
            "SELECT * FROM pomodoro_sessions WHERE workspace_id = ? ORDER BY start_time",
            (workspace_id,),
        )
        return {
            "zones": [Zone.from_row(row) for row in zones],
            "tasks": [Task.from_row(row) for row in tasks],
            "sessions": [Session.from_row(row) for row in sessions],
        }

    def load_current_workspace(self) -> Optional[Workspace]:
        """
        Fetch the live workspace.

        Returns:
            Workspace if one is stored, None otherwise
        """
        rows = self._query(
            "SELECT * FROM workspaces WHERE is_current = 1 ORDER BY last_modified DESC LIMIT 1"
        )
        if not rows:
            return None
        row = rows[0]
        return Workspace(
            id=row["id"],
            name=row["name"],
            created_at=row["created_at"],
            last_modified=row["last_modified"],
            source_history_id=row["source_history_id"],
            **self._load_contents(row["id"]),
        )

    def list_history_workspaces(self) -> List[HistorySnapshot]:
        """All history snapshots, newest-modified first."""
        rows = self._query(
            """
            SELECT w.*, h.summary FROM workspaces w
            JOIN history_workspaces h ON h.id = w.id
            ORDER BY w.last_modified DESC
            """
        )
        return [
            HistorySnapshot(
                id=row["id"],
                name=row["name"],
                summary=row["summary"],
                created_at=row["created_at"],
                last_modified=row["last_modified"],
                **self._load_contents(row["id"]),
            )
            for row in rows
        ]

    def delete_history_workspace(self, history_id: str) -> bool:
        """
        Delete a history snapshot; its zones, tasks and sessions cascade.

        Returns:
            True if a snapshot was deleted, False if none had that id
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM workspaces WHERE id = ? AND is_current = 0", (history_id,)
            )
        return cursor.rowcount > 0

    # --- Settings ---

    def save_settings(self, settings: Dict[str, Any], ui: Optional[Dict[str, Any]] = None) -> None:
        """
        Write settings (and the UI selection: currentView, activeZoneId,
        activeHistoryId) into the single app_settings row.
        """
        values: Dict[str, Any] = {}
        for key, column in _SETTINGS_COLUMNS.items():
            value = settings.get(key)
            values[column] = _flag(value) if key in _BOOLEAN_SETTINGS and value is not None else value

        position = settings.get("collapsePosition") or {}
        values["collapse_position_x"] = position.get("x")
        values["collapse_position_y"] = position.get("y")

        sort = settings.get("globalViewSort") or {}
        values["sort_mode"] = sort.get("mode")
        values["priority_weight"] = sort.get("priorityWeight")
        values["urgency_weight"] = sort.get("urgencyWeight")

        for key, column in _UI_COLUMNS.items():
            values[column] = (ui or {}).get(key)

        assignments = ", ".join(f"{column} = ?" for column in values)
        with self.transaction() as conn:
            conn.execute(
                f"UPDATE app_settings SET {assignments} WHERE id = 1", tuple(values.values())
            )

    def load_settings(self) -> Optional[Dict[str, Any]]:
        """
        Read settings back, merged onto defaults.

        Returns:
            {"settings": {...}, "ui": {...}} or None if settings were never saved
        """
        rows = self._query("SELECT * FROM app_settings WHERE id = 1")
        if not rows or rows[0]["work_duration"] is None:
            return None
        row = rows[0]

        persisted: Dict[str, Any] = {}
        for key, column in _SETTINGS_COLUMNS.items():
            value = row[column]
            if value is not None:
                persisted[key] = bool(value) if key in _BOOLEAN_SETTINGS else value
        if row["collapse_position_x"] is not None:
            persisted["collapsePosition"] = {
                "x": row["collapse_position_x"],
                "y": row["collapse_position_y"],
            }
        if row["sort_mode"] is not None:
            persisted["globalViewSort"] = {
                "mode": row["sort_mode"],
                "priorityWeight": row["priority_weight"],
                "urgencyWeight": row["urgency_weight"],
            }

        ui = {key: row[column] for key, column in _UI_COLUMNS.items()}
        return {"settings": merge_settings(persisted), "ui": ui}

    # --- Templates ---

    def save_custom_templates(self, templates: List[Template]) -> None:
        """Replace all custom templates with the given list."""
        now = now_ms()
        with self.transaction() as conn:
            conn.execute("DELETE FROM custom_templates")
            for template in templates:
                conn.execute(
                    """
                    INSERT INTO custom_templates (id, name, description, icon, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (template.id, template.name, template.description, template.icon, now),
                )
                conn.executemany(
                    "INSERT INTO template_zones (template_id, sort_order, name, color) VALUES (?, ?, ?, ?)",
                    [(template.id, i, z.name, z.color) for i, z in enumerate(template.zones)],
                )

    def list_custom_templates(self) -> List[Template]:
        rows = self._query("SELECT * FROM custom_templates ORDER BY created_at, rowid")
        templates = []
        for row in rows:
            zone_rows = self._query(
                "SELECT * FROM template_zones WHERE template_id = ? ORDER BY sort_order",
                (row["id"],),
            )
            templates.append(Template(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                icon=row["icon"],
                zones=[
                    ZoneBlueprint(name=z["name"], color=z["color"], order=z["sort_order"])
                    for z in zone_rows
                ],
            ))
        return templates

    # --- Legacy key-value shim ---

    def legacy_get(self, key: str) -> Optional[str]:
        rows = self._query("SELECT value FROM store_snapshots WHERE key = ?", (key,))
        return rows[0]["value"] if rows else None

    def legacy_set(self, key: str, value: str) -> None:
        """Upsert one key-value entry."""
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO store_snapshots (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, now_ms()),
            )

    def legacy_remove(self, key: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM store_snapshots WHERE key = ?", (key,))

    # --- Introspection ---

    def count_rows(self, table: str, workspace_id: Optional[str] = None) -> int:
        """Row count of one table, optionally scoped to a workspace."""
        if table not in TABLES:
            raise ValueError(f"Unknown table '{table}'")
        if workspace_id is None:
            rows = self._query(f"SELECT COUNT(*) AS n FROM {table}")
        else:
            rows = self._query(f"SELECT COUNT(*) AS n FROM {table} WHERE workspace_id = ?", (workspace_id,))
        return int(rows[0]["n"])
