"""
FILE: focusflow/core/migration.py
PURPOSE: One-time schema migrations of the relational store, gated by
         app_settings.version
EXPORTS:
  - MIGRATIONS: list of (target_version, function)
  - run_migrations(db) -> int
  - read_legacy_document(db) -> dict | None
  - migrate_v0_to_v1(db) -> None
DEPENDENCIES:
  - json (stdlib)
  - focusflow.core.repository (Database)
  - focusflow.core.models (AppState)
  - focusflow.core.workspace (default_state)
NOTES:
  - A missing or older version means "run the pending steps, then bump"
  - v0 -> v1 imports the document the previous build kept in the key-value
    table (store_snapshots) into the normalized tables
  - A malformed legacy document is skipped with a warning; the version is
    still bumped so startup never retries it
  - A step that fails to write is logged and leaves the version untouched
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from .constants import LEGACY_STORAGE_KEYS, SCHEMA_VERSION
from .exceptions import MigrationError, PersistenceError
from .models import AppState
from .repository import Database
from .workspace import default_state
from ..logs import get_logger

log = get_logger("migration")


def read_legacy_document(db: Database) -> Optional[Dict[str, Any]]:
    """
    Fetch and decode the newest legacy key-value entry.

    The previous build stored its state wrapped as {"state": {...}, "version": n};
    the wrapper is removed. Very old documents kept zones/tasks at the top
    level; those are folded into a currentWorkspace.

    Returns:
        The decoded document, or None if no legacy entry exists

    Raises:
        ValueError: The entry isn't a JSON object
    """
    for key in LEGACY_STORAGE_KEYS:
        raw = db.legacy_get(key)
        if raw is None:
            continue

        document = json.loads(raw)
        if isinstance(document, dict) and isinstance(document.get("state"), dict):
            document = document["state"]
        if not isinstance(document, dict):
            raise ValueError(f"legacy entry '{key}' is not an object")

        if "currentWorkspace" not in document and isinstance(document.get("tasks"), list):
            document = dict(document)
            document["currentWorkspace"] = {
                "id": document.pop("workspaceId", None) or f"ws-legacy-{key}",
                "name": document.pop("workspaceName", None) or "",
                "zones": document.pop("zones", []),
                "tasks": document.pop("tasks", []),
                "sessions": document.pop("sessions", []),
            }
        log.info(f"Found legacy state under key '{key}'")
        return document
    return None


def _save_state(db: Database, state: AppState) -> None:
    db.save_workspace(state.current_workspace)
    for history in state.history_workspaces:
        db.save_history_workspace(history)
    db.save_settings(
        state.settings,
        {
            "currentView": state.current_view,
            "activeZoneId": state.active_zone_id,
            "activeHistoryId": state.active_history_id,
        },
    )
    db.save_custom_templates(state.custom_templates)


def migrate_v0_to_v1(db: Database) -> None:
    """
    Import the legacy key-value document into the normalized tables.

    With no legacy data a default workspace is written instead.
    """
    defaults = default_state()
    try:
        document = read_legacy_document(db)
        state = AppState.from_document(document, defaults) if document is not None else defaults
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        log.warning(f"Legacy state is malformed ({e!r}); starting from defaults")
        state = defaults

    try:
        _save_state(db, state)
    except PersistenceError as e:
        raise MigrationError(1, str(e)) from e

    log.info(
        f"Migrated workspace '{state.current_workspace.name}' and "
        f"{len(state.history_workspaces)} history workspaces"
    )


MIGRATIONS: List[Tuple[int, Callable[[Database], None]]] = [
    (1, migrate_v0_to_v1),
]


def run_migrations(db: Database) -> int:
    """
    Apply every migration newer than the stored version, in order.

    Returns:
        The version the database is at afterwards
    """
    version = db.get_version()
    for target, migrate in MIGRATIONS:
        if version >= target:
            continue
        log.info(f"Running migration v{version} -> v{target}")
        try:
            migrate(db)
        except MigrationError:
            log.exception(f"Migration to v{target} failed")
            return version
        db.set_version(target)
        version = target

    if version < SCHEMA_VERSION:
        log.warning(f"Database is at v{version}, expected v{SCHEMA_VERSION}")
    return version
