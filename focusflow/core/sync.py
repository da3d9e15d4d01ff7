"""
FILE: focusflow/core/sync.py
PURPOSE: PersistenceSync - mirror the in-memory state into the snapshot store
         and the relational store
EXPORTS:
  - PersistenceSync (class)
  - SnapshotSink, RelationalSink (classes)
DEPENDENCIES:
  - copy, sqlite3, threading (stdlib)
  - focusflow.core.repository (Database)
  - focusflow.core.snapshot (SnapshotStore)
  - focusflow.core.migration (run_migrations)
  - focusflow.config (default file locations)
NOTES:
  - Each backend is an independent sink with its own writer thread; one
    failing backend never blocks the other
  - Writes for one backend are serialized: a save finishes before the next
    begins. Pending states coalesce, only the newest is written
  - submit() never waits for disk I/O; flush() waits until both sinks idle
  - Write failures are logged; the in-memory state stays authoritative
"""

import copy
import sqlite3
import threading
from typing import Callable, Dict, List, Optional

from .exceptions import PersistenceError
from .migration import run_migrations
from .models import AppState, HistorySnapshot
from .repository import Database
from .snapshot import SnapshotStore
from .workspace import default_state
from ..config import get_db_path, get_snapshot_path
from ..logs import get_logger

log = get_logger("sync")

_WRITE_ERRORS = (PersistenceError, sqlite3.Error, OSError)


class _Sink:
    """Serialized, coalescing writer for one backend."""

    name = "sink"

    def __init__(self, background: bool = True):
        self._cond = threading.Condition()
        self._pending: Optional[AppState] = None
        self._busy = False
        self._closed = False
        self._thread: Optional[threading.Thread] = None
        if background:
            self._thread = threading.Thread(
                target=self._run, name=f"focusflow-{self.name}", daemon=True
            )
            self._thread.start()

    def write(self, state: AppState) -> None:
        raise NotImplementedError

    def _write_logged(self, state: AppState) -> None:
        try:
            self.write(state)
        except _WRITE_ERRORS:
            log.exception(f"{self.name} write failed; keeping in-memory state")

    def submit(self, state: AppState) -> None:
        if self._thread is None:
            self._write_logged(state)
            return
        with self._cond:
            if self._closed:
                log.warning(f"{self.name} is closed; dropping state")
                return
            self._pending = state
            self._cond.notify_all()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending is not None or self._closed)
                if self._pending is None:
                    return
                state, self._pending = self._pending, None
                self._busy = True
            try:
                self._write_logged(state)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted state is written. False on timeout."""
        if self._thread is None:
            return True
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._busy, timeout
            )

    def close(self) -> None:
        if self._thread is None:
            return
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join()


class SnapshotSink(_Sink):
    """Rewrites the whole document on every state."""

    name = "snapshot"

    def __init__(self, store: SnapshotStore, background: bool = True):
        self.store = store
        super().__init__(background)

    def write(self, state: AppState) -> None:
        self.store.save(state)


class RelationalSink(_Sink):
    """
    Saves the current workspace (full replace) on every state.

    History snapshots are only rewritten when new or changed since the last
    write; snapshots gone from memory are deleted.
    """

    name = "relational"

    def __init__(self, db: Database, background: bool = True):
        self.db = db
        self._history: Optional[Dict[str, HistorySnapshot]] = None
        self._settings = None
        self._templates = None
        super().__init__(background)

    def write(self, state: AppState) -> None:
        db = self.db
        db.save_workspace(state.current_workspace)

        if self._history is None:
            self._history = {h.id: h for h in db.list_history_workspaces()}
        known = self._history

        live = {h.id for h in state.history_workspaces}
        for history_id in [i for i in known if i not in live]:
            db.delete_history_workspace(history_id)
            del known[history_id]
        for history in state.history_workspaces:
            if known.get(history.id) != history:
                db.save_history_workspace(history)
                known[history.id] = history

        settings = (
            state.settings,
            {
                "currentView": state.current_view,
                "activeZoneId": state.active_zone_id,
                "activeHistoryId": state.active_history_id,
            },
        )
        if settings != self._settings:
            db.save_settings(*settings)
            self._settings = settings

        if state.custom_templates != self._templates:
            db.save_custom_templates(state.custom_templates)
            self._templates = state.custom_templates


class PersistenceSync:
    """
    Both persistence backends behind one state listener.

    Usage:
        with PersistenceSync.from_config() as sync:
            store = AppStore(sync.load())
            sync.attach(store)
            store.add_zone("Work")
            sync.flush()
    """

    def __init__(self, db: Database, snapshots: SnapshotStore, background: bool = True):
        self.db = db
        self.snapshots = snapshots
        self.sinks: List[_Sink] = [
            SnapshotSink(snapshots, background),
            RelationalSink(db, background),
        ]

    @classmethod
    def from_config(cls, background: bool = True) -> "PersistenceSync":
        """Open both backends at the configured data directory."""
        return cls(Database(get_db_path()), SnapshotStore(get_snapshot_path()), background)

    def __enter__(self) -> "PersistenceSync":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Startup ---

    def load(self) -> AppState:
        """
        Migrate the relational store, then read the state.

        The snapshot document wins when present; otherwise the relational
        store is read; otherwise a default state is returned.
        """
        try:
            run_migrations(self.db)
        except PersistenceError:
            log.exception("Could not run migrations")

        defaults = default_state()

        try:
            state = self.snapshots.load(defaults)
        except PersistenceError:
            state = None
        if state is not None:
            log.debug("Loaded state from snapshot store")
            return state

        try:
            state = self._load_relational(defaults)
        except PersistenceError:
            log.exception("Could not read the relational store")
            state = None
        if state is not None:
            log.debug("Loaded state from relational store")
            return state

        log.info("No stored state; starting with a default workspace")
        return defaults

    def _load_relational(self, defaults: AppState) -> Optional[AppState]:
        workspace = self.db.load_current_workspace()
        if workspace is None:
            return None

        state = copy.deepcopy(defaults)
        if not workspace.zones:
            log.warning(f"Workspace {workspace.id} has no zones; adding a default zone")
            workspace.zones = state.current_workspace.zones
        state.current_workspace = workspace
        state.history_workspaces = self.db.list_history_workspaces()
        state.custom_templates = self.db.list_custom_templates()

        stored = self.db.load_settings()
        if stored is not None:
            state.settings = stored["settings"]
            ui = stored["ui"]
            state.current_view = ui.get("currentView") or state.current_view
            state.active_history_id = ui.get("activeHistoryId")
            state.active_zone_id = ui.get("activeZoneId")

        zone_ids = [z.id for z in sorted(workspace.zones, key=lambda z: z.order)]
        if state.active_zone_id not in zone_ids:
            state.active_zone_id = zone_ids[0] if zone_ids else None
        return state

    # --- Writes ---

    def attach(self, store) -> Callable[[], None]:
        """Subscribe to an AppStore; returns the unsubscribe function."""
        return store.subscribe(self.submit)

    def submit(self, state: AppState) -> None:
        """Hand a state to every sink. Returns without waiting for I/O."""
        detached = copy.deepcopy(state)
        for sink in self.sinks:
            sink.submit(detached)

    def flush(self, timeout: Optional[float] = None) -> bool:
        return all([sink.flush(timeout) for sink in self.sinks])

    def close(self) -> None:
        """Drain pending writes, stop the writers and release the database."""
        for sink in self.sinks:
            sink.flush()
            sink.close()
        self.db.close()
