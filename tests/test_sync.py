"""Tests for PersistenceSync: startup load and the two write sinks."""

import pytest

from focusflow.core.exceptions import PersistenceError
from focusflow.core.models import Workspace
from focusflow.core.repository import Database
from focusflow.core.snapshot import SnapshotStore
from focusflow.core.store import AppStore
from focusflow.core.sync import PersistenceSync


def open_sync(tmp_path, background=False):
    return PersistenceSync(
        Database(tmp_path / "focus_flow.db"),
        SnapshotStore(tmp_path / "state.json"),
        background=background,
    )


@pytest.fixture
def sync(tmp_path):
    persistence = open_sync(tmp_path)
    yield persistence
    persistence.close()


def test_fresh_load_migrates_and_defaults(sync):
    state = sync.load()
    assert sync.db.get_version() == 1
    assert len(state.current_workspace.zones) == 1
    assert state.active_zone_id == state.current_workspace.zones[0].id


def test_mutations_reach_both_backends(sync):
    store = AppStore(sync.load())
    sync.attach(store)

    task = store.add_task(store.zones[0].id, "Write report")

    assert [t.id for t in sync.db.load_current_workspace().tasks] == [task.id]
    from_snapshot = sync.snapshots.load(store.state)
    assert [t.title for t in from_snapshot.current_workspace.tasks] == ["Write report"]


def test_snapshot_wins_over_relational(tmp_path):
    with open_sync(tmp_path) as first:
        store = AppStore(first.load())
        first.attach(store)
        store.add_task(store.zones[0].id, "Saved everywhere")
        snapshot_id = store.workspace.id

    with open_sync(tmp_path) as second:
        # Relational store now holds another workspace
        second.db.save_workspace(Workspace(id="elsewhere", name="Other"))
        assert second.load().current_workspace.id == snapshot_id


def test_relational_store_used_without_snapshot(tmp_path):
    with open_sync(tmp_path) as first:
        store = AppStore(first.load())
        first.attach(store)
        zone = store.add_zone("Errands")
        store.set_active_zone_id(zone.id)
        store.add_task(zone.id, "Buy milk")
        workspace_id = store.workspace.id

    SnapshotStore(tmp_path / "state.json").clear()

    with open_sync(tmp_path) as second:
        state = second.load()
        assert state.current_workspace.id == workspace_id
        assert state.active_zone_id == zone.id
        assert [t.title for t in state.current_workspace.tasks] == ["Buy milk"]


def test_relational_load_repairs_active_zone(tmp_path):
    with open_sync(tmp_path) as first:
        store = AppStore(first.load())
        first.attach(store)
        store.set_active_zone_id("gone")

    SnapshotStore(tmp_path / "state.json").clear()

    with open_sync(tmp_path) as second:
        state = second.load()
        assert state.active_zone_id == state.current_workspace.zones[0].id


def test_history_changes_are_mirrored(sync):
    store = AppStore(sync.load())
    sync.attach(store)
    store.add_task(store.zones[0].id, "Keep me")

    history_id = store.archive_current_workspace("Week 1")
    assert [h.id for h in sync.db.list_history_workspaces()] == [history_id]

    store.rename_history_workspace(history_id, "Week one")
    assert sync.db.list_history_workspaces()[0].name == "Week one"

    store.delete_history_workspace(history_id)
    assert sync.db.list_history_workspaces() == []
    assert sync.db.count_rows("tasks", history_id) == 0


def test_custom_templates_are_mirrored(sync):
    store = AppStore(sync.load())
    sync.attach(store)

    template = store.save_custom_template("Mine")
    assert [t.id for t in sync.db.list_custom_templates()] == [template.id]


def test_failing_backend_does_not_block_the_other(sync, monkeypatch):
    """A snapshot write error is logged; the relational store still gets the state."""
    def broken(state):
        raise PersistenceError("snapshot", "disk full")

    monkeypatch.setattr(sync.snapshots, "save", broken)

    store = AppStore(sync.load())
    sync.attach(store)
    task = store.add_task(store.zones[0].id, "Still saved")

    assert [t.id for t in sync.db.load_current_workspace().tasks] == [task.id]
    assert store.get_task(task.id) is not None


def test_background_writers_flush(tmp_path):
    """Queued states are written by the worker threads; the newest one wins."""
    with open_sync(tmp_path, background=True) as persistence:
        store = AppStore(persistence.load())
        persistence.attach(store)
        zone_id = store.zones[0].id
        for i in range(10):
            store.add_task(zone_id, f"Task {i}")

        assert persistence.flush(timeout=10)
        saved = persistence.db.load_current_workspace().tasks
        assert sorted(t.title for t in saved) == sorted(f"Task {i}" for i in range(10))


def test_submit_detaches_state(sync):
    """Later in-memory changes don't leak into a submitted state."""
    state = sync.load()
    sync.submit(state)
    state.current_workspace.name = "Changed afterwards"
    assert sync.db.load_current_workspace().name != "Changed afterwards"


def test_from_config_uses_data_home(data_home):
    with PersistenceSync.from_config(background=False) as persistence:
        persistence.load()
        assert persistence.db.path.parent == data_home
        assert persistence.snapshots.path.parent == data_home
    assert (data_home / "focus_flow.db").exists()


def test_relational_workspace_without_zones_gets_default_zone(tmp_path):
    """With no snapshot, a zoneless stored workspace still loads with one zone."""
    with open_sync(tmp_path) as persistence:
        persistence.load()
        persistence.db.save_workspace(Workspace(id="ws-empty", name="Empty"))
        persistence.snapshots.clear()

        state = persistence.load()
        assert state.current_workspace.id == "ws-empty"
        assert len(state.current_workspace.zones) == 1
        assert state.active_zone_id == state.current_workspace.zones[0].id
