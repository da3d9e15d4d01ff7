"""Tests for the relational store (SQLite)."""

import pytest

from conftest import make_task, make_zone
from focusflow.core.models import HistorySnapshot, Session, Template, Workspace, ZoneBlueprint


def build_workspace(example_tasks, workspace_id="w1"):
    return Workspace(
        id=workspace_id,
        name="Sprint",
        zones=[make_zone("z1", 0), make_zone("z2", 1)],
        tasks=example_tasks,
        sessions=[Session(id="s1", task_id="A", start_time=1000, end_time=2000, completed=True)],
        created_at=10,
        last_modified=20,
    )


def test_fresh_database_has_version_zero(db):
    assert db.get_version() == 0
    db.set_version(1)
    assert db.get_version() == 1


def test_workspace_round_trip(db, example_tasks):
    """Every task field survives save and load."""
    tasks = [
        make_task(
            "A", order=0, description="notes", completed=True, completed_at=500,
            priority="high", urgency="urgent", deadline=86_400_000, deadline_type="exact",
            is_collapsed=True, total_work_time=90, own_time=30, estimated_time=45,
            prevent_auto_complete=True,
        ),
    ] + example_tasks[1:]
    workspace = build_workspace(tasks)
    db.save_workspace(workspace)

    loaded = db.load_current_workspace()
    assert loaded.id == "w1"
    assert loaded.name == "Sprint"
    assert [z.id for z in loaded.zones] == ["z1", "z2"]
    assert {t.id: t for t in loaded.tasks} == {t.id: t for t in tasks}
    assert loaded.sessions == workspace.sessions


def test_no_current_workspace_returns_none(db):
    assert db.load_current_workspace() is None


def test_saving_twice_is_a_full_replace(db, example_tasks):
    """Re-saving the same state leaves the row counts unchanged."""
    workspace = build_workspace(example_tasks)
    db.save_workspace(workspace)
    counts = [db.count_rows(table, "w1") for table in ("zones", "tasks", "pomodoro_sessions")]

    db.save_workspace(workspace)
    assert [db.count_rows(table, "w1") for table in ("zones", "tasks", "pomodoro_sessions")] == counts
    assert counts == [2, 4, 1]


def test_removed_tasks_disappear_on_save(db, example_tasks):
    db.save_workspace(build_workspace(example_tasks))
    db.save_workspace(build_workspace([t for t in example_tasks if t.id == "D"]))
    assert [t.id for t in db.load_current_workspace().tasks] == ["D"]


def test_only_one_current_workspace(db, example_tasks):
    """Saving a new live workspace drops the previous one and its rows."""
    db.save_workspace(build_workspace(example_tasks, "w1"))
    db.save_workspace(build_workspace(example_tasks, "w2"))

    assert db.load_current_workspace().id == "w2"
    assert db.count_rows("workspaces") == 1
    assert db.count_rows("tasks", "w1") == 0


def test_dangling_parent_saved_as_root(db):
    """A parent id that isn't in the saved set becomes NULL."""
    workspace = Workspace(
        id="w1", zones=[make_zone()], tasks=[make_task("orphan", parent_id="gone")]
    )
    db.save_workspace(workspace)
    assert db.load_current_workspace().tasks[0].parent_id is None


def test_history_shares_ids_with_current_workspace(db, example_tasks):
    """A restored workspace keeps the zone and task ids of its snapshot."""
    history = HistorySnapshot(
        id="h1", name="Archived", summary="2 zones, 4 tasks",
        zones=[make_zone("z1", 0), make_zone("z2", 1)], tasks=example_tasks,
        created_at=5, last_modified=6,
    )
    db.save_history_workspace(history)
    db.save_workspace(build_workspace(example_tasks))

    assert db.count_rows("tasks") == 8
    listed = db.list_history_workspaces()
    assert [h.id for h in listed] == ["h1"]
    assert listed[0].summary == "2 zones, 4 tasks"
    by_id = lambda tasks: {t.id: t for t in tasks}
    assert by_id(listed[0].tasks) == by_id(db.load_current_workspace().tasks)


def test_history_listed_newest_first(db):
    db.save_history_workspace(HistorySnapshot(id="old", name="old", last_modified=1))
    db.save_history_workspace(HistorySnapshot(id="new", name="new", last_modified=2))

    assert [h.id for h in db.list_history_workspaces()] == ["new", "old"]


def test_delete_history_cascades(db, example_tasks):
    db.save_history_workspace(HistorySnapshot(
        id="h1", name="Archived", zones=[make_zone()], tasks=example_tasks,
        sessions=[Session(id="s1", task_id="A", start_time=1)],
    ))

    assert db.delete_history_workspace("h1")
    for table in ("zones", "tasks", "pomodoro_sessions"):
        assert db.count_rows(table, "h1") == 0
    assert db.count_rows("history_workspaces") == 0
    assert not db.delete_history_workspace("h1")


def test_delete_history_ignores_current_workspace(db, example_tasks):
    db.save_workspace(build_workspace(example_tasks))
    assert not db.delete_history_workspace("w1")
    assert db.load_current_workspace() is not None


def test_settings_round_trip(db):
    """Unsaved settings load as None; saved ones merge onto defaults."""
    assert db.load_settings() is None

    db.save_settings(
        {
            "workDuration": 1800,
            "soundEnabled": False,
            "collapsePosition": {"x": 10, "y": 20},
            "globalViewSort": {"mode": "urgency", "priorityWeight": 0.3, "urgencyWeight": 0.7},
        },
        {"currentView": "global", "activeZoneId": "z1", "activeHistoryId": None},
    )
    loaded = db.load_settings()

    assert loaded["settings"]["workDuration"] == 1800
    assert loaded["settings"]["soundEnabled"] is False
    assert loaded["settings"]["collapsePosition"] == {"x": 10, "y": 20}
    assert loaded["settings"]["globalViewSort"]["mode"] == "urgency"
    assert loaded["settings"]["breakDuration"] == 300
    assert loaded["ui"] == {"currentView": "global", "activeZoneId": "z1", "activeHistoryId": None}


def test_custom_templates_replace_all(db):
    first = Template(
        id="t1", name="Mine", zones=[ZoneBlueprint(name="One"), ZoneBlueprint(name="Two", order=1)]
    )
    db.save_custom_templates([first])
    db.save_custom_templates([first, Template(id="t2", name="Other")])

    templates = db.list_custom_templates()
    assert [t.id for t in templates] == ["t1", "t2"]
    assert [z.name for z in templates[0].zones] == ["One", "Two"]
    assert db.count_rows("template_zones") == 2

    db.save_custom_templates([])
    assert db.list_custom_templates() == []
    assert db.count_rows("template_zones") == 0


def test_legacy_key_value_upsert(db):
    assert db.legacy_get("focusflow-storage") is None

    db.legacy_set("focusflow-storage", "{}")
    db.legacy_set("focusflow-storage", '{"version": 4}')
    assert db.legacy_get("focusflow-storage") == '{"version": 4}'
    assert db.count_rows("store_snapshots") == 1

    db.legacy_remove("focusflow-storage")
    assert db.legacy_get("focusflow-storage") is None


def test_count_rows_rejects_unknown_table(db):
    with pytest.raises(ValueError):
        db.count_rows("sqlite_master")


def test_database_context_manager_closes(tmp_path):
    from focusflow.core.repository import Database

    with Database(tmp_path / "ctx.db") as database:
        database.set_version(3)
    assert database._conn is None

    with Database(tmp_path / "ctx.db") as database:
        assert database.get_version() == 3
