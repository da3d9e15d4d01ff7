"""Tests for the workspace lifecycle transitions."""

import json
from dataclasses import replace

from conftest import make_zone
from focusflow.core import workspace as lifecycle
from focusflow.core.constants import AUTO_SAVE_ID, MAX_HISTORY, NEW_WORKSPACE_NAME
from focusflow.core.models import HistorySnapshot, Session


def populated_state(example_tasks):
    state = lifecycle.default_state()
    workspace = replace(
        state.current_workspace,
        name="Sprint",
        zones=[make_zone("z1", 0), make_zone("z2", 1)],
        tasks=example_tasks,
        sessions=[Session(id="s1", task_id="A", start_time=1000, end_time=2000, completed=True)],
    )
    return replace(state, current_workspace=workspace, active_zone_id="z1")


def content(container):
    """Value view of zones/tasks/sessions, ignoring the container's id."""
    return (
        [z.to_dict() for z in container.zones],
        [t.to_dict() for t in container.tasks],
        [s.to_dict() for s in container.sessions],
    )


def test_default_state_has_one_zone():
    state = lifecycle.default_state()
    assert len(state.current_workspace.zones) == 1
    assert state.active_zone_id == state.current_workspace.zones[0].id
    assert state.history_workspaces == []


def test_archive_prepends_and_keeps_current(example_tasks):
    """Archive copies the workspace into history without resetting it."""
    state = populated_state(example_tasks)
    archived, history_id = lifecycle.archive_workspace(state, "Week 1", "  done-ish  ")

    assert archived.history_workspaces[0].id == history_id
    assert archived.history_workspaces[0].name == "Week 1"
    assert archived.history_workspaces[0].summary == "done-ish"
    assert archived.current_workspace is state.current_workspace


def test_archive_copies_are_not_aliased(example_tasks):
    state = populated_state(example_tasks)
    archived, _ = lifecycle.archive_workspace(state)
    history = archived.history_workspaces[0]

    assert history.tasks == state.current_workspace.tasks
    assert history.tasks[0] is not state.current_workspace.tasks[0]
    # Defaults: workspace name and a generated summary
    assert history.name == "Sprint"
    assert history.summary == "2 zones, 4 tasks"


def test_archive_restore_round_trip(example_tasks):
    """Restoring an archive reproduces the archived content under a new workspace id."""
    state = populated_state(example_tasks)
    archived, history_id = lifecycle.archive_workspace(state)
    restored = lifecycle.restore_from_history(archived, history_id)

    assert content(restored.current_workspace) == content(state.current_workspace)
    assert restored.current_workspace.id != state.current_workspace.id
    assert restored.current_workspace.source_history_id == history_id
    assert restored.active_history_id == history_id
    assert restored.active_zone_id == "z1"
    # Non-destructive
    assert [h.id for h in restored.history_workspaces] == [history_id]


def test_restore_unknown_id_returns_none(example_tasks):
    assert lifecycle.restore_from_history(populated_state(example_tasks), "nope") is None


def test_create_workspace_archives_when_tasks_exist(example_tasks):
    state = populated_state(example_tasks)
    created = lifecycle.create_workspace(state)

    assert len(created.history_workspaces) == 1
    assert created.history_workspaces[0].tasks == example_tasks
    assert created.current_workspace.tasks == []
    assert len(created.current_workspace.zones) == 1
    assert created.current_workspace.name == NEW_WORKSPACE_NAME
    assert created.active_zone_id == created.current_workspace.zones[0].id


def test_create_workspace_discards_empty_workspace():
    """An empty workspace isn't worth archiving."""
    created = lifecycle.create_workspace(lifecycle.default_state(), "  Fresh  ")
    assert created.history_workspaces == []
    assert created.current_workspace.name == "Fresh"


def test_create_workspace_from_template():
    """Template zones are re-identified; an unknown template gives one default zone."""
    created = lifecycle.create_workspace(lifecycle.default_state(), template_id="dev")
    zones = created.current_workspace.zones
    assert [z.name for z in zones] == ["Development", "Testing", "Docs", "Bug fixes"]
    assert [z.order for z in zones] == [0, 1, 2, 3]
    assert len({z.id for z in zones}) == 4

    blank = lifecycle.create_workspace(lifecycle.default_state(), template_id="blank")
    assert blank.current_workspace.zones == []
    assert blank.active_zone_id is None

    fallback = lifecycle.create_workspace(lifecycle.default_state(), template_id="nope")
    assert len(fallback.current_workspace.zones) == 1


def test_rename_and_summary_trim_and_touch(example_tasks):
    state, history_id = lifecycle.archive_workspace(populated_state(example_tasks))
    before = state.history_workspaces[0].last_modified

    renamed = lifecycle.rename_history(state, history_id, "  Q3 plan ")
    assert renamed.history_workspaces[0].name == "Q3 plan"
    assert renamed.history_workspaces[0].last_modified >= before

    summarized = lifecycle.update_history_summary(renamed, history_id, " shipped \n")
    assert summarized.history_workspaces[0].summary == "shipped"

    assert lifecycle.rename_history(state, "nope", "x") is None


def test_delete_history_clears_active_marker(example_tasks):
    state, history_id = lifecycle.archive_workspace(populated_state(example_tasks))
    state = lifecycle.restore_from_history(state, history_id)

    deleted = lifecycle.delete_history(state, history_id)
    assert deleted.history_workspaces == []
    assert deleted.active_history_id is None
    assert lifecycle.delete_history(deleted, history_id) is None


def test_sorted_history_newest_modified_first():
    state = lifecycle.default_state()
    state = replace(state, history_workspaces=[
        HistorySnapshot(id="old", name="old", last_modified=1),
        HistorySnapshot(id="new", name="new", last_modified=3),
        HistorySnapshot(id="mid", name="mid", last_modified=2),
    ])
    assert [h.id for h in lifecycle.sorted_history(state)] == ["new", "mid", "old"]


def test_overwrite_history_links_current_workspace(example_tasks):
    state, history_id = lifecycle.archive_workspace(lifecycle.default_state())
    state = replace(state, current_workspace=populated_state(example_tasks).current_workspace)

    overwritten = lifecycle.overwrite_history(state, history_id)
    history = overwritten.history_workspaces[0]

    assert history.tasks == example_tasks
    assert overwritten.current_workspace.source_history_id == history_id
    assert overwritten.active_history_id == history_id


def test_auto_save_uses_fixed_slot(example_tasks):
    """Repeated auto-saves replace the same entry and keep it first."""
    state = populated_state(example_tasks)
    state, first = lifecycle.auto_save_snapshot(state)
    state, _ = lifecycle.archive_workspace(state)
    state, second = lifecycle.auto_save_snapshot(state)

    assert first == second == AUTO_SAVE_ID
    assert [h.id for h in state.history_workspaces].count(AUTO_SAVE_ID) == 1
    assert state.history_workspaces[0].id == AUTO_SAVE_ID


def test_auto_save_caps_history(example_tasks):
    state = populated_state(example_tasks)
    state = replace(state, history_workspaces=[
        HistorySnapshot(id=f"h{i}", name=f"h{i}") for i in range(MAX_HISTORY)
    ])
    state, _ = lifecycle.auto_save_snapshot(state)
    assert len(state.history_workspaces) == MAX_HISTORY
    assert state.history_workspaces[0].id == AUTO_SAVE_ID


def test_export_import_gives_fresh_ids(example_tasks):
    state, history_id = lifecycle.archive_workspace(populated_state(example_tasks), "Backup")
    exported = lifecycle.export_history(state, history_id)

    imported = lifecycle.import_history(state, exported)
    assert len(imported.history_workspaces) == 2
    copy = imported.history_workspaces[0]
    assert copy.id != history_id
    assert copy.name == "Backup"
    assert copy.tasks == example_tasks


def test_import_rejects_bad_payloads():
    state = lifecycle.default_state()
    assert lifecycle.import_history(state, "{not json") is None
    assert lifecycle.import_history(state, json.dumps({"name": "no id"})) is None

    _, count = lifecycle.import_all_history(state, json.dumps([{"id": "x"}, "junk"]))
    assert count == 0


def test_import_all_history(example_tasks):
    state, _ = lifecycle.archive_workspace(populated_state(example_tasks), "One")
    state, _ = lifecycle.archive_workspace(state, "Two")
    exported = lifecycle.export_all_history(state)

    imported, count = lifecycle.import_all_history(lifecycle.default_state(), exported)
    assert count == 2
    assert [h.name for h in imported.history_workspaces] == ["Two", "One"]


def test_apply_template_replaces_zones_and_clears_tasks(example_tasks):
    applied = lifecycle.apply_template(populated_state(example_tasks), "general")
    assert [z.name for z in applied.current_workspace.zones] == ["Work", "Study", "Life"]
    assert applied.current_workspace.tasks == []
    assert lifecycle.apply_template(applied, "nope") is None


def test_custom_templates(example_tasks):
    state, template = lifecycle.save_custom_template(populated_state(example_tasks), " Mine ")
    assert template.name == "Mine"
    assert [z.name for z in template.zones] == ["z1", "z2"]
    assert lifecycle.find_template(state, template.id) == template

    state = lifecycle.rename_custom_template(state, template.id, "Ours")
    assert state.custom_templates[0].name == "Ours"

    state = lifecycle.delete_custom_template(state, template.id)
    assert state.custom_templates == []
    assert lifecycle.delete_custom_template(state, template.id) is None
