"""Tests for the AppStore mutation API."""

import pytest

from focusflow.core.constants import MAX_UNDO, VIEW_GLOBAL
from focusflow.core.exceptions import InvalidInputError
from focusflow.core.store import AppStore


@pytest.fixture
def store():
    return AppStore()


@pytest.fixture
def tree_store(store):
    """Zone 'Work' with A(B, C) and D, mirroring the drag example."""
    zone = store.zones[0]
    a = store.add_task(zone.id, "A")
    b = store.add_task(zone.id, "B", parent_id=a.id)
    c = store.add_task(zone.id, "C", parent_id=a.id)
    d = store.add_task(zone.id, "D")
    return store, zone, {"A": a.id, "B": b.id, "C": c.id, "D": d.id}


def titles(store, zone_id=None):
    return [(row.task.title, row.depth) for row in store.flattened(zone_id)]


def test_listeners_receive_each_committed_state(store):
    """Subscribers are called after every mutation; unsubscribe stops them."""
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.add_zone("Errands")
    assert len(seen) == 1
    assert seen[0] is store.state

    unsubscribe()
    store.add_zone("Reading")
    assert len(seen) == 1


def test_failing_listener_does_not_block_others(store):
    seen = []

    def broken(state):
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.add_zone("Errands")
    assert len(seen) == 1


def test_mutations_touch_last_modified(store):
    before = store.workspace.last_modified
    store.add_zone("Errands")
    assert store.workspace.last_modified >= before


def test_add_task_validation(store):
    """Empty titles raise; unknown zone or parent in another zone returns None."""
    zone = store.zones[0]
    with pytest.raises(InvalidInputError):
        store.add_task(zone.id, "   ")
    with pytest.raises(InvalidInputError):
        store.add_task(zone.id, "Task", priority="extreme")

    assert store.add_task("nope", "Task") is None

    other = store.add_zone("Other")
    parent = store.add_task(zone.id, "Parent")
    assert store.add_task(other.id, "Child", parent_id=parent.id) is None


def test_update_zones_never_empty(store):
    """An empty zone list is replaced by a default zone."""
    store.update_zones([])
    assert len(store.zones) == 1


def test_update_tasks_replaces_list(tree_store):
    store, zone, ids = tree_store
    store.update_tasks([t for t in store.tasks if t.id == ids["D"]])
    assert [t.id for t in store.tasks] == [ids["D"]]


def test_view_and_selection(tree_store):
    store, zone, ids = tree_store

    store.set_current_view(VIEW_GLOBAL)
    assert store.state.current_view == VIEW_GLOBAL
    with pytest.raises(InvalidInputError):
        store.set_current_view("nowhere")

    assert store.set_focused_task_id(ids["B"])
    store.set_active_zone_id(zone.id)
    assert store.state.focused_task_id is None

    assert not store.set_focused_task_id("nope")

    store.set_active_history_id("h1")
    assert store.state.active_history_id == "h1"


def test_update_settings_merges(store):
    store.update_settings({"workDuration": 50 * 60, "globalViewSort": {"mode": "priority"}})
    settings = store.state.settings
    assert settings["workDuration"] == 3000
    assert settings["globalViewSort"]["mode"] == "priority"
    assert settings["globalViewSort"]["urgencyWeight"] == 0.6
    assert settings["breakDuration"] == 300


def test_drop_task_example(tree_store):
    """C dragged above D becomes a root between A and D."""
    store, zone, ids = tree_store
    projection = store.drop_task(ids["C"], ids["D"], 0, zone.id)

    assert projection.anchor_id == ids["A"]
    assert titles(store, zone.id) == [("A", 0), ("B", 1), ("C", 0), ("D", 0)]


def test_drop_task_noop_leaves_state(tree_store):
    store, zone, ids = tree_store
    before = store.state
    assert store.drop_task(ids["A"], ids["B"], 0, zone.id) is None
    assert store.state is before


def test_move_task_rejects_cycle(tree_store):
    store, zone, ids = tree_store
    before = store.state
    assert not store.move_task(ids["A"], ids["B"], None)
    assert store.state is before


def test_toggle_and_delete(tree_store):
    store, zone, ids = tree_store
    assert store.toggle_task(ids["A"])
    assert store.get_stats()["completed"] == 3

    assert store.delete_task(ids["A"])
    assert [t.id for t in store.tasks] == [ids["D"]]
    assert not store.delete_task(ids["A"])


def test_delete_focused_task_clears_focus(tree_store):
    store, zone, ids = tree_store
    store.set_focused_task_id(ids["B"])
    store.delete_task(ids["A"])
    assert store.state.focused_task_id is None


def test_delete_active_zone_moves_selection(tree_store):
    store, zone, ids = tree_store
    other = store.add_zone("Other")
    store.set_active_zone_id(zone.id)

    assert store.delete_zone(zone.id)
    assert store.state.active_zone_id == other.id
    assert store.tasks == []


def test_undo_and_redo(tree_store):
    store, zone, ids = tree_store
    store.delete_task(ids["D"])
    assert store.get_task(ids["D"]) is None

    assert store.undo()
    assert store.get_task(ids["D"]) is not None

    assert store.redo()
    assert store.get_task(ids["D"]) is None
    assert not store.redo()


def test_undo_history_is_capped(store):
    zone = store.zones[0]
    for i in range(MAX_UNDO + 5):
        store.add_task(zone.id, f"Task {i}")

    undone = 0
    while store.undo():
        undone += 1
    assert undone == MAX_UNDO
    assert len(store.tasks) == 5


def test_workspace_switch_clears_undo(tree_store):
    store, zone, ids = tree_store
    store.create_new_workspace("Next")
    assert not store.can_undo()


def test_archive_and_restore(tree_store):
    """archive -> new workspace -> restore brings the tasks back."""
    store, zone, ids = tree_store
    history_id = store.archive_current_workspace("Sprint 1")
    store.create_new_workspace()

    # The non-empty workspace was archived again by create_new_workspace
    assert len(store.state.history_workspaces) == 2
    assert store.tasks == []

    assert store.restore_from_history(history_id)
    assert sorted(t.title for t in store.tasks) == ["A", "B", "C", "D"]
    assert store.state.active_history_id == history_id
    assert not store.restore_from_history("nope")


def test_history_mutations(tree_store):
    store, zone, ids = tree_store
    history_id = store.archive_current_workspace()

    assert store.rename_history_workspace(history_id, " Renamed ")
    assert store.get_history(history_id).name == "Renamed"
    with pytest.raises(InvalidInputError):
        store.rename_history_workspace(history_id, "  ")

    assert store.update_history_summary(history_id, "notes")
    assert store.get_history(history_id).summary == "notes"

    assert store.delete_history_workspace(history_id)
    assert not store.delete_history_workspace(history_id)
    assert not store.rename_history_workspace(history_id, "x")


def test_sessions(tree_store):
    store, zone, ids = tree_store
    session = store.start_session(ids["A"])
    assert session.end_time is None

    assert store.finish_session(session.id)
    finished = store.workspace.sessions[0]
    assert finished.completed and finished.end_time is not None

    assert store.start_session("nope") is None
    assert not store.finish_session("nope")


def test_work_time_and_estimates(tree_store):
    store, zone, ids = tree_store
    store.add_work_time(ids["B"], 120)
    assert store.get_task(ids["A"]).total_work_time == 120

    store.update_task(ids["B"], estimated_time=30)
    store.update_task(ids["C"], estimated_time=20)
    assert store.estimated_time(ids["A"]) == 50


def test_update_task_validation(tree_store):
    store, zone, ids = tree_store
    with pytest.raises(InvalidInputError):
        store.update_task(ids["A"], title="")
    with pytest.raises(InvalidInputError):
        store.update_task(ids["A"], urgency="whenever")
    assert not store.update_task("nope", title="x")


def test_templates(tree_store):
    store, zone, ids = tree_store
    template = store.save_custom_template("Mine")
    assert template in store.templates()

    assert store.apply_template("project")
    assert [z.name for z in store.zones] == ["Project A", "Project B", "Project C", "Other"]
    assert store.tasks == []

    # Applying a template is undoable
    assert store.undo()
    assert len(store.tasks) == 4


def test_nested_settings_keep_earlier_changes(store):
    store.update_settings({"globalViewSort": {"priorityWeight": 0.9}})
    store.update_settings({"globalViewSort": {"mode": "urgency"}})
    sort = store.state.settings["globalViewSort"]
    assert sort == {"mode": "urgency", "priorityWeight": 0.9, "urgencyWeight": 0.6}


def test_zone_edits(store):
    first = store.zones[0]
    second = store.add_zone("Errands", "#ef4444")
    assert second.color == "#ef4444"

    assert store.update_zone(second.id, name=" Chores ")
    assert store.get_zone(second.id).name == "Chores"
    with pytest.raises(InvalidInputError):
        store.update_zone(second.id, order=5)
    assert not store.update_zone("nope", name="x")

    assert store.reorder_zones([second.id, first.id])
    assert [z.id for z in store.zones] == [second.id, first.id]
    assert not store.reorder_zones([second.id])


def test_expand_and_collapse(tree_store):
    store, zone, ids = tree_store
    assert store.toggle_collapsed(ids["A"])
    assert titles(store, zone.id) == [("A", 0), ("D", 0)]

    assert store.expand_task(ids["A"])
    assert titles(store, zone.id) == [("A", 0), ("B", 1), ("C", 1), ("D", 0)]
    assert store.toggle_expanded(ids["A"])
    assert not store.get_task(ids["A"]).expanded

    # View-only changes are not undoable: undo reverts adding D
    assert store.undo()
    assert store.get_task(ids["D"]) is None
    assert store.can_redo()


def test_focus_path_in_flattened_view(tree_store):
    store, zone, ids = tree_store
    store.toggle_collapsed(ids["A"])
    store.set_focused_task_id(ids["C"])
    assert ("C", 1) in titles(store, zone.id)


def test_auto_save_and_history_queries(tree_store):
    store, zone, ids = tree_store
    first = store.archive_current_workspace("First")
    slot = store.auto_save_snapshot()

    assert store.sorted_history()[0].id in (first, slot)
    assert {h.id for h in store.sorted_history()} == {first, slot}

    exported = store.export_history(first)
    assert store.import_history(exported)
    assert len(store.state.history_workspaces) == 3
    assert not store.import_history("[]")


def test_drop_in_whole_workspace_view_keeps_zone(tree_store):
    """A root drop without a zone joins the zone of the row it lands next to."""
    store, zone, ids = tree_store
    other = store.add_zone("Other")
    e = store.add_task(other.id, "E")

    projection = store.drop_task(e.id, ids["D"], 0)
    assert projection.parent_id is None
    assert store.get_task(e.id).zone_id == zone.id


def test_drop_below_last_row(tree_store):
    """Without an over row the task lands after the last visible row."""
    store, zone, ids = tree_store

    projection = store.drop_task(ids["C"], None, 0, zone.id)
    assert projection.anchor_id == ids["D"]
    assert titles(store, zone.id) == [("A", 0), ("B", 1), ("D", 0), ("C", 0)]


def test_focus_restricts_flattened_view(tree_store):
    store, zone, ids = tree_store
    store.set_focused_task_id(ids["A"])
    assert titles(store, zone.id) == [("A", 0), ("B", 1), ("C", 1)]
