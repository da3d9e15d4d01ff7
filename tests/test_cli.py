"""End-to-end tests of the CLI commands (each invocation loads and saves the stored state)."""

import json

import pytest
from typer.testing import CliRunner

from focusflow import __version__
from focusflow.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def home(data_home):
    """Every test gets its own data directory."""
    return data_home


def invoke(*args):
    return runner.invoke(app, list(args))


def invoke_json(*args):
    result = invoke(*args, "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_version():
    result = invoke("version")
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_state_persists_between_commands(home):
    zone = invoke_json("zone", "add", "Errands")
    zones = invoke_json("zone", "ls")

    assert zone["name"] == "Errands"
    assert [z["name"] for z in zones][-1] == "Errands"
    assert (home / "focus_flow.db").exists()


def test_task_tree_and_completion():
    parent = invoke_json("task", "add", "Write report")
    child = invoke_json("task", "add", "Outline", "--parent", parent["id"])
    assert child["parentId"] == parent["id"]

    rows = invoke_json("task", "ls")
    assert [(r["title"], r["depth"]) for r in rows] == [("Write report", 0), ("Outline", 1)]

    # Completing the only child completes the parent
    assert invoke("task", "done", child["id"]).exit_code == 0
    stats = invoke_json("task", "stats")
    assert stats["completed"] == 2
    assert stats["pending"] == 0


def test_drop_replays_drag_gesture():
    a = invoke_json("task", "add", "A")
    invoke_json("task", "add", "B", "--parent", a["id"])
    c = invoke_json("task", "add", "C", "--parent", a["id"])
    d = invoke_json("task", "add", "D")

    projection = invoke_json("task", "drop", c["id"], d["id"])
    assert projection == {"depth": 0, "parentId": None, "anchorId": a["id"]}

    rows = invoke_json("task", "ls")
    assert [(r["title"], r["depth"]) for r in rows] == [("A", 0), ("B", 1), ("C", 0), ("D", 0)]


def test_drop_without_over_row_goes_last():
    a = invoke_json("task", "add", "A")
    b = invoke_json("task", "add", "B")

    projection = invoke_json("task", "drop", a["id"], "--offset", "24")
    assert projection == {"depth": 1, "parentId": b["id"], "anchorId": None}
    assert [(r["title"], r["depth"]) for r in invoke_json("task", "ls")] == [("B", 0), ("A", 1)]


def test_drop_into_own_subtree_fails():
    a = invoke_json("task", "add", "A")
    b = invoke_json("task", "add", "B", "--parent", a["id"])

    result = invoke("task", "drop", a["id"], b["id"])
    assert result.exit_code == 1
    assert "Drop ignored" in result.output


def test_unknown_task_is_an_error():
    result = invoke("task", "done", "nope")
    assert result.exit_code == 1
    assert "Task nope not found" in result.output


def test_invalid_input_is_an_error():
    assert invoke("task", "add", "   ").exit_code == 1
    assert invoke("task", "add", "Task", "--priority", "extreme").exit_code == 1
    assert invoke("task", "add", "Task", "--deadline", "someday").exit_code == 1


def test_tasks_can_be_referenced_by_id_suffix():
    task = invoke_json("task", "add", "Call bank")
    suffix = task["id"].rsplit("-", 1)[-1]

    assert invoke("task", "edit", suffix, "--title", "Call the bank").exit_code == 0
    assert invoke_json("task", "ls")[0]["title"] == "Call the bank"


def test_archive_restore_cycle():
    invoke_json("task", "add", "Keep me")
    archived = invoke_json("workspace", "archive", "--name", "Week 1")

    assert invoke("workspace", "new", "Fresh").exit_code == 0
    assert invoke_json("task", "ls") == []

    history = invoke_json("history", "ls")
    assert "Week 1" in [h["name"] for h in history]

    assert invoke("workspace", "restore", archived["id"]).exit_code == 0
    assert [r["title"] for r in invoke_json("task", "ls")] == ["Keep me"]


def test_history_export_and_import(tmp_path):
    invoke_json("task", "add", "Exported task")
    invoke_json("workspace", "archive", "--name", "Backup")

    result = invoke("history", "export")
    assert result.exit_code == 0
    exported = json.loads(result.stdout)
    assert [h["name"] for h in exported] == ["Backup"]

    source = tmp_path / "backup.json"
    source.write_text(result.stdout, encoding="utf-8")
    assert invoke("history", "import", str(source)).exit_code == 0
    assert [h["name"] for h in invoke_json("history", "ls")] == ["Backup", "Backup"]


def test_template_apply_replaces_zones():
    invoke_json("task", "add", "Goes away")

    assert invoke("template", "apply", "project", "--yes").exit_code == 0
    zones = invoke_json("zone", "ls")
    assert [z["name"] for z in zones] == ["Project A", "Project B", "Project C", "Other"]
    assert invoke_json("task", "ls", "--all") == []


def test_template_apply_asks_before_removing_tasks():
    invoke_json("task", "add", "Stays")

    result = runner.invoke(app, ["template", "apply", "dev"], input="n\n")
    assert result.exit_code != 0
    assert len(invoke_json("task", "ls")) == 1
