"""Shared pytest configuration and fixtures for tests."""

import sys
import io
from pathlib import Path

import pytest

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from focusflow.core.models import Task, Zone  # noqa: E402
from focusflow.core.repository import Database  # noqa: E402


def make_task(task_id, zone_id="z1", parent_id=None, order=0, **fields):
    """Task with a readable id; everything else defaulted."""
    return Task(
        id=task_id,
        zone_id=zone_id,
        title=fields.pop("title", task_id),
        parent_id=parent_id,
        order=order,
        **fields,
    )


def make_zone(zone_id="z1", order=0, name=None):
    return Zone(id=zone_id, name=name or zone_id, color="#3b82f6", order=order)


@pytest.fixture
def data_home(tmp_path, monkeypatch):
    """Point FOCUSFLOW_HOME at a temporary directory."""
    monkeypatch.setenv("FOCUSFLOW_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def db(tmp_path):
    """A fresh relational store, closed after the test."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def example_tasks():
    """
    Zone z1: A(root, 0) with children B(0) and C(1); D(root, 1).
    """
    return [
        make_task("A", order=0),
        make_task("B", parent_id="A", order=0),
        make_task("C", parent_id="A", order=1),
        make_task("D", order=1),
    ]
