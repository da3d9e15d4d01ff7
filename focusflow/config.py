"""
FILE: focusflow/config.py
PURPOSE: Locations of the data directory and the files inside it
EXPORTS:
  - get_data_dir() -> Path
  - get_db_path() -> Path
  - get_snapshot_path(key) -> Path
  - get_log_dir() -> Path
DEPENDENCIES:
  - os, pathlib (stdlib)
  - focusflow.core.constants (SNAPSHOT_KEY)
NOTES:
  - FOCUSFLOW_HOME overrides the default ~/.focusflow (tests point it at tmp_path)
  - Read on every call so the environment can change between calls
"""

import os
from pathlib import Path

from .core.constants import SNAPSHOT_KEY

ENV_HOME = "FOCUSFLOW_HOME"
DEFAULT_DATA_DIR = Path.home() / ".focusflow"
DB_FILENAME = "focus_flow.db"
LOG_FILENAME = "focusflow.log"


def get_data_dir() -> Path:
    """Data directory, created if missing."""
    override = os.getenv(ENV_HOME)
    data_dir = Path(override).expanduser() if override else DEFAULT_DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    return get_data_dir() / DB_FILENAME


def get_snapshot_path(key: str = SNAPSHOT_KEY) -> Path:
    return get_data_dir() / f"{key}.json"


def get_log_dir() -> Path:
    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir
