"""
FILE: focusflow/cli/commands/system.py
PURPOSE: System commands (version, paths)
"""

from ..app import app, console
from ... import __version__
from ...config import get_db_path, get_log_dir, get_snapshot_path


@app.command()
def version():
    """Show FocusFlow version."""
    console.print(f"FocusFlow v{__version__}")


@app.command()
def paths():
    """Show where data and logs are stored."""
    console.print(f"Database:  {get_db_path()}")
    console.print(f"Snapshot:  {get_snapshot_path()}")
    console.print(f"Logs:      {get_log_dir()}")
