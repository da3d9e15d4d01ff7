"""
FILE: focusflow/cli/main.py
PURPOSE: CLI entry point - registers every command group and runs the app
EXPORTS:
  - app (Typer application, re-exported from cli.app)
  - main() (entry point)
DEPENDENCIES:
  - focusflow.cli.app (shared Typer app)
  - focusflow.cli.commands (command modules)
NOTES:
  - Every command loads the stored state, applies its change, waits for
    both backends to finish writing and exits
  - Most commands support --json
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
"""

import sys

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

from .app import app

# Import command modules to register commands with the apps
# Commands are decorated with @<app>.command() in their modules
from .commands import (  # noqa: F401
    history,
    system,
    tasks,
    templates,
    workspace,
    zones,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
