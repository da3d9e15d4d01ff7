"""
FILE: focusflow/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - FocusFlowError (base exception)
  - NotFoundError, TaskNotFoundError, ZoneNotFoundError,
    HistoryNotFoundError, TemplateNotFoundError
  - InvalidInputError
  - PersistenceError
  - MigrationError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from FocusFlowError for easy catching
  - The store reports missing ids with False/None; the NotFound classes are
    raised by lookup helpers the CLI uses to print a message
  - PersistenceError wraps backend failures; sinks log it and carry on
"""


class FocusFlowError(Exception):
    """Base exception for all FocusFlow errors."""
    pass


class NotFoundError(FocusFlowError):
    """An id is absent from the current state."""

    kind = "Item"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"{self.kind} {item_id} not found")


class TaskNotFoundError(NotFoundError):
    """Task with given ID doesn't exist."""

    kind = "Task"


class ZoneNotFoundError(NotFoundError):
    """Zone with given ID doesn't exist."""

    kind = "Zone"


class HistoryNotFoundError(NotFoundError):
    """History snapshot with given ID doesn't exist."""

    kind = "History workspace"


class TemplateNotFoundError(NotFoundError):
    """Template with given ID doesn't exist."""

    kind = "Template"


class InvalidInputError(FocusFlowError):
    """Input validation failed."""

    def __init__(self, message: str):
        super().__init__(message)


class PersistenceError(FocusFlowError):
    """A storage backend rejected a read or write."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"[{backend}] {message}")


class MigrationError(PersistenceError):
    """A schema migration could not be applied."""

    def __init__(self, version: int, message: str):
        self.version = version
        super().__init__("migration", f"v{version}: {message}")
