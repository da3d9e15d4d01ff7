"""
FILE: focusflow/core/snapshot.py
PURPOSE: Snapshot store - the whole AppState as one JSON document on disk
EXPORTS:
  - SnapshotStore (class)
    - save(state) -> None
    - load(defaults) -> AppState | None
    - exists() -> bool
    - clear() -> None
  - atomic_write_json(path, data) -> None
DEPENDENCIES:
  - json, os, tempfile (stdlib)
  - focusflow.core.models (AppState)
  - focusflow.core.exceptions (PersistenceError)
NOTES:
  - Rewritten wholesale on every save; last write wins
  - Writes go to a temp file in the same directory, then os.replace()
  - A document that doesn't parse or has the wrong shape is logged and
    replaced by the defaults; it never stops startup
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .exceptions import PersistenceError
from .models import AppState
from ..logs import get_logger

log = get_logger("snapshot")


def atomic_write_json(file_path: Union[Path, str], data: Dict[str, Any]) -> None:
    """
    Serialize data to file_path without ever leaving a half-written file.

    Raises:
        PersistenceError: The data isn't JSON-serializable or the write failed
    """
    file_path = Path(file_path)
    temp_path = None
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=file_path.parent,
            prefix=f".{file_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = temp_file.name
            json.dump(data, temp_file, ensure_ascii=False)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_path, file_path)
        temp_path = None
    except (TypeError, ValueError) as e:
        raise PersistenceError("snapshot", f"state is not serializable: {e}") from e
    except OSError as e:
        raise PersistenceError("snapshot", f"cannot write {file_path}: {e}") from e
    finally:
        if temp_path is not None and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError as cleanup_error:
                log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")


class SnapshotStore:
    """One JSON document holding the complete application state."""

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, state: AppState) -> None:
        atomic_write_json(self.path, state.to_document())
        log.debug(f"Wrote snapshot {self.path}")

    def load(self, defaults: AppState) -> Optional[AppState]:
        """
        Read the document and merge it field-by-field onto defaults.

        Returns:
            The merged state, None if no document exists, or a copy of the
            defaults if the document is malformed
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except OSError as e:
            log.exception(f"Cannot read snapshot {self.path}")
            raise PersistenceError("snapshot", f"cannot read {self.path}: {e}") from e
        except ValueError as e:
            log.warning(f"Snapshot {self.path} is not valid JSON ({e}); using defaults")
            return AppState.from_document({}, defaults)

        # Documents written through the legacy key-value wrapper
        if isinstance(document, dict) and isinstance(document.get("state"), dict):
            document = document["state"]

        try:
            return AppState.from_document(document, defaults)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning(f"Snapshot {self.path} has an incompatible shape ({e!r}); using defaults")
            return AppState.from_document({}, defaults)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
