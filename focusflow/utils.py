"""
FILE: focusflow/utils.py
PURPOSE: Shared helpers for the CLI - id references and small parsers
EXPORTS:
  - short_id(item_id) -> str
  - resolve_ref(items, ref, error, by_name) -> item
  - parse_refs(ref_string) -> List[str]
  - parse_deadline(value) -> Optional[int]
  - format_duration(seconds) -> str
DEPENDENCIES:
  - datetime (stdlib)
  - focusflow.core.exceptions
NOTES:
  - Generated ids look like "task-1718000000000-3f9a1c2de"; the CLI shows
    and accepts the random suffix alone
  - Zones and templates can also be referenced by name (case-insensitive)
"""

from datetime import datetime
from typing import List, Optional, Sequence, TypeVar

from .core.exceptions import InvalidInputError, NotFoundError

T = TypeVar("T")


def short_id(item_id: str) -> str:
    """Display form of an id: the part after the last dash."""
    return item_id.rsplit("-", 1)[-1]


def resolve_ref(items: Sequence[T], ref: str, error: type = NotFoundError, by_name: bool = False) -> T:
    """
    Find one item by full id, id suffix, or (optionally) name.

    Args:
        items: Objects with an ``id`` (and ``name`` when by_name is set)
        ref: What the user typed
        error: NotFoundError subclass to raise when nothing matches
        by_name: Also match names, case-insensitively

    Raises:
        NotFoundError: Nothing matches
        InvalidInputError: The reference matches more than one item
    """
    ref = ref.strip()
    for item in items:
        if item.id == ref:
            return item

    matches = [item for item in items if item.id.endswith(ref)]
    if not matches and by_name:
        matches = [item for item in items if item.name.lower() == ref.lower()]

    if not matches:
        raise error(ref)
    if len(matches) > 1:
        raise InvalidInputError(f"'{ref}' is ambiguous: {', '.join(short_id(m.id) for m in matches)}")
    return matches[0]


def parse_refs(ref_string: str) -> List[str]:
    """
    Parse comma-separated references.

    Args:
        ref_string: e.g. "3f9a1c2de, 8be10a4f1"

    Returns:
        Non-empty references in input order
    """
    refs = [ref.strip() for ref in ref_string.split(",")]
    return [ref for ref in refs if ref]


def parse_deadline(value: Optional[str]) -> Optional[int]:
    """
    Parse an ISO date/datetime into epoch milliseconds.

    Raises:
        InvalidInputError: Not an ISO date
    """
    if not value:
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        raise InvalidInputError(f"Invalid deadline '{value}'. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM")
    return int(moment.timestamp() * 1000)


def format_duration(seconds: int) -> str:
    """1h 05m / 12m 30s / 45s"""
    seconds = int(seconds or 0)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"
