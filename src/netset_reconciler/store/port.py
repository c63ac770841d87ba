"""Store port: the path-addressed preference store the engine writes through.

Paths look like ``/Sets/<id>`` or ``/NetworkServices/<id>/IPv6``. Every write
replaces the whole dictionary at a path; there is no field-level update.
Mutators report success as a bool and leave the reason in ``last_error()``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

# Top-level collections
SETS_KEY = "Sets"
SERVICES_KEY = "NetworkServices"
CURRENT_SET_KEY = "CurrentSet"

SETS_PATH = f"/{SETS_KEY}"
SERVICES_PATH = f"/{SERVICES_KEY}"

# Status codes, kept numerically close to the preference framework's
STATUS_OK = 0
STATUS_FAILED = 1001
STATUS_INVALID_ARGUMENT = 1002
STATUS_NO_KEY = 1004
STATUS_KEY_EXISTS = 1005
STATUS_LOCKED = 1006
STATUS_NEED_LOCK = 1007
STATUS_STALE = 3005


@dataclass(frozen=True)
class StoreErrorInfo:
    """Last error reported by the store."""
    code: int = STATUS_OK
    message: str = "Success!"

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


def join_path(*segments: str) -> str:
    """Join path segments into an absolute store path."""
    parts = []
    for segment in segments:
        parts.extend(p for p in str(segment).split("/") if p)
    return "/" + "/".join(parts)


def split_path(path: str) -> list[str]:
    """Split an absolute store path into its segments."""
    return [p for p in path.split("/") if p]


def last_segment(path: str) -> Optional[str]:
    """Final segment of a path (the entity id for collection children)."""
    segments = split_path(path)
    return segments[-1] if segments else None


class StorePort(ABC):
    """Hierarchical key-value persistence with a two-phase commit/apply."""

    @abstractmethod
    def get_dictionary(self, path: str) -> Optional[dict[str, Any]]:
        """Return a copy of the dictionary at ``path``, or None."""

    @abstractmethod
    def set_dictionary(self, path: str, values: dict[str, Any]) -> bool:
        """Replace the dictionary at ``path`` with ``values``."""

    @abstractmethod
    def create_unique_child(self, collection_path: str) -> Optional[str]:
        """Allocate a new, empty child under ``collection_path``.

        Returns the full path of the child, or None on failure.
        """

    @abstractmethod
    def remove_path(self, path: str) -> bool:
        """Remove the value at ``path``."""

    @abstractmethod
    def get_value(self, key: str) -> Any:
        """Return a top-level value, or None."""

    @abstractmethod
    def set_value(self, key: str, value: Any) -> bool:
        """Set a top-level value."""

    @abstractmethod
    def lock(self, wait: bool) -> bool:
        """Take the advisory lock, optionally blocking until available."""

    @abstractmethod
    def unlock(self) -> bool:
        """Release the advisory lock."""

    @abstractmethod
    def commit(self) -> bool:
        """Persist staged changes."""

    @abstractmethod
    def apply(self) -> bool:
        """Make the last committed state live."""

    @abstractmethod
    def synchronize(self) -> None:
        """Discard staged changes and re-read persisted state."""

    @abstractmethod
    def last_error(self) -> StoreErrorInfo:
        """Error information for the most recent failed call."""
