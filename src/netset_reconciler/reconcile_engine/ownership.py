"""Ownership marker for entities created by this engine.

Only entities carrying the marker may ever be removed by the engine. The
marker is a reserved key in the entity's stored dictionary, so it survives
process restarts; nothing outside this module should spell the key out.
"""
from typing import Any, Optional

from ..store.port import StorePort
from .errors import NotFound, require

_OWNERSHIP_KEY = "NetsetReconcilerOwned"


def is_owned(values: Optional[dict[str, Any]]) -> bool:
    """Check whether a stored dictionary carries the ownership marker."""
    if not values:
        return False
    return bool(values.get(_OWNERSHIP_KEY, False))


def mark_owned(values: dict[str, Any]) -> dict[str, Any]:
    """Add the ownership marker to a dictionary in place and return it."""
    values[_OWNERSHIP_KEY] = True
    return values


class OwnershipTagger:
    """Read and stamp ownership on entities addressed by store path."""

    def __init__(self, store: StorePort):
        self.store = store

    def is_owned_at(self, path: str) -> bool:
        return is_owned(self.store.get_dictionary(path))

    def stamp(self, path: str, strip_keys: tuple[str, ...] = ()) -> None:
        """Rewrite the dictionary at ``path`` with the marker added.

        Keys in ``strip_keys`` are dropped in the same write.
        """
        values = self.store.get_dictionary(path)
        if values is None:
            raise NotFound(path)

        for key in strip_keys:
            values.pop(key, None)
        mark_owned(values)

        require(self.store.set_dictionary(path, values), f"set_dictionary {path}", self.store)
