"""Preferences store backed by a YAML document.

Handles:
- Staged (session-visible) edits on an in-memory copy of the document
- Commit to disk with stale-write detection via checksums
- Apply by publishing the committed document as the live state
- An advisory lock file next to the document

Without a path the store lives purely in memory, which is what the tests use.
"""
import copy
import hashlib
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Optional

import yaml

from .port import (
    StorePort,
    StoreErrorInfo,
    STATUS_FAILED,
    STATUS_INVALID_ARGUMENT,
    STATUS_NO_KEY,
    STATUS_LOCKED,
    STATUS_NEED_LOCK,
    STATUS_STALE,
    join_path,
    split_path,
)

logger = logging.getLogger(__name__)

# Seconds between lock attempts when lock(wait=True) blocks
LOCK_POLL_INTERVAL = 0.1


def compute_checksum(document: dict[str, Any]) -> str:
    """Stable checksum of a preferences document."""
    doc_str = json.dumps(document, sort_keys=True, default=str)
    return f"sha256:{hashlib.sha256(doc_str.encode()).hexdigest()[:16]}"


class PreferencesStore(StorePort):
    """
    Path-addressed preference store.

    Files managed when ``path`` is given:
        preferences.yaml        # committed document
        preferences.live.yaml   # document made live by apply()
        preferences.yaml.lock   # advisory lock (holds the owner's pid)
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        initial: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize the store.

        Args:
            path: YAML document to read and commit to (None: memory only)
            initial: Starting document for a memory-only store
        """
        self.path = Path(path) if path else None
        self._error = StoreErrorInfo()
        self._locked = False
        self._persisted: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._staged: dict[str, Any] = {}
        self._applied: Optional[dict[str, Any]] = None
        self._checksum = ""
        self.synchronize()

    @property
    def lock_path(self) -> Optional[Path]:
        if self.path is None:
            return None
        return self.path.with_name(self.path.name + ".lock")

    @property
    def live_path(self) -> Optional[Path]:
        if self.path is None:
            return None
        return self.path.with_name(f"{self.path.stem}.live{self.path.suffix}")

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def has_staged_changes(self) -> bool:
        """True if staged edits differ from the committed document."""
        return self._staged != self._persisted

    # === Document I/O ===

    def _read_document(self) -> dict[str, Any]:
        if self.path is None:
            return copy.deepcopy(self._persisted)
        if not self.path.exists():
            return {}
        return yaml.safe_load(self.path.read_text()) or {}

    def _write_document(self, target: Path, document: dict[str, Any]) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_text(yaml.dump(document, default_flow_style=False, sort_keys=False))
        os.replace(tmp, target)

    def _disk_checksum(self) -> str:
        return compute_checksum(self._read_document())

    def persisted_state(self) -> dict[str, Any]:
        """Copy of the last committed document."""
        return copy.deepcopy(self._persisted)

    def applied_state(self) -> Optional[dict[str, Any]]:
        """Copy of the document made live by the last apply(), if any."""
        if self.live_path is not None and self.live_path.exists():
            return yaml.safe_load(self.live_path.read_text()) or {}
        return copy.deepcopy(self._applied)

    # === Error bookkeeping ===

    def _fail(self, code: int, message: str) -> bool:
        self._error = StoreErrorInfo(code=code, message=message)
        logger.debug(f"Store call failed: {self._error}")
        return False

    def last_error(self) -> StoreErrorInfo:
        return self._error

    # === Path access ===

    def _walk(self, segments: list[str]) -> Any:
        node: Any = self._staged
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def get_dictionary(self, path: str) -> Optional[dict[str, Any]]:
        node = self._walk(split_path(path))
        if not isinstance(node, dict):
            return None
        return copy.deepcopy(node)

    def set_dictionary(self, path: str, values: dict[str, Any]) -> bool:
        segments = split_path(path)
        if not segments:
            return self._fail(STATUS_INVALID_ARGUMENT, "Cannot replace the root document")
        if not isinstance(values, dict):
            return self._fail(STATUS_INVALID_ARGUMENT, f"Value for {path} is not a dictionary")

        parent = self._walk(segments[:-1])
        if not isinstance(parent, dict):
            return self._fail(STATUS_NO_KEY, f"Parent of {path} does not exist")

        parent[segments[-1]] = copy.deepcopy(values)
        return True

    def create_unique_child(self, collection_path: str) -> Optional[str]:
        segments = split_path(collection_path)
        node = self._staged
        for segment in segments:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                self._fail(STATUS_INVALID_ARGUMENT, f"{collection_path} is not a collection")
                return None
            node = child

        child_id = str(uuid.uuid4()).upper()
        while child_id in node:
            child_id = str(uuid.uuid4()).upper()

        node[child_id] = {}
        return join_path(collection_path, child_id)

    def remove_path(self, path: str) -> bool:
        segments = split_path(path)
        if not segments:
            return self._fail(STATUS_INVALID_ARGUMENT, "Cannot remove the root document")

        parent = self._walk(segments[:-1])
        if not isinstance(parent, dict) or segments[-1] not in parent:
            return self._fail(STATUS_NO_KEY, f"No value at {path}")

        del parent[segments[-1]]
        return True

    def get_value(self, key: str) -> Any:
        return copy.deepcopy(self._staged.get(key))

    def set_value(self, key: str, value: Any) -> bool:
        if not key or "/" in key:
            return self._fail(STATUS_INVALID_ARGUMENT, f"Invalid top-level key: {key!r}")
        self._staged[key] = copy.deepcopy(value)
        return True

    # === Locking ===

    def lock(self, wait: bool) -> bool:
        if self._locked:
            return self._fail(STATUS_LOCKED, "Preferences already locked by this session")

        if self.lock_path is not None:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            while True:
                try:
                    fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                except FileExistsError:
                    if not wait:
                        return self._fail(
                            STATUS_LOCKED, f"Preferences locked by another process ({self.lock_path})"
                        )
                    time.sleep(LOCK_POLL_INTERVAL)
                    continue
                with os.fdopen(fd, "w") as f:
                    f.write(str(os.getpid()))
                break

        self._locked = True

        # Someone may have committed since we last read
        if self.path is not None and self._disk_checksum() != self._checksum:
            if self.has_staged_changes:
                self.unlock()
                return self._fail(STATUS_STALE, "Preferences changed on disk since last read")
            self.synchronize()

        logger.debug("Preferences lock acquired")
        return True

    def unlock(self) -> bool:
        if not self._locked:
            return self._fail(STATUS_NEED_LOCK, "Preferences are not locked")

        if self.lock_path is not None:
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                logger.warning(f"Lock file {self.lock_path} vanished while held")

        self._locked = False
        logger.debug("Preferences lock released")
        return True

    # === Two-phase persistence ===

    def commit(self) -> bool:
        if self.path is not None:
            if self._disk_checksum() != self._checksum:
                return self._fail(STATUS_STALE, "Preferences changed on disk since last read")
            try:
                self._write_document(self.path, self._staged)
            except OSError as e:
                return self._fail(STATUS_FAILED, f"Failed to write {self.path}: {e}")

        self._persisted = copy.deepcopy(self._staged)
        self._checksum = compute_checksum(self._persisted)
        logger.info(f"Committed preferences ({self._checksum})")
        return True

    def apply(self) -> bool:
        if self.live_path is not None:
            try:
                self._write_document(self.live_path, self._persisted)
            except OSError as e:
                return self._fail(STATUS_FAILED, f"Failed to write {self.live_path}: {e}")

        self._applied = copy.deepcopy(self._persisted)
        logger.info(f"Applied preferences ({self._checksum})")
        return True

    def synchronize(self) -> None:
        self._persisted = self._read_document()
        self._staged = copy.deepcopy(self._persisted)
        self._checksum = compute_checksum(self._persisted)
