"""Audit trail for reconcile sessions.

Every stage of a session that can change the preferences (the staged
reconcile, commit, apply) leaves one JSON line in a dedicated audit log:

    {"timestamp": ..., "session": "3f9c01aa", "stage": "commit",
     "store": "/etc/netset-reconciler/preferences.yaml", "success": true, ...}

Records of one run share a session id, so a committed-but-not-applied run
can be traced from its reconcile record to the failed apply.
"""
import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

audit_logger = logging.getLogger("netset.audit")

AUDIT_FILE_NAME = "audit.log"


def default_audit_dir() -> Path:
    return Path.home() / ".netset-reconciler"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Send audit records to ``<log_dir>/audit.log``.

    Replaces any handler installed by an earlier call. Records do not reach
    the root logger.

    Returns:
        Path of the audit file
    """
    directory = Path(log_dir) if log_dir else default_audit_dir()
    directory.mkdir(parents=True, exist_ok=True)
    audit_file = directory / AUDIT_FILE_NAME

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(audit_file, maxBytes=10 * 1024 * 1024, backupCount=10)
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """One audited stage of a reconcile session."""
    timestamp: str
    session: str
    stage: str  # reconcile, commit, apply
    store: str
    user: str
    success: bool
    details: dict = field(default_factory=dict)
    source_set: Optional[dict] = None
    staged: Optional[dict] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        return cls(**json.loads(json_str))


class ChangeTracker:
    """Audit trail of one reconcile session.

    Usage:
        tracker = ChangeTracker(store_label=str(store_path))
        tracker.snapshot("source_set", {...})
        tracker.record("reconcile", success=True,
                       source_set=tracker.get_snapshot("source_set"))
    """

    def __init__(self, store_label: str = "memory", user: Optional[str] = None):
        self.store_label = store_label
        self.user = user or os.environ.get("USER", "system")
        self.session = uuid.uuid4().hex[:8]
        self.history: list[ChangeRecord] = []
        self._snapshots: dict[str, Any] = {}

    def snapshot(self, name: str, state: Any) -> None:
        """Keep a state (e.g. the source set) to attach to later records."""
        self._snapshots[name] = state

    def get_snapshot(self, name: str) -> Optional[Any]:
        return self._snapshots.get(name)

    def record(
        self,
        stage: str,
        success: bool,
        details: Optional[dict] = None,
        error: Optional[str] = None,
        source_set: Optional[dict] = None,
        staged: Optional[dict] = None,
    ) -> ChangeRecord:
        """Write one audit record and keep it in ``history``."""
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            session=self.session,
            stage=stage,
            store=self.store_label,
            user=self.user,
            success=success,
            details=details or {},
            source_set=source_set,
            staged=staged,
            error=error,
        )
        self.history.append(record)
        audit_logger.info(record.to_json())
        return record

    @property
    def failures(self) -> list[ChangeRecord]:
        return [r for r in self.history if not r.success]


def get_recent_changes(
    log_file: Optional[str] = None,
    stage: Optional[str] = None,
    session: Optional[str] = None,
    failures_only: bool = False,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read audit records, most recent first.

    Args:
        log_file: Audit file (default: ~/.netset-reconciler/audit.log)
        stage: Only records of this stage
        session: Only records of this session
        failures_only: Only failed stages
        limit: Maximum number of records
    """
    path = Path(log_file) if log_file else default_audit_dir() / AUDIT_FILE_NAME
    if not path.exists():
        return []

    records = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Malformed line

            if stage and record.stage != stage:
                continue
            if session and record.session != session:
                continue
            if failures_only and record.success:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
