"""Logging, timing and audit helpers."""
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
    LogSettings,
    PerfStats,
    global_stats,
)
from .audit_log import ChangeTracker, ChangeRecord, get_recent_changes, setup_audit_logging

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "LogSettings",
    "PerfStats",
    "global_stats",
    "ChangeTracker",
    "ChangeRecord",
    "get_recent_changes",
    "setup_audit_logging",
]
