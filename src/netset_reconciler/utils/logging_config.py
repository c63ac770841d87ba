"""Logging configuration for netset-reconciler.

Provides:
- Console and rotating file handlers on the ``netset_reconciler`` logger
- A separate ``netset.perf`` logger with per-stage timings
- ``timed`` / ``timed_section`` to time engine stages into ``global_stats``

Environment Variables:
    NETSET_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    NETSET_LOG_FILE: Path to log file (default: ~/.netset-reconciler/netset.log)
    NETSET_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    NETSET_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from netset_reconciler.utils.logging_config import setup_logging, timed

    setup_logging()  # Once, from the CLI

    @timed("prune")
    def prune(self):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Iterator, Optional

PACKAGE_LOGGER = "netset_reconciler"

perf_logger = logging.getLogger("netset.perf")

MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-40s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class LogSettings:
    """Where and how much to log."""
    level: int
    file: Path
    max_bytes: int
    backups: int

    @property
    def perf_file(self) -> Path:
        return self.file.parent / "netset-perf.log"

    @classmethod
    def from_env(cls) -> "LogSettings":
        level_name = os.environ.get("NETSET_LOG_LEVEL", "INFO").upper()
        default_file = Path.home() / ".netset-reconciler" / "netset.log"
        return cls(
            level=getattr(logging, level_name, logging.INFO),
            file=Path(os.environ.get("NETSET_LOG_FILE", str(default_file))),
            max_bytes=int(os.environ.get("NETSET_LOG_MAX_SIZE", "10")) * 1024 * 1024,
            backups=int(os.environ.get("NETSET_LOG_BACKUPS", "5")),
        )


def _replace_handlers(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)


def _rotating(path: Path, settings: LogSettings, fmt: str) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path, maxBytes=settings.max_bytes, backupCount=settings.backups, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(level: Optional[int] = None) -> LogSettings:
    """Configure package and performance logging.

    The console shows ``level`` (default from NETSET_LOG_LEVEL); the log file
    always captures DEBUG. Calling again replaces the handlers.

    Returns:
        The settings in effect
    """
    settings = LogSettings.from_env()
    if level is not None:
        settings.level = level
    settings.file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter(MAIN_FORMAT, datefmt=DATE_FORMAT))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG)
    _replace_handlers(package_logger, [console, _rotating(settings.file, settings, MAIN_FORMAT)])

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    _replace_handlers(perf_logger, [_rotating(settings.perf_file, settings, PERF_FORMAT)])

    package_logger.debug(
        f"Logging initialized: level={logging.getLevelName(settings.level)}, file={settings.file}"
    )
    return settings


@contextmanager
def timed_section(operation: str, **extra) -> Iterator[None]:
    """Time a block, record it in ``global_stats`` and log it to ``netset.perf``.

    Failed blocks are logged but not recorded.

    Usage:
        with timed_section("commit", store=str(store.path)):
            store.commit()
    """
    suffix = "".join(f" | {k}={v}" for k, v in extra.items())
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(f"{operation:20s} | {elapsed:8.2f}ms | FAIL: {e}{suffix}")
        raise
    elapsed = (time.perf_counter() - start) * 1000
    global_stats.record(operation, elapsed)
    perf_logger.info(f"{operation:20s} | {elapsed:8.2f}ms | OK{suffix}")


def timed(operation: str) -> Callable[[Callable], Callable]:
    """Decorator form of ``timed_section`` for engine stages."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_section(operation):
                return func(*args, **kwargs)
        return wrapper
    return decorator


class PerfStats:
    """Stage timings collected over a process.

    Usage:
        stats = PerfStats()
        stats.record("prune", 1.5)
        print(stats.summary())
    """

    def __init__(self):
        self._data: dict[str, list[float]] = {}

    def record(self, operation: str, duration_ms: float) -> None:
        self._data.setdefault(operation, []).append(duration_ms)

    def count(self, operation: str) -> int:
        return len(self._data.get(operation, []))

    def total(self, operation: str) -> float:
        return sum(self._data.get(operation, []))

    def summary(self) -> str:
        lines = ["Stage timings", "=" * 60]
        for op, times in sorted(self._data.items()):
            avg = sum(times) / len(times)
            lines.append(
                f"{op:20s} | count={len(times):4d} | "
                f"avg={avg:8.2f}ms | min={min(times):8.2f}ms | max={max(times):8.2f}ms"
            )
        return "\n".join(lines)

    def clear(self) -> None:
        self._data.clear()


global_stats = PerfStats()
