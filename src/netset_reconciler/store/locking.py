"""Advisory lock handling with retry logic."""
import logging
from contextlib import contextmanager
from typing import Iterator

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from .port import StorePort, StoreErrorInfo

logger = logging.getLogger(__name__)


class LockUnavailable(Exception):
    """Raised when the preferences lock cannot be taken."""

    def __init__(self, last_error: StoreErrorInfo):
        self.last_error = last_error
        super().__init__(f"Could not lock preferences: {last_error}")


def acquire_lock(
    store: StorePort,
    wait: bool = False,
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> None:
    """Take the store lock, retrying with exponential backoff.

    Args:
        store: Store to lock
        wait: Block inside the store until the lock is free (no retries needed)
        max_attempts: Attempts before giving up when not waiting
        min_wait: Minimum wait between attempts (seconds)
        max_wait: Maximum wait between attempts (seconds)

    Raises:
        LockUnavailable: If every attempt failed
    """
    @retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(LockUnavailable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def _attempt() -> None:
        if not store.lock(wait):
            raise LockUnavailable(store.last_error())

    _attempt()


@contextmanager
def store_lock(store: StorePort, wait: bool = False, **retry_options) -> Iterator[StorePort]:
    """Hold the store lock for the duration of the block.

    Usage:
        with store_lock(store, max_attempts=5):
            reconcile(store, "netset-reconciler")
            save_changes(store)
    """
    acquire_lock(store, wait=wait, **retry_options)
    try:
        yield store
    finally:
        if not store.unlock():
            logger.warning(f"Failed to release preferences lock: {store.last_error()}")
