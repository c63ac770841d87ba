"""Errors raised by the reconcile engine."""
from typing import Optional, Union

from ..store.catalog import EntityCatalog
from ..store.port import StoreErrorInfo, StorePort


class EngineError(Exception):
    """Base class for every error that aborts a reconcile run."""
    pass


class StoreCallFailed(EngineError):
    """A store or catalog mutation reported failure."""

    def __init__(self, operation: str, last_error: Optional[StoreErrorInfo] = None):
        self.operation = operation
        self.last_error = last_error or StoreErrorInfo()
        super().__init__(f"Store call failed [{operation}]: {self.last_error}")


class ApplyPending(StoreCallFailed):
    """commit() succeeded but apply() did not.

    The new configuration is durable but not active.
    """

    def __init__(self, last_error: Optional[StoreErrorInfo] = None):
        super().__init__("apply", last_error)
        self.args = (
            f"Changes were committed but could not be applied: {self.last_error}",
        )


class NotFound(EngineError):
    """A required path or entity does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not found: {path}")


class InvariantViolated(EngineError):
    """A post-condition that must hold after a successful store call did not."""
    pass


def require(ok: bool, operation: str, source: Union[StorePort, EntityCatalog]) -> None:
    """Raise StoreCallFailed unless a boolean store or catalog call succeeded."""
    if not ok:
        raise StoreCallFailed(operation, source.last_error())
