"""Preference store access for network sets and services.

This package provides:
- StorePort: Path-addressed store interface with commit/apply
- PreferencesStore: YAML-backed (or in-memory) store implementation
- StoreCatalog: Typed entity views and mutators over a store
- store_lock: Lock context manager with retry
"""

from .port import StorePort, StoreErrorInfo
from .preferences import PreferencesStore, compute_checksum
from .entities import (
    InterfaceKind,
    ProtocolKind,
    NetworkInterface,
    NetworkProtocol,
    NetworkService,
    NetworkSet,
)
from .catalog import EntityCatalog, StoreCatalog
from .locking import LockUnavailable, acquire_lock, store_lock

__all__ = [
    "StorePort",
    "StoreErrorInfo",
    "PreferencesStore",
    "compute_checksum",
    "InterfaceKind",
    "ProtocolKind",
    "NetworkInterface",
    "NetworkProtocol",
    "NetworkService",
    "NetworkSet",
    "EntityCatalog",
    "StoreCatalog",
    "LockUnavailable",
    "acquire_lock",
    "store_lock",
]
