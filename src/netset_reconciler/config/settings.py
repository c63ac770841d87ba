"""Reconciler settings.

Sources, later ones winning:
- Built-in defaults
- A YAML settings file
- Environment variables

Environment variables:
- NETSET_SET_NAME: Name of the set the engine stages
- NETSET_STORE: Path to the preferences document
- NETSET_INTERFACES: Path to the interface inventory
- NETSET_MAKE_CURRENT: "0" to leave the current set alone
- NETSET_APPLY: "0" to commit without applying
- NETSET_LOCK_WAIT: "1" to block on the preferences lock
- NETSET_LOCK_ATTEMPTS: Lock attempts when not blocking
"""
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SET_NAME = "netset-reconciler"
DEFAULT_STORE_PATH = Path("/etc/netset-reconciler/preferences.yaml")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ReconcilerConfig:
    """Settings for a reconcile run."""
    set_name: str = DEFAULT_SET_NAME
    store_path: Path = DEFAULT_STORE_PATH
    interfaces_path: Optional[Path] = None
    make_current: bool = True
    apply_changes: bool = True
    lock_wait: bool = False
    lock_attempts: int = 3
    lock_min_wait: float = 1
    lock_max_wait: float = 10

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconcilerConfig":
        """Build from a settings mapping; unknown keys are ignored with a warning."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            values[key] = value

        config = cls(**values)
        config.store_path = Path(config.store_path)
        if config.interfaces_path is not None:
            config.interfaces_path = Path(config.interfaces_path)
        return config

    @classmethod
    def from_file(cls, path: Path) -> "ReconcilerConfig":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def apply_env(self) -> "ReconcilerConfig":
        """Override settings from NETSET_* environment variables."""
        if "NETSET_SET_NAME" in os.environ:
            self.set_name = os.environ["NETSET_SET_NAME"]
        if "NETSET_STORE" in os.environ:
            self.store_path = Path(os.environ["NETSET_STORE"])
        if "NETSET_INTERFACES" in os.environ:
            self.interfaces_path = Path(os.environ["NETSET_INTERFACES"])
        self.make_current = _env_flag("NETSET_MAKE_CURRENT", self.make_current)
        self.apply_changes = _env_flag("NETSET_APPLY", self.apply_changes)
        self.lock_wait = _env_flag("NETSET_LOCK_WAIT", self.lock_wait)
        if "NETSET_LOCK_ATTEMPTS" in os.environ:
            self.lock_attempts = int(os.environ["NETSET_LOCK_ATTEMPTS"])
        return self

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ReconcilerConfig":
        """Defaults, then the settings file (if any), then the environment."""
        config = cls.from_file(path) if path else cls()
        return config.apply_env()
