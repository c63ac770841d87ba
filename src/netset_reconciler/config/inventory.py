"""Interface inventory loaded from YAML configuration."""
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from ..store.entities import InterfaceKind, ProtocolKind, NetworkInterface

logger = logging.getLogger(__name__)


class InterfaceInventory:
    """Network interfaces discoverable on this host, loaded from YAML.

    ```yaml
    interfaces:
      en0:
        type: IEEE80211
        name: Wi-Fi
        hardware_address: "a4:83:e7:00:00:01"
        protocols: [DNS, IPv4, IPv6, Proxies]
      bridge0:
        type: Bridge
        protocols: [DNS, IPv4, IPv6]
        members: [en1, en2]
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._interfaces: dict[str, NetworkInterface] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the interfaces.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "interfaces.yaml",
            Path.cwd() / "interfaces.yaml",
            Path.home() / ".config" / "netset-reconciler" / "interfaces.yaml",
            Path("/etc/netset-reconciler/interfaces.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find interfaces.yaml. Create one in ./configs/interfaces.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        entries = self._config.get("interfaces", {}) or {}

        # Underlying interfaces must exist before the ones stacked on them
        pending = dict(entries)
        while pending:
            progressed = False
            for bsd_name, entry in list(pending.items()):
                underlying = (entry or {}).get("underlying")
                if underlying and underlying not in self._interfaces:
                    if underlying not in entries:
                        logger.warning(
                            f"Interface '{bsd_name}' references unknown underlying: {underlying}"
                        )
                    else:
                        continue
                self._interfaces[bsd_name] = self._build_interface(bsd_name, entry or {})
                del pending[bsd_name]
                progressed = True
            if not progressed:
                raise ValueError(
                    f"Circular underlying references among: {', '.join(sorted(pending))}"
                )

        self._validate_members()

    def _build_interface(self, bsd_name: str, entry: dict[str, Any]) -> NetworkInterface:
        type_name = str(entry.get("type", ""))
        kind = InterfaceKind.from_string(type_name)
        if kind is None:
            logger.warning(f"Interface '{bsd_name}' has unrecognized type: {type_name!r}")

        protocols = set()
        for name in entry.get("protocols", []) or []:
            protocol = ProtocolKind.from_string(name)
            if protocol is None:
                logger.warning(f"Interface '{bsd_name}' lists unknown protocol: {name}")
                continue
            protocols.add(protocol)

        stacked = set()
        for name in entry.get("interface_types", []) or []:
            stacked_kind = InterfaceKind.from_string(name)
            if stacked_kind is not None:
                stacked.add(stacked_kind)

        underlying = entry.get("underlying")

        return NetworkInterface(
            kind=kind,
            type_name=type_name,
            bsd_name=bsd_name,
            hardware_address=entry.get("hardware_address"),
            display_name=entry.get("name"),
            supported_interface_kinds=frozenset(stacked),
            supported_protocol_kinds=frozenset(protocols),
            underlying=self._interfaces.get(underlying) if underlying else None,
        )

    def _validate_members(self) -> None:
        """Warn about bridge/bond members that are not declared."""
        for bsd_name, entry in (self._config.get("interfaces", {}) or {}).items():
            for member in (entry or {}).get("members", []) or []:
                if member not in self._interfaces:
                    logger.warning(f"Interface '{bsd_name}' lists unknown member: {member}")

    def get_interface_names(self) -> list[str]:
        """Get all BSD names."""
        return list(self._interfaces.keys())

    def get_interface(self, bsd_name: str) -> NetworkInterface:
        if bsd_name not in self._interfaces:
            raise KeyError(f"Unknown interface: {bsd_name}")
        return self._interfaces[bsd_name]

    def get_interfaces(self) -> list[NetworkInterface]:
        return list(self._interfaces.values())

    def get_members(self, bsd_name: str) -> list[str]:
        """Member interfaces of a bridge or bond."""
        entries = self._config.get("interfaces", {}) or {}
        if bsd_name not in entries:
            raise KeyError(f"Unknown interface: {bsd_name}")
        return list((entries[bsd_name] or {}).get("members", []) or [])
