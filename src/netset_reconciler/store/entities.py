"""Normalized entities read from the preference store.

Entities are snapshots: after any store mutation, fetch a fresh one from the
catalog instead of reusing the old value.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class InterfaceKind(str, Enum):
    """Interface type strings as stored under ``Interface/Type``."""
    SIX_TO_FOUR = "6to4"
    BLUETOOTH = "Bluetooth"
    BRIDGE = "Bridge"
    BOND = "Bond"
    ETHERNET = "Ethernet"
    FIREWIRE = "FireWire"
    IEEE80211 = "IEEE80211"
    IPSEC = "IPSec"
    L2TP = "L2TP"
    MODEM = "Modem"
    PPP = "PPP"
    PPTP = "PPTP"
    SERIAL = "Serial"
    VLAN = "VLAN"
    WWAN = "WWAN"
    IPV4 = "IPv4"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["InterfaceKind"]:
        """Parse a type string; unrecognized or missing values give None."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ProtocolKind(str, Enum):
    """Protocol entity keys inside a service dictionary."""
    DNS = "DNS"
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    PROXIES = "Proxies"
    SMB = "SMB"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["ProtocolKind"]:
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class NetworkInterface:
    """A discovered network device. Never created by the engine."""
    kind: Optional[InterfaceKind]
    type_name: str = ""
    bsd_name: Optional[str] = None
    hardware_address: Optional[str] = None
    display_name: Optional[str] = None
    supported_interface_kinds: frozenset = frozenset()
    supported_protocol_kinds: frozenset = frozenset()
    underlying: Optional["NetworkInterface"] = None

    def supports_protocol(self, kind: ProtocolKind) -> bool:
        return kind in self.supported_protocol_kinds

    def same_device(self, other: "NetworkInterface") -> bool:
        """Identity comparison: BSD name, then hardware address, then equality."""
        if self.bsd_name and other.bsd_name:
            return self.bsd_name == other.bsd_name
        if self.hardware_address and other.hardware_address:
            return self.hardware_address.lower() == other.hardware_address.lower()
        return self == other


@dataclass(frozen=True)
class NetworkProtocol:
    """A protocol block attached to one service."""
    kind: ProtocolKind
    enabled: bool = True
    configuration: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class NetworkService:
    """A binding of one interface to a collection of protocols."""
    id: Optional[str]
    name: Optional[str] = None
    enabled: bool = True
    interface: Optional[NetworkInterface] = None
    protocols: tuple[NetworkProtocol, ...] = ()

    def find_protocol(self, kind: ProtocolKind) -> Optional[NetworkProtocol]:
        for protocol in self.protocols:
            if protocol.kind == kind:
                return protocol
        return None

    @property
    def label(self) -> str:
        """Short description for logs."""
        if self.interface is not None and self.interface.bsd_name:
            return f"{self.id} ({self.interface.bsd_name})"
        return str(self.id)


@dataclass(frozen=True)
class NetworkSet:
    """A named configuration profile: services plus their priority order."""
    id: str
    name: Optional[str] = None
    services: tuple[NetworkService, ...] = ()
    priority_order: tuple[str, ...] = ()

    @property
    def service_ids(self) -> list[str]:
        return [s.id for s in self.services if s.id is not None]

    def contains_interface(self, interface: NetworkInterface) -> bool:
        return any(
            s.interface is not None and s.interface.same_device(interface)
            for s in self.services
        )

