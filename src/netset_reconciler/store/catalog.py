"""Entity catalog: typed views and mutators over the preference store.

The catalog turns stored dictionaries into ``NetworkSet``/``NetworkService``
snapshots and implements membership, ordering and protocol mutators as
whole-dictionary rewrites. Mutators return a bool; the reason for a failure
is available from ``last_error()``.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from .entities import (
    InterfaceKind,
    ProtocolKind,
    NetworkInterface,
    NetworkProtocol,
    NetworkService,
    NetworkSet,
)
from .port import (
    StorePort,
    StoreErrorInfo,
    SETS_PATH,
    SERVICES_PATH,
    CURRENT_SET_KEY,
    STATUS_INVALID_ARGUMENT,
    STATUS_KEY_EXISTS,
    STATUS_NO_KEY,
    join_path,
    last_segment,
)

logger = logging.getLogger(__name__)

# Schema keys
USER_DEFINED_NAME_KEY = "UserDefinedName"
INACTIVE_KEY = "__INACTIVE__"
LINK_KEY = "__LINK__"
INTERFACE_KEY = "Interface"
INTERFACE_TYPE_KEY = "Type"
INTERFACE_DEVICE_KEY = "DeviceName"
INTERFACE_HARDWARE_KEY = "Hardware"
NETWORK_KEY = "Network"
SERVICE_KEY = "Service"
GLOBAL_KEY = "Global"
SERVICE_ORDER_KEY = "ServiceOrder"

# Defaults written when a protocol is added to a service
DEFAULT_PROTOCOL_CONFIGURATION: dict[ProtocolKind, dict[str, Any]] = {
    ProtocolKind.DNS: {},
    ProtocolKind.IPV4: {"ConfigMethod": "DHCP"},
    ProtocolKind.IPV6: {"ConfigMethod": "Automatic"},
    ProtocolKind.PROXIES: {"ExceptionsList": ["*.local", "169.254/16"], "FTPPassive": 1},
    ProtocolKind.SMB: {},
}

# Order in which default protocols are established
PROTOCOL_ORDER = [
    ProtocolKind.DNS,
    ProtocolKind.IPV4,
    ProtocolKind.IPV6,
    ProtocolKind.PROXIES,
    ProtocolKind.SMB,
]


def set_path(set_id: str) -> str:
    return join_path(SETS_PATH, set_id)


def service_path(service_id: str) -> str:
    return join_path(SERVICES_PATH, service_id)


def default_protocol_configuration(kind: ProtocolKind) -> dict[str, Any]:
    """Fresh copy of the default configuration for a protocol kind."""
    return copy.deepcopy(DEFAULT_PROTOCOL_CONFIGURATION.get(kind, {}))


def interface_to_dict(interface: NetworkInterface) -> dict[str, Any]:
    """Stored ``Interface`` entity for a service bound to ``interface``."""
    values: dict[str, Any] = {
        INTERFACE_TYPE_KEY: interface.kind.value if interface.kind else interface.type_name,
    }
    if interface.bsd_name:
        values[INTERFACE_DEVICE_KEY] = interface.bsd_name
    if interface.kind == InterfaceKind.IEEE80211:
        values[INTERFACE_HARDWARE_KEY] = "AirPort"
    elif interface.kind is not None:
        values[INTERFACE_HARDWARE_KEY] = interface.kind.value
    if interface.display_name:
        values[USER_DEFINED_NAME_KEY] = interface.display_name
    return values


class EntityCatalog(ABC):
    """Enumeration, lookup and mutation of network entities."""

    @abstractmethod
    def list_sets(self) -> list[NetworkSet]:
        pass

    @abstractmethod
    def list_services(self) -> list[NetworkService]:
        pass

    @abstractmethod
    def list_interfaces(self) -> list[NetworkInterface]:
        pass

    @abstractmethod
    def get_current_set(self) -> Optional[NetworkSet]:
        pass

    @abstractmethod
    def find_set(self, set_id: str) -> Optional[NetworkSet]:
        pass

    @abstractmethod
    def find_service(self, service_id: str) -> Optional[NetworkService]:
        pass

    @abstractmethod
    def linked_service_ids(self, set_id: str) -> list[str]:
        """Every service id the set links to, including links to missing services."""
        pass

    # Mutators

    @abstractmethod
    def add_service_to_set(self, set_id: str, service_id: str) -> bool:
        pass

    @abstractmethod
    def remove_service_from_set(self, set_id: str, service_id: str) -> bool:
        pass

    @abstractmethod
    def set_priority_order(self, set_id: str, service_ids: list[str]) -> bool:
        pass

    @abstractmethod
    def set_current(self, set_id: str) -> bool:
        pass

    @abstractmethod
    def remove_set(self, set_id: str) -> bool:
        pass

    @abstractmethod
    def remove_service(self, service_id: str) -> bool:
        pass

    @abstractmethod
    def create_service(self, interface: NetworkInterface) -> Optional[str]:
        """Create a service bound to ``interface``; returns its id."""

    @abstractmethod
    def add_protocol_to_service(self, service_id: str, kind: ProtocolKind) -> bool:
        pass

    @abstractmethod
    def establish_default_configuration(self, service_id: str) -> bool:
        pass

    @abstractmethod
    def set_service_enabled(self, service_id: str, enabled: bool) -> bool:
        pass

    @abstractmethod
    def set_protocol_enabled(self, service_id: str, kind: ProtocolKind, enabled: bool) -> bool:
        pass

    @abstractmethod
    def last_error(self) -> StoreErrorInfo:
        pass


class StoreCatalog(EntityCatalog):
    """
    Catalog backed by a ``StorePort``.

    Sets reference services through ``__LINK__`` entries under
    ``Network/Service``; the priority order lives at
    ``Network/Global/IPv4/ServiceOrder``. Interfaces are not stored in the
    preferences; they come from the inventory passed in.
    """

    def __init__(self, store: StorePort, interfaces: Iterable[NetworkInterface] = ()):
        """
        Initialize the catalog.

        Args:
            store: Preference store to read and write
            interfaces: Interfaces discoverable on this host
        """
        self.store = store
        self._interfaces = list(interfaces)
        self._error = StoreErrorInfo()

    # === Error bookkeeping ===

    def _fail(self, code: int, message: str) -> bool:
        self._error = StoreErrorInfo(code=code, message=message)
        logger.debug(f"Catalog call failed: {self._error}")
        return False

    def _store_call(self, ok: bool) -> bool:
        if not ok:
            self._error = self.store.last_error()
        return ok

    def last_error(self) -> StoreErrorInfo:
        return self._error

    # === Reading ===

    def list_interfaces(self) -> list[NetworkInterface]:
        return list(self._interfaces)

    def _resolve_interface(self, values: Any) -> Optional[NetworkInterface]:
        """Map a stored ``Interface`` entity onto a discovered interface."""
        if not isinstance(values, dict):
            return None

        type_name = values.get(INTERFACE_TYPE_KEY)
        bsd_name = values.get(INTERFACE_DEVICE_KEY)

        if bsd_name:
            for interface in self._interfaces:
                if interface.bsd_name == bsd_name:
                    return interface

        # Not discoverable right now: keep what the store says, no capabilities
        return NetworkInterface(
            kind=InterfaceKind.from_string(type_name),
            type_name=type_name or "",
            bsd_name=bsd_name,
            display_name=values.get(USER_DEFINED_NAME_KEY),
        )

    def _service_from_values(self, service_id: str, values: dict[str, Any]) -> NetworkService:
        protocols = []
        for key, proto_values in values.items():
            kind = ProtocolKind.from_string(key)
            if kind is None or not isinstance(proto_values, dict):
                continue
            protocols.append(NetworkProtocol(
                kind=kind,
                enabled=not proto_values.get(INACTIVE_KEY),
                configuration={k: v for k, v in proto_values.items() if k != INACTIVE_KEY},
            ))

        return NetworkService(
            id=service_id,
            name=values.get(USER_DEFINED_NAME_KEY),
            enabled=not values.get(INACTIVE_KEY),
            interface=self._resolve_interface(values.get(INTERFACE_KEY)),
            protocols=tuple(protocols),
        )

    def _set_links(self, values: dict[str, Any]) -> dict[str, Any]:
        links = values.get(NETWORK_KEY, {}).get(SERVICE_KEY, {})
        return links if isinstance(links, dict) else {}

    def _set_from_values(self, set_id: str, values: dict[str, Any]) -> NetworkSet:
        services = []
        for service_id in self._set_links(values):
            service = self.find_service(service_id)
            if service is None:
                logger.debug(f"Set {set_id} links missing service {service_id}")
                continue
            services.append(service)

        order = (
            values.get(NETWORK_KEY, {})
            .get(GLOBAL_KEY, {})
            .get("IPv4", {})
            .get(SERVICE_ORDER_KEY, [])
        )

        return NetworkSet(
            id=set_id,
            name=values.get(USER_DEFINED_NAME_KEY),
            services=tuple(services),
            priority_order=tuple(str(s) for s in order or []),
        )

    def find_service(self, service_id: str) -> Optional[NetworkService]:
        values = self.store.get_dictionary(service_path(service_id))
        if values is None:
            return None
        return self._service_from_values(service_id, values)

    def find_set(self, set_id: str) -> Optional[NetworkSet]:
        values = self.store.get_dictionary(set_path(set_id))
        if values is None:
            return None
        return self._set_from_values(set_id, values)

    def linked_service_ids(self, set_id: str) -> list[str]:
        values = self.store.get_dictionary(set_path(set_id))
        if values is None:
            return []
        return list(self._set_links(values))

    def list_services(self) -> list[NetworkService]:
        collection = self.store.get_dictionary(SERVICES_PATH) or {}
        return [
            self._service_from_values(service_id, values)
            for service_id, values in collection.items()
            if isinstance(values, dict)
        ]

    def list_sets(self) -> list[NetworkSet]:
        collection = self.store.get_dictionary(SETS_PATH) or {}
        return [
            self._set_from_values(set_id, values)
            for set_id, values in collection.items()
            if isinstance(values, dict)
        ]

    def current_set_id(self) -> Optional[str]:
        current = self.store.get_value(CURRENT_SET_KEY)
        if not isinstance(current, str):
            return None
        return last_segment(current)

    def get_current_set(self) -> Optional[NetworkSet]:
        set_id = self.current_set_id()
        if set_id is None:
            return None
        return self.find_set(set_id)

    # === Set mutators ===

    def add_service_to_set(self, set_id: str, service_id: str) -> bool:
        values = self.store.get_dictionary(set_path(set_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No set {set_id}")
        service = self.find_service(service_id)
        if service is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")

        links = self._set_links(values)
        if service_id in links:
            return self._fail(STATUS_KEY_EXISTS, f"Service {service_id} already in set {set_id}")

        # One service per interface within a set
        if service.interface is not None:
            for linked_id in links:
                linked = self.find_service(linked_id)
                if (
                    linked is not None and linked.interface is not None
                    and linked.interface.same_device(service.interface)
                ):
                    return self._fail(
                        STATUS_KEY_EXISTS,
                        f"Set {set_id} already has a service for {service.interface.bsd_name}",
                    )

        network = values.setdefault(NETWORK_KEY, {})
        network.setdefault(SERVICE_KEY, {})[service_id] = {LINK_KEY: service_path(service_id)}
        return self._store_call(self.store.set_dictionary(set_path(set_id), values))

    def remove_service_from_set(self, set_id: str, service_id: str) -> bool:
        values = self.store.get_dictionary(set_path(set_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No set {set_id}")

        links = self._set_links(values)
        if service_id not in links:
            return self._fail(STATUS_NO_KEY, f"Service {service_id} not in set {set_id}")

        del values[NETWORK_KEY][SERVICE_KEY][service_id]
        return self._store_call(self.store.set_dictionary(set_path(set_id), values))

    def set_priority_order(self, set_id: str, service_ids: list[str]) -> bool:
        values = self.store.get_dictionary(set_path(set_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No set {set_id}")

        ipv4_global = (
            values.setdefault(NETWORK_KEY, {})
            .setdefault(GLOBAL_KEY, {})
            .setdefault("IPv4", {})
        )
        ipv4_global[SERVICE_ORDER_KEY] = list(service_ids)
        return self._store_call(self.store.set_dictionary(set_path(set_id), values))

    def set_current(self, set_id: str) -> bool:
        if self.store.get_dictionary(set_path(set_id)) is None:
            return self._fail(STATUS_NO_KEY, f"No set {set_id}")
        return self._store_call(self.store.set_value(CURRENT_SET_KEY, set_path(set_id)))

    def remove_set(self, set_id: str) -> bool:
        if set_id == self.current_set_id():
            return self._fail(STATUS_INVALID_ARGUMENT, f"Set {set_id} is the current set")
        return self._store_call(self.store.remove_path(set_path(set_id)))

    # === Service mutators ===

    def remove_service(self, service_id: str) -> bool:
        if self.store.get_dictionary(service_path(service_id)) is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")

        # Unlink from every set first; priority orders may keep the stale id
        sets = self.store.get_dictionary(SETS_PATH) or {}
        for set_id, values in sets.items():
            if isinstance(values, dict) and service_id in self._set_links(values):
                if not self.remove_service_from_set(set_id, service_id):
                    return False

        return self._store_call(self.store.remove_path(service_path(service_id)))

    def create_service(self, interface: NetworkInterface) -> Optional[str]:
        path = self.store.create_unique_child(SERVICES_PATH)
        if path is None:
            self._store_call(False)
            return None

        values = {
            USER_DEFINED_NAME_KEY: interface.display_name or interface.bsd_name or "",
            INTERFACE_KEY: interface_to_dict(interface),
        }
        if not self._store_call(self.store.set_dictionary(path, values)):
            return None
        return last_segment(path)

    def add_protocol_to_service(self, service_id: str, kind: ProtocolKind) -> bool:
        values = self.store.get_dictionary(service_path(service_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")
        if kind.value in values:
            return self._fail(STATUS_KEY_EXISTS, f"Service {service_id} already has {kind.value}")

        values[kind.value] = default_protocol_configuration(kind)
        return self._store_call(self.store.set_dictionary(service_path(service_id), values))

    def establish_default_configuration(self, service_id: str) -> bool:
        values = self.store.get_dictionary(service_path(service_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")

        service = self._service_from_values(service_id, values)
        if service.interface is None:
            return self._fail(STATUS_INVALID_ARGUMENT, f"Service {service_id} has no interface")

        for kind in PROTOCOL_ORDER:
            if service.interface.supports_protocol(kind) and kind.value not in values:
                values[kind.value] = default_protocol_configuration(kind)

        return self._store_call(self.store.set_dictionary(service_path(service_id), values))

    def set_service_enabled(self, service_id: str, enabled: bool) -> bool:
        values = self.store.get_dictionary(service_path(service_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")

        if enabled:
            values.pop(INACTIVE_KEY, None)
        else:
            values[INACTIVE_KEY] = 1
        return self._store_call(self.store.set_dictionary(service_path(service_id), values))

    def set_protocol_enabled(self, service_id: str, kind: ProtocolKind, enabled: bool) -> bool:
        values = self.store.get_dictionary(service_path(service_id))
        if values is None:
            return self._fail(STATUS_NO_KEY, f"No service {service_id}")

        protocol = values.get(kind.value)
        if not isinstance(protocol, dict):
            return self._fail(STATUS_NO_KEY, f"Service {service_id} has no {kind.value}")

        if enabled:
            protocol.pop(INACTIVE_KEY, None)
        else:
            protocol[INACTIVE_KEY] = 1
        return self._store_call(self.store.set_dictionary(service_path(service_id), values))
