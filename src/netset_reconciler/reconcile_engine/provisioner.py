"""Provisioner: create services for interfaces the set does not cover yet."""
import logging

from ..store.catalog import EntityCatalog, USER_DEFINED_NAME_KEY, service_path
from ..store.entities import InterfaceKind, ProtocolKind, NetworkInterface, NetworkSet
from .errors import InvariantViolated, StoreCallFailed, require
from .ownership import OwnershipTagger

logger = logging.getLogger(__name__)


class Provisioner:
    """Add default-configured, IPv6-enabled services for uncovered interfaces."""

    def __init__(self, catalog: EntityCatalog, tagger: OwnershipTagger):
        self.catalog = catalog
        self.tagger = tagger

    def eligible_interfaces(self, network_set: NetworkSet) -> list[NetworkInterface]:
        """
        Interfaces that should get a new service in ``network_set``.

        Skips interfaces already backing a service in the set, interfaces of
        unrecognized kind, bridges, and interfaces that cannot carry IPv6.
        """
        eligible = []
        for interface in self.catalog.list_interfaces():
            if network_set.contains_interface(interface):
                continue
            if interface.kind is None:
                continue
            if interface.kind == InterfaceKind.BRIDGE:
                continue
            if not interface.supports_protocol(ProtocolKind.IPV6):
                continue
            eligible.append(interface)
        return eligible

    def provision_missing(self, network_set: NetworkSet) -> list[str]:
        """
        Create and attach services for every eligible interface.

        Args:
            network_set: Set to extend

        Returns:
            Ids of the new services, in the order they were appended
        """
        interfaces = self.eligible_interfaces(network_set)
        if not interfaces:
            logger.info(f"No uncovered interfaces for set {network_set.id}")
            return []

        logger.info(
            f"Provisioning services for: "
            f"{', '.join(i.bsd_name or i.type_name for i in interfaces)}"
        )

        order = list(network_set.priority_order)
        new_ids = []
        for interface in interfaces:
            service_id = self._create_service(interface)
            order.append(service_id)
            new_ids.append(service_id)

        for service_id in new_ids:
            require(
                self.catalog.add_service_to_set(network_set.id, service_id),
                f"add_service_to_set {network_set.id} {service_id}",
                self.catalog,
            )

        require(
            self.catalog.set_priority_order(network_set.id, order),
            f"set_priority_order {network_set.id}",
            self.catalog,
        )
        return new_ids

    def _create_service(self, interface: NetworkInterface) -> str:
        service_id = self.catalog.create_service(interface)
        if service_id is None:
            raise StoreCallFailed(
                f"create_service {interface.bsd_name}", self.catalog.last_error()
            )

        self.tagger.stamp(service_path(service_id), strip_keys=(USER_DEFINED_NAME_KEY,))

        require(
            self.catalog.add_protocol_to_service(service_id, ProtocolKind.IPV6),
            f"add_protocol_to_service {service_id} IPv6",
            self.catalog,
        )
        require(
            self.catalog.establish_default_configuration(service_id),
            f"establish_default_configuration {service_id}",
            self.catalog,
        )

        if self.catalog.find_service(service_id) is None:
            raise InvariantViolated(f"Created service {service_id} cannot be found")

        logger.info(f"Created service {service_id} for {interface.bsd_name}")
        return service_id
