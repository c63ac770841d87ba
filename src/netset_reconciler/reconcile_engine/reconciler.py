"""Reconciler: normalize the services a set inherited from its source.

Bridge services are dropped, IPv6-capable services are enabled with IPv6
present and enabled. Services are never edited in place: a service that needs
changes is cloned and the clone takes its place in the set.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..store.catalog import EntityCatalog
from ..store.entities import ProtocolKind, NetworkService, NetworkSet
from .cloner import Cloner
from .errors import InvariantViolated, NotFound, require
from .planner import ReconcilePlanner
from .schema import (
    ProtocolAction,
    ProtocolChange,
    ServiceAction,
    ServicePlan,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileOutcome:
    """What ``Reconciler.reconcile`` did to a set."""
    network_set: NetworkSet
    plans: list[ServicePlan]
    cloned: dict[str, str] = field(default_factory=dict)  # original id -> clone id
    deleted: list[str] = field(default_factory=list)


class Reconciler:
    """Apply service decisions to a set and rebuild its membership and order."""

    def __init__(
        self,
        catalog: EntityCatalog,
        cloner: Cloner,
        planner: Optional[ReconcilePlanner] = None,
    ):
        self.catalog = catalog
        self.cloner = cloner
        self.planner = planner or ReconcilePlanner()

    def plan(self, network_set: NetworkSet) -> list[ServicePlan]:
        """Ordered decisions for the set, without changing anything."""
        return self.planner.plan(network_set)

    def reconcile(self, network_set: NetworkSet) -> ReconcileOutcome:
        """
        Reconcile a set's services.

        Args:
            network_set: Set to reconcile (normally an engine-owned clone)

        Returns:
            ReconcileOutcome with the re-fetched set and what changed
        """
        plans = self.plan(network_set)
        survivors: list[NetworkService] = []
        outcome = ReconcileOutcome(network_set, plans)

        for plan in plans:
            service = plan.service
            decision = plan.decision

            if decision.action == ServiceAction.DELETE:
                logger.info(f"Dropping service {service.label} from set {network_set.id}")
                if service.id is not None:
                    outcome.deleted.append(service.id)
                continue

            if decision.action == ServiceAction.LEAVE:
                survivors.append(service)
                continue

            clone = self.cloner.clone_service(service)
            clone = self._apply_modifications(clone, decision.enable, decision.protocol)
            outcome.cloned[str(service.id)] = str(clone.id)
            survivors.append(clone)

        outcome.network_set = self._rebuild_membership(network_set.id, survivors)
        return outcome

    def _apply_modifications(
        self,
        service: NetworkService,
        enable: bool,
        protocol: Optional[ProtocolChange],
    ) -> NetworkService:
        """Apply a Modify decision to a cloned service; returns the fresh value."""
        service_id = str(service.id)

        if enable:
            require(
                self.catalog.set_service_enabled(service_id, True),
                f"set_service_enabled {service_id}",
                self.catalog,
            )

        if protocol is not None:
            if protocol.action == ProtocolAction.ADD_IPV6:
                require(
                    self.catalog.add_protocol_to_service(service_id, ProtocolKind.IPV6),
                    f"add_protocol_to_service {service_id} IPv6",
                    self.catalog,
                )
            elif protocol.action == ProtocolAction.MODIFY_IPV6:
                refreshed = self.catalog.find_service(service_id)
                if refreshed is None or refreshed.find_protocol(ProtocolKind.IPV6) is None:
                    raise InvariantViolated(f"Cloned service {service_id} lost its IPv6 protocol")
                if protocol.enable:
                    require(
                        self.catalog.set_protocol_enabled(service_id, ProtocolKind.IPV6, True),
                        f"set_protocol_enabled {service_id} IPv6",
                        self.catalog,
                    )

        refreshed = self.catalog.find_service(service_id)
        if refreshed is None:
            raise InvariantViolated(f"Service {service_id} vanished while being modified")

        logger.info(
            f"Modified service {refreshed.label}: enable={enable}, "
            f"protocol={protocol.action.value if protocol else None}"
        )
        return refreshed

    def _rebuild_membership(self, set_id: str, survivors: list[NetworkService]) -> NetworkSet:
        """
        Replace the set's services with ``survivors`` and rewrite the order.

        Remove-all then add-back, since there is no positional update. The set
        is briefly empty in the staged store; nothing is committed in between.
        """
        current = self.catalog.find_set(set_id)
        if current is None:
            raise NotFound(f"/Sets/{set_id}")

        for service_id in self.catalog.linked_service_ids(set_id):
            require(
                self.catalog.remove_service_from_set(set_id, service_id),
                f"remove_service_from_set {set_id} {service_id}",
                self.catalog,
            )

        for service in survivors:
            require(
                self.catalog.add_service_to_set(set_id, str(service.id)),
                f"add_service_to_set {set_id} {service.id}",
                self.catalog,
            )

        order = [s.id for s in survivors if s.id is not None]
        require(
            self.catalog.set_priority_order(set_id, order),
            f"set_priority_order {set_id}",
            self.catalog,
        )

        rebuilt = self.catalog.find_set(set_id)
        if rebuilt is None:
            raise InvariantViolated(f"Set {set_id} vanished while rebuilding membership")

        logger.info(f"Rebuilt set {set_id} with {len(order)} services")
        return rebuilt
