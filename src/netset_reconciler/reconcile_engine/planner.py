"""Planner: decide what happens to each service of a set.

Pure computation over catalog snapshots; nothing here touches the store.
"""
from typing import Callable, Iterable, Optional, TypeVar

from ..store.entities import InterfaceKind, ProtocolKind, NetworkService, NetworkSet
from .schema import (
    ProtocolAction,
    ProtocolChange,
    ServiceDecision,
    ServicePlan,
)

T = TypeVar("T")


def priority_ordered(
    items: Iterable[T],
    priority_order: Iterable[str],
    key: Callable[[T], Optional[str]] = lambda s: s.id,
) -> list[T]:
    """
    Sort items by the position of their id in ``priority_order``.

    Items whose id is missing, or absent from the order, go last. The sort is
    stable, so items with equal positions (including all unordered ones) keep
    their input order. Stale ids in ``priority_order`` are ignored.
    """
    positions: dict[str, int] = {}
    for position, item_id in enumerate(priority_order):
        positions.setdefault(item_id, position)

    def sort_key(item: T) -> tuple[bool, int]:
        item_id = key(item)
        position = positions.get(item_id) if item_id is not None else None
        return (position is None, position if position is not None else 0)

    return sorted(items, key=sort_key)


class ReconcilePlanner:
    """Calculate per-service decisions for a network set."""

    def plan(self, network_set: NetworkSet) -> list[ServicePlan]:
        """
        Decide what to do with every service in a set.

        Returns:
            ServicePlans in priority order
        """
        ordered = priority_ordered(network_set.services, network_set.priority_order)
        return [ServicePlan(service=s, decision=self.decide(s)) for s in ordered]

    def decide(self, service: NetworkService) -> ServiceDecision:
        """Decision for a single service."""
        interface = service.interface
        if interface is None or interface.kind is None:
            return ServiceDecision.leave()

        if interface.kind == InterfaceKind.BRIDGE:
            return ServiceDecision.delete()

        if not interface.supports_protocol(ProtocolKind.IPV6):
            return ServiceDecision.leave()

        protocol = self.decide_protocol(service)
        if service.enabled and protocol is None:
            return ServiceDecision.leave()

        return ServiceDecision.modify(enable=not service.enabled, protocol=protocol)

    def decide_protocol(self, service: NetworkService) -> Optional[ProtocolChange]:
        """
        Protocol change needed for an IPv6-capable service.

        Only presence and enablement are considered; the IPv6 config method
        is left as it is.
        """
        ipv6 = service.find_protocol(ProtocolKind.IPV6)
        if ipv6 is None:
            return ProtocolChange(action=ProtocolAction.ADD_IPV6)

        if not ipv6.enabled:
            return ProtocolChange(action=ProtocolAction.MODIFY_IPV6, enable=True)

        return None
