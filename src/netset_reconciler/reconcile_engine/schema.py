"""Schema definitions for the reconcile engine.

Decisions produced while planning and reports of what a run staged. The
entity types themselves live in ``store.entities`` and are re-exported here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..store.entities import (
    InterfaceKind,
    ProtocolKind,
    NetworkInterface,
    NetworkProtocol,
    NetworkService,
    NetworkSet,
)

__all__ = [
    "InterfaceKind",
    "ProtocolKind",
    "NetworkInterface",
    "NetworkProtocol",
    "NetworkService",
    "NetworkSet",
    "ServiceAction",
    "ProtocolAction",
    "ProtocolChange",
    "ServiceDecision",
    "ServicePlan",
    "PruneReport",
    "ReconcileReport",
]


# --- Decisions ---

class ServiceAction(str, Enum):
    """What to do with an existing service."""
    LEAVE = "leave"
    DELETE = "delete"
    MODIFY = "modify"


class ProtocolAction(str, Enum):
    """Protocol change for a modified service."""
    ADD_IPV6 = "add_ipv6"
    MODIFY_IPV6 = "modify_ipv6"


@dataclass(frozen=True)
class ProtocolChange:
    """Protocol modification to apply to a cloned service."""
    action: ProtocolAction
    enable: bool = False


@dataclass(frozen=True)
class ServiceDecision:
    """Decision for a single service."""
    action: ServiceAction
    enable: bool = False
    protocol: Optional[ProtocolChange] = None

    @classmethod
    def leave(cls) -> "ServiceDecision":
        return cls(action=ServiceAction.LEAVE)

    @classmethod
    def delete(cls) -> "ServiceDecision":
        return cls(action=ServiceAction.DELETE)

    @classmethod
    def modify(cls, enable: bool, protocol: Optional[ProtocolChange]) -> "ServiceDecision":
        return cls(action=ServiceAction.MODIFY, enable=enable, protocol=protocol)


@dataclass(frozen=True)
class ServicePlan:
    """A service paired with its decision, in priority order."""
    service: NetworkService
    decision: ServiceDecision


# --- Reports ---

@dataclass
class PruneReport:
    """Result of removing stale engine-owned entities."""
    removed_sets: list[str] = field(default_factory=list)
    removed_services: list[str] = field(default_factory=list)
    retained_current_set: Optional[str] = None

    @property
    def total_removed(self) -> int:
        return len(self.removed_sets) + len(self.removed_services)


@dataclass
class ReconcileReport:
    """Everything a reconcile run staged in the store."""
    source_set_id: Optional[str] = None
    network_set: Optional[NetworkSet] = None
    prune: PruneReport = field(default_factory=PruneReport)
    plans: list[ServicePlan] = field(default_factory=list)
    cloned_services: dict[str, str] = field(default_factory=dict)  # original id -> clone id
    deleted_services: list[str] = field(default_factory=list)
    provisioned_services: list[str] = field(default_factory=list)
    made_current: bool = False

    @property
    def no_change(self) -> bool:
        return (
            not self.cloned_services and
            not self.deleted_services and
            not self.provisioned_services
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "source_set_id": self.source_set_id,
            "set_id": self.network_set.id if self.network_set else None,
            "set_name": self.network_set.name if self.network_set else None,
            "priority_order": list(self.network_set.priority_order) if self.network_set else [],
            "pruned_sets": self.prune.removed_sets,
            "pruned_services": self.prune.removed_services,
            "cloned_services": self.cloned_services,
            "deleted_services": self.deleted_services,
            "provisioned_services": self.provisioned_services,
            "made_current": self.made_current,
        }
