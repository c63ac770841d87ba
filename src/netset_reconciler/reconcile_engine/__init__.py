"""Reconcile Engine - stage a normalized copy of the current network set.

The engine never edits what it did not create:
- The current set is cloned under the desired name
- Bridge services are dropped from the clone
- IPv6-capable services are cloned, enabled and given IPv6
- Uncovered interfaces get new default services
- Leftovers from earlier runs are pruned by ownership marker

Usage:
    from netset_reconciler.reconcile_engine import reconcile, save_changes
    from netset_reconciler.store import PreferencesStore, store_lock

    store = PreferencesStore(path)
    with store_lock(store):
        network_set = reconcile(store, "netset-reconciler", make_current=True)
        save_changes(store)
"""

from .engine import ReconcileEngine, reconcile, save_changes, discard_changes
from .errors import (
    EngineError,
    StoreCallFailed,
    ApplyPending,
    NotFound,
    InvariantViolated,
)
from .schema import (
    ServiceAction,
    ProtocolAction,
    ProtocolChange,
    ServiceDecision,
    ServicePlan,
    PruneReport,
    ReconcileReport,
)
from .ownership import OwnershipTagger
from .cloner import Cloner
from .planner import ReconcilePlanner, priority_ordered
from .reconciler import Reconciler, ReconcileOutcome
from .provisioner import Provisioner
from .pruner import Pruner
from .summary import summarize_plan, summarize_report

__all__ = [
    # Main engine
    "ReconcileEngine",
    "reconcile",
    "save_changes",
    "discard_changes",
    # Errors
    "EngineError",
    "StoreCallFailed",
    "ApplyPending",
    "NotFound",
    "InvariantViolated",
    # Schema classes
    "ServiceAction",
    "ProtocolAction",
    "ProtocolChange",
    "ServiceDecision",
    "ServicePlan",
    "PruneReport",
    "ReconcileReport",
    # Components (for advanced use)
    "OwnershipTagger",
    "Cloner",
    "ReconcilePlanner",
    "priority_ordered",
    "Reconciler",
    "ReconcileOutcome",
    "Provisioner",
    "Pruner",
    "summarize_plan",
    "summarize_report",
]
