"""Main reconcile engine - orchestrates a full reconcile run.

Provides a single entry point for:
1. Pruning engine-owned leftovers from earlier runs
2. Cloning the current set under the desired name
3. Normalizing the services the clone inherited
4. Provisioning services for uncovered interfaces

Everything is staged in the store session; committing and applying is left
to the caller (see ``save_changes``).
"""
import logging
from typing import Optional

from ..store.catalog import EntityCatalog, StoreCatalog
from ..store.entities import NetworkSet
from ..store.port import StorePort, CURRENT_SET_KEY
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed, timed_section
from .cloner import Cloner
from .errors import ApplyPending, EngineError, InvariantViolated, NotFound, require
from .ownership import OwnershipTagger
from .planner import ReconcilePlanner
from .provisioner import Provisioner
from .pruner import Pruner
from .reconciler import Reconciler
from .schema import PruneReport, ReconcileReport
from .summary import summarize_plan

logger = logging.getLogger(__name__)


class ReconcileEngine:
    """
    Reconcile engine for one store session.

    Usage:
        engine = ReconcileEngine(store, catalog)
        report = engine.run("netset-reconciler", make_current=True)
        save_changes(store)
    """

    def __init__(
        self,
        store: StorePort,
        catalog: Optional[EntityCatalog] = None,
        tracker: Optional[ChangeTracker] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Preference store session (caller holds the lock)
            catalog: Entity catalog over ``store`` (default: StoreCatalog)
            tracker: Audit change tracker (optional)
        """
        self.store = store
        self.catalog = catalog or StoreCatalog(store)
        self.tracker = tracker or ChangeTracker()
        self.tagger = OwnershipTagger(store)
        self.cloner = Cloner(store, self.catalog)
        self.planner = ReconcilePlanner()
        self.reconciler = Reconciler(self.catalog, self.cloner, self.planner)
        self.provisioner = Provisioner(self.catalog, self.tagger)
        self.pruner = Pruner(self.catalog, self.tagger)

    def _require_current_set(self) -> NetworkSet:
        current = self.catalog.get_current_set()
        if current is None:
            raise NotFound(f"/{CURRENT_SET_KEY}")
        return current

    @timed("prune")
    def prune(self) -> PruneReport:
        return self.pruner.prune_stale()

    @timed("clone_set")
    def clone_current(self, desired_set_name: str) -> NetworkSet:
        current = self._require_current_set()
        return self.cloner.clone_set(current, desired_set_name)

    @timed("provision")
    def provision(self, network_set: NetworkSet) -> list[str]:
        return self.provisioner.provision_missing(network_set)

    @timed("reconcile")
    def run(self, desired_set_name: str, make_current: bool = False) -> ReconcileReport:
        """
        Stage a reconciled copy of the current set.

        Args:
            desired_set_name: Name for the new set
            make_current: Also mark the new set as the current set

        Returns:
            ReconcileReport describing everything that was staged

        Raises:
            EngineError: On any failed store call or broken invariant. Nothing
                has been committed at that point; ``discard_changes`` drops
                the partial staging.
        """
        report = ReconcileReport()
        parameters = {"set_name": desired_set_name, "make_current": make_current}

        try:
            report.prune = self.prune()

            source = self._require_current_set()
            report.source_set_id = source.id
            self.tracker.snapshot("source_set", {
                "id": source.id,
                "name": source.name,
                "services": source.service_ids,
                "priority_order": list(source.priority_order),
            })
            logger.info(f"Reconciling from current set '{source.name}' ({source.id})")

            cloned = self.clone_current(desired_set_name)

            with timed_section("reconcile_services", set_id=cloned.id):
                outcome = self.reconciler.reconcile(cloned)
            report.plans = outcome.plans
            report.cloned_services = outcome.cloned
            report.deleted_services = outcome.deleted

            report.provisioned_services = self.provision(outcome.network_set)

            if make_current:
                require(
                    self.catalog.set_current(cloned.id),
                    f"set_current {cloned.id}",
                    self.catalog,
                )
                report.made_current = True

            final = self.catalog.find_set(cloned.id)
            if final is None:
                raise InvariantViolated(f"Staged set {cloned.id} cannot be found")
            report.network_set = final

        except EngineError as e:
            logger.error(f"Reconcile aborted: {e}")
            self.tracker.record(
                "reconcile",
                success=False,
                details=parameters,
                error=str(e),
                source_set=self.tracker.get_snapshot("source_set"),
            )
            raise

        self.tracker.record(
            "reconcile",
            success=True,
            details=parameters,
            source_set=self.tracker.get_snapshot("source_set"),
            staged=report.to_dict(),
        )
        logger.info(
            f"Staged set '{report.network_set.name}' ({report.network_set.id}): "
            f"{len(report.cloned_services)} cloned, {len(report.deleted_services)} dropped, "
            f"{len(report.provisioned_services)} provisioned"
        )
        return report

    def preview(self) -> str:
        """
        Preview what a run would change in the current set.

        Reads only; nothing is staged. Returns human-readable summary.
        """
        current = self._require_current_set()
        plans = self.reconciler.plan(current)
        new_interfaces = self.provisioner.eligible_interfaces(current)
        return summarize_plan(plans, new_interfaces)


def reconcile(
    store: StorePort,
    desired_set_name: str,
    catalog: Optional[EntityCatalog] = None,
    make_current: bool = False,
) -> NetworkSet:
    """
    Prune, clone, reconcile and provision; return the staged set.

    The store is left uncommitted. Raises EngineError on failure.
    """
    engine = ReconcileEngine(store, catalog)
    report = engine.run(desired_set_name, make_current=make_current)
    return report.network_set


def save_changes(
    store: StorePort,
    tracker: Optional[ChangeTracker] = None,
    apply: bool = True,
) -> None:
    """
    Commit, then apply, the staged changes.

    With ``apply=False`` the changes are persisted but left inactive.

    Raises:
        StoreCallFailed: If commit fails (nothing was persisted)
        ApplyPending: If commit succeeded but apply failed; the new
            configuration is persisted but not active
    """
    tracker = tracker or ChangeTracker()

    with timed_section("commit"):
        committed = store.commit()
    tracker.record(
        "commit",
        success=committed,
        error=None if committed else str(store.last_error()),
    )
    require(committed, "commit", store)

    if not apply:
        logger.info("Committed without applying")
        return

    with timed_section("apply"):
        applied = store.apply()
    tracker.record(
        "apply",
        success=applied,
        error=None if applied else str(store.last_error()),
    )
    if not applied:
        error = ApplyPending(store.last_error())
        logger.error(str(error))
        raise error


def discard_changes(store: StorePort) -> None:
    """Drop everything staged in this session."""
    store.synchronize()
    logger.info("Discarded staged changes")
