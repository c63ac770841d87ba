"""Pruner: remove engine-owned leftovers from earlier runs.

Policy for the current set: its id and the services it references are read
once, before anything is removed. The current set itself is never removed,
even when the engine owns it (it is the live configuration a previous run
installed), and every service it references survives. Owned sets that are
not current, and owned services not referenced by the current set, go.
"""
import logging

from ..store.catalog import EntityCatalog, set_path, service_path
from .errors import require
from .ownership import OwnershipTagger
from .schema import PruneReport

logger = logging.getLogger(__name__)


class Pruner:
    """Remove stale engine-owned sets and services."""

    def __init__(self, catalog: EntityCatalog, tagger: OwnershipTagger):
        self.catalog = catalog
        self.tagger = tagger

    def prune_stale(self) -> PruneReport:
        """
        Remove owned sets and unreferenced owned services.

        Returns:
            PruneReport listing what was removed
        """
        report = PruneReport()

        current = self.catalog.get_current_set()
        current_id = current.id if current is not None else None
        referenced = set(current.service_ids) if current is not None else set()

        for network_set in self.catalog.list_sets():
            if not self.tagger.is_owned_at(set_path(network_set.id)):
                continue
            if network_set.id == current_id:
                logger.info(f"Keeping owned set {network_set.id}: it is the current set")
                report.retained_current_set = network_set.id
                continue

            require(
                self.catalog.remove_set(network_set.id),
                f"remove_set {network_set.id}",
                self.catalog,
            )
            report.removed_sets.append(network_set.id)
            logger.info(f"Removed stale set '{network_set.name}' ({network_set.id})")

        for service in self.catalog.list_services():
            if service.id is None or service.id in referenced:
                continue
            if not self.tagger.is_owned_at(service_path(service.id)):
                continue

            require(
                self.catalog.remove_service(service.id),
                f"remove_service {service.id}",
                self.catalog,
            )
            report.removed_services.append(service.id)
            logger.info(f"Removed stale service {service.label}")

        return report
