"""Cloner: duplicate a set or service without touching the original.

The duplicate is written at a freshly allocated path, loses the user-visible
name (services) or takes a new one (sets), and carries the ownership marker.
The live value is re-fetched from the catalog after the write, since the
store may normalize what was written.
"""
import logging
from typing import Optional

from ..store.catalog import EntityCatalog, USER_DEFINED_NAME_KEY
from ..store.entities import NetworkService, NetworkSet
from ..store.port import StorePort, SETS_PATH, SERVICES_PATH, join_path, last_segment
from .errors import InvariantViolated, NotFound, StoreCallFailed, require
from .ownership import mark_owned

logger = logging.getLogger(__name__)


class Cloner:
    """Produce identity-stripped, ownership-tagged copies of stored entities."""

    def __init__(self, store: StorePort, catalog: EntityCatalog):
        self.store = store
        self.catalog = catalog

    def clone_entity(
        self,
        collection_path: str,
        source_id: str,
        new_name: Optional[str] = None,
    ) -> str:
        """
        Copy ``collection_path/source_id`` to a new child of the collection.

        Args:
            collection_path: Collection holding the source (``/Sets``, ``/NetworkServices``)
            source_id: Id of the entity to copy
            new_name: Name for the copy; None drops the name entirely

        Returns:
            Id of the copy

        Raises:
            NotFound: If the source does not exist
            StoreCallFailed: If allocating or writing the copy fails
        """
        source_path = join_path(collection_path, source_id)
        values = self.store.get_dictionary(source_path)
        if values is None:
            raise NotFound(source_path)

        if new_name is None:
            values.pop(USER_DEFINED_NAME_KEY, None)
        else:
            values[USER_DEFINED_NAME_KEY] = new_name
        mark_owned(values)

        new_path = self.store.create_unique_child(collection_path)
        if new_path is None:
            raise StoreCallFailed(
                f"create_unique_child {collection_path}", self.store.last_error()
            )

        require(
            self.store.set_dictionary(new_path, values),
            f"set_dictionary {new_path}",
            self.store,
        )

        new_id = last_segment(new_path)
        if not new_id or new_id == source_id:
            raise InvariantViolated(f"Clone of {source_path} landed at {new_path}")

        logger.debug(f"Cloned {source_path} -> {new_path}")
        return new_id

    def clone_set(self, network_set: NetworkSet, new_name: str) -> NetworkSet:
        """Clone a set under a new name and return the live copy."""
        new_id = self.clone_entity(SETS_PATH, network_set.id, new_name=new_name)

        cloned = self.catalog.find_set(new_id)
        if cloned is None:
            raise InvariantViolated(f"Cloned set {new_id} cannot be found")

        logger.info(f"Cloned set '{network_set.name}' ({network_set.id}) as '{new_name}' ({new_id})")
        return cloned

    def clone_service(self, service: NetworkService) -> NetworkService:
        """Clone a service (name dropped) and return the live copy."""
        if service.id is None:
            raise InvariantViolated("Cannot clone a service without an id")

        new_id = self.clone_entity(SERVICES_PATH, service.id)

        cloned = self.catalog.find_service(new_id)
        if cloned is None:
            raise InvariantViolated(f"Cloned service {new_id} cannot be found")

        logger.info(f"Cloned service {service.label} as {new_id}")
        return cloned
