"""Carry out a Plan, destroy managed resources and import existing ones."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from vault_provisioner.consts import FIELD_NAMESPACE
from vault_provisioner.engine.config import (
    ConfigDocument,
    DataBlock,
    ResourceBlock,
    contains_unknown,
    has_references,
    resolve_references,
)
from vault_provisioner.engine.plan import (
    OPERATION_ERRORS,
    Action,
    Plan,
    dependency_order,
    read_data_source,
    state_attributes,
    topological_order,
    validate_block,
)
from vault_provisioner.engine.state import ResourceState, StateStore
from vault_provisioner.provider import Provider, ProviderMeta
from vault_provisioner.schema import Resource, ResourceData
from vault_provisioner.vault.exceptions import ResourceError, VaultValidationError

logger = logging.getLogger(__name__)


@dataclass
class ApplySummary:
    added: int = 0
    changed: int = 0
    destroyed: int = 0

    def __str__(self) -> str:
        return (
            f"Resources: {self.added} added, {self.changed} changed, "
            f"{self.destroyed} destroyed."
        )


def _call(address: str, func, d: ResourceData, meta: ProviderMeta) -> None:
    try:
        func(d, meta)
    except ResourceError:
        raise
    except OPERATION_ERRORS as e:
        raise ResourceError(address, str(e)) from e


class Applier:
    """Apply plans against Vault, saving the state after every action.

    The first failing action stops the run; everything done before it is
    already recorded in the state.

    Example:
        >>> applier = Applier(provider, meta, document, store)
        >>> summary = applier.apply(planner.plan())
        >>> print(summary)
        Resources: 2 added, 0 changed, 0 destroyed.
    """

    def __init__(
        self,
        provider: Provider,
        meta: ProviderMeta,
        document: ConfigDocument,
        store: StateStore,
    ):
        self.provider = provider
        self.meta = meta
        self.document = document
        self.store = store
        self._data: dict[str, dict[str, Any]] = {}

    def _resolve(self, address: str) -> Optional[dict[str, Any]]:
        if address in self._data:
            return self._data[address]
        state = self.store.get(address)
        if state is None:
            return None
        return state_attributes(state)

    def _resolved_config(self, resource: Resource, block: ResourceBlock) -> dict[str, Any]:
        config = resolve_references(block.config, self._resolve)
        if contains_unknown(config):
            raise ResourceError(block.address, "configuration depends on values that are not known")
        validate_block(resource, block.address, config)
        return config

    def apply(self, plan: Plan) -> ApplySummary:
        summary = ApplySummary()
        self._data = dict(plan.data)

        deletes = {c.address: c.depends_on for c in plan.by_action(Action.DELETE)}
        for address in self._delete_order(deletes):
            self._delete(address)
            summary.destroyed += 1

        for address in dependency_order(self.document):
            block = self.document.get(address)
            if isinstance(block, DataBlock):
                if address not in self._data:
                    data_source = self.provider.data_source(block.type)
                    config = resolve_references(block.config, self._resolve)
                    if contains_unknown(config):
                        raise ResourceError(address, "configuration depends on values that are not known")
                    self._data[address] = read_data_source(data_source, block, config, self.meta)
                continue

            change = plan.get(address)
            if change is None or change.action == Action.NOOP:
                continue
            if change.action == Action.CREATE:
                self._create(block)
                summary.added += 1
            elif change.action == Action.UPDATE:
                self._update(block)
                summary.changed += 1
            elif change.action == Action.REPLACE:
                self._delete(address)
                self._create(block)
                summary.destroyed += 1
                summary.added += 1

        logger.info(f"Apply complete: {summary}")
        return summary

    def destroy(self) -> ApplySummary:
        """Delete every resource in state, dependents first."""
        summary = ApplySummary()
        graph = {s.address: s.depends_on for s in self.store.resources}
        for address in self._delete_order(graph):
            self._delete(address)
            summary.destroyed += 1
        logger.info(f"Destroy complete: {summary}")
        return summary

    def _delete_order(self, graph: dict[str, list[str]]) -> list[str]:
        members = set(graph)
        order = topological_order({
            address: [dep for dep in deps if dep in members]
            for address, deps in graph.items()
        })
        return list(reversed(order))

    def _create(self, block: ResourceBlock) -> None:
        resource = self.provider.resource(block.type)
        config = self._resolved_config(resource, block)
        d = resource.data(config=config, new_resource=True)

        logger.info(f"Creating {block.address}")
        _call(block.address, resource.create, d, self.meta)
        if not d.id:
            raise ResourceError(block.address, "create did not return an id")

        self.store.put(ResourceState(
            type=block.type,
            name=block.name,
            id=d.id,
            schema_version=resource.schema_version,
            attributes=d.state(),
            depends_on=sorted(block.references()),
        ))
        self.store.save()
        logger.info(f"Created {block.address} ({d.id})")

    def _update(self, block: ResourceBlock) -> None:
        resource = self.provider.resource(block.type)
        prior = self.store.get(block.address)
        config = self._resolved_config(resource, block)
        d = resource.data(config=config, state=prior.attributes, resource_id=prior.id)

        logger.info(f"Updating {block.address} ({prior.id})")
        _call(block.address, resource.update, d, self.meta)
        if not d.id:
            logger.warning(f"{block.address} disappeared during update, removing from state")
            self.store.remove(block.address)
        else:
            self.store.put(prior.model_copy(update={
                "id": d.id,
                "attributes": d.state(),
                "schema_version": resource.schema_version,
                "depends_on": sorted(block.references()),
            }))
        self.store.save()

    def _delete(self, address: str) -> None:
        state = self.store.get(address)
        if state is None:
            return
        resource = self.provider.resource(state.type)
        d = resource.data(state=state.attributes, resource_id=state.id)

        logger.info(f"Destroying {address} ({state.id})")
        _call(address, resource.delete, d, self.meta)
        self.store.remove(address)
        self.store.save()

    def import_resource(self, address: str, resource_id: str) -> ResourceState:
        """Adopt an existing Vault object into the state.

        The id is taken as given and the object is read back to fill in
        its attributes.

        Raises:
            VaultValidationError: If the address is not declared, already
                managed or not importable
            ResourceError: If nothing exists under resource_id
        """
        block = self.document.get(address)
        if block is None or isinstance(block, DataBlock):
            raise VaultValidationError(
                f"{address} is not declared as a resource in the configuration"
            )
        if self.store.get(address) is not None:
            raise VaultValidationError(f"{address} is already managed, remove it from state first")
        if not resource_id:
            raise VaultValidationError("import requires a non-empty id")

        resource = self.provider.resource(block.type)
        if not resource.importable:
            raise VaultValidationError(f"{block.type} does not support import")

        state: dict[str, Any] = {}
        namespace = block.config.get(FIELD_NAMESPACE)
        if FIELD_NAMESPACE in resource.schema and namespace and not has_references(namespace):
            state[FIELD_NAMESPACE] = namespace

        d = resource.data(state=state, resource_id=resource_id)
        logger.info(f"Importing {address} from {resource_id}")
        _call(address, resource.read, d, self.meta)
        if not d.id:
            raise ResourceError(
                address,
                f"Cannot import non-existent remote object {resource_id!r}",
            )

        imported = ResourceState(
            type=block.type,
            name=block.name,
            id=d.id,
            schema_version=resource.schema_version,
            attributes=d.state(),
            depends_on=sorted(block.references()),
        )
        self.store.put(imported)
        self.store.save()
        return imported
