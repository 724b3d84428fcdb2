"""Refresh state, read data sources and compute the actions to apply."""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from graphlib import CycleError, TopologicalSorter
from typing import Any, Iterable, Optional

from vault_provisioner.consts import FIELD_ID
from vault_provisioner.engine.config import (
    UNKNOWN,
    ConfigDocument,
    DataBlock,
    ResourceBlock,
    contains_unknown,
    resolve_references,
)
from vault_provisioner.engine.state import ResourceState, StateStore
from vault_provisioner.provider import Provider, ProviderMeta
from vault_provisioner.retry import RetryExhaustedException
from vault_provisioner.schema import Resource, field_changed, resolve_value
from vault_provisioner.vault.exceptions import ResourceError, VaultError, VaultValidationError

logger = logging.getLogger(__name__)

SENSITIVE = "(sensitive value)"

# errors a CRUD callback may raise; anything else is a bug and propagates
OPERATION_ERRORS = (VaultError, RetryExhaustedException, ValueError)


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "noop"


_SYMBOLS = {
    Action.CREATE: "+",
    Action.UPDATE: "~",
    Action.REPLACE: "-/+",
    Action.DELETE: "-",
}


@dataclass
class FieldChange:
    key: str
    old: Any
    new: Any
    sensitive: bool = False
    force_new: bool = False


@dataclass
class ResourceChange:
    """Planned action for one managed resource."""

    address: str
    type: str
    name: str
    action: Action
    resource_id: str = ""
    changes: list[FieldChange] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)


@dataclass
class Plan:
    """Ordered resource changes plus the data source results read while planning."""

    changes: list[ResourceChange] = field(default_factory=list)
    data: dict[str, dict[str, Any]] = field(default_factory=dict)
    deferred_data: list[str] = field(default_factory=list)

    def get(self, address: str) -> Optional[ResourceChange]:
        for change in self.changes:
            if change.address == address:
                return change
        return None

    def by_action(self, *actions: Action) -> list[ResourceChange]:
        return [c for c in self.changes if c.action in actions]

    @property
    def has_changes(self) -> bool:
        return any(c.action != Action.NOOP for c in self.changes)

    def summary(self) -> tuple[int, int, int]:
        """Return (to add, to change, to destroy)."""
        add = len(self.by_action(Action.CREATE, Action.REPLACE))
        change = len(self.by_action(Action.UPDATE))
        destroy = len(self.by_action(Action.DELETE, Action.REPLACE))
        return add, change, destroy

    def render(self) -> str:
        if not self.has_changes:
            return "No changes. Vault matches the configuration."

        lines = []
        for change in self.changes:
            if change.action == Action.NOOP:
                continue
            header = f"  {_SYMBOLS[change.action]} {change.address}"
            if change.action == Action.REPLACE:
                header += " (forces replacement)"
            lines.append(header)
            for fc in change.changes:
                lines.append(_render_field(change.action, fc))
            lines.append("")

        add, update, destroy = self.summary()
        lines.append(f"Plan: {add} to add, {update} to change, {destroy} to destroy.")
        return "\n".join(lines)


def _render_field(action: Action, fc: FieldChange) -> str:
    suffix = " # forces replacement" if fc.force_new and action == Action.REPLACE else ""
    if action == Action.CREATE:
        return f"      {fc.key}: {format_value(fc.new, fc.sensitive)}"
    if action == Action.DELETE:
        return f"      {fc.key}: {format_value(fc.old, fc.sensitive)}"
    old = format_value(fc.old, fc.sensitive)
    new = format_value(fc.new, fc.sensitive)
    return f"      {fc.key}: {old} -> {new}{suffix}"


def format_value(value: Any, sensitive: bool = False) -> str:
    if value is UNKNOWN:
        return repr(UNKNOWN)
    if sensitive:
        return SENSITIVE
    return json.dumps(value, sort_keys=True, default=repr)


def dependency_order(document: ConfigDocument) -> list[str]:
    """Addresses of every declared block, dependencies first.

    Raises:
        VaultValidationError: On a reference to an undeclared object or a cycle
    """
    declared = {block.address for block in document.blocks()}
    graph: dict[str, set[str]] = {}
    for block in document.blocks():
        refs = block.references()
        missing = sorted(refs - declared)
        if missing:
            raise VaultValidationError(
                f"{block.address}: reference to undeclared object {', '.join(missing)}"
            )
        graph[block.address] = refs
    return topological_order(graph)


def topological_order(graph: dict[str, Iterable[str]]) -> list[str]:
    try:
        return list(TopologicalSorter(graph).static_order())
    except CycleError as e:
        cycle = " -> ".join(e.args[1])
        raise VaultValidationError(f"dependency cycle: {cycle}") from e


def state_attributes(state: ResourceState) -> dict[str, Any]:
    return {**state.attributes, FIELD_ID: state.id}


def validate_block(resource: Resource, address: str, config: dict[str, Any]) -> None:
    unknown_keys = [k for k, v in config.items() if contains_unknown(v)]
    errors = resource.validate(config, unknown_keys=unknown_keys)
    if errors:
        raise VaultValidationError(
            f"{address}: invalid configuration", details={"errors": errors}
        )


def read_data_source(
    data_source: Resource,
    block: DataBlock,
    config: dict[str, Any],
    meta: ProviderMeta,
) -> dict[str, Any]:
    """Read a data source and return its attributes, id included.

    Raises:
        ResourceError: If the read fails
    """
    validate_block(data_source, block.address, config)
    d = data_source.data(config=config)
    logger.debug(f"Reading {block.address}")
    try:
        data_source.read(d, meta)
    except ResourceError:
        raise
    except OPERATION_ERRORS as e:
        raise ResourceError(block.address, str(e)) from e
    attributes = d.state()
    attributes[FIELD_ID] = d.id
    return attributes


class Planner:
    """Compute a Plan from the configuration and the state.

    Refreshing updates the in-memory state; it is persisted by the next
    apply.

    Example:
        >>> planner = Planner(provider, meta, document, store)
        >>> plan = planner.plan()
        >>> print(plan.render())
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

    def validate(self) -> list[str]:
        """Return the addresses of all declared blocks in dependency order.

        Raises:
            VaultValidationError: On unsupported types or bad references
        """
        errors = self.provider.validate_config(self.document.provider)
        if errors:
            raise VaultValidationError("invalid provider configuration", details={"errors": errors})
        for block in self.document.resources:
            resource = self.provider.resource(block.type)
            validate_block(resource, block.address, self._placeholder_config(block))
        for block in self.document.data:
            data_source = self.provider.data_source(block.type)
            validate_block(data_source, block.address, self._placeholder_config(block))
        return dependency_order(self.document)

    @staticmethod
    def _placeholder_config(block: ResourceBlock) -> dict[str, Any]:
        # references are only checked for their target at this point
        return resolve_references(block.config, lambda address: None)

    def upgrade_state(self) -> None:
        for state in list(self.store.resources):
            self.store.upgrade(self.provider.resource(state.type), state)

    def refresh(self) -> None:
        """Read every resource in state, dropping the ones that disappeared."""
        for state in list(self.store.resources):
            resource = self.provider.resource(state.type)
            d = resource.data(state=state.attributes, resource_id=state.id)
            logger.debug(f"Refreshing {state.address} ({state.id})")
            try:
                resource.read(d, self.meta)
            except OPERATION_ERRORS as e:
                raise ResourceError(state.address, str(e)) from e

            if not d.id:
                logger.warning(f"{state.address} no longer exists, removing from state")
                self.store.remove(state.address)
                continue
            self.store.put(state.model_copy(update={"id": d.id, "attributes": d.state()}))

    def plan(self, refresh: bool = True) -> Plan:
        order = self.validate()
        self.upgrade_state()
        if refresh:
            self.refresh()

        plan = Plan()
        known: dict[str, Optional[dict[str, Any]]] = {}

        for address in order:
            block = self.document.get(address)
            config = resolve_references(block.config, known.get)

            if isinstance(block, DataBlock):
                data_source = self.provider.data_source(block.type)
                if contains_unknown(config):
                    logger.debug(f"Deferring {address} until apply")
                    plan.deferred_data.append(address)
                    known[address] = None
                    continue
                attributes = read_data_source(data_source, block, config, self.meta)
                plan.data[address] = attributes
                known[address] = attributes
                continue

            resource = self.provider.resource(block.type)
            validate_block(resource, address, config)
            change = self._plan_resource(resource, block, config)
            plan.changes.append(change)
            known[address] = self._planned_attributes(resource, change, config)

        configured = {block.address for block in self.document.resources}
        for state in self.store.resources:
            if state.address in configured:
                continue
            resource = self.provider.resource(state.type)
            plan.changes.append(ResourceChange(
                address=state.address,
                type=state.type,
                name=state.name,
                action=Action.DELETE,
                resource_id=state.id,
                changes=[
                    FieldChange(key, value, None, sensitive=_is_sensitive(resource, key))
                    for key, value in sorted(state.attributes.items())
                ],
                depends_on=list(state.depends_on),
            ))

        add, change, destroy = plan.summary()
        logger.info(f"Plan: {add} to add, {change} to change, {destroy} to destroy")
        return plan

    def _plan_resource(
        self,
        resource: Resource,
        block: ResourceBlock,
        config: dict[str, Any],
    ) -> ResourceChange:
        prior = self.store.get(block.address)
        change = ResourceChange(
            address=block.address,
            type=block.type,
            name=block.name,
            action=Action.NOOP,
            depends_on=sorted(block.references()),
        )

        if prior is None:
            change.action = Action.CREATE
            change.changes = [
                FieldChange(key, None, value, sensitive=resource.schema[key].sensitive)
                for key, value in sorted(planned_values(resource, config).items())
                if value is UNKNOWN or key in config
            ]
            return change

        change.resource_id = prior.id
        change.changes = diff_resource(resource, config, prior)
        if not change.changes:
            return change
        if resource.update is None or any(fc.force_new for fc in change.changes):
            change.action = Action.REPLACE
        else:
            change.action = Action.UPDATE
        return change

    def _planned_attributes(
        self,
        resource: Resource,
        change: ResourceChange,
        config: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        if change.action in (Action.CREATE, Action.REPLACE):
            return None
        prior = self.store.get(change.address)
        attributes = state_attributes(prior)
        if change.action == Action.UPDATE:
            attributes.update({k: v for k, v in config.items() if k in resource.schema})
        return attributes


def planned_values(resource: Resource, config: dict[str, Any]) -> dict[str, Any]:
    """Values a new resource is expected to end up with."""
    values: dict[str, Any] = {}
    for key, spec in resource.schema.items():
        value = config.get(key)
        if value is None and spec.computed:
            values[key] = UNKNOWN
        elif contains_unknown(value):
            values[key] = value
        else:
            values[key] = spec.normalize(resolve_value(spec, value))
    return values


def diff_resource(
    resource: Resource,
    config: dict[str, Any],
    prior: ResourceState,
) -> list[FieldChange]:
    """Compare configuration against prior state, field by field."""
    d = resource.data(config=config, state=prior.attributes, resource_id=prior.id)
    changes = []
    for key, spec in resource.schema.items():
        if spec.computed_only:
            continue
        new = config.get(key)
        if new is None and spec.computed:
            continue
        old = prior.attributes.get(key)
        if contains_unknown(new):
            changed = True
        else:
            changed = field_changed(spec, key, old, new, d)
        if changed:
            changes.append(FieldChange(
                key,
                spec.normalize(resolve_value(spec, old)),
                new if contains_unknown(new) else spec.normalize(resolve_value(spec, new)),
                sensitive=spec.sensitive,
                force_new=spec.force_new,
            ))
    return changes


def _is_sensitive(resource: Resource, key: str) -> bool:
    spec = resource.schema.get(key)
    return spec is not None and spec.sensitive
