"""vault_identity_entity resource."""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_DISABLED,
    FIELD_METADATA,
    FIELD_NAME,
    FIELD_POLICIES,
    IDENTITY_ENTITY_ROOT,
)
from vault_provisioner.provider import VAULT_MUTEX_KV, ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import read_identity_object, with_namespace
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultError, VaultNotFoundError
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)

FIELD_EXTERNAL_POLICIES = "external_policies"


def entity_id_path(entity_id: str) -> str:
    return f"{IDENTITY_ENTITY_ROOT}/id/{entity_id}"


def entity_name_path(name: str) -> str:
    return f"{IDENTITY_ENTITY_ROOT}/name/{name}"


def suppress_when_external_policies(key: str, old: Any, new: Any, d: Any = None) -> bool:
    """Policies are managed elsewhere when external_policies is set."""
    return d is not None and bool(d.get(FIELD_EXTERNAL_POLICIES))


def read_entity(client: Any, entity_id: str, retry: bool, meta: ProviderMeta) -> Secret:
    return read_identity_object(client, entity_id_path(entity_id), retry, meta)


def _create_fields(d: ResourceData, data: dict[str, Any]) -> None:
    name, ok = d.get_ok(FIELD_NAME)
    if ok:
        data[FIELD_NAME] = name
    if not d.get(FIELD_EXTERNAL_POLICIES):
        policies, ok = d.get_ok(FIELD_POLICIES)
        if ok:
            data[FIELD_POLICIES] = policies
    metadata, ok = d.get_ok(FIELD_METADATA)
    if ok:
        data[FIELD_METADATA] = metadata
    disabled, ok = d.get_ok(FIELD_DISABLED)
    if ok:
        data[FIELD_DISABLED] = disabled


def _update_fields(d: ResourceData, data: dict[str, Any]) -> None:
    if not d.has_changes(
        FIELD_NAME, FIELD_EXTERNAL_POLICIES, FIELD_POLICIES, FIELD_METADATA, FIELD_DISABLED
    ):
        return
    data[FIELD_NAME] = d.get(FIELD_NAME)
    data[FIELD_METADATA] = d.get(FIELD_METADATA)
    data[FIELD_DISABLED] = d.get(FIELD_DISABLED)
    data[FIELD_POLICIES] = d.get(FIELD_POLICIES)
    data[FIELD_EXTERNAL_POLICIES] = d.get(FIELD_EXTERNAL_POLICIES)
    if data[FIELD_EXTERNAL_POLICIES]:
        del data[FIELD_POLICIES]


def identity_entity_create(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    name = d.get(FIELD_NAME)

    data: dict[str, Any] = {FIELD_NAME: name}
    _create_fields(d, data)

    resp = client.write(IDENTITY_ENTITY_ROOT, data)
    if resp is None:
        # an existing entity with this name is updated in place without a body
        hint = "Unable to determine entity id."
        existing = client.read(entity_name_path(name))
        if existing is not None:
            hint = f"Entity resource ID {existing.data.get('id')!r} may be imported."
        raise VaultError(f"Identity entity {name!r} already exists. {hint}")

    logger.debug(f"Wrote identity entity {name!r}")
    d.set_id(resp.data["id"])
    identity_entity_read(d, meta)


def identity_entity_update(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    entity_id = d.id
    path = entity_id_path(entity_id)

    logger.debug(f"Updating identity entity {entity_id!r}")
    with VAULT_MUTEX_KV.locked(path):
        data: dict[str, Any] = {}
        _update_fields(d, data)
        client.write(path, data)

    identity_entity_read(d, meta)


def identity_entity_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    entity_id = d.id

    try:
        resp = read_entity(client, entity_id, d.is_new_resource(), meta)
    except VaultNotFoundError:
        logger.warning(f"Identity entity {entity_id!r} not found, removing from state")
        d.set_id("")
        return

    d.set(FIELD_NAME, resp.data.get(FIELD_NAME) or "")
    d.set(FIELD_METADATA, resp.data.get(FIELD_METADATA) or {})
    d.set(FIELD_DISABLED, bool(resp.data.get(FIELD_DISABLED)))
    d.set(FIELD_POLICIES, resp.data.get(FIELD_POLICIES) or [])


def identity_entity_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    entity_id = d.id
    path = entity_id_path(entity_id)

    with VAULT_MUTEX_KV.locked(path):
        logger.debug(f"Deleting identity entity {entity_id!r}")
        client.delete(path)


def identity_entity_resource() -> Resource:
    return Resource(
        name="vault_identity_entity",
        schema=with_namespace({
            FIELD_NAME: Field(
                type=FieldType.STRING,
                optional=True,
                computed=True,
                description="Name of the entity.",
            ),
            FIELD_METADATA: Field(
                type=FieldType.MAP,
                optional=True,
                elem=FieldType.STRING,
                description="Metadata to be associated with the entity.",
            ),
            FIELD_POLICIES: Field(
                type=FieldType.SET,
                optional=True,
                elem=FieldType.STRING,
                diff_suppress_func=suppress_when_external_policies,
                description="Policies to be tied to the entity.",
            ),
            FIELD_EXTERNAL_POLICIES: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Manage policies externally through vault_identity_entity_policies.",
            ),
            FIELD_DISABLED: Field(
                type=FieldType.BOOL,
                optional=True,
                description="Whether the entity is disabled. Disabled entities' tokens are not usable.",
            ),
        }),
        create=identity_entity_create,
        update=identity_entity_update,
        read=read_wrapper(identity_entity_read),
        delete=identity_entity_delete,
        importable=True,
        description="Creates an identity entity.",
    )
