"""vault_identity_group resource."""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_EXTERNAL,
    FIELD_EXTERNAL_MEMBER_ENTITY_IDS,
    FIELD_EXTERNAL_MEMBER_GROUP_IDS,
    FIELD_INTERNAL,
    FIELD_MEMBER_ENTITY_IDS,
    FIELD_MEMBER_GROUP_IDS,
    FIELD_METADATA,
    FIELD_NAME,
    FIELD_POLICIES,
    FIELD_TYPE,
    IDENTITY_GROUP_ROOT,
)
from vault_provisioner.provider import VAULT_MUTEX_KV, ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import read_identity_object, with_namespace
from vault_provisioner.resources.identity_entity import (
    FIELD_EXTERNAL_POLICIES,
    suppress_when_external_policies,
)
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultError, VaultNotFoundError
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)


def group_id_path(group_id: str) -> str:
    return f"{IDENTITY_GROUP_ROOT}/id/{group_id}"


def group_name_path(name: str) -> str:
    return f"{IDENTITY_GROUP_ROOT}/name/{name}"


def read_identity_group(client: Any, group_id: str, retry: bool, meta: ProviderMeta) -> Secret:
    """Read a group by id.

    Raises:
        VaultNotFoundError: If the group does not exist
    """
    logger.debug(f"Reading identity group {group_id} from {group_id_path(group_id)!r}")
    return read_identity_object(client, group_id_path(group_id), retry, meta)


def _suppress_member_groups(key: str, old: Any, new: Any, d: Any = None) -> bool:
    if d is None:
        return False
    return d.get(FIELD_TYPE) == FIELD_EXTERNAL or bool(d.get(FIELD_EXTERNAL_MEMBER_GROUP_IDS))


def _suppress_member_entities(key: str, old: Any, new: Any, d: Any = None) -> bool:
    if d is None:
        return False
    return d.get(FIELD_TYPE) == FIELD_EXTERNAL or bool(d.get(FIELD_EXTERNAL_MEMBER_ENTITY_IDS))


def _member_fields(d: ResourceData, data: dict[str, Any]) -> None:
    # members of external groups come from the auth method
    if d.get(FIELD_TYPE) != FIELD_INTERNAL:
        return
    if not d.get(FIELD_EXTERNAL_MEMBER_ENTITY_IDS):
        data[FIELD_MEMBER_ENTITY_IDS] = d.get(FIELD_MEMBER_ENTITY_IDS)
    if not d.get(FIELD_EXTERNAL_MEMBER_GROUP_IDS):
        data[FIELD_MEMBER_GROUP_IDS] = d.get(FIELD_MEMBER_GROUP_IDS)


def identity_group_update_fields(
    d: ResourceData, meta: ProviderMeta, data: dict[str, Any]
) -> None:
    if d.is_new_resource():
        name, ok = d.get_ok(FIELD_NAME)
        if ok:
            data[FIELD_NAME] = name
        if not d.get(FIELD_EXTERNAL_POLICIES):
            data[FIELD_POLICIES] = d.get(FIELD_POLICIES)
        _member_fields(d, data)
        metadata, ok = d.get_ok(FIELD_METADATA)
        if ok:
            data[FIELD_METADATA] = metadata
        return

    if not d.has_changes(
        FIELD_NAME,
        FIELD_EXTERNAL_POLICIES,
        FIELD_POLICIES,
        FIELD_METADATA,
        FIELD_MEMBER_ENTITY_IDS,
        FIELD_MEMBER_GROUP_IDS,
    ):
        return

    data[FIELD_NAME] = d.get(FIELD_NAME)
    data[FIELD_METADATA] = d.get(FIELD_METADATA)
    data[FIELD_POLICIES] = d.get(FIELD_POLICIES)
    _member_fields(d, data)

    data[FIELD_EXTERNAL_POLICIES] = d.get(FIELD_EXTERNAL_POLICIES)
    if data[FIELD_EXTERNAL_POLICIES]:
        # keep whatever is attached in Vault so it is not removed
        client = get_client(d, meta)
        current = read_identity_group(client, d.id, False, meta)
        data[FIELD_POLICIES] = current.data.get(FIELD_POLICIES) or []


def identity_group_create(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    name = d.get(FIELD_NAME)

    data: dict[str, Any] = {FIELD_TYPE: d.get(FIELD_TYPE)}
    identity_group_update_fields(d, meta, data)

    resp = client.write(IDENTITY_GROUP_ROOT, data)
    if resp is None:
        path = group_name_path(name)
        reason = "unknown"
        existing = client.read(path)
        if existing is not None:
            reason = f"group already exists with path={path!r}, id={existing.data.get('id')!r}"
        raise VaultError(f"failed to create identity group {name!r}, reason={reason}")

    logger.debug(f"Created identity group {resp.data.get(FIELD_NAME)!r}")
    d.set_id(resp.data["id"])
    identity_group_read(d, meta)


def identity_group_update(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    group_id = d.id
    path = group_id_path(group_id)

    logger.debug(f"Updating identity group {group_id!r}")
    with VAULT_MUTEX_KV.locked(path):
        data: dict[str, Any] = {}
        identity_group_update_fields(d, meta, data)
        client.write(path, data)

    identity_group_read(d, meta)


def identity_group_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    group_id = d.id

    try:
        resp = read_identity_group(client, group_id, d.is_new_resource(), meta)
    except VaultNotFoundError:
        logger.warning(f"Identity group {group_id!r} not found, removing from state")
        d.set_id("")
        return

    d.set(FIELD_NAME, resp.data.get(FIELD_NAME) or "")
    d.set(FIELD_TYPE, resp.data.get(FIELD_TYPE) or FIELD_INTERNAL)
    d.set(FIELD_METADATA, resp.data.get(FIELD_METADATA) or {})
    d.set(FIELD_MEMBER_ENTITY_IDS, resp.data.get(FIELD_MEMBER_ENTITY_IDS) or [])
    d.set(FIELD_MEMBER_GROUP_IDS, resp.data.get(FIELD_MEMBER_GROUP_IDS) or [])
    d.set(FIELD_POLICIES, resp.data.get(FIELD_POLICIES) or [])


def identity_group_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    group_id = d.id
    path = group_id_path(group_id)

    with VAULT_MUTEX_KV.locked(path):
        logger.debug(f"Deleting identity group {group_id!r}")
        client.delete(path)


def identity_group_migrate_state(version: int, attributes: dict[str, Any]) -> dict[str, Any]:
    """Version 0 predates external_member_group_ids."""
    if version == 0 and attributes.get(FIELD_EXTERNAL_MEMBER_GROUP_IDS) is None:
        attributes[FIELD_EXTERNAL_MEMBER_GROUP_IDS] = False
    return attributes


def identity_group_resource() -> Resource:
    return Resource(
        name="vault_identity_group",
        schema=with_namespace({
            FIELD_NAME: Field(
                type=FieldType.STRING,
                optional=True,
                computed=True,
                description="Name of the group.",
            ),
            FIELD_TYPE: Field(
                type=FieldType.STRING,
                optional=True,
                force_new=True,
                default=FIELD_INTERNAL,
                description="Type of the group, internal or external.",
            ),
            FIELD_METADATA: Field(
                type=FieldType.MAP,
                optional=True,
                elem=FieldType.STRING,
                description="Metadata to be associated with the group.",
            ),
            FIELD_POLICIES: Field(
                type=FieldType.SET,
                optional=True,
                elem=FieldType.STRING,
                diff_suppress_func=suppress_when_external_policies,
                description="Policies to be tied to the group.",
            ),
            FIELD_EXTERNAL_POLICIES: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Manage policies externally through vault_identity_group_policies.",
            ),
            FIELD_MEMBER_GROUP_IDS: Field(
                type=FieldType.SET,
                optional=True,
                elem=FieldType.STRING,
                diff_suppress_func=_suppress_member_groups,
                description="Group IDs to be assigned as group members.",
            ),
            FIELD_MEMBER_ENTITY_IDS: Field(
                type=FieldType.SET,
                optional=True,
                elem=FieldType.STRING,
                diff_suppress_func=_suppress_member_entities,
                description="Entity IDs to be assigned as group members.",
            ),
            FIELD_EXTERNAL_MEMBER_ENTITY_IDS: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Manage member entities externally through vault_identity_group_member_entity_ids.",
            ),
            FIELD_EXTERNAL_MEMBER_GROUP_IDS: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Manage member groups externally through vault_identity_group_member_group_ids.",
            ),
        }),
        create=identity_group_create,
        update=identity_group_update,
        read=read_wrapper(identity_group_read),
        delete=identity_group_delete,
        importable=True,
        schema_version=1,
        migrate_state=identity_group_migrate_state,
        description="Creates an identity group.",
    )
