"""Identity group membership resources.

``vault_identity_group_member_entity_ids`` and
``vault_identity_group_member_group_ids`` manage one member list of an
existing internal group. With ``exclusive`` (the default) the resource
owns the whole list. Otherwise it only adds and removes the ids it
manages, leaving members added by other means alone.

Every change is a read-modify-write of the group, done under the
per-path mutex so that several membership resources for the same group
do not overwrite each other.
"""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_EXCLUSIVE,
    FIELD_EXTERNAL,
    FIELD_GROUP_ID,
    FIELD_GROUP_NAME,
    FIELD_MEMBER_ENTITY_IDS,
    FIELD_MEMBER_GROUP_IDS,
    FIELD_NAME,
    FIELD_TYPE,
)
from vault_provisioner.provider import VAULT_MUTEX_KV, ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import with_namespace
from vault_provisioner.resources.identity_group import group_id_path, read_identity_group
from vault_provisioner.schema import CrudFunc, Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultNotFoundError
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)

MEMBER_FIELDS = (FIELD_MEMBER_ENTITY_IDS, FIELD_MEMBER_GROUP_IDS)


def _check_member_field(member_field: str) -> None:
    if member_field not in MEMBER_FIELDS:
        raise ValueError(f"invalid value for member field: {member_field!r}")


def _is_internal(resp: Secret) -> bool:
    group_type = resp.data.get(FIELD_TYPE)
    return group_type is not None and group_type != FIELD_EXTERNAL


def get_group_member(d: ResourceData, resp: Secret, member_field: str) -> dict[str, Any]:
    """Compute the member list to write back to the group."""
    _check_member_field(member_field)
    data: dict[str, Any] = {}
    if not _is_internal(resp):
        return data

    current = resp.data.get(member_field) or []
    if d.get(FIELD_EXCLUSIVE) or not current:
        data[member_field] = list(d.get(member_field))
        return data

    ids = set(current)
    if not d.is_new_resource():
        old, _ = d.get_change(member_field)
        ids.difference_update(old or [])
    configured, ok = d.get_ok(member_field)
    if ok:
        ids.update(configured)
    data[member_field] = sorted(ids)
    return data


def set_group_member(d: ResourceData, resp: Secret, member_field: str) -> None:
    """Record the members this resource is responsible for."""
    current = resp.data.get(member_field) or []
    if d.get(FIELD_EXCLUSIVE):
        d.set(member_field, current)
        return

    configured, ok = d.get_ok(member_field)
    present = set(current)
    d.set(member_field, [i for i in (configured if ok else []) if i in present])


def delete_group_member(d: ResourceData, resp: Secret, member_field: str) -> dict[str, Any]:
    """Compute the member list left once this resource's ids are removed."""
    _check_member_field(member_field)
    data: dict[str, Any] = {}
    if not _is_internal(resp):
        return data

    if d.get(FIELD_EXCLUSIVE):
        data[member_field] = []
        return data

    ids = set(resp.data.get(member_field) or [])
    if ids:
        managed, ok = d.get_ok(member_field)
        if ok:
            ids.difference_update(managed)
    data[member_field] = sorted(ids)
    return data


def group_member_update_func(member_field: str) -> CrudFunc:
    def update(d: ResourceData, meta: ProviderMeta) -> None:
        group_id = d.get(FIELD_GROUP_ID)
        path = group_id_path(group_id)

        with VAULT_MUTEX_KV.locked(path):
            client = get_client(d, meta)
            logger.debug(f"Updating field {member_field!r} on identity group {group_id!r}")

            resp = read_identity_group(client, group_id, d.is_new_resource(), meta)
            data = get_group_member(d, resp, member_field)
            client.write(path, data)
            logger.debug(f"Updated field {member_field!r} on identity group {group_id}")

            d.set_id(group_id)

    return update


def group_member_read_func(member_field: str, set_group_name: bool) -> CrudFunc:
    def read(d: ResourceData, meta: ProviderMeta) -> None:
        client = get_client(d, meta)
        group_id = d.id

        logger.debug(f"Reading identity group {group_id} with field {member_field!r}")
        try:
            resp = read_identity_group(client, group_id, d.is_new_resource(), meta)
        except VaultNotFoundError:
            logger.warning(f"Identity group {group_id} not found, removing from state")
            d.set_id("")
            return

        d.set(FIELD_GROUP_ID, group_id)
        if set_group_name:
            d.set(FIELD_GROUP_NAME, resp.data.get(FIELD_NAME) or "")
        set_group_member(d, resp, member_field)

    return read


def group_member_delete_func(member_field: str) -> CrudFunc:
    def delete(d: ResourceData, meta: ProviderMeta) -> None:
        group_id = d.get(FIELD_GROUP_ID)
        path = group_id_path(group_id)

        with VAULT_MUTEX_KV.locked(path):
            client = get_client(d, meta)
            logger.debug(f"Deleting {member_field!r} from identity group {group_id!r}")
            try:
                resp = read_identity_group(client, group_id, False, meta)
            except VaultNotFoundError:
                return

            data = delete_group_member(d, resp, member_field)
            client.write(path, data)

    return delete


def _group_member_resource(
    name: str,
    member_field: str,
    set_group_name: bool,
    description: str,
) -> Resource:
    schema = {
        FIELD_GROUP_ID: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="ID of the group.",
        ),
        FIELD_EXCLUSIVE: Field(
            type=FieldType.BOOL,
            optional=True,
            default=True,
            description="If set to true, allows the resource to manage member IDs exclusively.",
        ),
        member_field: Field(
            type=FieldType.SET,
            optional=True,
            elem=FieldType.STRING,
            description=description,
        ),
    }
    if set_group_name:
        schema[FIELD_GROUP_NAME] = Field(
            type=FieldType.STRING,
            computed=True,
            description="Name of the group.",
        )

    update = group_member_update_func(member_field)
    return Resource(
        name=name,
        schema=with_namespace(schema),
        create=update,
        update=update,
        read=read_wrapper(group_member_read_func(member_field, set_group_name)),
        delete=group_member_delete_func(member_field),
        importable=True,
    )


def group_member_entity_ids_resource() -> Resource:
    return _group_member_resource(
        "vault_identity_group_member_entity_ids",
        FIELD_MEMBER_ENTITY_IDS,
        set_group_name=True,
        description="Entity IDs to be assigned as group members.",
    )


def group_member_group_ids_resource() -> Resource:
    return _group_member_resource(
        "vault_identity_group_member_group_ids",
        FIELD_MEMBER_GROUP_IDS,
        set_group_name=False,
        description="Group IDs to be assigned as group members.",
    )
