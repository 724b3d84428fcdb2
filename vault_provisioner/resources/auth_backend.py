"""vault_auth_backend resource: auth methods under sys/auth."""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_ACCESSOR,
    FIELD_ALLOWED_RESPONSE_HEADERS,
    FIELD_AUDIT_NON_HMAC_REQUEST_KEYS,
    FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS,
    FIELD_DESCRIPTION,
    FIELD_ID,
    FIELD_LISTING_VISIBILITY,
    FIELD_LOCAL,
    FIELD_PASSTHROUGH_REQUEST_HEADERS,
    FIELD_PATH,
    FIELD_TOKEN_TYPE,
    FIELD_TYPE,
    SYS_AUTH_ROOT,
    SYS_MOUNTS_ROOT,
    SYS_REMOUNT,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import (
    validate_no_leading_trailing_slashes,
    with_namespace,
)
from vault_provisioner.resources.mount import is_mount_not_found
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultResponseError

logger = logging.getLogger(__name__)

FIELD_TUNE = "tune"


def _path_diff_suppress(key: str, old: Any, new: Any, d: Any = None) -> bool:
    return f"{old}/" == new or f"{new}/" == old


def _tune_schema() -> dict[str, Field]:
    return {
        "default_lease_ttl": Field(
            type=FieldType.STRING,
            optional=True,
            description="Default lease duration, e.g. '768h'.",
        ),
        "max_lease_ttl": Field(
            type=FieldType.STRING,
            optional=True,
            description="Maximum lease duration, e.g. '768h'.",
        ),
        FIELD_AUDIT_NON_HMAC_REQUEST_KEYS: Field(
            type=FieldType.LIST, optional=True, elem=FieldType.STRING
        ),
        FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS: Field(
            type=FieldType.LIST, optional=True, elem=FieldType.STRING
        ),
        FIELD_LISTING_VISIBILITY: Field(
            type=FieldType.STRING,
            optional=True,
            validate_func=_validate_listing_visibility,
        ),
        FIELD_PASSTHROUGH_REQUEST_HEADERS: Field(
            type=FieldType.LIST, optional=True, elem=FieldType.STRING
        ),
        FIELD_ALLOWED_RESPONSE_HEADERS: Field(
            type=FieldType.LIST, optional=True, elem=FieldType.STRING
        ),
        FIELD_TOKEN_TYPE: Field(
            type=FieldType.STRING,
            optional=True,
            validate_func=_validate_token_type,
        ),
    }


def _validate_listing_visibility(value: Any, key: str) -> list[str]:
    if value not in ("", "unauth", "hidden"):
        return [f"{key}: expected one of 'unauth', 'hidden', got {value!r}"]
    return []


def _validate_token_type(value: Any, key: str) -> list[str]:
    allowed = ("", "default-service", "default-batch", "service", "batch")
    if value not in allowed:
        return [f"{key}: unsupported token type {value!r}"]
    return []


def expand_auth_method_tune(blocks: list[dict[str, Any]]) -> dict[str, Any]:
    """Turn the tune block into a sys/mounts/auth/<path>/tune payload."""
    config: dict[str, Any] = {}
    if not blocks:
        return config
    for key, value in (blocks[0] or {}).items():
        if value in (None, "", []):
            continue
        config[key] = value
    return config


def auth_backend_schema() -> dict[str, Field]:
    return with_namespace({
        FIELD_TYPE: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="Name of the auth backend.",
        ),
        FIELD_PATH: Field(
            type=FieldType.STRING,
            optional=True,
            computed=True,
            validate_func=validate_no_leading_trailing_slashes,
            diff_suppress_func=_path_diff_suppress,
            description="Path to mount the backend, defaults to the type.",
        ),
        FIELD_DESCRIPTION: Field(
            type=FieldType.STRING,
            optional=True,
            description="The description of the auth backend.",
        ),
        FIELD_LOCAL: Field(
            type=FieldType.BOOL,
            optional=True,
            force_new=True,
            description="Specifies if the auth method is local only.",
        ),
        FIELD_ACCESSOR: Field(
            type=FieldType.STRING,
            computed=True,
            description="The accessor of the auth backend.",
        ),
        FIELD_TUNE: Field(
            type=FieldType.LIST,
            optional=True,
            computed=True,
            max_items=1,
            elem=_tune_schema(),
        ),
    })


def auth_backend_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)

    mount_type = d.get(FIELD_TYPE)
    path = d.get(FIELD_PATH) or mount_type

    data = {
        FIELD_TYPE: mount_type,
        FIELD_DESCRIPTION: d.get(FIELD_DESCRIPTION),
        FIELD_LOCAL: d.get(FIELD_LOCAL),
    }
    logger.debug(f"Writing auth {path!r} to Vault")
    client.write(f"{SYS_AUTH_ROOT}{path}", data)

    d.set_id(path)
    auth_backend_update(d, meta)


def auth_backend_update(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id
    logger.debug(f"Updating auth {path} in Vault")

    if not d.is_new_resource() and d.has_change(FIELD_PATH):
        new_path = d.get(FIELD_PATH)
        logger.debug(f"Remount auth/{path} to auth/{new_path} in Vault")
        client.write(SYS_REMOUNT, {"from": f"auth/{path}", "to": f"auth/{new_path}"})
        d.set_id(new_path)
        path = new_path

    config: dict[str, Any] = {}
    call_tune = False

    if d.has_change(FIELD_TUNE):
        logger.info(f"Auth {path!r} tune configuration changed")
        config = expand_auth_method_tune(d.get(FIELD_TUNE))
        call_tune = True

    if d.has_change(FIELD_DESCRIPTION) and not d.is_new_resource():
        config[FIELD_DESCRIPTION] = d.get(FIELD_DESCRIPTION)
        call_tune = True

    if call_tune:
        client.write(f"{SYS_MOUNTS_ROOT}auth/{path}/tune", config)
        logger.info(f"Written {d.get(FIELD_TYPE)} auth tune to {path!r}")

    auth_backend_read(d, meta)


def auth_backend_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    try:
        mount = client.read(f"{SYS_AUTH_ROOT}{path}")
    except VaultResponseError as e:
        if not is_mount_not_found(e):
            raise
        mount = None

    if mount is None:
        logger.warning(f"Mount {path!r} not found, removing from state")
        d.set_id("")
        return

    d.set(FIELD_TYPE, mount.data.get(FIELD_TYPE, ""))
    d.set(FIELD_PATH, path)
    d.set(FIELD_DESCRIPTION, mount.data.get(FIELD_DESCRIPTION, ""))
    d.set(FIELD_LOCAL, mount.data.get(FIELD_LOCAL, False))
    d.set(FIELD_ACCESSOR, mount.data.get(FIELD_ACCESSOR, ""))


def auth_backend_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id
    logger.debug(f"Deleting auth {path} from Vault")
    client.delete(f"{SYS_AUTH_ROOT}{path}")


def auth_backend_migrate_state(version: int, attributes: dict[str, Any]) -> dict[str, Any]:
    """Version 0 stored the path (and id) with a trailing slash."""
    if version == 0:
        for key in (FIELD_PATH, FIELD_ID):
            value = attributes.get(key)
            if isinstance(value, str):
                attributes[key] = value.rstrip("/")
    return attributes


def auth_backend_resource() -> Resource:
    return Resource(
        name="vault_auth_backend",
        schema=auth_backend_schema(),
        create=auth_backend_write,
        update=auth_backend_update,
        read=read_wrapper(auth_backend_read),
        delete=auth_backend_delete,
        importable=True,
        schema_version=1,
        migrate_state=auth_backend_migrate_state,
        description="Enables and tunes an auth method.",
    )
