"""vault_mount resource: secret engine mounts under sys/mounts."""

import logging
from typing import Any, Optional

from vault_provisioner.consts import (
    FIELD_ACCESSOR,
    FIELD_ALLOWED_RESPONSE_HEADERS,
    FIELD_AUDIT_NON_HMAC_REQUEST_KEYS,
    FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS,
    FIELD_DEFAULT_LEASE_TTL,
    FIELD_DESCRIPTION,
    FIELD_EXTERNAL_ENTROPY_ACCESS,
    FIELD_FORCE_NO_CACHE,
    FIELD_LISTING_VISIBILITY,
    FIELD_LOCAL,
    FIELD_MAX_LEASE_TTL,
    FIELD_OPTIONS,
    FIELD_PASSTHROUGH_REQUEST_HEADERS,
    FIELD_PATH,
    FIELD_PLUGIN_VERSION,
    FIELD_SEAL_WRAP,
    FIELD_TYPE,
    SYS_MOUNTS_ROOT,
    SYS_REMOUNT,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import with_namespace
from vault_provisioner.schema import Field, FieldType, Resource, ResourceData
from vault_provisioner.vault.exceptions import VaultResponseError, error_contains_http_code
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)

# optional mount config lists, sent only when set
_CONFIG_LIST_FIELDS = (
    FIELD_AUDIT_NON_HMAC_REQUEST_KEYS,
    FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS,
    FIELD_PASSTHROUGH_REQUEST_HEADERS,
    FIELD_ALLOWED_RESPONSE_HEADERS,
)
_CONFIG_STRING_FIELDS = (FIELD_LISTING_VISIBILITY, FIELD_PLUGIN_VERSION)


def is_mount_not_found(err: BaseException) -> bool:
    """Vault answers 400 rather than 404 for an unknown mount path."""
    if error_contains_http_code(err, 404):
        return True
    message = str(err)
    return error_contains_http_code(err, 400) and (
        "No secret engine mount at" in message or "No auth engine at" in message
    )


def get_mount(client: Any, path: str) -> Optional[Secret]:
    """Read sys/mounts/<path>, None when the mount does not exist."""
    try:
        return client.read(f"{SYS_MOUNTS_ROOT}{path.strip('/')}")
    except VaultResponseError as e:
        if is_mount_not_found(e):
            return None
        raise


def mount_options(d: ResourceData) -> dict[str, str]:
    options, ok = d.get_ok(FIELD_OPTIONS)
    return dict(options) if ok else {}


def tune_mount(client: Any, path: str, config: dict[str, Any]) -> None:
    """POST sys/mounts/<path>/tune."""
    logger.debug(f"Tuning mount {path} in Vault")
    client.write(f"{SYS_MOUNTS_ROOT}{path}/tune", config)


def mount_schema() -> dict[str, Field]:
    return with_namespace({
        FIELD_PATH: Field(
            type=FieldType.STRING,
            required=True,
            description="Where the secret backend will be mounted.",
        ),
        FIELD_TYPE: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="Type of the backend, such as 'aws'.",
        ),
        FIELD_DESCRIPTION: Field(
            type=FieldType.STRING,
            optional=True,
            description="Human-friendly description of the mount.",
        ),
        FIELD_DEFAULT_LEASE_TTL: Field(
            type=FieldType.INT,
            optional=True,
            computed=True,
            description="Default lease duration for tokens and secrets in seconds.",
        ),
        FIELD_MAX_LEASE_TTL: Field(
            type=FieldType.INT,
            optional=True,
            computed=True,
            description="Maximum possible lease duration for tokens and secrets in seconds.",
        ),
        FIELD_FORCE_NO_CACHE: Field(
            type=FieldType.BOOL,
            optional=True,
            computed=True,
            description="If set to true, disables caching.",
        ),
        FIELD_AUDIT_NON_HMAC_REQUEST_KEYS: Field(
            type=FieldType.LIST,
            optional=True,
            computed=True,
            elem=FieldType.STRING,
            description="Request keys that are not HMAC'd by audit devices.",
        ),
        FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS: Field(
            type=FieldType.LIST,
            optional=True,
            computed=True,
            elem=FieldType.STRING,
            description="Response keys that are not HMAC'd by audit devices.",
        ),
        FIELD_LISTING_VISIBILITY: Field(
            type=FieldType.STRING,
            optional=True,
            description="Whether to show this mount in the UI-specific listing endpoint.",
        ),
        FIELD_PASSTHROUGH_REQUEST_HEADERS: Field(
            type=FieldType.LIST,
            optional=True,
            elem=FieldType.STRING,
        ),
        FIELD_ALLOWED_RESPONSE_HEADERS: Field(
            type=FieldType.LIST,
            optional=True,
            elem=FieldType.STRING,
        ),
        FIELD_PLUGIN_VERSION: Field(
            type=FieldType.STRING,
            optional=True,
            description="The semantic version of the plugin to use.",
        ),
        FIELD_OPTIONS: Field(
            type=FieldType.MAP,
            optional=True,
            elem=FieldType.STRING,
            description="Specifies mount type specific options that are passed to the backend.",
        ),
        FIELD_SEAL_WRAP: Field(
            type=FieldType.BOOL,
            optional=True,
            computed=True,
            force_new=True,
            description="Enable seal wrapping for the mount.",
        ),
        FIELD_EXTERNAL_ENTROPY_ACCESS: Field(
            type=FieldType.BOOL,
            optional=True,
            default=False,
            force_new=True,
            description="Enable the secrets engine to access Vault's external entropy source.",
        ),
        FIELD_LOCAL: Field(
            type=FieldType.BOOL,
            optional=True,
            force_new=True,
            description="Local mounts are not replicated to performance replicas.",
        ),
        FIELD_ACCESSOR: Field(
            type=FieldType.STRING,
            computed=True,
            description="Accessor of the mount.",
        ),
    })


def mount_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.get(FIELD_PATH)

    config: dict[str, Any] = {
        "default_lease_ttl": f"{d.get(FIELD_DEFAULT_LEASE_TTL)}s",
        "max_lease_ttl": f"{d.get(FIELD_MAX_LEASE_TTL)}s",
        FIELD_FORCE_NO_CACHE: d.get(FIELD_FORCE_NO_CACHE),
    }
    for field in _CONFIG_LIST_FIELDS + _CONFIG_STRING_FIELDS:
        value, ok = d.get_ok(field)
        if ok:
            config[field] = value

    data = {
        FIELD_TYPE: d.get(FIELD_TYPE),
        FIELD_DESCRIPTION: d.get(FIELD_DESCRIPTION),
        "config": config,
        FIELD_LOCAL: d.get(FIELD_LOCAL),
        FIELD_OPTIONS: mount_options(d),
        FIELD_SEAL_WRAP: d.get(FIELD_SEAL_WRAP),
        FIELD_EXTERNAL_ENTROPY_ACCESS: d.get(FIELD_EXTERNAL_ENTROPY_ACCESS),
    }

    logger.debug(f"Creating mount {path} in Vault")
    client.write(f"{SYS_MOUNTS_ROOT}{path}", data)

    d.set_id(path)
    mount_read(d, meta)


def mount_update(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)

    config: dict[str, Any] = {
        "default_lease_ttl": f"{d.get(FIELD_DEFAULT_LEASE_TTL)}s",
        "max_lease_ttl": f"{d.get(FIELD_MAX_LEASE_TTL)}s",
        FIELD_OPTIONS: mount_options(d),
    }
    for field in (FIELD_DESCRIPTION,) + _CONFIG_LIST_FIELDS + _CONFIG_STRING_FIELDS:
        if d.has_change(field):
            config[field] = d.get(field)

    path = d.id
    if d.has_change(FIELD_PATH):
        new_path = d.get(FIELD_PATH)
        logger.debug(f"Remount {path} to {new_path} in Vault")
        client.write(SYS_REMOUNT, {"from": path, "to": new_path})
        d.set_id(new_path)
        path = new_path

    tune_mount(client, path, config)
    mount_read(d, meta)


def mount_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id
    logger.debug(f"Unmounting {path} from Vault")
    client.delete(f"{SYS_MOUNTS_ROOT}{path}")


def mount_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    logger.debug(f"Reading mount {path} from Vault")
    mount = get_mount(client, path)
    if mount is None:
        logger.warning(f"Mount {path!r} not found, removing from state")
        d.set_id("")
        return

    info = mount.data
    mount_type = info.get(FIELD_TYPE, "")
    options = dict(info.get(FIELD_OPTIONS) or {})

    # kv-v2 is reported back as kv with options.version 2
    configured_type, ok = d.get_ok(FIELD_TYPE)
    if ok and configured_type == "kv-v2" and mount_type == "kv" and str(options.get("version")) == "2":
        mount_type = "kv-v2"
        if not mount_options(d).get("version"):
            options.pop("version", None)

    config = info.get("config") or {}
    d.set(FIELD_TYPE, mount_type)
    d.set(FIELD_PATH, path)
    d.set(FIELD_DESCRIPTION, info.get(FIELD_DESCRIPTION, ""))
    d.set(FIELD_DEFAULT_LEASE_TTL, config.get("default_lease_ttl", 0))
    d.set(FIELD_MAX_LEASE_TTL, config.get("max_lease_ttl", 0))
    d.set(FIELD_FORCE_NO_CACHE, config.get(FIELD_FORCE_NO_CACHE, False))
    d.set(FIELD_AUDIT_NON_HMAC_REQUEST_KEYS, config.get(FIELD_AUDIT_NON_HMAC_REQUEST_KEYS) or [])
    d.set(FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS, config.get(FIELD_AUDIT_NON_HMAC_RESPONSE_KEYS) or [])
    d.set(FIELD_PASSTHROUGH_REQUEST_HEADERS, config.get(FIELD_PASSTHROUGH_REQUEST_HEADERS) or [])
    d.set(FIELD_ALLOWED_RESPONSE_HEADERS, config.get(FIELD_ALLOWED_RESPONSE_HEADERS) or [])
    d.set(FIELD_LISTING_VISIBILITY, config.get(FIELD_LISTING_VISIBILITY, ""))
    d.set(FIELD_PLUGIN_VERSION, info.get(FIELD_PLUGIN_VERSION, ""))
    d.set(FIELD_ACCESSOR, info.get(FIELD_ACCESSOR, ""))
    d.set(FIELD_LOCAL, info.get(FIELD_LOCAL, False))
    d.set(FIELD_OPTIONS, options)
    d.set(FIELD_SEAL_WRAP, info.get(FIELD_SEAL_WRAP, False))
    d.set(FIELD_EXTERNAL_ENTROPY_ACCESS, info.get(FIELD_EXTERNAL_ENTROPY_ACCESS, False))


def mount_resource() -> Resource:
    return Resource(
        name="vault_mount",
        schema=mount_schema(),
        create=mount_write,
        update=mount_update,
        read=read_wrapper(mount_read),
        delete=mount_delete,
        importable=True,
        description="Manages a secret engine mount.",
    )
