"""vault_generic_secret resource and data source.

Writes an arbitrary JSON object to a secret path. KV v2 mounts are
detected with a preflight request, so the same resource works for
``secret/foo`` on either engine version.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from vault_provisioner.consts import (
    FIELD_DATA,
    FIELD_DATA_JSON,
    FIELD_DELETE_ALL_VERSIONS,
    FIELD_DISABLE_READ,
    FIELD_LEASE_DURATION,
    FIELD_LEASE_ID,
    FIELD_LEASE_RENEWABLE,
    FIELD_LEASE_START_TIME,
    FIELD_PATH,
    FIELD_VERSION,
    FIELD_WITH_LEASE_START_TIME,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import decode_data_json, with_namespace
from vault_provisioner.schema import (
    Field,
    FieldType,
    Resource,
    ResourceData,
    normalize_data_json,
    serialize_data_map_to_string,
    to_json_string,
    validate_data_json,
)
from vault_provisioner.vault.exceptions import VaultNotFoundError
from vault_provisioner.vault.kv import (
    KV_V2_DATA_PREFIX,
    KV_V2_METADATA_PREFIX,
    LATEST_SECRET_VERSION,
    add_prefix_to_kv_path,
    is_kv_v2,
    versioned_secret,
)

logger = logging.getLogger(__name__)

FIELD_ALLOW_READ = "allow_read"


def _schema() -> dict[str, Field]:
    return with_namespace({
        FIELD_PATH: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="Full path where the generic secret will be written.",
        ),
        FIELD_DATA_JSON: Field(
            type=FieldType.STRING,
            required=True,
            sensitive=True,
            state_func=normalize_data_json,
            validate_func=validate_data_json,
            description="JSON-encoded secret data to write.",
        ),
        FIELD_DISABLE_READ: Field(
            type=FieldType.BOOL,
            optional=True,
            default=False,
            description="Don't attempt to read the secret back; drift goes undetected.",
        ),
        FIELD_DATA: Field(
            type=FieldType.MAP,
            computed=True,
            sensitive=True,
            elem=FieldType.STRING,
            description="Map of strings read from Vault.",
        ),
        FIELD_DELETE_ALL_VERSIONS: Field(
            type=FieldType.BOOL,
            optional=True,
            default=False,
            description="Delete all versions of a KV v2 secret on destroy.",
        ),
    })


def generic_secret_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    data: dict[str, Any] = decode_data_json(d)

    path = d.get(FIELD_PATH)
    original_path = path

    mount_path, v2 = is_kv_v2(path, client)
    if v2:
        path = add_prefix_to_kv_path(path, mount_path, KV_V2_DATA_PREFIX)
        data = {"data": data, "options": {}}

    logger.debug(f"Writing generic secret to {path}")
    client.retry_write(path, data)

    d.set_id(original_path)
    generic_secret_read(d, meta)


def generic_secret_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    mount_path, v2 = is_kv_v2(path, client)
    if v2:
        prefix = KV_V2_METADATA_PREFIX if d.get(FIELD_DELETE_ALL_VERSIONS) else KV_V2_DATA_PREFIX
        path = add_prefix_to_kv_path(path, mount_path, prefix)

    logger.debug(f"Deleting generic secret at {path}")
    client.delete(path)


def generic_secret_read(d: ResourceData, meta: ProviderMeta) -> None:
    should_read = not d.get(FIELD_DISABLE_READ)
    path = d.id

    if should_read:
        client = get_client(d, meta)
        secret = versioned_secret(LATEST_SECRET_VERSION, path, client)
        if secret is None:
            logger.warning(f"Secret {path!r} not found, removing from state")
            d.set_id("")
            return

        d.set(FIELD_DATA_JSON, to_json_string(secret.data))
        d.set(FIELD_PATH, path)
        d.set(FIELD_DATA, serialize_data_map_to_string(secret.data))
    else:
        logger.warning(
            f"vault_generic_secret {path!r} does not refresh when {FIELD_DISABLE_READ} is true"
        )
        d.set(FIELD_DATA, serialize_data_map_to_string(decode_data_json(d)))

    d.set(FIELD_DISABLE_READ, not should_read)
    d.set(FIELD_DELETE_ALL_VERSIONS, d.get(FIELD_DELETE_ALL_VERSIONS))


def generic_secret_migrate_state(version: int, attributes: dict[str, Any]) -> dict[str, Any]:
    """Upgrade version 0 state, which stored the inverse ``allow_read`` flag."""
    if version == 0:
        allow_read = attributes.pop(FIELD_ALLOW_READ, None)
        if allow_read is not None:
            attributes[FIELD_DISABLE_READ] = not allow_read
        else:
            attributes.setdefault(FIELD_DISABLE_READ, False)
    return attributes


def generic_secret_resource() -> Resource:
    return Resource(
        name="vault_generic_secret",
        schema=_schema(),
        create=generic_secret_write,
        update=generic_secret_write,
        read=read_wrapper(generic_secret_read),
        delete=generic_secret_delete,
        importable=True,
        schema_version=1,
        migrate_state=generic_secret_migrate_state,
        description="Writes and manages arbitrary data at a given path in Vault.",
    )


def generic_secret_data_source_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.get(FIELD_PATH)
    version = d.get(FIELD_VERSION)

    secret = versioned_secret(version, path, client)
    if secret is None:
        raise VaultNotFoundError(path, message=f"no secret found at {path!r}")

    d.set_id(path)
    d.set(FIELD_DATA_JSON, to_json_string(secret.data))
    d.set(FIELD_DATA, serialize_data_map_to_string(secret.data))
    d.set(FIELD_LEASE_ID, secret.lease_id)
    d.set(FIELD_LEASE_DURATION, secret.lease_duration)
    d.set(FIELD_LEASE_RENEWABLE, secret.renewable)
    if d.get(FIELD_WITH_LEASE_START_TIME):
        d.set(
            FIELD_LEASE_START_TIME,
            datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )


def generic_secret_data_source() -> Resource:
    return Resource(
        name="vault_generic_secret",
        is_data_source=True,
        read=generic_secret_data_source_read,
        schema=with_namespace({
            FIELD_PATH: Field(type=FieldType.STRING, required=True),
            FIELD_VERSION: Field(type=FieldType.INT, optional=True, default=LATEST_SECRET_VERSION),
            FIELD_WITH_LEASE_START_TIME: Field(type=FieldType.BOOL, optional=True, default=True),
            FIELD_DATA_JSON: Field(type=FieldType.STRING, computed=True, sensitive=True),
            FIELD_DATA: Field(
                type=FieldType.MAP, computed=True, sensitive=True, elem=FieldType.STRING
            ),
            FIELD_LEASE_ID: Field(type=FieldType.STRING, computed=True),
            FIELD_LEASE_DURATION: Field(type=FieldType.INT, computed=True),
            FIELD_LEASE_START_TIME: Field(type=FieldType.STRING, computed=True),
            FIELD_LEASE_RENEWABLE: Field(type=FieldType.BOOL, computed=True),
        }),
        description="Reads arbitrary data from a given path in Vault.",
    )
