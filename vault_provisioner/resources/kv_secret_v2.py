"""vault_kv_secret_v2 resource and data source."""

import logging
import re
from typing import Any, Optional

from vault_provisioner.consts import (
    FIELD_CAS,
    FIELD_CAS_REQUIRED,
    FIELD_CUSTOM_METADATA,
    FIELD_DATA,
    FIELD_DATA_JSON,
    FIELD_DELETE_ALL_VERSIONS,
    FIELD_DELETE_VERSION_AFTER,
    FIELD_DELETION_TIME,
    FIELD_DISABLE_READ,
    FIELD_MAX_VERSIONS,
    FIELD_METADATA,
    FIELD_MOUNT,
    FIELD_NAME,
    FIELD_OPTIONS,
    FIELD_PATH,
    FIELD_VERSION,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import (
    decode_data_json,
    parse_duration_seconds,
    with_namespace,
)
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
from vault_provisioner.vault.exceptions import VaultNotFoundError, VaultValidationError
from vault_provisioner.vault.kv import KV_V2_DATA_PREFIX, KV_V2_METADATA_PREFIX

logger = logging.getLogger(__name__)

FIELD_CREATED_TIME = "created_time"
FIELD_DESTROYED = "destroyed"

# vault metadata key -> custom_metadata block key
KV_METADATA_FIELDS = {
    FIELD_MAX_VERSIONS: FIELD_MAX_VERSIONS,
    FIELD_CAS_REQUIRED: FIELD_CAS_REQUIRED,
    FIELD_DELETE_VERSION_AFTER: FIELD_DELETE_VERSION_AFTER,
    FIELD_CUSTOM_METADATA: FIELD_DATA,
}

_MOUNT_FROM_PATH = re.compile(r"^(.+?)/data/.+$")
_NAME_FROM_PATH = re.compile(r"^.+?/data/(.+?)$")


def get_kv_v2_path(mount: str, name: str, prefix: str) -> str:
    """Build ``<mount>/<prefix>/<name>``.

    >>> get_kv_v2_path("/kvv2/", "foo/bar", "data")
    'kvv2/data/foo/bar'
    """
    return f"{mount.strip('/')}/{prefix}/{name.strip('/')}"


def mount_from_path(path: str) -> str:
    """Extract the mount from a ``<mount>/data/<name>`` id.

    Raises:
        VaultValidationError: If path has no ``data`` segment
    """
    match = _MOUNT_FROM_PATH.match(path)
    if match is None:
        raise VaultValidationError(f"no mount found in {path!r}")
    return match.group(1)


def name_from_path(path: str) -> str:
    match = _NAME_FROM_PATH.match(path)
    if match is None:
        raise VaultValidationError(f"no name found in {path!r}")
    return match.group(1)


def _custom_metadata_payload(d: ResourceData) -> dict[str, Any]:
    blocks = d.get(FIELD_CUSTOM_METADATA) or [{}]
    block = blocks[0] or {}
    data: dict[str, Any] = {}
    for vault_key, state_key in KV_METADATA_FIELDS.items():
        value = block.get(state_key)
        if value:
            data[vault_key] = value
    return data


def read_kv_v2_metadata(client: Any, path: str) -> Optional[dict[str, Any]]:
    """Read the metadata endpoint and map it onto a custom_metadata block.

    ``delete_version_after`` is written as seconds but read back as a
    duration string, so it is converted.
    """
    logger.debug(f"Reading metadata for KV v2 secret at {path}")
    resp = client.read(path)
    if resp is None:
        logger.debug("No metadata found for secret")
        return None

    block: dict[str, Any] = {}
    for vault_key, state_key in KV_METADATA_FIELDS.items():
        if vault_key not in resp.data:
            continue
        value = resp.data[vault_key]
        if vault_key == FIELD_DELETE_VERSION_AFTER:
            value = parse_duration_seconds(value)
        block[state_key] = value
    return block


def _custom_metadata_schema() -> dict[str, Field]:
    return {
        FIELD_MAX_VERSIONS: Field(
            type=FieldType.INT,
            optional=True,
            description="The number of versions to keep per key.",
        ),
        FIELD_CAS_REQUIRED: Field(
            type=FieldType.BOOL,
            optional=True,
            description="If true, all keys will require the cas parameter to be set on all write requests.",
        ),
        FIELD_DELETE_VERSION_AFTER: Field(
            type=FieldType.INT,
            optional=True,
            description="Seconds after which a version is deleted, 0 to keep versions forever.",
        ),
        FIELD_DATA: Field(
            type=FieldType.MAP,
            optional=True,
            elem=FieldType.STRING,
            description="Custom metadata to store with the secret.",
        ),
    }


def _schema() -> dict[str, Field]:
    return with_namespace({
        FIELD_MOUNT: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="Path where the KV v2 engine is mounted.",
        ),
        FIELD_NAME: Field(
            type=FieldType.STRING,
            required=True,
            force_new=True,
            description="Full name of the secret, excluding the mount and data prefix.",
        ),
        FIELD_PATH: Field(
            type=FieldType.STRING,
            computed=True,
            description="Full path where the KV v2 secret is written.",
        ),
        FIELD_CAS: Field(
            type=FieldType.INT,
            optional=True,
            description="Only write if the current version matches this value.",
        ),
        FIELD_OPTIONS: Field(
            type=FieldType.MAP,
            optional=True,
            elem=FieldType.STRING,
            description="Options passed with the write request.",
        ),
        FIELD_DISABLE_READ: Field(
            type=FieldType.BOOL,
            optional=True,
            default=False,
            description="Don't attempt to read the secret back; drift goes undetected.",
        ),
        FIELD_DATA_JSON: Field(
            type=FieldType.STRING,
            required=True,
            sensitive=True,
            state_func=normalize_data_json,
            validate_func=validate_data_json,
            description="JSON-encoded secret data to write.",
        ),
        FIELD_DATA: Field(
            type=FieldType.MAP,
            computed=True,
            sensitive=True,
            elem=FieldType.STRING,
            description="Map of strings read from Vault.",
        ),
        FIELD_METADATA: Field(
            type=FieldType.MAP,
            computed=True,
            elem=FieldType.STRING,
            description="Metadata associated with this secret read from Vault.",
        ),
        FIELD_DELETE_ALL_VERSIONS: Field(
            type=FieldType.BOOL,
            optional=True,
            default=False,
            description="Delete every version and the metadata on destroy.",
        ),
        FIELD_CUSTOM_METADATA: Field(
            type=FieldType.LIST,
            optional=True,
            computed=True,
            max_items=1,
            elem=_custom_metadata_schema(),
            description="Custom metadata to be set for the secret.",
        ),
    })


def kv_secret_v2_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)

    mount = d.get(FIELD_MOUNT)
    name = d.get(FIELD_NAME)
    path = get_kv_v2_path(mount, name, KV_V2_DATA_PREFIX)

    data = {
        "data": decode_data_json(d),
        FIELD_CAS: d.get(FIELD_CAS),
        FIELD_OPTIONS: d.get(FIELD_OPTIONS),
    }
    client.retry_write(path, data)
    d.set_id(path)

    _, ok = d.get_ok(FIELD_CUSTOM_METADATA)
    if ok:
        metadata_path = get_kv_v2_path(mount, name, KV_V2_METADATA_PREFIX)
        logger.debug(f"Writing custom metadata for secret at {path}")
        client.write(metadata_path, _custom_metadata_payload(d))

    kv_secret_v2_read(d, meta)


def kv_secret_v2_read(d: ResourceData, meta: ProviderMeta) -> None:
    should_read = not d.get(FIELD_DISABLE_READ)

    path = d.id
    if not path:
        return

    d.set(FIELD_PATH, path)
    mount = mount_from_path(path)
    name = name_from_path(path)
    d.set(FIELD_MOUNT, mount)
    d.set(FIELD_NAME, name)

    if not should_read:
        return

    client = get_client(d, meta)
    logger.debug(f"Reading {path} from Vault")
    secret = client.read(path)
    if secret is None:
        logger.warning(f"Secret {path!r} not found, removing from state")
        d.set_id("")
        return

    data = secret.data.get("data")
    d.set(FIELD_DATA_JSON, to_json_string(data))
    if isinstance(data, dict):
        d.set(FIELD_DATA, serialize_data_map_to_string(data))

    metadata = secret.data.get("metadata")
    if isinstance(metadata, dict):
        d.set(FIELD_METADATA, serialize_data_map_to_string(metadata))
        if FIELD_CUSTOM_METADATA in metadata:
            metadata_path = get_kv_v2_path(mount, name, KV_V2_METADATA_PREFIX)
            block = read_kv_v2_metadata(client, metadata_path)
            d.set(FIELD_CUSTOM_METADATA, [block] if block is not None else [])


def kv_secret_v2_delete(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    path = d.id

    if d.get(FIELD_DELETE_ALL_VERSIONS):
        path = get_kv_v2_path(mount_from_path(path), name_from_path(path), KV_V2_METADATA_PREFIX)

    logger.debug(f"Deleting KV v2 secret at {path}")
    client.delete(path)


def kv_secret_v2_resource() -> Resource:
    # data and metadata are computed only, so disable_read never shows them as drift
    return Resource(
        name="vault_kv_secret_v2",
        schema=_schema(),
        create=kv_secret_v2_write,
        update=kv_secret_v2_write,
        read=read_wrapper(kv_secret_v2_read),
        delete=kv_secret_v2_delete,
        importable=True,
        description="Writes and manages secrets stored in a KV v2 engine.",
    )


def kv_secret_v2_data_source_read(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)

    path = get_kv_v2_path(d.get(FIELD_MOUNT), d.get(FIELD_NAME), KV_V2_DATA_PREFIX)
    d.set_id(path)
    d.set(FIELD_PATH, path)

    version, ok = d.get_ok(FIELD_VERSION)
    if ok:
        logger.debug(f"Reading secret at {path!r} (version {version}) from Vault")
        secret = client.read(path, params={FIELD_VERSION: str(version)})
    else:
        logger.debug(f"Reading secret at {path!r} (latest version) from Vault")
        secret = client.read(path)

    if secret is None:
        raise VaultNotFoundError(path, message=f"no secret found at {path!r}")

    metadata = secret.data.get("metadata")
    if isinstance(metadata, dict):
        for key in (FIELD_CREATED_TIME, FIELD_DELETION_TIME, FIELD_DESTROYED, FIELD_VERSION):
            if key in metadata:
                d.set(key, metadata[key])
        custom_metadata = metadata.get(FIELD_CUSTOM_METADATA)
        if isinstance(custom_metadata, dict):
            d.set(FIELD_CUSTOM_METADATA, serialize_data_map_to_string(custom_metadata))

    data = secret.data.get("data")
    d.set(FIELD_DATA_JSON, to_json_string(data))
    if isinstance(data, dict):
        d.set(FIELD_DATA, serialize_data_map_to_string(data))


def kv_secret_v2_data_source() -> Resource:
    return Resource(
        name="vault_kv_secret_v2",
        is_data_source=True,
        read=kv_secret_v2_data_source_read,
        schema=with_namespace({
            FIELD_MOUNT: Field(type=FieldType.STRING, required=True),
            FIELD_NAME: Field(type=FieldType.STRING, required=True),
            FIELD_VERSION: Field(type=FieldType.INT, optional=True, computed=True),
            FIELD_PATH: Field(type=FieldType.STRING, computed=True),
            FIELD_CREATED_TIME: Field(type=FieldType.STRING, computed=True),
            FIELD_DELETION_TIME: Field(type=FieldType.STRING, computed=True),
            FIELD_DESTROYED: Field(type=FieldType.BOOL, computed=True),
            FIELD_CUSTOM_METADATA: Field(
                type=FieldType.MAP, computed=True, elem=FieldType.STRING
            ),
            FIELD_DATA_JSON: Field(type=FieldType.STRING, computed=True, sensitive=True),
            FIELD_DATA: Field(
                type=FieldType.MAP, computed=True, sensitive=True, elem=FieldType.STRING
            ),
        }),
        description="Reads a secret from a KV v2 engine.",
    )
