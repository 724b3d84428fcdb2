"""vault_generic_endpoint resource: write JSON to any Vault path."""

import logging
from typing import Any

from vault_provisioner.consts import (
    FIELD_DATA_JSON,
    FIELD_DISABLE_DELETE,
    FIELD_DISABLE_READ,
    FIELD_IGNORE_ABSENT_FIELDS,
    FIELD_PATH,
    FIELD_WRITE_DATA,
    FIELD_WRITE_DATA_JSON,
    FIELD_WRITE_FIELDS,
)
from vault_provisioner.provider import ProviderMeta, get_client, read_wrapper
from vault_provisioner.resources.common import decode_data_json, with_namespace
from vault_provisioner.schema import (
    Field,
    FieldType,
    Resource,
    ResourceData,
    normalize_data_json,
    to_json_string,
    validate_data_json,
)

logger = logging.getLogger(__name__)


def generic_endpoint_write(d: ResourceData, meta: ProviderMeta) -> None:
    client = get_client(d, meta)
    data = decode_data_json(d)

    path = d.get(FIELD_PATH)
    logger.debug(f"Writing generic Vault data to {path}")
    response = client.write(path, data)

    d.set_id(path)

    write_data_map: dict[str, str] = {}
    if response is not None and response.data:
        # write_data only holds strings; anything else is kept as JSON
        write_data: dict[str, Any] = {}
        for field in d.get(FIELD_WRITE_FIELDS):
            if field not in response.data:
                logger.debug(f"{field} not found in response")
                continue
            value = response.data[field]
            logger.debug(f"{field} found in response")
            write_data[field] = value
            write_data_map[field] = value if isinstance(value, str) else to_json_string(value)
        d.set(FIELD_WRITE_DATA_JSON, to_json_string(write_data))
    else:
        d.set(FIELD_WRITE_DATA_JSON, "null")
    d.set(FIELD_WRITE_DATA, write_data_map)

    generic_endpoint_read(d, meta)


def generic_endpoint_read(d: ResourceData, meta: ProviderMeta) -> None:
    should_read = not d.get(FIELD_DISABLE_READ)
    path = d.id
    ignore_absent_fields = d.get(FIELD_IGNORE_ABSENT_FIELDS)

    if should_read:
        client = get_client(d, meta)
        logger.debug(f"Reading {path} from Vault")
        resp = client.read(path)
        if resp is None:
            logger.warning(f"Endpoint {path!r} not found, removing from state")
            d.set_id("")
            return

        if ignore_absent_fields:
            relevant = decode_data_json(d)
            for key, value in resp.data.items():
                if key in relevant:
                    relevant[key] = value
        else:
            relevant = resp.data

        d.set(FIELD_DATA_JSON, to_json_string(relevant))
        d.set(FIELD_PATH, path)
    else:
        logger.warning("Endpoint does not refresh when disable_read is set to true")

    d.set(FIELD_DISABLE_READ, not should_read)
    d.set(FIELD_IGNORE_ABSENT_FIELDS, ignore_absent_fields)


def generic_endpoint_delete(d: ResourceData, meta: ProviderMeta) -> None:
    if d.get(FIELD_DISABLE_DELETE):
        return

    client = get_client(d, meta)
    path = d.id
    logger.debug(f"Deleting vault_generic_endpoint from {path!r}")
    client.delete(path)


def generic_endpoint_resource() -> Resource:
    return Resource(
        name="vault_generic_endpoint",
        schema=with_namespace({
            FIELD_PATH: Field(
                type=FieldType.STRING,
                required=True,
                force_new=True,
                description="Full path where to the endpoint that will be written.",
            ),
            FIELD_DATA_JSON: Field(
                type=FieldType.STRING,
                required=True,
                sensitive=True,
                state_func=normalize_data_json,
                validate_func=validate_data_json,
                description="JSON-encoded data to write.",
            ),
            FIELD_DISABLE_READ: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Don't attempt to read the path from Vault.",
            ),
            FIELD_DISABLE_DELETE: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="Don't attempt to delete the path from Vault.",
            ),
            FIELD_IGNORE_ABSENT_FIELDS: Field(
                type=FieldType.BOOL,
                optional=True,
                default=False,
                description="When reading, disregard fields not present in data_json.",
            ),
            FIELD_WRITE_DATA_JSON: Field(
                type=FieldType.STRING,
                computed=True,
                description="JSON data returned by the write operation.",
            ),
            FIELD_WRITE_DATA: Field(
                type=FieldType.MAP,
                computed=True,
                elem=FieldType.STRING,
                description="Map of strings returned by the write operation.",
            ),
            FIELD_WRITE_FIELDS: Field(
                type=FieldType.LIST,
                optional=True,
                elem=FieldType.STRING,
                description="Top-level fields returned by the write to publish in write_data.",
            ),
        }),
        create=generic_endpoint_write,
        update=generic_endpoint_write,
        read=read_wrapper(generic_endpoint_read),
        delete=generic_endpoint_delete,
        description="Writes arbitrary JSON to a Vault path.",
    )
