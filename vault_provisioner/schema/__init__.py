"""Schema module: fields, per-operation resource data and resource definitions."""

from vault_provisioner.schema.field import FieldType, Field, validate_block
from vault_provisioner.schema.resource_data import ResourceData, field_changed, resolve_value
from vault_provisioner.schema.resource import CrudFunc, MigrateFunc, Resource
from vault_provisioner.schema.helpers import (
    get_api_request_data,
    get_api_request_data_ok,
    json_diff_suppress,
    normalize_data_json,
    serialize_data_map_to_string,
    to_json_string,
    validate_data_json,
)

__all__ = [
    "FieldType",
    "Field",
    "validate_block",
    "ResourceData",
    "field_changed",
    "resolve_value",
    "Resource",
    "CrudFunc",
    "MigrateFunc",
    "get_api_request_data",
    "get_api_request_data_ok",
    "json_diff_suppress",
    "normalize_data_json",
    "serialize_data_map_to_string",
    "to_json_string",
    "validate_data_json",
]
