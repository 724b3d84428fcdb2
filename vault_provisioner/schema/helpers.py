"""Value helpers shared by resource implementations."""

import json
import logging
from typing import Any, Iterable

from vault_provisioner.schema.resource_data import ResourceData

logger = logging.getLogger(__name__)


def _compact_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def normalize_data_json(data: str) -> str:
    """Re-serialise a JSON object so whitespace and key order do not matter.

    Invalid JSON is returned unchanged; validation reports it separately.
    """
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to normalize JSON data: {e}")
        return data
    if not isinstance(parsed, dict):
        return data
    return _compact_json(parsed)


def validate_data_json(data: Any, key: str) -> list[str]:
    """validate_func requiring a JSON object."""
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError) as e:
        return [f"{key}: invalid JSON: {e}"]
    if not isinstance(parsed, dict):
        return [f"{key}: expected a JSON object, got {type(parsed).__name__}"]
    return []


def json_diff_suppress(key: str, old: Any, new: Any, d: Any = None) -> bool:
    """Treat two JSON documents as equal when they decode to the same value."""
    try:
        old_json = json.loads(old)
    except (TypeError, ValueError):
        logger.warning(f"Version of {key!r} in state is not valid JSON")
        return False
    try:
        new_json = json.loads(new)
    except (TypeError, ValueError):
        logger.warning(f"Version of {key!r} in config is not valid JSON")
        return False
    return old_json == new_json


def serialize_data_map_to_string(data: dict[str, Any]) -> dict[str, str]:
    """Flatten a secret payload into a map of strings.

    Strings are kept as-is, everything else is JSON encoded.
    """
    return {
        k: v if isinstance(v, str) else _compact_json(v)
        for k, v in data.items()
    }


def get_api_request_data(d: ResourceData, fields: Iterable[str]) -> dict[str, Any]:
    """Build a request payload from the given fields of d."""
    return {field: d.get(field) for field in fields}


def get_api_request_data_ok(d: ResourceData, fields: Iterable[str]) -> dict[str, Any]:
    """Like get_api_request_data, but only fields set to a non-zero value."""
    data: dict[str, Any] = {}
    for field in fields:
        value, ok = d.get_ok(field)
        if ok:
            data[field] = value
    return data


def to_json_string(data: Any) -> str:
    return _compact_json(data)
