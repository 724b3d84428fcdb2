"""Helpers shared by resource and data source implementations."""

import dataclasses
import json
import logging
import re
from typing import Any

from vault_provisioner.consts import FIELD_DATA_JSON, FIELD_NAMESPACE
from vault_provisioner.provider import ProviderMeta
from vault_provisioner.retry import RetryPresets, retry_until_found
from vault_provisioner.schema import Field, FieldType, ResourceData
from vault_provisioner.vault.exceptions import VaultNotFoundError, VaultValidationError
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def namespace_field() -> Field:
    return Field(
        type=FieldType.STRING,
        optional=True,
        force_new=True,
        description="Target namespace, relative to the provider namespace.",
    )


def with_namespace(schema: dict[str, Field]) -> dict[str, Field]:
    """Return schema with the common namespace field added."""
    result = dict(schema)
    result[FIELD_NAMESPACE] = namespace_field()
    return result


def decode_data_json(d: ResourceData, key: str = FIELD_DATA_JSON) -> dict[str, Any]:
    """Decode a JSON object field.

    Raises:
        VaultValidationError: If the value is not valid JSON
    """
    raw = d.get(key)
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise VaultValidationError(f"{key} {raw!r} syntax error: {e}") from e


def parse_duration_seconds(value: Any) -> int:
    """Convert a duration string such as ``3h12m10s`` to whole seconds.

    Numbers are returned unchanged; ``0s`` and empty strings are 0.

    Raises:
        VaultValidationError: If value is not a duration
    """
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value or "").strip()
    if text in ("", "0"):
        return 0
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise VaultValidationError(f"error parsing duration {text!r}")
    return int(total)


def read_identity_object(client: Any, path: str, retry: bool, meta: ProviderMeta) -> Secret:
    """Read an identity object, optionally retrying until it shows up.

    Args:
        client: Logical client
        path: identity/entity/id/<id> or identity/group/id/<id>
        retry: True right after creation, when the object may not have
            replicated to the node serving the read yet
        meta: Provider metadata (for max_retries_ccc)

    Raises:
        VaultNotFoundError: If nothing exists at path
    """
    logger.debug(f"Reading identity object from {path!r}")
    if retry:
        config = dataclasses.replace(
            RetryPresets.CONSISTENT_READ, max_attempts=meta.max_retries_ccc + 1
        )
        resp = retry_until_found(client.read, path, config=config)
    else:
        resp = client.read(path)

    if resp is None:
        raise VaultNotFoundError(path, message=f"identity object not found: {path!r}")
    return resp


def validate_no_leading_trailing_slashes(value: Any, key: str) -> list[str]:
    """validate_func rejecting values such as ``/foo`` or ``foo/``."""
    if isinstance(value, str) and (value.startswith("/") or value.endswith("/")):
        return [f"{key}: invalid value {value!r}, contains leading/trailing '/'"]
    return []
