"""Configuration document: provider settings, resources and data sources.

The document is JSON::

    {
      "provider": {"address": "https://vault:8200"},
      "resources": [
        {"type": "vault_mount", "name": "kv", "config": {"path": "kv", "type": "kv-v2"}},
        {"type": "vault_kv_secret_v2", "name": "app",
         "config": {"mount": "${vault_mount.kv.path}", "name": "app",
                    "data_json": "{\\"password\\": \\"s3cr3t\\"}"}}
      ],
      "data": [
        {"type": "vault_policy_document", "name": "read", "config": {"rule": [...]}}
      ]
    }

String values may reference attributes of other objects with
``${type.name.attr}`` or ``${data.type.name.attr}``. Nested attributes
are addressed with further dots (``${vault_kv_secret_v2.app.data.password}``).
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from vault_provisioner.schema import to_json_string
from vault_provisioner.vault.exceptions import VaultValidationError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data."

_REFERENCE = re.compile(r"\$\{([^}]+)\}")
_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")


class Unknown:
    """Placeholder for a value that is only known after apply."""

    _instance: Optional["Unknown"] = None

    def __new__(cls) -> "Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "(known after apply)"


UNKNOWN = Unknown()


class ResourceBlock(BaseModel):
    """A managed resource declared in the configuration."""

    type: str = Field(..., min_length=1, description="Resource type, e.g. vault_policy")
    name: str = Field(..., min_length=1, description="Local name, unique per type")
    config: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list, description="Explicit dependencies")

    @field_validator("type", "name")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        if not _NAME.match(v):
            raise ValueError(f"invalid identifier {v!r}")
        return v

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"

    def references(self) -> set[str]:
        """Addresses this block depends on, explicit and implicit."""
        return set(self.depends_on) | find_references(self.config)


class DataBlock(ResourceBlock):
    """A data source declared in the configuration."""

    @property
    def address(self) -> str:
        return f"{DATA_PREFIX}{self.type}.{self.name}"


class ConfigDocument(BaseModel):
    """Top-level configuration document."""

    provider: dict[str, Any] = Field(default_factory=dict)
    resources: list[ResourceBlock] = Field(default_factory=list)
    data: list[DataBlock] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_addresses(self) -> "ConfigDocument":
        seen: set[str] = set()
        for block in self.blocks():
            if block.address in seen:
                raise ValueError(f"duplicate declaration of {block.address}")
            seen.add(block.address)
        return self

    def blocks(self) -> list[ResourceBlock]:
        return [*self.resources, *self.data]

    def get(self, address: str) -> Optional[ResourceBlock]:
        for block in self.blocks():
            if block.address == address:
                return block
        return None

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ConfigDocument":
        """Read and validate a configuration file.

        Raises:
            VaultValidationError: If the file is missing, not JSON or invalid
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text())
        except OSError as e:
            raise VaultValidationError(f"failed to read configuration {path}: {e}") from e
        except ValueError as e:
            raise VaultValidationError(f"configuration {path} is not valid JSON: {e}") from e
        try:
            document = cls.model_validate(raw)
        except ValidationError as e:
            raise VaultValidationError(f"invalid configuration {path}: {e}") from e
        logger.debug(
            f"Loaded {len(document.resources)} resources and {len(document.data)} data sources "
            f"from {path}"
        )
        return document

    class Config:
        json_schema_extra = {
            "example": {
                "provider": {"address": "https://vault.example.com:8200"},
                "resources": [
                    {
                        "type": "vault_policy",
                        "name": "dev",
                        "config": {"name": "dev", "policy": 'path "dev/*" {}'},
                    }
                ],
            }
        }


def split_reference(reference: str) -> tuple[str, list[str]]:
    """Split ``type.name.attr...`` into an address and attribute path.

    >>> split_reference("data.vault_kv_secret_v2.app.data.password")
    ('data.vault_kv_secret_v2.app', ['data', 'password'])

    Raises:
        VaultValidationError: If the reference has no attribute part
    """
    parts = reference.strip().split(".")
    size = 3 if parts[0] == "data" else 2
    if len(parts) <= size or not all(parts):
        raise VaultValidationError(f"invalid reference ${{{reference}}}")
    return ".".join(parts[:size]), parts[size:]


def find_references(value: Any) -> set[str]:
    """Collect the addresses referenced anywhere in value."""
    found: set[str] = set()
    if isinstance(value, str):
        for match in _REFERENCE.finditer(value):
            address, _ = split_reference(match.group(1))
            found.add(address)
    elif isinstance(value, dict):
        for item in value.values():
            found |= find_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            found |= find_references(item)
    return found


def has_references(value: Any) -> bool:
    if isinstance(value, str):
        return _REFERENCE.search(value) is not None
    if isinstance(value, dict):
        return any(has_references(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(has_references(v) for v in value)
    return False


def contains_unknown(value: Any) -> bool:
    if value is UNKNOWN:
        return True
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_unknown(v) for v in value)
    return False


def lookup_attribute(attributes: dict[str, Any], path: list[str], reference: str) -> Any:
    """Walk path through nested maps and lists.

    Raises:
        VaultValidationError: If an element of path does not exist
    """
    value: Any = attributes
    for part in path:
        if value is UNKNOWN:
            return UNKNOWN
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            raise VaultValidationError(f"unsupported attribute in reference ${{{reference}}}")
    return value


Resolver = Callable[[str], Optional[dict[str, Any]]]


def resolve_references(value: Any, resolver: Resolver) -> Any:
    """Substitute references in value.

    resolver maps an address to its attributes, or returns None when they
    are not known yet. A string made of exactly one reference takes the
    referenced value with its type; references embedded in a longer string
    are formatted into it. Anything depending on an unknown value becomes
    UNKNOWN.
    """
    if isinstance(value, dict):
        return {k: resolve_references(v, resolver) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_references(v, resolver) for v in value]
    if not isinstance(value, str) or _REFERENCE.search(value) is None:
        return value

    def resolve_one(reference: str) -> Any:
        address, path = split_reference(reference)
        attributes = resolver(address)
        if attributes is None:
            return UNKNOWN
        return lookup_attribute(attributes, path, reference)

    whole = _REFERENCE.fullmatch(value)
    if whole is not None:
        return resolve_one(whole.group(1))

    pieces = []
    pos = 0
    for match in _REFERENCE.finditer(value):
        resolved = resolve_one(match.group(1))
        if resolved is UNKNOWN:
            return UNKNOWN
        pieces.append(value[pos:match.start()])
        pieces.append(resolved if isinstance(resolved, str) else _format_value(resolved))
        pos = match.end()
    pieces.append(value[pos:])
    return "".join(pieces)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return to_json_string(value)
    return str(value)
