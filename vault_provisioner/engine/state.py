"""JSON state file holding the id and attributes of managed resources."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from vault_provisioner.consts import FIELD_ID
from vault_provisioner.schema import Resource
from vault_provisioner.vault.exceptions import VaultValidationError

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class ResourceState(BaseModel):
    """Stored state of one managed resource."""

    type: str
    name: str
    id: str = Field(..., min_length=1)
    schema_version: int = Field(default=0, ge=0)
    attributes: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


class StateDocument(BaseModel):
    version: int = STATE_VERSION
    serial: int = 0
    resources: list[ResourceState] = Field(default_factory=list)


class StateStore:
    """Load, query and atomically save the state file.

    Example:
        >>> store = StateStore("vault-provisioner.state.json")
        >>> store.get("vault_policy.dev").id
        'dev'
        >>> store.save()
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.document = self._load()

    def _load(self) -> StateDocument:
        if not self.path.exists():
            logger.debug(f"No state file at {self.path}, starting empty")
            return StateDocument()
        try:
            raw = json.loads(self.path.read_text())
        except OSError as e:
            raise VaultValidationError(f"failed to read state {self.path}: {e}") from e
        except ValueError as e:
            raise VaultValidationError(f"state {self.path} is not valid JSON: {e}") from e
        try:
            document = StateDocument.model_validate(raw)
        except ValidationError as e:
            raise VaultValidationError(f"invalid state {self.path}: {e}") from e
        if document.version > STATE_VERSION:
            raise VaultValidationError(
                f"state {self.path} has version {document.version}, "
                f"this release understands up to {STATE_VERSION}"
            )
        return document

    @property
    def resources(self) -> list[ResourceState]:
        return self.document.resources

    @property
    def serial(self) -> int:
        return self.document.serial

    def addresses(self) -> list[str]:
        return [r.address for r in self.document.resources]

    def get(self, address: str) -> Optional[ResourceState]:
        for resource in self.document.resources:
            if resource.address == address:
                return resource
        return None

    def put(self, resource: ResourceState) -> None:
        """Insert or replace the state of resource.address."""
        for i, existing in enumerate(self.document.resources):
            if existing.address == resource.address:
                self.document.resources[i] = resource
                return
        self.document.resources.append(resource)

    def remove(self, address: str) -> None:
        self.document.resources = [
            r for r in self.document.resources if r.address != address
        ]

    def save(self) -> None:
        """Write the state next to its final location, then rename it into place."""
        self.document.serial += 1
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.document.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug(f"Saved state serial {self.document.serial} to {self.path}")

    def upgrade(self, resource: Resource, state: ResourceState) -> ResourceState:
        """Migrate state written by an older schema version of resource."""
        if state.schema_version >= resource.schema_version:
            return state
        attributes = {FIELD_ID: state.id, **state.attributes}
        attributes = resource.upgrade_state(state.schema_version, attributes)
        resource_id = attributes.pop(FIELD_ID, state.id) or state.id
        upgraded = state.model_copy(update={
            "id": resource_id,
            "attributes": attributes,
            "schema_version": resource.schema_version,
        })
        self.put(upgraded)
        logger.info(
            f"Upgraded state of {state.address} from schema version "
            f"{state.schema_version} to {resource.schema_version}"
        )
        return upgraded
