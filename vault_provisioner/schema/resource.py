"""Resource and data source definitions."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Collection, Optional

from vault_provisioner.schema.field import Field, validate_block
from vault_provisioner.schema.resource_data import ResourceData

logger = logging.getLogger(__name__)

# callback(d, meta); errors are raised, a cleared id means "gone"
CrudFunc = Callable[[ResourceData, Any], None]
# migrate_state(version, attributes) -> attributes at the current version
MigrateFunc = Callable[[int, dict[str, Any]], dict[str, Any]]


@dataclass
class Resource:
    """A resource or data source: a schema plus CRUD callbacks.

    Data sources only provide ``read``. Resources without ``update`` are
    replaced whenever any configurable field changes.
    """

    name: str
    schema: dict[str, Field]
    read: CrudFunc
    create: Optional[CrudFunc] = None
    update: Optional[CrudFunc] = None
    delete: Optional[CrudFunc] = None
    importable: bool = False
    schema_version: int = 0
    migrate_state: Optional[MigrateFunc] = None
    is_data_source: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        if not self.is_data_source and (self.create is None or self.delete is None):
            raise ValueError(f"resource {self.name} must define create and delete")

    @property
    def force_new_fields(self) -> list[str]:
        return [key for key, spec in self.schema.items() if spec.force_new]

    def validate(self, config: dict[str, Any], unknown_keys: Collection[str] = ()) -> list[str]:
        """Validate a configuration block.

        Args:
            config: Configuration values
            unknown_keys: Keys whose values are not known until apply

        Returns:
            Error messages, empty when the configuration is valid
        """
        return validate_block(self.schema, config, unknown_keys=unknown_keys)

    def data(
        self,
        config: Optional[dict[str, Any]] = None,
        state: Optional[dict[str, Any]] = None,
        resource_id: str = "",
        new_resource: bool = False,
    ) -> ResourceData:
        """Build the ResourceData handed to the CRUD callbacks."""
        return ResourceData(
            self.schema,
            config=config,
            state=state,
            resource_id=resource_id,
            new_resource=new_resource,
        )

    def upgrade_state(self, version: int, attributes: dict[str, Any]) -> dict[str, Any]:
        """Bring attributes stored at an older schema version up to date."""
        if version >= self.schema_version or self.migrate_state is None:
            return attributes
        logger.debug(f"Migrating {self.name} state from schema version {version}")
        return self.migrate_state(version, dict(attributes))
