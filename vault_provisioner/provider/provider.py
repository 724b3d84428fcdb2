"""Provider: the registry of resources and data sources plus configuration."""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from vault_provisioner.provider.meta import ProviderMeta
from vault_provisioner.schema import Resource
from vault_provisioner.vault.exceptions import VaultValidationError
from vault_provisioner.vault.models import VaultConnectionConfig

logger = logging.getLogger(__name__)

# provider block keys accepted on top of VaultConnectionConfig fields
PROVIDER_ALIASES = frozenset({"skip_tls_verify"})


class Provider:
    """Resource and data source registry.

    Example:
        >>> provider = Provider(resources={"vault_policy": policy_resource()})
        >>> meta = provider.configure({"address": "https://vault:8200"})
        >>> provider.resource("vault_policy").read(d, meta)
    """

    def __init__(
        self,
        resources: Optional[dict[str, Resource]] = None,
        data_sources: Optional[dict[str, Resource]] = None,
    ):
        self.resources = dict(resources or {})
        self.data_sources = dict(data_sources or {})

    def resource(self, type_name: str) -> Resource:
        """Look up a resource type.

        Raises:
            VaultValidationError: If the type is not registered
        """
        try:
            return self.resources[type_name]
        except KeyError:
            raise VaultValidationError(f"unsupported resource type: {type_name}") from None

    def data_source(self, type_name: str) -> Resource:
        try:
            return self.data_sources[type_name]
        except KeyError:
            raise VaultValidationError(f"unsupported data source type: {type_name}") from None

    def validate_config(self, config: Optional[dict[str, Any]]) -> list[str]:
        """Return error messages for unknown provider block keys."""
        allowed = set(VaultConnectionConfig.model_fields) | PROVIDER_ALIASES
        return [f"provider.{key}: unsupported argument" for key in (config or {}) if key not in allowed]

    def configure(self, config: Optional[dict[str, Any]] = None) -> ProviderMeta:
        """Build the ProviderMeta from a provider block and the environment.

        Raises:
            VaultValidationError: If the connection configuration is invalid
        """
        errors = self.validate_config(config)
        if errors:
            raise VaultValidationError("invalid provider configuration", details={"errors": errors})
        try:
            connection = VaultConnectionConfig.from_env(config)
        except (ValidationError, ValueError) as e:
            raise VaultValidationError(f"invalid provider configuration: {e}") from e
        logger.debug(f"Configured provider for {connection.address}")
        return ProviderMeta(connection)
