"""Resources and data sources managed by the provisioner.

Each module exposes factory functions returning a ``Resource``; the
registries below map configuration type names onto them.
"""

from typing import Callable

from vault_provisioner.provider import Provider
from vault_provisioner.schema import Resource
from vault_provisioner.resources.auth_backend import auth_backend_resource
from vault_provisioner.resources.generic_endpoint import generic_endpoint_resource
from vault_provisioner.resources.generic_secret import (
    generic_secret_data_source,
    generic_secret_resource,
)
from vault_provisioner.resources.identity_entity import identity_entity_resource
from vault_provisioner.resources.identity_group import identity_group_resource
from vault_provisioner.resources.identity_group_member import (
    group_member_entity_ids_resource,
    group_member_group_ids_resource,
)
from vault_provisioner.resources.kv_secret_v2 import (
    kv_secret_v2_data_source,
    kv_secret_v2_resource,
)
from vault_provisioner.resources.mount import mount_resource
from vault_provisioner.resources.namespace import namespace_resource
from vault_provisioner.resources.policy import policy_resource
from vault_provisioner.resources.policy_document import policy_document_data_source

RESOURCE_REGISTRY: dict[str, Callable[[], Resource]] = {
    "vault_generic_secret": generic_secret_resource,
    "vault_kv_secret_v2": kv_secret_v2_resource,
    "vault_mount": mount_resource,
    "vault_auth_backend": auth_backend_resource,
    "vault_policy": policy_resource,
    "vault_namespace": namespace_resource,
    "vault_identity_entity": identity_entity_resource,
    "vault_identity_group": identity_group_resource,
    "vault_identity_group_member_entity_ids": group_member_entity_ids_resource,
    "vault_identity_group_member_group_ids": group_member_group_ids_resource,
    "vault_generic_endpoint": generic_endpoint_resource,
}

DATA_SOURCE_REGISTRY: dict[str, Callable[[], Resource]] = {
    "vault_generic_secret": generic_secret_data_source,
    "vault_kv_secret_v2": kv_secret_v2_data_source,
    "vault_policy_document": policy_document_data_source,
}


def new_provider() -> Provider:
    """Build a Provider with every registered resource and data source."""
    return Provider(
        resources={name: factory() for name, factory in RESOURCE_REGISTRY.items()},
        data_sources={name: factory() for name, factory in DATA_SOURCE_REGISTRY.items()},
    )


__all__ = [
    "RESOURCE_REGISTRY",
    "DATA_SOURCE_REGISTRY",
    "new_provider",
]
