"""Vault module for talking to HashiCorp Vault.

This module provides the exception hierarchy, pydantic models, KV version
negotiation and policy documents. The hvac-backed ``LogicalClient`` lives
in ``vault_provisioner.vault.client``.
"""

from vault_provisioner.vault.exceptions import (
    ResourceError,
    VaultAuthenticationError,
    VaultConnectionError,
    VaultError,
    VaultNotFoundError,
    VaultPermissionError,
    VaultResponseError,
    VaultSealedError,
    VaultUninitializedError,
    VaultValidationError,
    error_contains_http_code,
    is_404,
)
from vault_provisioner.vault.models import (
    AuthMethod,
    Secret,
    VaultConnectionConfig,
)
from vault_provisioner.vault.kv import (
    LATEST_SECRET_VERSION,
    add_prefix_to_kv_path,
    is_kv_v2,
    kv_preflight_version_request,
    versioned_secret,
)
from vault_provisioner.vault.policies import (
    PolicyDocument,
    PolicyRule,
    PolicyValidationError,
    parse_policy,
    render_policy,
)

__all__ = [
    "ResourceError",
    "VaultAuthenticationError",
    "VaultConnectionError",
    "VaultError",
    "VaultNotFoundError",
    "VaultPermissionError",
    "VaultResponseError",
    "VaultSealedError",
    "VaultUninitializedError",
    "VaultValidationError",
    "error_contains_http_code",
    "is_404",
    "AuthMethod",
    "Secret",
    "VaultConnectionConfig",
    "LATEST_SECRET_VERSION",
    "add_prefix_to_kv_path",
    "is_kv_v2",
    "kv_preflight_version_request",
    "versioned_secret",
    "PolicyDocument",
    "PolicyRule",
    "PolicyValidationError",
    "parse_policy",
    "render_policy",
]
