"""Pydantic models for the Vault logical client.

This module defines the parsed Vault response (``Secret``) and the
connection configuration used to build clients.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from vault_provisioner import config as settings


class AuthMethod(str, Enum):
    """Supported login methods."""

    TOKEN = "token"
    APPROLE = "approle"
    USERPASS = "userpass"
    KUBERNETES = "kubernetes"


class Secret(BaseModel):
    """A parsed Vault API response.

    Mirrors the envelope every logical endpoint returns. A missing response
    is represented by ``None`` rather than an empty Secret.
    """

    request_id: Optional[str] = Field(default=None, description="Vault request ID")
    lease_id: str = Field(default="", description="Lease ID for dynamic secrets")
    lease_duration: int = Field(default=0, description="Lease duration in seconds")
    renewable: bool = Field(default=False, description="Whether the lease is renewable")
    data: dict[str, Any] = Field(default_factory=dict, description="Response payload")
    warnings: list[str] = Field(default_factory=list, description="Server warnings")
    auth: Optional[dict[str, Any]] = Field(default=None, description="Auth block for logins")
    wrap_info: Optional[dict[str, Any]] = Field(default=None, description="Response wrapping info")

    @field_validator("data", mode="before")
    @classmethod
    def validate_data(cls, v: Any) -> dict[str, Any]:
        """Vault sends ``null`` for empty payloads."""
        return v or {}

    @field_validator("warnings", mode="before")
    @classmethod
    def validate_warnings(cls, v: Any) -> list[str]:
        return v or []

    @field_validator("lease_id", mode="before")
    @classmethod
    def validate_lease_id(cls, v: Any) -> str:
        return v or ""

    @classmethod
    def from_response(cls, response: Any) -> Optional["Secret"]:
        """Build a Secret from an hvac adapter response.

        Args:
            response: Parsed JSON dict, a ``requests.Response`` (for empty
                bodies) or None

        Returns:
            Secret, or None when the response carries no body
        """
        if response is None:
            return None
        if not isinstance(response, dict):
            if getattr(response, "status_code", None) == 204:
                return None
            try:
                response = response.json()
            except ValueError:
                return None
            if not response:
                return None
        known = {k: response.get(k) for k in cls.model_fields if k in response}
        return cls(**known)

    class Config:
        json_schema_extra = {
            "example": {
                "request_id": "2c1d0e38-4b1c-4a5e-9f5f-1c5c1a2b3c4d",
                "lease_id": "",
                "lease_duration": 0,
                "renewable": False,
                "data": {"data": {"password": "s3cr3t"}, "metadata": {"version": 3}},
                "warnings": [],
            }
        }


class VaultConnectionConfig(BaseModel):
    """Configuration for Vault client connections.

    Unset values fall back to the environment (see ``vault_provisioner.config``).
    """

    address: str = Field(
        ...,
        description="Vault server address (https://...)",
        examples=["https://vault.example.com:8200"],
    )
    auth_method: AuthMethod = Field(
        default=AuthMethod.TOKEN,
        description="Authentication method",
    )
    token: Optional[str] = Field(default=None, description="Vault token (if token auth)")
    role_id: Optional[str] = Field(default=None, description="AppRole role ID")
    secret_id: Optional[str] = Field(default=None, description="AppRole secret ID")
    username: Optional[str] = Field(default=None, description="Userpass username")
    password: Optional[str] = Field(default=None, description="Userpass password")
    kubernetes_role: Optional[str] = Field(default=None, description="Kubernetes auth role")
    kubernetes_jwt_file: str = Field(
        default="/var/run/secrets/kubernetes.io/serviceaccount/token",
        description="Service account token used for kubernetes auth",
    )
    auth_mount: Optional[str] = Field(
        default=None,
        description="Mount path of the login method (defaults to the method name)",
    )
    namespace: Optional[str] = Field(default=None, description="Enterprise root namespace")
    timeout: int = Field(default=30, description="Request timeout in seconds", ge=1, le=300)
    max_retries: int = Field(default=settings.DEFAULT_MAX_RETRIES, ge=0, le=25)
    max_retries_ccc: int = Field(
        default=settings.DEFAULT_MAX_RETRIES_CCC,
        description="Retries for read-after-write on eventually consistent clusters",
        ge=0,
        le=50,
    )
    verify: bool = Field(default=True, description="Verify TLS certificates")
    ca_cert_file: Optional[str] = Field(default=None, description="CA bundle path")
    client_cert: Optional[str] = Field(default=None, description="Client TLS certificate")
    client_key: Optional[str] = Field(default=None, description="Client TLS key")
    skip_child_token: bool = Field(
        default=False,
        description="Use the given token directly instead of a limited child token",
    )
    token_name: str = Field(default="vault-provisioner", description="Child token display name")
    max_lease_ttl_seconds: int = Field(
        default=1200,
        description="TTL of the child token",
        ge=1,
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate Vault address format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("address must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip("/") or None

    @model_validator(mode="after")
    def validate_credentials(self) -> "VaultConnectionConfig":
        """Validate the configuration has the credentials its auth method needs."""
        if self.auth_method == AuthMethod.APPROLE and not self.role_id:
            raise ValueError("approle authentication requires role_id")
        if self.auth_method == AuthMethod.USERPASS and not (self.username and self.password):
            raise ValueError("userpass authentication requires username and password")
        if self.auth_method == AuthMethod.KUBERNETES and not self.kubernetes_role:
            raise ValueError("kubernetes authentication requires kubernetes_role")
        return self

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "VaultConnectionConfig":
        """Build a configuration from the environment, with explicit overrides.

        Args:
            overrides: Values from the provider block; ``None`` values are ignored

        Returns:
            Validated connection configuration
        """
        values: dict[str, Any] = {
            "address": settings.VAULT_ADDR,
            "token": settings.VAULT_TOKEN or None,
            "namespace": settings.VAULT_NAMESPACE or None,
            "verify": not settings.VAULT_SKIP_VERIFY,
            "ca_cert_file": settings.VAULT_CACERT,
            "client_cert": settings.VAULT_CLIENT_CERT,
            "client_key": settings.VAULT_CLIENT_KEY,
            "max_retries": settings.VAULT_MAX_RETRIES,
            "max_retries_ccc": settings.VAULT_MAX_RETRIES_CCC,
            "skip_child_token": settings.SKIP_CHILD_TOKEN,
            "token_name": settings.VAULT_TOKEN_NAME,
            "max_lease_ttl_seconds": settings.MAX_LEASE_TTL_SECONDS,
        }
        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value
        if "skip_tls_verify" in values:
            values["verify"] = not values.pop("skip_tls_verify")
        if not values.get("address"):
            raise ValueError("failed to configure Vault address: set VAULT_ADDR or provider.address")
        return cls(**values)

    class Config:
        json_schema_extra = {
            "example": {
                "address": "https://vault.example.com:8200",
                "auth_method": "approle",
                "role_id": "my-role-id",
                "secret_id": "my-secret-id",
                "namespace": "admin",
                "max_retries": 2,
            }
        }
