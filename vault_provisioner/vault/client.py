"""Logical client wrapper around hvac.

This module provides the generic read/write/delete/list client every
resource talks to, including authentication, child token creation,
namespace cloning and translation of hvac errors.
"""

import logging
from threading import Lock
from typing import Any, Callable, Optional

import hvac
import requests
from hvac import exceptions as hvac_exceptions

from vault_provisioner.retry import (
    RetryConfiguration,
    is_vault_retryable_error_state,
    retry_call,
)
from vault_provisioner.vault.exceptions import (
    VaultAuthenticationError,
    VaultConnectionError,
    VaultError,
    VaultPermissionError,
    VaultResponseError,
    VaultSealedError,
    VaultUninitializedError,
)
from vault_provisioner.vault.models import AuthMethod, Secret, VaultConnectionConfig

logger = logging.getLogger(__name__)

# hvac raises one exception class per status code
HVAC_STATUS_CODES: tuple[tuple[type, int], ...] = (
    (hvac_exceptions.InvalidRequest, 400),
    (hvac_exceptions.Unauthorized, 401),
    (hvac_exceptions.Forbidden, 403),
    (hvac_exceptions.InvalidPath, 404),
    (hvac_exceptions.PreconditionFailed, 412),
    (hvac_exceptions.RateLimitExceeded, 429),
    (hvac_exceptions.InternalServerError, 500),
    (hvac_exceptions.VaultNotInitialized, 501),
    (hvac_exceptions.BadGateway, 502),
    (hvac_exceptions.VaultDown, 503),
)


def status_code_for(err: BaseException) -> Optional[int]:
    """Return the HTTP status an hvac exception stands for."""
    for exc_type, code in HVAC_STATUS_CODES:
        if isinstance(err, exc_type):
            return code
    return None


def translate_error(err: hvac_exceptions.VaultError, path: str, operation: str) -> VaultError:
    """Map an hvac exception onto the package exception hierarchy.

    Args:
        err: Exception raised by hvac
        path: Logical path of the request
        operation: Operation name used in messages (read, write, ...)

    Returns:
        Exception to raise in place of err
    """
    status_code = status_code_for(err)
    errors = getattr(err, "errors", None)
    details = {"path": path, "errors": errors} if errors else {"path": path}
    message = f"error {operation} {path}: {err}"

    if status_code == 401:
        return VaultAuthenticationError(message, details=details)
    if status_code == 403:
        return VaultPermissionError(path, operation, message=message, details=details)
    if status_code == 503:
        return VaultSealedError(message, path=path, details=details)
    if status_code == 501:
        return VaultUninitializedError(message, path=path, details=details)
    return VaultResponseError(message, status_code=status_code, path=path, details=details)


class LogicalClient:
    """Generic client for Vault's logical API.

    Every call takes a path relative to ``/v1/`` and returns a parsed
    ``Secret`` or ``None`` when Vault has nothing at that path.

    Example:
        >>> config = VaultConnectionConfig(address="https://vault:8200", token="s.xyz")
        >>> client = LogicalClient(config)
        >>> client.authenticate()
        >>> client.write("sys/policies/acl/dev", {"policy": 'path "dev/*" {}'})
    """

    def __init__(
        self,
        config: VaultConnectionConfig,
        client: Optional[hvac.Client] = None,
        namespace: Optional[str] = None,
    ):
        """Initialize the logical client.

        Args:
            config: Connection configuration
            client: Pre-built hvac client (mostly for tests)
            namespace: Namespace override, defaults to config.namespace
        """
        self.config = config
        self._namespace = namespace if namespace is not None else config.namespace
        self._client = client
        self._lock = Lock()

    def _build_client(self, token: Optional[str]) -> hvac.Client:
        verify: Any = self.config.verify
        if self.config.verify and self.config.ca_cert_file:
            verify = self.config.ca_cert_file
        cert = None
        if self.config.client_cert and self.config.client_key:
            cert = (self.config.client_cert, self.config.client_key)

        client = hvac.Client(
            url=self.config.address,
            token=token,
            namespace=self._namespace or None,
            verify=verify,
            timeout=self.config.timeout,
            cert=cert,
        )
        if self.config.headers:
            client.adapter.session.headers.update(self.config.headers)
        return client

    @property
    def client(self) -> hvac.Client:
        """The underlying hvac client, created on first use."""
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._build_client(self.config.token)
        return self._client

    @property
    def token(self) -> Optional[str]:
        return self.client.token

    @token.setter
    def token(self, value: Optional[str]) -> None:
        self.client.token = value

    @property
    def namespace(self) -> Optional[str]:
        return self._namespace

    def _request(self, operation: str, path: str, func: Callable, *args, **kwargs) -> Any:
        logger.debug(f"Vault {operation}: {path}")
        try:
            return func(*args, **kwargs)
        except hvac_exceptions.VaultError as e:
            raise translate_error(e, path, operation) from e
        except requests.exceptions.RequestException as e:
            raise VaultConnectionError(
                f"Failed to reach Vault at {self.config.address}: {e}",
                details={"path": path},
            ) from e

    def read(self, path: str, params: Optional[dict[str, Any]] = None) -> Optional[Secret]:
        """Read a path.

        Args:
            path: Logical path
            params: Optional query parameters

        Returns:
            Secret, or None when nothing exists at path
        """
        try:
            response = self._request(
                "reading", path, self.client.adapter.get, f"/v1/{path}", params=params
            )
        except VaultResponseError as e:
            if e.status_code == 404:
                return None
            raise
        return Secret.from_response(response)

    def raw_get(self, path: str) -> Optional[Secret]:
        """GET a path, surfacing 404s as VaultResponseError."""
        response = self._request("reading", path, self.client.adapter.get, f"/v1/{path}")
        return Secret.from_response(response)

    def write(self, path: str, data: Optional[dict[str, Any]] = None) -> Optional[Secret]:
        response = self._request(
            "writing", path, self.client.adapter.post, f"/v1/{path}", json=data or {}
        )
        return Secret.from_response(response)

    def retry_write(
        self, path: str, data: Optional[dict[str, Any]] = None
    ) -> Optional[Secret]:
        """Write a path, retrying 412, 429 and 5xx responses.

        Raises:
            RetryExhaustedException: If every attempt failed with a retryable error
        """
        config = RetryConfiguration(
            max_attempts=self.config.max_retries + 1,
            base_delay=0.5,
            max_delay=10.0,
            jitter=0.5,
        )
        return retry_call(
            self.write, path, data, config=config, retry_if=is_vault_retryable_error_state
        )

    def patch(self, path: str, data: dict[str, Any]) -> Optional[Secret]:
        """Apply a JSON merge patch to path."""
        response = self._request(
            "patching",
            path,
            self.client.adapter.request,
            "PATCH",
            f"/v1/{path}",
            json=data,
            headers={"Content-Type": "application/merge-patch+json"},
        )
        return Secret.from_response(response)

    def delete(self, path: str) -> Optional[Secret]:
        response = self._request("deleting", path, self.client.adapter.delete, f"/v1/{path}")
        return Secret.from_response(response)

    def list(self, path: str) -> Optional[Secret]:
        """List keys under path, None when there are none."""
        try:
            response = self._request(
                "listing", path, self.client.adapter.get, f"/v1/{path}", params={"list": True}
            )
        except VaultResponseError as e:
            if e.status_code == 404:
                return None
            raise
        return Secret.from_response(response)

    def clone(self, namespace: Optional[str] = None) -> "LogicalClient":
        """Return a client with the same address, token and TLS settings.

        Args:
            namespace: Namespace of the new client, None for the root
        """
        cloned = LogicalClient(self.config, namespace=namespace or "")
        cloned._client = cloned._build_client(self.token)
        return cloned

    def authenticate(self) -> None:
        """Log in with the configured method and derive the child token.

        Raises:
            VaultAuthenticationError: If credentials are missing or rejected
        """
        method = self.config.auth_method
        client = self.client
        mount = self.config.auth_mount or method.value

        try:
            if method == AuthMethod.TOKEN:
                if not self.config.token:
                    raise VaultAuthenticationError(
                        "no vault token set, use VAULT_TOKEN or provider.token"
                    )
                client.token = self.config.token
            elif method == AuthMethod.APPROLE:
                client.auth.approle.login(
                    role_id=self.config.role_id,
                    secret_id=self.config.secret_id,
                    mount_point=mount,
                )
            elif method == AuthMethod.USERPASS:
                client.auth.userpass.login(
                    username=self.config.username,
                    password=self.config.password,
                    mount_point=mount,
                )
            elif method == AuthMethod.KUBERNETES:
                with open(self.config.kubernetes_jwt_file) as f:
                    jwt = f.read().strip()
                client.auth.kubernetes.login(
                    role=self.config.kubernetes_role,
                    jwt=jwt,
                    mount_point=mount,
                )
            else:
                raise VaultAuthenticationError(
                    f"Unsupported authentication method: {method}"
                )
        except hvac_exceptions.VaultError as e:
            raise VaultAuthenticationError(
                f"{method.value} login failed: {e}", details={"mount": mount}
            ) from e
        except OSError as e:
            raise VaultAuthenticationError(
                f"failed to read kubernetes service account token: {e}"
            ) from e

        if not client.token:
            raise VaultAuthenticationError(f"{method.value} login did not return a token")
        logger.info(f"Authenticated to Vault using {method.value}")

        if not self.config.skip_child_token:
            self._create_child_token()

    def _create_child_token(self) -> None:
        """Swap the parent token for a short-lived, non-renewable child."""
        ttl = f"{self.config.max_lease_ttl_seconds}s"
        logger.debug(f"Requesting child token with ttl {ttl}")
        try:
            response = self.client.auth.token.create(
                display_name=self.config.token_name,
                ttl=ttl,
                explicit_max_ttl=ttl,
                renewable=False,
            )
        except hvac_exceptions.VaultError as e:
            raise VaultAuthenticationError(f"failed to create limited child token: {e}") from e

        child_token = (response or {}).get("auth", {}).get("client_token")
        if not child_token:
            raise VaultAuthenticationError("child token response did not include a token")
        self.client.token = child_token
        logger.info(f"Using Vault token with the following policies: "
                    f"{', '.join(response['auth'].get('policies') or [])}")
