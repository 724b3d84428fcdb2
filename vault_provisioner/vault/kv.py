"""KV secrets engine version negotiation.

Vault does not tell a client which KV version backs a path until it asks
``sys/internal/ui/mounts``. The helpers here issue that preflight request
and rewrite paths for KV v2, where reads and writes go through ``data/``
and metadata operations through ``metadata/``.
"""

import logging
import re
from typing import Any, Optional

from vault_provisioner.consts import SYS_INTERNAL_UI_MOUNTS
from vault_provisioner.vault.exceptions import VaultError, error_contains_http_code
from vault_provisioner.vault.models import Secret

logger = logging.getLogger(__name__)

LATEST_SECRET_VERSION = -1

KV_V2_DATA_PREFIX = "data"
KV_V2_METADATA_PREFIX = "metadata"

_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def kv_preflight_version_request(client: Any, path: str) -> tuple[str, int]:
    """Ask Vault which mount serves path and which KV version it runs.

    Args:
        client: Logical client
        path: Secret path including the mount

    Returns:
        Tuple of mount path and KV version; ``("", 1)`` when Vault cannot
        answer (old server, or the token may not read the endpoint)

    Raises:
        VaultError: If the request fails for any other reason or returns
            no body
    """
    try:
        secret = client.raw_get(f"{SYS_INTERNAL_UI_MOUNTS}{path}")
    except VaultError as e:
        if error_contains_http_code(e, 404):
            # endpoint predates the UI mounts API
            return "", 1
        if error_contains_http_code(e, 403):
            return "", 1
        if not client.token:
            return "", 1
        raise

    if secret is None:
        raise VaultError("nil response from pre-flight request")

    mount_path = secret.data.get("path") or ""
    options = secret.data.get("options") or {}
    version = 2 if str(options.get("version", "")) == "2" else 1
    logger.debug(f"Preflight for {path}: mount {mount_path!r}, kv v{version}")
    return mount_path, version


def is_kv_v2(path: str, client: Any) -> tuple[str, bool]:
    """Return the mount of path and whether it is a KV v2 engine."""
    mount_path, version = kv_preflight_version_request(client, path)
    return mount_path, version == 2


def add_prefix_to_kv_path(path: str, mount_path: str, api_prefix: str) -> str:
    """Insert api_prefix (``data`` or ``metadata``) after the mount.

    >>> add_prefix_to_kv_path("secret/foo", "secret/", "data")
    'secret/data/foo'
    >>> add_prefix_to_kv_path("secret/foo", "secret", "data")
    'secret/data/foo'
    >>> add_prefix_to_kv_path("secret", "secret/", "metadata")
    'secret/metadata'
    """
    if path == mount_path or path == mount_path.rstrip("/"):
        parts = [mount_path, api_prefix]
    else:
        rest = path[len(mount_path):] if path.startswith(mount_path) else path
        parts = [mount_path, api_prefix, rest]
    joined = "/".join(p.strip("/") for p in parts if p.strip("/"))
    return _DUPLICATE_SLASHES.sub("/", joined)


def versioned_secret(version: int, path: str, client: Any) -> Optional[Secret]:
    """Read a secret, unwrapping the KV v2 envelope when needed.

    Args:
        version: Version to read, LATEST_SECRET_VERSION for the current one
        path: Secret path including the mount
        client: Logical client

    Returns:
        Secret whose data holds the key/value pairs, or None when the secret
        does not exist or its latest version is deleted
    """
    mount_path, v2 = is_kv_v2(path, client)

    params: Optional[dict[str, Any]] = None
    if v2:
        path = add_prefix_to_kv_path(path, mount_path, KV_V2_DATA_PREFIX)
        if version > 0:
            params = {"version": str(version)}

    secret = client.read(path, params=params)
    if secret is None or not v2:
        return secret

    data = secret.data.get("data")
    if data is None:
        return None
    metadata = secret.data.get("metadata") or {}
    if metadata.get("deletion_time"):
        return None
    return secret.model_copy(update={"data": data})
