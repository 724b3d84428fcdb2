"""Provider metadata: the authenticated client and per-namespace clones."""

import logging
import os
from functools import wraps
from threading import Lock
from typing import Optional, Union

from vault_provisioner import config as settings
from vault_provisioner.consts import FIELD_NAMESPACE
from vault_provisioner.schema import ResourceData
from vault_provisioner.vault.client import LogicalClient
from vault_provisioner.vault.exceptions import VaultValidationError
from vault_provisioner.vault.models import VaultConnectionConfig

logger = logging.getLogger(__name__)


class ProviderMeta:
    """Shared state handed to every CRUD callback as ``meta``.

    The root client is created and authenticated on first use. Clients for
    child namespaces are cloned from it and cached.
    """

    def __init__(
        self,
        config: VaultConnectionConfig,
        client: Optional[LogicalClient] = None,
    ):
        """Initialize provider metadata.

        Args:
            config: Connection configuration
            client: Already authenticated client (skips login)
        """
        self.config = config
        self._client = client
        self._client_cache: dict[str, LogicalClient] = {}
        self._lock = Lock()

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    @property
    def max_retries_ccc(self) -> int:
        return self.config.max_retries_ccc

    def _get_client(self) -> LogicalClient:
        # caller holds self._lock
        if self._client is None:
            client = LogicalClient(self.config)
            client.authenticate()
            self._client = client
        return self._client

    def get_client(self) -> LogicalClient:
        """Return the client for the provider's own namespace."""
        with self._lock:
            return self._get_client()

    def get_ns_client(self, ns: str) -> LogicalClient:
        """Return a client for ns, relative to the provider's namespace.

        Raises:
            VaultValidationError: If ns is empty once slashes are trimmed
        """
        with self._lock:
            client = self._get_client()

            ns = ns.strip("/")
            if not ns:
                raise VaultValidationError("empty namespace not allowed")
            if self.config.namespace:
                ns = f"{self.config.namespace}/{ns}"

            cached = self._client_cache.get(ns)
            if cached is None:
                cached = client.clone(namespace=ns)
                self._client_cache[ns] = cached
            return cached


def get_client(d: Union[ResourceData, str, None], meta: ProviderMeta) -> LogicalClient:
    """Pick the client for a resource.

    The namespace comes from the resource's ``namespace`` field (or the
    given string), falling back to the namespace import environment
    variable.

    Raises:
        TypeError: If meta is not a ProviderMeta
    """
    if not isinstance(meta, ProviderMeta):
        raise TypeError(f"meta argument must be a ProviderMeta, not {type(meta).__name__}")

    ns = ""
    if isinstance(d, str):
        ns = d
    elif isinstance(d, ResourceData) and FIELD_NAMESPACE in d.schema:
        ns = d.get(FIELD_NAMESPACE) or ""

    if not ns:
        ns = os.environ.get(settings.ENV_NAMESPACE_IMPORT, "")
        if ns:
            logger.debug(f"Value for {FIELD_NAMESPACE!r} set from environment")

    if ns:
        return meta.get_ns_client(ns)
    return meta.get_client()


def import_namespace(d: ResourceData) -> None:
    """Copy the namespace import variable into d when it has no namespace yet."""
    ns = os.environ.get(settings.ENV_NAMESPACE_IMPORT, "")
    if not ns or FIELD_NAMESPACE not in d.schema:
        return
    _, exists = d.get_ok_exists(FIELD_NAMESPACE)
    if not exists:
        logger.info(
            f"Environment variable {settings.ENV_NAMESPACE_IMPORT} set, "
            f"attempting state import {FIELD_NAMESPACE}={ns}"
        )
        d.set(FIELD_NAMESPACE, ns)


def read_wrapper(func):
    """Wrap a read callback so namespaced resources can be imported."""
    @wraps(func)
    def wrapper(d: ResourceData, meta: ProviderMeta) -> None:
        import_namespace(d)
        return func(d, meta)

    return wrapper
