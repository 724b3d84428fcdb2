"""Provider module: client management, namespace handling and locking."""

from vault_provisioner.provider.mutexkv import MutexKV, VAULT_MUTEX_KV
from vault_provisioner.provider.meta import (
    ProviderMeta,
    get_client,
    import_namespace,
    read_wrapper,
)
from vault_provisioner.provider.provider import Provider

__all__ = [
    "MutexKV",
    "VAULT_MUTEX_KV",
    "ProviderMeta",
    "get_client",
    "import_namespace",
    "read_wrapper",
    "Provider",
]
