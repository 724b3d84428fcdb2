"""Per-key mutual exclusion for read-modify-write sequences against Vault."""

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

logger = logging.getLogger(__name__)


class MutexKV:
    """A lazily populated map of locks, one per key.

    Example:
        >>> mutex_kv = MutexKV()
        >>> with mutex_kv.locked("identity/group/id/1234"):
        ...     pass
    """

    def __init__(self):
        self._lock = Lock()
        self._store: dict[str, Lock] = {}

    def get(self, key: str) -> Lock:
        """Return the lock for key, creating it on first use."""
        with self._lock:
            mutex = self._store.get(key)
            if mutex is None:
                mutex = Lock()
                self._store[key] = mutex
            return mutex

    def lock(self, key: str) -> None:
        logger.debug(f"Locking {key!r}")
        self.get(key).acquire()
        logger.debug(f"Locked {key!r}")

    def unlock(self, key: str) -> None:
        logger.debug(f"Unlocking {key!r}")
        self.get(key).release()
        logger.debug(f"Unlocked {key!r}")

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        self.lock(key)
        try:
            yield
        finally:
            self.unlock(key)


# guards identity group membership and identity entity updates
VAULT_MUTEX_KV = MutexKV()
