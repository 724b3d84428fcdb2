"""Shared fixtures: an in-memory logical client standing in for Vault."""

import copy
from typing import Any, Optional
from unittest.mock import patch

import pytest

from vault_provisioner import config as settings
from vault_provisioner.consts import SYS_INTERNAL_UI_MOUNTS
from vault_provisioner.provider import ProviderMeta
from vault_provisioner.vault.exceptions import VaultResponseError
from vault_provisioner.vault.models import Secret, VaultConnectionConfig


class FakeLogicalClient:
    """Dict-backed client with the LogicalClient interface.

    Attributes:
        store: path -> stored payload, shared with clones
        calls: (operation, path, data) for every request, shared with clones
        responses: path -> data returned by a write to path
        failures: (operation, path) -> exceptions raised by the next calls
        kv_v2_mounts: mount names answering the preflight as KV v2
    """

    def __init__(self, kv_v2_mounts=(), namespace: Optional[str] = None, shared=None):
        if shared is None:
            shared = {"store": {}, "calls": [], "responses": {}, "failures": {}}
        self._shared = shared
        self.store: dict[str, Any] = shared["store"]
        self.calls: list[tuple[str, str, Any]] = shared["calls"]
        self.responses: dict[str, dict[str, Any]] = shared["responses"]
        self.failures: dict[tuple[str, str], list[Exception]] = shared["failures"]
        self.kv_v2_mounts = set(kv_v2_mounts)
        self.namespace = namespace
        self.token = "s.fake"

    def _key(self, path: str) -> str:
        return f"{self.namespace}/{path}" if self.namespace else path

    def _record(self, operation: str, path: str, data: Any = None) -> None:
        self.calls.append((operation, self._key(path), copy.deepcopy(data)))
        pending = self.failures.get((operation, path))
        if pending:
            raise pending.pop(0)

    def _kv_v2_split(self, path: str) -> Optional[tuple[str, str, str]]:
        parts = path.split("/", 2)
        if len(parts) == 3 and parts[0] in self.kv_v2_mounts and parts[1] in ("data", "metadata"):
            return parts[0], parts[1], parts[2]
        return None

    def fail(self, operation: str, path: str, *errors: Exception) -> None:
        self.failures.setdefault((operation, path), []).extend(errors)

    def paths(self, operation: str) -> list[str]:
        return [path for op, path, _ in self.calls if op == operation]

    def read(self, path: str, params: Optional[dict[str, Any]] = None) -> Optional[Secret]:
        self._record("read", path, params)
        data = self.store.get(self._key(path))
        if data is None:
            return None
        return Secret(data=copy.deepcopy(data))

    def raw_get(self, path: str) -> Optional[Secret]:
        self._record("raw_get", path)
        if not path.startswith(SYS_INTERNAL_UI_MOUNTS):
            return self.read(path)
        mount = path[len(SYS_INTERNAL_UI_MOUNTS):].split("/", 1)[0]
        if mount in self.kv_v2_mounts:
            return Secret(data={"path": f"{mount}/", "options": {"version": "2"}})
        raise VaultResponseError("unsupported path", status_code=404, path=path)

    def write(self, path: str, data: Optional[dict[str, Any]] = None) -> Optional[Secret]:
        self._record("write", path, data)
        data = copy.deepcopy(data or {})
        kv = self._kv_v2_split(path)
        if kv is not None and kv[1] == "data":
            previous = self.store.get(self._key(path)) or {"metadata": {"version": 0}}
            metadata = {"version": previous["metadata"]["version"] + 1, "deletion_time": ""}
            if self._key(f"{kv[0]}/metadata/{kv[2]}") in self.store:
                metadata["custom_metadata"] = None
            self.store[self._key(path)] = {"data": data.get("data"), "metadata": metadata}
        else:
            self.store[self._key(path)] = data
        response = self.responses.get(path)
        return Secret(data=copy.deepcopy(response)) if response is not None else None

    def retry_write(self, path: str, data: Optional[dict[str, Any]] = None) -> Optional[Secret]:
        return self.write(path, data)

    def patch(self, path: str, data: dict[str, Any]) -> Optional[Secret]:
        self._record("patch", path, data)
        current = self.store.setdefault(self._key(path), {})
        for key, value in data.items():
            if isinstance(value, dict):
                merged = dict(current.get(key) or {})
                for k, v in value.items():
                    if v is None:
                        merged.pop(k, None)
                    else:
                        merged[k] = v
                current[key] = merged
            else:
                current[key] = value
        return None

    def delete(self, path: str) -> Optional[Secret]:
        self._record("delete", path)
        self.store.pop(self._key(path), None)
        kv = self._kv_v2_split(path)
        if kv is not None and kv[1] == "metadata":
            self.store.pop(self._key(f"{kv[0]}/data/{kv[2]}"), None)
        return None

    def list(self, path: str) -> Optional[Secret]:
        self._record("list", path)
        prefix = self._key(path).rstrip("/") + "/"
        keys = sorted({k[len(prefix):].split("/")[0] for k in self.store if k.startswith(prefix)})
        return Secret(data={"keys": keys}) if keys else None

    def clone(self, namespace: Optional[str] = None) -> "FakeLogicalClient":
        return FakeLogicalClient(self.kv_v2_mounts, namespace=namespace, shared=self._shared)


@pytest.fixture(autouse=True)
def no_sleep():
    """Retries wait through time.sleep; skip the waiting."""
    with patch("time.sleep") as sleep:
        yield sleep


@pytest.fixture(autouse=True)
def no_namespace_import(monkeypatch):
    monkeypatch.delenv(settings.ENV_NAMESPACE_IMPORT, raising=False)


@pytest.fixture
def connection_config():
    return VaultConnectionConfig(
        address="http://127.0.0.1:8200",
        token="s.root",
        max_retries=2,
        max_retries_ccc=2,
        skip_child_token=True,
    )


@pytest.fixture
def fake_client():
    return FakeLogicalClient(kv_v2_mounts={"kvv2"})


@pytest.fixture
def meta(connection_config, fake_client):
    return ProviderMeta(connection_config, client=fake_client)


@pytest.fixture
def make_client():
    """Factory for clients with custom KV v2 mounts."""
    return FakeLogicalClient
