"""Tests for provider metadata, namespace clients and locking."""

import threading
from unittest.mock import Mock

import pytest

from vault_provisioner import config as settings
from vault_provisioner.provider import (
    MutexKV,
    ProviderMeta,
    get_client,
    import_namespace,
    read_wrapper,
)
from vault_provisioner.schema import Field, FieldType, ResourceData
from vault_provisioner.vault.exceptions import VaultValidationError

NS_SCHEMA = {
    "path": Field(type=FieldType.STRING, required=True),
    "namespace": Field(type=FieldType.STRING, optional=True),
}


class TestMutexKV:
    """Test per-key locks."""

    def test_same_key_same_lock(self):
        mutex_kv = MutexKV()
        assert mutex_kv.get("a") is mutex_kv.get("a")
        assert mutex_kv.get("a") is not mutex_kv.get("b")

    def test_locked_releases(self):
        mutex_kv = MutexKV()
        with mutex_kv.locked("a"):
            assert mutex_kv.get("a").locked()
        assert not mutex_kv.get("a").locked()

    def test_released_on_error(self):
        mutex_kv = MutexKV()
        with pytest.raises(RuntimeError):
            with mutex_kv.locked("a"):
                raise RuntimeError("boom")
        assert not mutex_kv.get("a").locked()

    def test_serializes_threads(self):
        mutex_kv = MutexKV()
        order = []

        def worker(n):
            with mutex_kv.locked("group"):
                order.append(("start", n))
                order.append(("end", n))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for i in range(0, len(order), 2):
            assert order[i][0] == "start"
            assert order[i + 1] == ("end", order[i][1])


class TestProviderMeta:
    """Test client creation and namespace clones."""

    def test_get_client(self, meta, fake_client):
        assert meta.get_client() is fake_client

    def test_ns_client_is_cached(self, meta):
        first = meta.get_ns_client("team-a")
        assert first.namespace == "team-a"
        assert meta.get_ns_client("/team-a/") is first

    def test_ns_client_prefixed_with_provider_namespace(self, connection_config, fake_client):
        config = connection_config.model_copy(update={"namespace": "root"})
        meta = ProviderMeta(config, client=fake_client)
        assert meta.get_ns_client("team-a").namespace == "root/team-a"

    def test_empty_namespace(self, meta):
        with pytest.raises(VaultValidationError, match="empty namespace"):
            meta.get_ns_client("//")

    def test_retry_settings(self, meta):
        assert meta.max_retries == 2
        assert meta.max_retries_ccc == 2


class TestGetClient:
    """Test resource client selection."""

    def test_requires_provider_meta(self):
        with pytest.raises(TypeError, match="ProviderMeta"):
            get_client("", object())

    def test_root_namespace(self, meta, fake_client):
        d = ResourceData(NS_SCHEMA, config={"path": "p"})
        assert get_client(d, meta) is fake_client

    def test_namespace_field(self, meta):
        d = ResourceData(NS_SCHEMA, config={"path": "p", "namespace": "team-a"})
        assert get_client(d, meta).namespace == "team-a"

    def test_namespace_string(self, meta):
        assert get_client("team-b", meta).namespace == "team-b"

    def test_namespace_from_environment(self, meta, monkeypatch):
        monkeypatch.setenv(settings.ENV_NAMESPACE_IMPORT, "imported")
        d = ResourceData(NS_SCHEMA, config={"path": "p"})
        assert get_client(d, meta).namespace == "imported"


class TestImportNamespace:
    """Test namespace import from the environment."""

    def test_sets_namespace(self, monkeypatch):
        monkeypatch.setenv(settings.ENV_NAMESPACE_IMPORT, "imported")
        d = ResourceData(NS_SCHEMA, state={"path": "p"})
        import_namespace(d)
        assert d.get("namespace") == "imported"

    def test_keeps_existing_namespace(self, monkeypatch):
        monkeypatch.setenv(settings.ENV_NAMESPACE_IMPORT, "imported")
        d = ResourceData(NS_SCHEMA, state={"path": "p", "namespace": "mine"})
        import_namespace(d)
        assert d.get("namespace") == "mine"

    def test_read_wrapper(self, monkeypatch, meta):
        monkeypatch.setenv(settings.ENV_NAMESPACE_IMPORT, "imported")
        read = Mock()
        d = ResourceData(NS_SCHEMA, state={"path": "p"})
        read_wrapper(read)(d, meta)
        read.assert_called_once_with(d, meta)
        assert d.get("namespace") == "imported"
