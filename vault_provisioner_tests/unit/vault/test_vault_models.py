"""Tests for Secret parsing and the connection configuration."""

from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from vault_provisioner import config as settings
from vault_provisioner.vault.models import AuthMethod, Secret, VaultConnectionConfig


class TestSecret:
    """Test Secret.from_response."""

    def test_from_dict(self):
        secret = Secret.from_response({
            "request_id": "abc",
            "lease_id": None,
            "lease_duration": 60,
            "renewable": True,
            "data": {"foo": "bar"},
            "warnings": None,
            "mount_type": "kv",
        })
        assert secret.data == {"foo": "bar"}
        assert secret.lease_id == ""
        assert secret.lease_duration == 60
        assert secret.renewable is True
        assert secret.warnings == []

    def test_none_response(self):
        assert Secret.from_response(None) is None

    def test_no_content_response(self):
        response = Mock(status_code=204)
        assert Secret.from_response(response) is None

    def test_response_object_with_json_body(self):
        response = Mock(status_code=200)
        response.json.return_value = {"data": {"id": "123"}}
        assert Secret.from_response(response).data == {"id": "123"}

    def test_response_object_without_json(self):
        response = Mock(status_code=200)
        response.json.side_effect = ValueError("no json")
        assert Secret.from_response(response) is None

    def test_null_data_is_empty(self):
        assert Secret.from_response({"data": None}).data == {}


class TestVaultConnectionConfig:
    """Test connection configuration validation."""

    def test_defaults(self):
        config = VaultConnectionConfig(address="https://vault:8200")
        assert config.auth_method == AuthMethod.TOKEN
        assert config.verify is True
        assert config.timeout == 30
        assert config.max_lease_ttl_seconds == 1200

    def test_address_must_have_scheme(self):
        with pytest.raises(ValidationError):
            VaultConnectionConfig(address="vault:8200")

    def test_address_trailing_slash_removed(self):
        config = VaultConnectionConfig(address="https://vault:8200/")
        assert config.address == "https://vault:8200"

    def test_namespace_slashes_trimmed(self):
        config = VaultConnectionConfig(address="https://vault:8200", namespace="/admin/")
        assert config.namespace == "admin"

    def test_approle_requires_role_id(self):
        with pytest.raises(ValidationError, match="role_id"):
            VaultConnectionConfig(address="https://vault:8200", auth_method="approle")

    def test_userpass_requires_credentials(self):
        with pytest.raises(ValidationError):
            VaultConnectionConfig(
                address="https://vault:8200", auth_method="userpass", username="me"
            )

    def test_max_retries_bounds(self):
        with pytest.raises(ValidationError):
            VaultConnectionConfig(address="https://vault:8200", max_retries=-1)


class TestFromEnv:
    """Test merging of environment settings and provider block."""

    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setattr(settings, "VAULT_ADDR", "http://env-vault:8200")
        monkeypatch.setattr(settings, "VAULT_TOKEN", "s.env")
        config = VaultConnectionConfig.from_env()
        assert config.address == "http://env-vault:8200"
        assert config.token == "s.env"

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setattr(settings, "VAULT_ADDR", "http://env-vault:8200")
        config = VaultConnectionConfig.from_env({"address": "https://other:8200", "namespace": None})
        assert config.address == "https://other:8200"

    def test_skip_tls_verify_alias(self, monkeypatch):
        monkeypatch.setattr(settings, "VAULT_ADDR", "https://vault:8200")
        config = VaultConnectionConfig.from_env({"skip_tls_verify": True})
        assert config.verify is False

    def test_missing_address(self, monkeypatch):
        monkeypatch.setattr(settings, "VAULT_ADDR", None)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultConnectionConfig.from_env()
