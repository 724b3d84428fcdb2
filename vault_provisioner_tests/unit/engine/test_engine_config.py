"""Tests for configuration documents and attribute references."""

import json

import pytest

from vault_provisioner.engine.config import (
    UNKNOWN,
    ConfigDocument,
    DataBlock,
    ResourceBlock,
    Unknown,
    contains_unknown,
    find_references,
    has_references,
    resolve_references,
    split_reference,
)
from vault_provisioner.vault.exceptions import VaultValidationError

ATTRIBUTES = {
    "vault_mount.kv": {"id": "kv", "path": "kv", "max_lease_ttl_seconds": 3600, "local": True},
    "data.vault_generic_secret.db": {
        "id": "secret/db",
        "data": {"user": "admin"},
        "rules": ["a", "b"],
    },
}


def resolver(address):
    return ATTRIBUTES.get(address)


class TestReferences:
    """Test reference parsing and resolution."""

    def test_split_resource_reference(self):
        assert split_reference("vault_mount.kv.path") == ("vault_mount.kv", ["path"])

    def test_split_data_reference(self):
        assert split_reference("data.vault_generic_secret.db.data.user") == (
            "data.vault_generic_secret.db",
            ["data", "user"],
        )

    @pytest.mark.parametrize("reference", ["vault_mount.kv", "data.x.y", "vault_mount..path"])
    def test_split_invalid(self, reference):
        with pytest.raises(VaultValidationError, match="invalid reference"):
            split_reference(reference)

    def test_find_references_nested(self):
        value = {
            "path": "${vault_mount.kv.path}/app",
            "rules": [{"path": "${data.vault_generic_secret.db.id}"}],
            "ttl": 60,
        }
        assert find_references(value) == {"vault_mount.kv", "data.vault_generic_secret.db"}
        assert has_references(value)
        assert not has_references({"path": "kv/app", "ttl": 60})

    def test_whole_reference_keeps_type(self):
        assert resolve_references("${vault_mount.kv.max_lease_ttl_seconds}", resolver) == 3600
        assert resolve_references("${data.vault_generic_secret.db.data}", resolver) == {
            "user": "admin"
        }

    def test_embedded_references_are_formatted(self):
        value = "${vault_mount.kv.path}/${data.vault_generic_secret.db.data.user}"
        assert resolve_references(value, resolver) == "kv/admin"
        assert resolve_references("local=${vault_mount.kv.local}", resolver) == "local=true"
        assert resolve_references("r=${data.vault_generic_secret.db.rules}", resolver) == 'r=["a","b"]'

    def test_list_index(self):
        assert resolve_references("${data.vault_generic_secret.db.rules.1}", resolver) == "b"

    def test_nested_containers(self):
        value = {"mount": "${vault_mount.kv.path}", "tags": ["${vault_mount.kv.id}", "x"]}
        assert resolve_references(value, resolver) == {"mount": "kv", "tags": ["kv", "x"]}

    def test_unknown_address(self):
        assert resolve_references("${vault_policy.new.name}", resolver) is UNKNOWN
        assert resolve_references("p/${vault_policy.new.name}", resolver) is UNKNOWN
        assert contains_unknown({"a": [resolve_references("${vault_policy.new.name}", resolver)]})

    def test_unsupported_attribute(self):
        with pytest.raises(VaultValidationError, match="unsupported attribute"):
            resolve_references("${vault_mount.kv.nope}", resolver)

    def test_unknown_is_singleton(self):
        assert Unknown() is UNKNOWN
        assert repr(UNKNOWN) == "(known after apply)"


class TestConfigDocument:
    """Test loading and validating configuration documents."""

    def _write(self, tmp_path, raw):
        path = tmp_path / "vault.json"
        path.write_text(raw if isinstance(raw, str) else json.dumps(raw))
        return path

    def test_load(self, tmp_path):
        path = self._write(tmp_path, {
            "provider": {"address": "http://127.0.0.1:8200"},
            "resources": [{
                "type": "vault_policy",
                "name": "dev",
                "config": {"name": "dev", "policy": "${data.vault_policy_document.dev.hcl}"},
            }],
            "data": [{"type": "vault_policy_document", "name": "dev", "config": {"rule": []}}],
        })
        document = ConfigDocument.load(path)

        assert [b.address for b in document.blocks()] == [
            "vault_policy.dev",
            "data.vault_policy_document.dev",
        ]
        assert isinstance(document.get("data.vault_policy_document.dev"), DataBlock)
        assert document.get("vault_policy.dev").references() == {"data.vault_policy_document.dev"}
        assert document.get("vault_policy.missing") is None

    def test_explicit_dependencies(self):
        block = ResourceBlock(type="vault_policy", name="a", depends_on=["vault_mount.kv"])
        assert block.references() == {"vault_mount.kv"}

    def test_duplicate_address(self, tmp_path):
        block = {"type": "vault_policy", "name": "dev", "config": {}}
        path = self._write(tmp_path, {"resources": [block, block]})
        with pytest.raises(VaultValidationError, match="duplicate declaration of vault_policy.dev"):
            ConfigDocument.load(path)

    def test_invalid_identifier(self, tmp_path):
        path = self._write(tmp_path, {"resources": [{"type": "vault policy", "name": "dev"}]})
        with pytest.raises(VaultValidationError, match="invalid configuration"):
            ConfigDocument.load(path)

    def test_not_json(self, tmp_path):
        path = self._write(tmp_path, "{resources")
        with pytest.raises(VaultValidationError, match="is not valid JSON"):
            ConfigDocument.load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(VaultValidationError, match="failed to read configuration"):
            ConfigDocument.load(tmp_path / "absent.json")
