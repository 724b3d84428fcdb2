"""Tests for policy rule rendering and parsing."""

import pytest
from pydantic import ValidationError

from vault_provisioner.vault.policies import (
    PolicyDocument,
    PolicyRule,
    PolicyValidationError,
    parse_policy,
    render_policy,
    render_rule,
)


class TestPolicyRule:
    """Test rule validation."""

    def test_valid_rule(self):
        rule = PolicyRule(path="secret/*", capabilities=["read", "list"])
        assert rule.capabilities == ["read", "list"]

    def test_invalid_capability(self):
        with pytest.raises(ValidationError, match="invalid capability"):
            PolicyRule(path="secret/*", capabilities=["write"])

    def test_capabilities_required(self):
        with pytest.raises(ValidationError):
            PolicyRule(path="secret/*", capabilities=[])


class TestRender:
    """Test HCL rendering."""

    def test_minimal_rule(self):
        hcl = render_rule(PolicyRule(path="secret/*", capabilities=["read"]))
        assert hcl == 'path "secret/*" {\n  capabilities = ["read"]\n}\n'

    def test_full_rule(self):
        rule = PolicyRule(
            path="secret/data/app",
            description="App secrets",
            capabilities=["create", "update"],
            required_parameters=["ttl"],
            allowed_parameters={"ttl": ["1h"], "*": []},
            min_wrapping_ttl="1m",
        )
        hcl = render_rule(rule)
        assert hcl.startswith("# App secrets\npath \"secret/data/app\" {\n")
        assert '  required_parameters = ["ttl"]' in hcl
        assert '    "*" = []' in hcl
        assert '    "ttl" = ["1h"]' in hcl
        assert '  min_wrapping_ttl = "1m"' in hcl

    def test_rules_separated_by_blank_line(self):
        document = PolicyDocument(rules=[
            PolicyRule(path="a/*", capabilities=["read"]),
            PolicyRule(path="b/*", capabilities=["deny"]),
        ])
        assert '}\n\npath "b/*"' in render_policy(document)

    def test_hash_id_is_stable(self):
        first = PolicyDocument(rules=[PolicyRule(path="a/*", capabilities=["read"])])
        second = PolicyDocument(rules=[PolicyRule(path="a/*", capabilities=["read"])])
        assert first.hash_id() == second.hash_id()


class TestParse:
    """Test reading rendered HCL back."""

    def test_parse_rendered_document(self):
        document = PolicyDocument(rules=[
            PolicyRule(
                path="secret/*",
                description="everything",
                capabilities=["read", "list"],
                denied_parameters={"key": ["a", "b"]},
                max_wrapping_ttl="1h",
            ),
            PolicyRule(path="sys/*", capabilities=["deny"]),
        ])
        assert parse_policy(render_policy(document)) == document

    def test_unexpected_content(self):
        with pytest.raises(PolicyValidationError, match="expected path block"):
            parse_policy('capabilities = ["read"]')

    def test_unterminated_block(self):
        with pytest.raises(PolicyValidationError, match="unterminated"):
            parse_policy('path "secret/*" {\n  capabilities = ["read"]\n')
