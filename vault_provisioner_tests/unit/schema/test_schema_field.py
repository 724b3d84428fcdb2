"""Tests for schema fields and block validation."""

import pytest

from vault_provisioner.schema import Field, FieldType, validate_block


class TestField:
    """Test Field helpers."""

    @pytest.mark.parametrize("field_type,zero", [
        (FieldType.STRING, ""),
        (FieldType.INT, 0),
        (FieldType.BOOL, False),
        (FieldType.LIST, []),
        (FieldType.SET, []),
        (FieldType.MAP, {}),
    ])
    def test_zero_value(self, field_type, zero):
        assert Field(type=field_type).zero_value() == zero

    def test_computed_only(self):
        assert Field(type=FieldType.STRING, computed=True).computed_only
        assert not Field(type=FieldType.STRING, optional=True, computed=True).computed_only

    def test_set_normalizes_order_and_duplicates(self):
        field = Field(type=FieldType.SET, elem=FieldType.STRING)
        assert field.normalize(["b", "a", "b"]) == ["a", "b"]

    def test_set_with_unhashable_items_keeps_order(self):
        field = Field(type=FieldType.SET)
        assert field.normalize([{"b": 1}, {"a": 1}]) == [{"b": 1}, {"a": 1}]

    def test_state_func(self):
        field = Field(type=FieldType.STRING, state_func=str.lower)
        assert field.normalize("ABC") == "abc"
        assert field.normalize(None) is None

    def test_nested_blocks_fill_defaults(self):
        field = Field(type=FieldType.LIST, elem={
            "path": Field(type=FieldType.STRING, required=True),
            "tags": Field(type=FieldType.LIST, optional=True),
        })
        assert field.normalize([{"path": "a"}]) == [{"path": "a", "tags": []}]


class TestTypeErrors:
    """Test value type checks."""

    def test_bool_is_not_int(self):
        assert Field(type=FieldType.INT).type_errors(True, "ttl") == ["ttl: expected int, got bool"]

    def test_wrong_type(self):
        assert Field(type=FieldType.MAP).type_errors("x", "data") == ["data: expected map, got str"]

    def test_list_elements(self):
        field = Field(type=FieldType.LIST, elem=FieldType.STRING)
        assert field.type_errors(["a", 1], "policies") == ["policies.1: expected string, got int"]

    def test_max_items(self):
        field = Field(type=FieldType.LIST, max_items=1)
        errors = field.type_errors(["a", "b"], "rule")
        assert errors == ["rule: at most 1 items allowed, got 2"]

    def test_map_elements(self):
        field = Field(type=FieldType.MAP, elem=FieldType.STRING)
        assert field.type_errors({"a": 1}, "meta") == ["meta.a: expected string, got int"]


class TestValidateBlock:
    """Test validate_block."""

    schema = {
        "name": Field(type=FieldType.STRING, required=True),
        "ttl": Field(
            type=FieldType.INT,
            optional=True,
            validate_func=lambda v, k: [] if v >= 0 else [f"{k}: must not be negative"],
        ),
        "accessor": Field(type=FieldType.STRING, computed=True),
    }

    def test_valid(self):
        assert validate_block(self.schema, {"name": "dev", "ttl": 30}) == []

    def test_unsupported_argument(self):
        assert validate_block(self.schema, {"name": "dev", "bogus": 1}) == [
            "bogus: unsupported argument"
        ]

    def test_missing_required(self):
        assert validate_block(self.schema, {}) == ["name: required argument is missing"]

    def test_computed_cannot_be_set(self):
        errors = validate_block(self.schema, {"name": "dev", "accessor": "x"})
        assert errors == ["accessor: value is computed and cannot be set"]

    def test_validate_func(self):
        errors = validate_block(self.schema, {"name": "dev", "ttl": -1})
        assert errors == ["ttl: must not be negative"]

    def test_unknown_keys_skip_checks(self):
        assert validate_block(self.schema, {"name": object()}, unknown_keys=["name"]) == []

    def test_prefix(self):
        assert validate_block(self.schema, {}, prefix="rule.0") == [
            "rule.0.name: required argument is missing"
        ]
