"""Tests for ResourceData lookups and change detection."""

import pytest

from vault_provisioner.schema import Field, FieldType, ResourceData, field_changed

SCHEMA = {
    "path": Field(type=FieldType.STRING, required=True),
    "ttl": Field(type=FieldType.INT, optional=True, default=60),
    "policies": Field(type=FieldType.SET, optional=True, elem=FieldType.STRING),
    "accessor": Field(type=FieldType.STRING, computed=True),
    "description": Field(type=FieldType.STRING, optional=True, computed=True),
}


class TestLookup:
    """Test the set > config > state > default > zero order."""

    def test_config_wins_over_state(self):
        d = ResourceData(SCHEMA, config={"path": "new"}, state={"path": "old"})
        assert d.get("path") == "new"

    def test_set_wins_over_config(self):
        d = ResourceData(SCHEMA, config={"path": "new"})
        d.set("path", "override")
        assert d.get("path") == "override"

    def test_missing_config_field_is_unset(self):
        d = ResourceData(SCHEMA, config={"path": "p"}, state={"ttl": 30})
        assert d.get("ttl") == 60

    def test_computed_falls_back_to_state(self):
        d = ResourceData(SCHEMA, config={"path": "p"}, state={"accessor": "auth_1"})
        assert d.get("accessor") == "auth_1"

    def test_optional_computed_falls_back_to_state(self):
        d = ResourceData(SCHEMA, config={"path": "p"}, state={"description": "from vault"})
        assert d.get("description") == "from vault"

    def test_state_only(self):
        d = ResourceData(SCHEMA, state={"ttl": 30})
        assert d.get("ttl") == 30

    def test_zero_value(self):
        d = ResourceData(SCHEMA)
        assert d.get("path") == ""
        assert d.get("policies") == []

    def test_unknown_field(self):
        d = ResourceData(SCHEMA)
        with pytest.raises(KeyError, match="invalid field name"):
            d.get("bogus")
        with pytest.raises(KeyError):
            d.set("bogus", 1)

    def test_default_is_copied(self):
        schema = {"meta": Field(type=FieldType.MAP, optional=True, default={"a": "b"})}
        d = ResourceData(schema)
        d.get("meta")["c"] = "d"
        assert d.get("meta") == {"a": "b"}


class TestGetOk:
    """Test get_ok and get_ok_exists."""

    def test_zero_value_is_not_ok(self):
        d = ResourceData(SCHEMA, config={"path": "", "policies": []})
        assert d.get_ok("path") == ("", False)
        assert d.get_ok("policies") == ([], False)

    def test_set_value_is_ok(self):
        d = ResourceData(SCHEMA, config={"path": "p"})
        assert d.get_ok("path") == ("p", True)

    def test_exists_includes_zero(self):
        d = ResourceData(SCHEMA, config={"path": ""})
        assert d.get_ok_exists("path") == ("", True)
        assert d.get_ok_exists("policies") == ([], False)


class TestChanges:
    """Test change detection."""

    def test_get_change(self):
        d = ResourceData(SCHEMA, config={"path": "new"}, state={"path": "old"})
        assert d.get_change("path") == ("old", "new")
        assert d.has_change("path")

    def test_set_order_is_not_a_change(self):
        d = ResourceData(SCHEMA, config={"path": "p", "policies": ["b", "a"]},
                         state={"path": "p", "policies": ["a", "b"]})
        assert not d.has_changes("path", "policies")

    def test_default_equals_missing(self):
        assert not field_changed(SCHEMA["ttl"], "ttl", None, 60)

    def test_diff_suppress(self):
        spec = Field(
            type=FieldType.STRING,
            optional=True,
            diff_suppress_func=lambda k, old, new, d: old.strip() == new.strip(),
        )
        assert not field_changed(spec, "policy", "a ", "a")
        assert field_changed(spec, "policy", "a", "b")


class TestIdAndState:
    """Test id handling and the persisted attribute map."""

    def test_id(self):
        d = ResourceData(SCHEMA, resource_id="abc")
        assert d.id == "abc"
        d.set_id(None)
        assert d.id == ""

    def test_new_resource(self):
        assert ResourceData(SCHEMA, new_resource=True).is_new_resource()
        assert not ResourceData(SCHEMA).is_new_resource()

    def test_state(self):
        d = ResourceData(SCHEMA, config={"path": "p", "policies": ["b", "a"]},
                         state={"accessor": "auth_1"})
        d.set("description", "set")
        assert d.state() == {
            "path": "p",
            "ttl": 60,
            "policies": ["a", "b"],
            "accessor": "auth_1",
            "description": "set",
        }
