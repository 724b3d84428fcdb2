"""Tests for Resource definitions and value helpers."""

from unittest.mock import Mock

import pytest

from vault_provisioner.schema import (
    Field,
    FieldType,
    Resource,
    ResourceData,
    get_api_request_data,
    get_api_request_data_ok,
    json_diff_suppress,
    normalize_data_json,
    serialize_data_map_to_string,
    validate_data_json,
)

SCHEMA = {
    "name": Field(type=FieldType.STRING, required=True, force_new=True),
    "ttl": Field(type=FieldType.INT, optional=True),
}


def _resource(**kwargs):
    defaults = {"name": "test_thing", "schema": SCHEMA, "read": Mock(), "create": Mock(), "delete": Mock()}
    defaults.update(kwargs)
    return Resource(**defaults)


class TestResource:
    """Test Resource."""

    def test_requires_create_and_delete(self):
        with pytest.raises(ValueError, match="must define create and delete"):
            Resource(name="broken", schema=SCHEMA, read=Mock())

    def test_data_source_needs_only_read(self):
        resource = Resource(name="ds", schema=SCHEMA, read=Mock(), is_data_source=True)
        assert resource.create is None

    def test_force_new_fields(self):
        assert _resource().force_new_fields == ["name"]

    def test_validate(self):
        assert _resource().validate({"ttl": "x"}) == [
            "name: required argument is missing",
            "ttl: expected int, got str",
        ]

    def test_data(self):
        d = _resource().data(config={"name": "a"}, resource_id="a", new_resource=True)
        assert isinstance(d, ResourceData)
        assert d.id == "a"
        assert d.is_new_resource()

    def test_upgrade_state(self):
        migrate = Mock(return_value={"name": "migrated"})
        resource = _resource(schema_version=1, migrate_state=migrate)
        assert resource.upgrade_state(0, {"name": "old"}) == {"name": "migrated"}
        migrate.assert_called_once_with(0, {"name": "old"})

    def test_upgrade_state_current_version(self):
        migrate = Mock()
        resource = _resource(schema_version=1, migrate_state=migrate)
        assert resource.upgrade_state(1, {"name": "a"}) == {"name": "a"}
        migrate.assert_not_called()


class TestHelpers:
    """Test JSON and payload helpers."""

    def test_normalize_data_json(self):
        assert normalize_data_json('{ "b": 1, "a": 2 }') == '{"a":2,"b":1}'

    def test_normalize_invalid_json_unchanged(self):
        assert normalize_data_json("{nope") == "{nope"
        assert normalize_data_json("[1]") == "[1]"

    def test_validate_data_json(self):
        assert validate_data_json('{"a": 1}', "data_json") == []
        assert validate_data_json("[1]", "data_json") == ["data_json: expected a JSON object, got list"]
        assert validate_data_json("{", "data_json")[0].startswith("data_json: invalid JSON")

    def test_json_diff_suppress(self):
        assert json_diff_suppress("data_json", '{"a": 1}', '{"a":1}')
        assert not json_diff_suppress("data_json", '{"a": 1}', '{"a": 2}')
        assert not json_diff_suppress("data_json", "{", '{"a": 1}')

    def test_serialize_data_map(self):
        assert serialize_data_map_to_string({"a": "x", "b": 1, "c": {"d": True}}) == {
            "a": "x",
            "b": "1",
            "c": '{"d":true}',
        }

    def test_api_request_data(self):
        d = ResourceData(SCHEMA, config={"name": "a"})
        assert get_api_request_data(d, ["name", "ttl"]) == {"name": "a", "ttl": 0}
        assert get_api_request_data_ok(d, ["name", "ttl"]) == {"name": "a"}
