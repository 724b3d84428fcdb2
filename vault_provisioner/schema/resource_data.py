"""Per-operation view of a resource's configuration and state."""

import copy
from typing import Any, Optional

from vault_provisioner.schema.field import Field


def resolve_value(spec: Field, value: Any) -> Any:
    """Replace a missing value with the field default or zero value."""
    if value is not None:
        return value
    if spec.default is not None:
        return copy.deepcopy(spec.default)
    return spec.zero_value()


def field_changed(spec: Field, key: str, old: Any, new: Any, d: Any = None) -> bool:
    """Compare two values of a field the way a plan does.

    Both sides are normalised with the field's state function, and the
    diff suppress function gets a final say.
    """
    old_n = spec.normalize(resolve_value(spec, old))
    new_n = spec.normalize(resolve_value(spec, new))
    if old_n == new_n:
        return False
    if spec.diff_suppress_func is not None and spec.diff_suppress_func(key, old_n, new_n, d):
        return False
    return True


class ResourceData:
    """Values a CRUD callback works with.

    Lookups resolve, in order: values set during the current operation,
    the configuration, the prior state, the field default and finally the
    zero value of the field type. When a configuration is present, fields
    that are not computed and are missing from it are treated as unset
    rather than falling back to the prior state.

    Example:
        >>> d = ResourceData(schema, config={"path": "secret/foo"})
        >>> d.get("path")
        'secret/foo'
        >>> d.set_id("secret/foo")
    """

    def __init__(
        self,
        schema: dict[str, Field],
        config: Optional[dict[str, Any]] = None,
        state: Optional[dict[str, Any]] = None,
        resource_id: str = "",
        new_resource: bool = False,
    ):
        self.schema = schema
        self._config = dict(config) if config is not None else None
        self._state = dict(state or {})
        self._set: dict[str, Any] = {}
        self._id = resource_id or ""
        self._new_resource = new_resource

    def _field(self, key: str) -> Field:
        try:
            return self.schema[key]
        except KeyError:
            raise KeyError(f"invalid field name: {key}") from None

    def _lookup(self, key: str) -> tuple[Any, bool]:
        spec = self._field(key)
        if key in self._set:
            return self._set[key], True
        if self._config is not None:
            value = self._config.get(key)
            if value is not None:
                return value, True
            if not spec.computed:
                return None, False
        value = self._state.get(key)
        if value is not None:
            return value, True
        return None, False

    def get(self, key: str) -> Any:
        value, _ = self._lookup(key)
        return resolve_value(self._field(key), value)

    def get_ok(self, key: str) -> tuple[Any, bool]:
        """Return the value and whether it is set to a non-zero value."""
        value = self.get(key)
        spec = self._field(key)
        return value, value is not None and value != spec.zero_value()

    def get_ok_exists(self, key: str) -> tuple[Any, bool]:
        """Return the value and whether it was set at all, zero values included."""
        _, exists = self._lookup(key)
        return self.get(key), exists

    def set(self, key: str, value: Any) -> None:
        """Record a value for the resulting state.

        Raises:
            KeyError: If key is not part of the schema
        """
        self._field(key)
        self._set[key] = value

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, resource_id: str) -> None:
        """Set the resource id; an empty id marks the resource as gone."""
        self._id = resource_id or ""

    def is_new_resource(self) -> bool:
        return self._new_resource

    def get_change(self, key: str) -> tuple[Any, Any]:
        """Return the prior state value and the current value of key."""
        spec = self._field(key)
        return resolve_value(spec, self._state.get(key)), self.get(key)

    def has_change(self, key: str) -> bool:
        old, new = self.get_change(key)
        return field_changed(self._field(key), key, old, new, self)

    def has_changes(self, *keys: str) -> bool:
        return any(self.has_change(key) for key in keys)

    def state(self) -> dict[str, Any]:
        """Build the attribute map persisted for this resource."""
        result: dict[str, Any] = {}
        for key, spec in self.schema.items():
            value, _ = self._lookup(key)
            result[key] = spec.normalize(resolve_value(spec, value))
        return result
