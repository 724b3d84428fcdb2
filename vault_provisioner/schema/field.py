"""Field definitions for resource schemas."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Collection, Optional, Union


class FieldType(str, Enum):
    """Value types a schema field may hold."""

    STRING = "string"
    INT = "int"
    BOOL = "bool"
    LIST = "list"
    SET = "set"
    MAP = "map"


_PYTHON_TYPES: dict[FieldType, tuple[type, ...]] = {
    FieldType.STRING: (str,),
    FieldType.INT: (int,),
    FieldType.BOOL: (bool,),
    FieldType.LIST: (list, tuple),
    FieldType.SET: (list, tuple, set, frozenset),
    FieldType.MAP: (dict,),
}

# validate_func(value, key) -> list of error messages
ValidateFunc = Callable[[Any, str], list[str]]
# diff_suppress_func(key, old, new, d) -> True when old and new are equivalent
DiffSuppressFunc = Callable[[str, Any, Any, Any], bool]


@dataclass
class Field:
    """Schema entry for a single resource attribute.

    Attributes:
        type: Value type
        required: Must be present in configuration
        optional: May be present in configuration
        computed: Set by the resource itself; combined with optional the
            configured value wins when present
        force_new: Changing the value replaces the resource
        default: Value used when the configuration omits the field
        sensitive: Masked when plans are rendered
        state_func: Normalises a value before it is stored or compared
        validate_func: Returns error messages for an invalid value
        diff_suppress_func: Declares two different values equivalent
        elem: Element type for list/set/map fields, or a nested schema for
            lists of blocks
        max_items: Maximum number of list/set items, 0 for unlimited
    """

    type: FieldType
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    default: Any = None
    sensitive: bool = False
    description: str = ""
    state_func: Optional[Callable[[Any], Any]] = None
    validate_func: Optional[ValidateFunc] = None
    diff_suppress_func: Optional[DiffSuppressFunc] = None
    elem: Optional[Union[FieldType, dict[str, "Field"]]] = None
    max_items: int = 0

    @property
    def computed_only(self) -> bool:
        """True for attributes the configuration can never set."""
        return self.computed and not (self.optional or self.required)

    def zero_value(self) -> Any:
        if self.type == FieldType.STRING:
            return ""
        if self.type == FieldType.INT:
            return 0
        if self.type == FieldType.BOOL:
            return False
        if self.type in (FieldType.LIST, FieldType.SET):
            return []
        return {}

    def normalize(self, value: Any) -> Any:
        """Canonical form used for storage and comparison."""
        if value is None:
            return None
        if self.type == FieldType.SET:
            items = list(value)
            try:
                return sorted(set(items))
            except TypeError:
                # unhashable or mixed elements keep their order
                return items
        if self.type == FieldType.LIST:
            if isinstance(self.elem, dict):
                return [_normalize_block(self.elem, item) for item in value]
            return list(value)
        if self.state_func is not None:
            return self.state_func(value)
        return value

    def type_errors(self, value: Any, key: str) -> list[str]:
        """Return type mismatch messages for value."""
        expected = _PYTHON_TYPES[self.type]
        # bool is an int subclass
        if self.type == FieldType.INT and isinstance(value, bool):
            return [f"{key}: expected int, got bool"]
        if not isinstance(value, expected):
            return [f"{key}: expected {self.type.value}, got {type(value).__name__}"]

        errors: list[str] = []
        if self.type in (FieldType.LIST, FieldType.SET):
            if self.max_items and len(value) > self.max_items:
                errors.append(f"{key}: at most {self.max_items} items allowed, got {len(value)}")
            for i, item in enumerate(value):
                errors.extend(self._elem_errors(item, f"{key}.{i}"))
        elif self.type == FieldType.MAP:
            for k, item in value.items():
                errors.extend(self._elem_errors(item, f"{key}.{k}"))
        return errors

    def _elem_errors(self, item: Any, key: str) -> list[str]:
        if self.elem is None:
            return []
        if isinstance(self.elem, dict):
            if not isinstance(item, dict):
                return [f"{key}: expected block, got {type(item).__name__}"]
            return validate_block(self.elem, item, key)
        return Field(type=self.elem).type_errors(item, key)


def validate_block(
    schema: dict[str, Field],
    values: dict[str, Any],
    prefix: str = "",
    unknown_keys: Collection[str] = (),
) -> list[str]:
    """Validate values against schema.

    Checks unknown keys, missing required fields, computed-only fields,
    types and each field's validate_func. Values listed in unknown_keys are
    not known yet (they reference other objects) and skip the type and
    validate_func checks.
    """
    errors: list[str] = []
    label = f"{prefix}." if prefix else ""

    for key in values:
        if key not in schema:
            errors.append(f"{label}{key}: unsupported argument")

    for key, spec in schema.items():
        value = values.get(key)
        if value is None:
            if spec.required:
                errors.append(f"{label}{key}: required argument is missing")
            continue
        if spec.computed_only:
            errors.append(f"{label}{key}: value is computed and cannot be set")
            continue
        if key in unknown_keys:
            continue
        type_errors = spec.type_errors(value, f"{label}{key}")
        errors.extend(type_errors)
        if not type_errors and spec.validate_func is not None:
            errors.extend(spec.validate_func(value, f"{label}{key}"))

    return errors


def _normalize_block(schema: dict[str, Field], item: Any) -> Any:
    """Fill missing keys of a nested block so omitted and zero values compare equal."""
    if not isinstance(item, dict):
        return item
    result = {}
    for key, spec in schema.items():
        value = item.get(key)
        if value is None:
            value = spec.default if spec.default is not None else spec.zero_value()
        result[key] = spec.normalize(value)
    return result
