"""Value tree model for front matter.

A front matter tree is made of plain Python data: ``dict`` for mappings
(insertion ordered), ``list`` for sequences, and ``None``, ``bool``, ``int``,
``float`` and ``str`` for scalars.  ``kind_of`` closes that union: anything
else is rejected rather than guessed at.

``FrontMatterValue`` wraps one node and provides type-checked accessors that
return ``None`` instead of raising, plus the deep-merge rule and parsing of
command-line value strings.
"""

from __future__ import annotations

import copy
import math
import re
from enum import Enum
from typing import Any

from ..errors import ConversionError, OutOfRangeError

DEFAULT_MAX_DEPTH = 256


class ValueKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"

    @classmethod
    def from_name(cls, name: str) -> ValueKind:
        """Look up a kind by name, accepting the common aliases."""
        key = name.strip().lower()
        kind = _KIND_ALIASES.get(key)
        if kind is None:
            raise ConversionError(f"unknown value type: {name!r}")
        return kind


_KIND_ALIASES = {
    "null": ValueKind.NULL,
    "none": ValueKind.NULL,
    "bool": ValueKind.BOOL,
    "boolean": ValueKind.BOOL,
    "number": ValueKind.NUMBER,
    "int": ValueKind.NUMBER,
    "integer": ValueKind.NUMBER,
    "float": ValueKind.NUMBER,
    "string": ValueKind.STRING,
    "str": ValueKind.STRING,
    "sequence": ValueKind.SEQUENCE,
    "array": ValueKind.SEQUENCE,
    "list": ValueKind.SEQUENCE,
    "mapping": ValueKind.MAPPING,
    "object": ValueKind.MAPPING,
    "map": ValueKind.MAPPING,
    "dict": ValueKind.MAPPING,
}


class ValueType(Enum):
    """Explicit type for parsing a value given as text."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    ARRAY = "array"
    OBJECT = "object"

    @classmethod
    def from_name(cls, name: str) -> ValueType:
        key = name.strip().lower()
        value_type = _TYPE_ALIASES.get(key)
        if value_type is None:
            raise ConversionError(
                f"unknown value type: {name!r} "
                "(expected string, int, float, bool, array or object)"
            )
        return value_type


_TYPE_ALIASES = {
    "string": ValueType.STRING,
    "str": ValueType.STRING,
    "int": ValueType.INT,
    "integer": ValueType.INT,
    "float": ValueType.FLOAT,
    "number": ValueType.FLOAT,
    "bool": ValueType.BOOL,
    "boolean": ValueType.BOOL,
    "array": ValueType.ARRAY,
    "list": ValueType.ARRAY,
    "object": ValueType.OBJECT,
    "map": ValueType.OBJECT,
    "mapping": ValueType.OBJECT,
    "dict": ValueType.OBJECT,
}

_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})

_INT_RE = re.compile(r"[-+]?\d+")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def kind_of(data: Any) -> ValueKind:
    """Classify a native node.  Raises ConversionError outside the union."""
    if data is None:
        return ValueKind.NULL
    # bool is a subclass of int, so it must be tested first
    if isinstance(data, bool):
        return ValueKind.BOOL
    if isinstance(data, (int, float)):
        return ValueKind.NUMBER
    if isinstance(data, str):
        return ValueKind.STRING
    if isinstance(data, list):
        return ValueKind.SEQUENCE
    if isinstance(data, dict):
        return ValueKind.MAPPING
    raise ConversionError(f"unsupported value type: {type(data).__name__}")


def values_equal(left: Any, right: Any) -> bool:
    """Type-aware structural equality.

    Unlike ``==`` this keeps ``True`` apart from ``1`` and ``1`` apart
    from ``1.0``.  Mapping key order is not significant.
    """
    left_kind = kind_of(left)
    if left_kind is not kind_of(right):
        return False
    if left_kind is ValueKind.NUMBER:
        return isinstance(left, float) == isinstance(right, float) and left == right
    if left_kind is ValueKind.SEQUENCE:
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if left_kind is ValueKind.MAPPING:
        if len(left) != len(right):
            return False
        for key, value in left.items():
            if key not in right or not values_equal(value, right[key]):
                return False
        return True
    return left == right


def scalar_to_string(data: Any) -> str | None:
    """Render a scalar the way value conditions compare it.

    Null renders as the empty string, booleans as ``true``/``false``, numbers
    as their literal and strings as themselves.  Containers have no scalar
    rendering and yield None.
    """
    kind = kind_of(data)
    if kind is ValueKind.NULL:
        return ""
    if kind is ValueKind.BOOL:
        return "true" if data else "false"
    if kind is ValueKind.NUMBER:
        return repr(data) if isinstance(data, float) else str(data)
    if kind is ValueKind.STRING:
        return data
    return None


def merge_values(left: Any, right: Any) -> Any:
    """Deep-merge two nodes into a new node.

    Mappings merge key-wise recursively, sequences concatenate, and for any
    other pair the right-hand value wins.
    """
    if isinstance(left, dict) and isinstance(right, dict):
        merged = copy.deepcopy(left)
        for key, value in right.items():
            if key in merged:
                merged[key] = merge_values(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    if isinstance(left, list) and isinstance(right, list):
        return copy.deepcopy(left) + copy.deepcopy(right)
    return copy.deepcopy(right)


def key_to_string(key: Any) -> str:
    """Convert a mapping key to the string the JSON-flavored tree uses."""
    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if isinstance(key, int):
        return str(key)
    if isinstance(key, float):
        if not math.isfinite(key):
            raise ConversionError(f"non-finite number used as a mapping key: {key!r}")
        return repr(key)
    raise ConversionError(f"mapping key of type {type(key).__name__} cannot be converted to a string")


def yaml_to_json(data: Any) -> Any:
    """Convert a YAML-flavored tree to a fresh JSON-flavored tree.

    Mapping keys become strings and non-finite floats are rejected, since
    JSON numbers cannot carry them.  Trees nested deeper than
    ``DEFAULT_MAX_DEPTH`` raise OutOfRangeError.
    """
    return _to_json(data, 0)


def json_to_yaml(data: Any) -> Any:
    """Convert a JSON-flavored tree back to a fresh YAML-flavored tree."""
    return _to_yaml(data, 0)


def _check_depth(depth: int) -> None:
    if depth > DEFAULT_MAX_DEPTH:
        raise OutOfRangeError(
            "document nesting exceeds the maximum depth", index=depth, length=DEFAULT_MAX_DEPTH
        )


def _to_json(data: Any, depth: int) -> Any:
    kind = kind_of(data)
    if kind is ValueKind.MAPPING:
        _check_depth(depth)
        converted: dict[str, Any] = {}
        for key, value in data.items():
            converted[key_to_string(key)] = _to_json(value, depth + 1)
        return converted
    if kind is ValueKind.SEQUENCE:
        _check_depth(depth)
        return [_to_json(item, depth + 1) for item in data]
    if kind is ValueKind.NUMBER and isinstance(data, float) and not math.isfinite(data):
        raise ConversionError(f"number {data!r} is not representable as JSON")
    return data


def _to_yaml(data: Any, depth: int) -> Any:
    kind = kind_of(data)
    if kind is ValueKind.MAPPING:
        _check_depth(depth)
        return {key: _to_yaml(value, depth + 1) for key, value in data.items()}
    if kind is ValueKind.SEQUENCE:
        _check_depth(depth)
        return [_to_yaml(item, depth + 1) for item in data]
    return data


class FrontMatterValue:
    """A single front matter node with type-checked accessors."""

    __slots__ = ("_inner",)

    def __init__(self, inner: Any = None) -> None:
        kind_of(inner)
        self._inner = inner

    @property
    def inner(self) -> Any:
        return self._inner

    @property
    def kind(self) -> ValueKind:
        return kind_of(self._inner)

    @classmethod
    def parse(cls, text: str, value_type: ValueType | str | None = None) -> FrontMatterValue:
        """Parse a value given as text, e.g. on the command line.

        With no type the text is tried as an int, a float and a boolean word
        in that order, and otherwise kept as a string.
        """
        if isinstance(value_type, str):
            value_type = ValueType.from_name(value_type)
        if value_type is None:
            return cls(_detect(text))
        return cls(_parse_typed(text, value_type))

    # -- predicates ---------------------------------------------------------

    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def is_bool(self) -> bool:
        return self.kind is ValueKind.BOOL

    def is_number(self) -> bool:
        return self.kind is ValueKind.NUMBER

    def is_int(self) -> bool:
        return self.kind is ValueKind.NUMBER and isinstance(self._inner, int)

    def is_float(self) -> bool:
        return self.kind is ValueKind.NUMBER and isinstance(self._inner, float)

    def is_string(self) -> bool:
        return self.kind is ValueKind.STRING

    def is_sequence(self) -> bool:
        return self.kind is ValueKind.SEQUENCE

    def is_mapping(self) -> bool:
        return self.kind is ValueKind.MAPPING

    # -- accessors ----------------------------------------------------------

    def as_string(self) -> str | None:
        return self._inner if self.is_string() else None

    def as_int(self) -> int | None:
        return self._inner if self.is_int() else None

    def as_float(self) -> float | None:
        if self.is_number():
            return float(self._inner)
        return None

    def as_bool(self) -> bool | None:
        return self._inner if self.is_bool() else None

    def as_sequence(self) -> list[FrontMatterValue] | None:
        if not self.is_sequence():
            return None
        return [FrontMatterValue(item) for item in self._inner]

    def as_mapping(self) -> dict[Any, FrontMatterValue] | None:
        if not self.is_mapping():
            return None
        return {key: FrontMatterValue(value) for key, value in self._inner.items()}

    # -- conversions --------------------------------------------------------

    def to_display_string(self) -> str | None:
        return scalar_to_string(self._inner)

    def to_json(self) -> Any:
        return yaml_to_json(self._inner)

    def merge(self, other: FrontMatterValue | Any) -> FrontMatterValue:
        if isinstance(other, FrontMatterValue):
            other = other.inner
        return FrontMatterValue(merge_values(self._inner, other))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FrontMatterValue):
            return values_equal(self._inner, other._inner)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FrontMatterValue({self._inner!r})"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _detect(text: str) -> Any:
    stripped = text.strip()
    if _INT_RE.fullmatch(stripped):
        return int(stripped)
    try:
        number = float(stripped)
    except ValueError:
        number = None
    if number is not None and math.isfinite(number):
        return number
    lowered = stripped.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    return text


def _parse_typed(text: str, value_type: ValueType) -> Any:
    if value_type is ValueType.STRING:
        return text
    stripped = text.strip()
    if value_type is ValueType.INT:
        if not _INT_RE.fullmatch(stripped):
            raise ConversionError(f"cannot parse {text!r} as an integer")
        return int(stripped)
    if value_type is ValueType.FLOAT:
        try:
            number = float(stripped)
        except ValueError:
            raise ConversionError(f"cannot parse {text!r} as a float") from None
        if not math.isfinite(number):
            raise ConversionError(f"{text!r} is not a finite number")
        return number
    if value_type is ValueType.BOOL:
        lowered = stripped.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise ConversionError(f"cannot parse {text!r} as a boolean")
    if value_type is ValueType.ARRAY:
        if not stripped:
            return []
        return [item.strip() for item in text.split(",")]
    # ValueType.OBJECT
    from ..io.codec import load_yaml

    data = load_yaml(text)
    if not isinstance(data, dict):
        raise ConversionError(f"cannot parse {text!r} as an object")
    return data
