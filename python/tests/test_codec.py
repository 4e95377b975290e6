"""Tests for matterof.io.codec -- the front matter YAML dialect."""

import pytest

from matterof.errors import ConversionError
from matterof.io.codec import dump_yaml, load_yaml


def test_timestamps_are_text():
    """Dates and times load as strings."""
    assert load_yaml("d: 2024-01-15\nt: 2024-01-15 10:00:00") == {
        "d": "2024-01-15",
        "t": "2024-01-15 10:00:00",
    }


def test_timestamps_dump_unquoted():
    """Date-like strings are written back without quotes."""
    assert dump_yaml({"d": "2024-01-15"}) == "d: 2024-01-15\n"


def test_local_tags_are_unwrapped():
    """Local tags are dropped and the tagged node kept."""
    assert load_yaml("a: !custom hello\nb: !thing [1, 2]") == {"a": "hello", "b": [1, 2]}


def test_key_order_is_kept():
    """Keys are written in insertion order, not sorted."""
    assert dump_yaml({"z": 1, "a": 2}) == "z: 1\na: 2\n"


def test_sequences_are_indented():
    """Sequence items are indented under their key."""
    assert dump_yaml({"tags": ["a", "b"]}) == "tags:\n  - a\n  - b\n"


def test_unicode_is_not_escaped():
    assert dump_yaml({"name": "Zoë"}) == "name: Zoë\n"


def test_strings_that_look_like_other_types_are_quoted():
    """Strings survive a dump and load without changing type."""
    text = dump_yaml({"a": "true", "b": "42", "c": ""})
    assert load_yaml(text) == {"a": "true", "b": "42", "c": ""}


def test_invalid_yaml():
    """Malformed YAML is a ConversionError."""
    with pytest.raises(ConversionError):
        load_yaml("a: [1, 2")


def test_deep_nesting_is_a_conversion_error():
    """Nesting too deep for the parser is a ConversionError."""
    with pytest.raises(ConversionError):
        load_yaml("a: " + "[" * 3000 + "]" * 3000)


def test_unrepresentable_value():
    """Objects outside the value tree cannot be dumped."""
    with pytest.raises(ConversionError):
        dump_yaml({"a": object()})
