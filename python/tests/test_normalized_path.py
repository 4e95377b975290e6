"""Tests for matterof.core.normalized_path -- canonical paths and query paths."""

import pytest

from matterof.core.key_path import WILDCARD, Index, KeyPath, Property, ResolvedPath
from matterof.core.normalized_path import (
    APPEND,
    NormalizedPath,
    parse_normalized_path,
    parse_query_path,
    render_normalized,
)
from matterof.errors import PathParseError


class TestNormalizedPath:
    def test_root(self):
        assert parse_normalized_path("$") == ()

    def test_keys_and_indices(self):
        assert parse_normalized_path("$['a']['b'][0]") == (Property("a"), Property("b"), Index(0))

    def test_append_sentinel(self):
        """[-] parses to the append sentinel."""
        assert parse_normalized_path("$['tags'][-]") == (Property("tags"), APPEND)

    def test_escaped_quote_in_key(self):
        """Backslash escapes a quote inside a key."""
        assert parse_normalized_path(r"$['it\'s']") == (Property("it's"),)

    def test_key_containing_bracket(self):
        """A closing bracket inside quotes belongs to the key."""
        assert parse_normalized_path("$['a]b']") == (Property("a]b"),)

    @pytest.mark.parametrize(
        "text",
        ["", "title", "['a']", "$.a", "$[a]", "$['a'", "$[0", "$['a']x", "$[1.5]", "$[*]"],
    )
    def test_rejects_malformed(self, text):
        """Anything outside the canonical form is refused."""
        with pytest.raises(PathParseError):
            parse_normalized_path(text)

    def test_render_round_trip(self):
        for text in ["$", "$['a'][0]", "$['tags'][-]", r"$['it\'s']['x\\y']"]:
            assert str(NormalizedPath.parse(text)) == text

    def test_render_from_resolved(self):
        path = NormalizedPath.from_resolved(ResolvedPath.of("a", 2))
        assert str(path) == "$['a'][2]"
        assert path.to_resolved() == ResolvedPath.of("a", 2)

    def test_append_has_no_resolved_form(self):
        """The append sentinel does not address an existing location."""
        assert NormalizedPath.parse("$['a'][-]").to_resolved() is None

    def test_render_rejects_regex_segments(self):
        with pytest.raises(PathParseError):
            render_normalized((WILDCARD,))


class TestQueryPath:
    def test_auto_root_for_names(self):
        """A bare name means the same as $.name."""
        assert parse_query_path("title") == parse_query_path("$.title")
        assert parse_query_path("title") == KeyPath.of("title")

    def test_auto_root_for_brackets(self):
        """A leading bracket means the same as $[...]."""
        assert parse_query_path("[0]") == parse_query_path("$[0]")
        assert parse_query_path("[0]") == KeyPath((Index(0),))

    def test_dotted_and_bracketed(self):
        """Dot and bracket notation can be mixed."""
        expected = KeyPath.of("author", "name")
        assert parse_query_path("$.author.name") == expected
        assert parse_query_path("$['author']['name']") == expected
        assert parse_query_path('$["author"].name') == expected
        assert parse_query_path("author.name") == expected

    def test_indices(self):
        assert parse_query_path("tags[1]") == KeyPath.of("tags", 1)
        assert parse_query_path("$.tags.1") == KeyPath.of("tags", 1)

    def test_wildcards(self):
        """Star expands over keys and positions."""
        assert parse_query_path("$.tags[*]") == KeyPath((Property("tags"), WILDCARD))
        assert parse_query_path("*.name") == KeyPath((WILDCARD, Property("name")))

    def test_root(self):
        assert parse_query_path("$").is_root()

    def test_no_auto_root(self):
        """Without auto_root the leading $ is required."""
        with pytest.raises(PathParseError):
            parse_query_path("title", auto_root=False)

    def test_errors_after_dollar_are_not_retried(self):
        """A path starting with $ is not reparsed as a key path."""
        with pytest.raises(PathParseError):
            parse_query_path("$[abc]")
