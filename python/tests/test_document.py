"""Tests for matterof.core.document -- the front matter document facade."""

import pytest

from matterof.core import mutator
from matterof.core.document import Document
from matterof.core.key_path import KeyPath
from matterof.core.normalized_path import parse_query_path
from matterof.core.query import Query
from matterof.core.value import FrontMatterValue
from matterof.errors import (
    ConversionError,
    InvalidQueryError,
    OutOfRangeError,
    TypeMismatchError,
    ValidationError,
)


def make(front_matter=None, body=""):
    return Document(front_matter, body)


@pytest.mark.parametrize(
    "key,value",
    [
        ("title", "Hello"),
        ("author.name", "Jane"),
        ("a.b.c", [1, 2, {"x": None}]),
        ("count", 0),
        ("flag", False),
        ("ratio", 0.5),
        ("meta", {"k": "v"}),
        ('"dotted.key"', "ok"),
        ("list.2", "third"),
    ],
)
def test_set_then_get(key, value):
    """Whatever is set can be read back unchanged."""
    doc = make({"existing": 1})
    doc.set(key, value)
    assert doc.get(key) == FrontMatterValue(value)


def test_set_null_is_kept():
    """Null is a value, not a removal."""
    doc = make()
    doc.set("draft", None)
    assert doc.front_matter == {"draft": None}
    assert doc.get("draft") == FrontMatterValue(None)


@pytest.mark.parametrize("key", ["title", "a.b", "tags.0", "x.y.z"])
def test_set_then_remove(key):
    doc = make({"keep": True})
    doc.set(key, "v")
    assert doc.remove(key) == FrontMatterValue("v")
    assert doc.get(key) is None


def test_removing_missing_path_changes_nothing():
    """Removing absent paths returns None and leaves the tree alone."""
    original = {"a": {"b": [1, 2]}, "c": None}
    doc = make(original)
    assert doc.remove("a.x") is None
    assert doc.remove("a.b.5") is None
    assert doc.remove("zzz") is None
    assert doc.front_matter == original


def test_sparse_array_growth():
    """Setting past the end pads the sequence with nulls."""
    doc = make()
    doc.set("a.5", "v")
    assert doc.front_matter == {"a": [None, None, None, None, None, "v"]}


def test_add_widens_scalar():
    """Adding to a scalar turns it into a sequence."""
    doc = make()
    doc.set("x", "s")
    doc.add_to_array("x", "t")
    assert doc.get("x").inner == ["s", "t"]


def test_bulk_remove_by_key_regex():
    doc = make({"a": {"b": 1}, "a2": {"b": 2}})
    assert doc.remove_matching(Query.key_regex(r".*\.b$")) == 2
    assert doc.front_matter == {"a": {}, "a2": {}}


def test_bulk_remove_with_pruning():
    """prune_empty drops the mappings a removal emptied."""
    doc = make({"a": {"b": 1}, "c": 3})
    doc.remove_matching(Query.key_regex(r"\.b$"), prune_empty=True)
    assert doc.front_matter == {"c": 3}


class TestScenarios:
    def test_add_at_index(self):
        doc = make({"tags": ["rust", "cli"]})
        doc.add_to_array("tags", "tool", index=1)
        assert doc.front_matter == {"tags": ["rust", "tool", "cli"]}

    def test_index_turns_a_mapping_into_a_sequence(self):
        """An index segment replaces a mapping with a sequence."""
        doc = make({"meta": {"a": 1}})
        doc.set("meta.0", "v")
        assert doc.front_matter == {"meta": ["v"]}

    def test_nested_set_on_empty_document(self):
        doc = Document.empty()
        doc.set("author.name", "John Doe")
        assert doc.front_matter == {"author": {"name": "John Doe"}}

    def test_remove_nulls(self):
        """Only null values go; the document keeps its front matter."""
        doc = make({"a": 1, "b": None})
        assert doc.remove_nulls() == 1
        assert doc.front_matter == {"a": 1}
        assert doc.has_front_matter()

    def test_removing_last_key_drops_front_matter(self):
        """An emptied front matter block disappears."""
        doc = make({"only": 1})
        doc.remove("only")
        assert doc.front_matter is None
        assert not doc.has_front_matter()

    def test_bulk_removal_of_everything_drops_front_matter(self):
        doc = make({"a": 1, "b": 2})
        doc.remove_matching(Query.all())
        assert doc.front_matter is None


class TestOwnership:
    def test_constructor_copies_input(self):
        """The document owns its tree."""
        tree = {"a": [1]}
        doc = make(tree)
        tree["a"].append(2)
        assert doc.front_matter == {"a": [1]}

    def test_get_returns_a_copy(self):
        """Mutating a returned value does not reach the document."""
        doc = make({"a": [1]})
        doc.get("a").inner.append(2)
        assert doc.front_matter == {"a": [1]}

    def test_set_copies_value(self):
        value = {"x": 1}
        doc = make()
        doc.set("a", value)
        value["x"] = 2
        assert doc.get("a.x").inner == 1

    def test_copy_is_independent(self):
        """A copy shares nothing with the original."""
        doc = make({"a": 1}, "body")
        other = doc.copy()
        other.set("a", 2)
        assert doc.get("a").inner == 1
        assert other.body == "body"

    def test_empty_mapping_reads_as_none(self):
        assert make({}).front_matter is None
        assert make({}) == Document.body_only("")


class TestSetErrors:
    def test_top_level_index_is_rejected(self):
        """The top level is a mapping, so it cannot take an index."""
        with pytest.raises(TypeMismatchError):
            make().set("0", "x")

    def test_wildcards_are_rejected(self):
        with pytest.raises(InvalidQueryError):
            make({"a": {"b": 1}}).set(parse_query_path("a.*"), 2)

    def test_root_must_be_mapping(self):
        """Setting the root replaces the whole front matter with a mapping."""
        doc = make({"a": 1})
        with pytest.raises(TypeMismatchError):
            doc.set(KeyPath(), [1, 2])
        doc.set(KeyPath(), {"b": 2})
        assert doc.front_matter == {"b": 2}

    def test_foreign_values_are_rejected(self):
        """Values outside the value tree are refused."""
        with pytest.raises(ConversionError):
            make().set("a", {1, 2})


class TestQueries:
    def test_query_on_empty_document(self):
        assert make().query(Query.all()).is_empty()

    def test_query_reconstruction(self):
        """Matched sequence positions rebuild as a list."""
        doc = make({"tags": ["x", "y", "z"], "title": "t"})
        result = doc.query(Query.exact_keys(["tags.0", "tags.1"]))
        assert result.to_tree() == {"tags": ["x", "y"]}

    def test_resolve_query_path_string(self):
        doc = make({"posts": [{"t": 1}, {"t": 2}]})
        matches = doc.resolve("$.posts[*].t")
        assert [value.inner for _, value in matches] == [1, 2]

    def test_flatten(self):
        """flatten lists containers before their children."""
        doc = make({"a": {"b": 1}})
        assert [str(path) for path, _ in doc.flatten()] == ["a", "a.b"]


class TestBulk:
    def test_set_matching(self):
        """Every matched location gets the value."""
        doc = make({"posts": [{"draft": True}, {"draft": True}]})
        assert doc.set_matching("posts[*].draft", False) == 2
        assert doc.front_matter == {"posts": [{"draft": False}, {"draft": False}]}

    def test_no_match_leaves_tree_alone(self):
        """Zero matches means the tree is not even normalized."""
        doc = make({2024: "x"})
        assert doc.set_matching(Query.value_exact("nope"), 1) == 0
        assert doc.front_matter == {2024: "x"}

    def test_failed_bulk_edit_leaves_document_untouched(self, monkeypatch):
        """Edits run on a working copy that is dropped when one of them fails."""
        real_set_at = mutator.set_at
        calls = []

        def failing_set_at(root, path, value):
            calls.append(path)
            if len(calls) > 1:
                raise OutOfRangeError("second edit fails")
            return real_set_at(root, path, value)

        monkeypatch.setattr(mutator, "set_at", failing_set_at)
        doc = make({"a": "x", "b": "y"})
        with pytest.raises(OutOfRangeError):
            doc.set_matching(Query.all(), "z")
        assert calls
        assert doc.front_matter == {"a": "x", "b": "y"}

    def test_failed_bulk_removal_leaves_document_untouched(self, monkeypatch):
        """A removal that fails partway changes nothing."""
        def failing_remove_at(root, path):
            raise OutOfRangeError("cannot remove")

        monkeypatch.setattr(mutator, "remove_at", failing_remove_at)
        doc = make({"t": [1, 2, 3]})
        with pytest.raises(OutOfRangeError):
            doc.remove_matching("t[*]")
        assert doc.front_matter == {"t": [1, 2, 3]}

    def test_removing_several_positions_of_one_sequence(self):
        """Several positions of one sequence are removed as resolved."""
        doc = make({"t": ["a", "b", "c", "d"]})
        assert doc.remove_matching(Query.key_regex(r"^t\.[0-2]$")) == 3
        assert doc.front_matter == {"t": ["d"]}

    def test_replace_value(self):
        doc = make({"status": "draft", "other": "draft"})
        assert doc.replace("status", new_value="published") == 1
        assert doc.front_matter == {"status": "published", "other": "draft"}

    def test_replace_with_old_value_filter(self):
        """old_value restricts the replacement to matching values."""
        doc = make({"a": "x", "b": "y"})
        assert doc.replace(Query.all(), new_value="z", old_value="x") == 1
        assert doc.front_matter == {"a": "z", "b": "y"}

    def test_rename_keeps_order(self):
        """A renamed key keeps its place among its siblings."""
        doc = make({"a": 1, "title": "t", "z": 2})
        assert doc.replace("title", new_key="heading") == 1
        assert list(doc.front_matter) == ["a", "heading", "z"]

    def test_rename_and_replace(self):
        doc = make({"old": 1})
        doc.replace("old", new_value=2, new_key="new")
        assert doc.front_matter == {"new": 2}

    def test_rename_of_many_is_ambiguous(self):
        """Renaming several matches to one key is refused before any edit."""
        doc = make({"a": {"x": 1}, "b": {"x": 2}})
        with pytest.raises(InvalidQueryError):
            doc.replace("*.x", new_key="y")
        assert doc.front_matter == {"a": {"x": 1}, "b": {"x": 2}}

    def test_rename_of_sequence_position(self):
        """Sequence positions have no key to rename."""
        doc = make({"t": [1]})
        with pytest.raises(InvalidQueryError):
            doc.replace("t[0]", new_key="y")

    def test_replace_needs_something_to_do(self):
        with pytest.raises(InvalidQueryError):
            make({"a": 1}).replace("a")


class TestMerge:
    def test_merge_documents(self):
        """Mappings merge recursively and sequences concatenate."""
        doc = make({"a": {"x": 1}, "tags": ["a"]})
        doc.merge_front_matter(make({"a": {"y": 2}, "tags": ["b"]}))
        assert doc.front_matter == {"a": {"x": 1, "y": 2}, "tags": ["a", "b"]}

    def test_merge_into_empty(self):
        doc = make()
        doc.merge_front_matter({"a": 1})
        assert doc.front_matter == {"a": 1}

    def test_merge_nothing(self):
        doc = make({"a": 1})
        doc.merge_front_matter(None)
        assert doc.front_matter == {"a": 1}

    def test_merge_non_mapping(self):
        """Only mappings can be merged into front matter."""
        with pytest.raises(TypeMismatchError):
            make().merge_front_matter(FrontMatterValue([1]))


class TestValidate:
    def test_valid_document(self):
        make({"a": [1, 2.5, True, None, "2024-01-01"], "b": {"c": "d"}}).validate()
        make().validate()

    def test_non_string_key(self):
        """Validation reports the path of the offending key."""
        with pytest.raises(ValidationError) as excinfo:
            make({"a": {1: "x"}}).validate()
        assert excinfo.value.path == "a"

    def test_foreign_value(self):
        """Validation reports the path of the offending value."""
        with pytest.raises(ValidationError) as excinfo:
            make({"a": [{1, 2}]}).validate()
        assert excinfo.value.path == "a.0"
