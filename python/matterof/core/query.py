"""Composable queries over a front matter tree.

A ``Query`` is a list of conditions plus a combine mode.  Each condition is
tested against every node the resolver visits, so a query can select
containers as well as leaves::

    Query.key("author").and_type(ValueKind.STRING)
    Query.key_regex(r"\\.draft$").or_(Condition.missing())

Plain key conditions use hierarchical matching: a location matches when
either path is a prefix of the other, so ``Query.key("tags.0")`` also selects
``tags`` and ``Query.key("tags")`` selects every element.  Use
``Query.exact_key`` for a single location.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator

from ..errors import InvalidQueryError
from .key_path import Index, KeyPath, Property, ResolvedPath, segment_matches
from .value import FrontMatterValue, ValueKind, scalar_to_string

Predicate = Callable[[ResolvedPath, FrontMatterValue], bool]


class CombineMode(Enum):
    ALL = "all"
    ANY = "any"


class ConditionKind(Enum):
    ALL = "all"
    KEY_PATHS = "key_paths"
    EXACT_KEY_PATHS = "exact_key_paths"
    KEY_REGEX = "key_regex"
    VALUE_EXACT = "value_exact"
    VALUE_REGEX = "value_regex"
    VALUE_TYPE = "value_type"
    DEPTH = "depth"
    EXISTS = "exists"
    MISSING = "missing"
    CUSTOM = "custom"


def _as_key_path(key: KeyPath | ResolvedPath | str) -> KeyPath:
    if isinstance(key, KeyPath):
        return key
    if isinstance(key, ResolvedPath):
        return key.to_key_path()
    return KeyPath.parse(key)


def _as_regex(pattern: str | re.Pattern) -> re.Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidQueryError(f"invalid regex {pattern!r}: {exc}") from exc


def _prefix_matches(shorter: tuple, longer: tuple, pattern_is_shorter: bool) -> bool:
    for left, right in zip(shorter, longer):
        pattern, concrete = (left, right) if pattern_is_shorter else (right, left)
        if not segment_matches(pattern, concrete):
            return False
    return True


@dataclass
class Condition:
    """Discriminated union via the kind field."""

    kind: ConditionKind
    paths: list[KeyPath] = field(default_factory=list)
    regex: re.Pattern | None = None
    value: Any = None
    value_type: ValueKind | None = None
    depth: int | None = None
    predicate: Predicate | None = None

    # -- constructors -------------------------------------------------------

    @classmethod
    def all(cls) -> Condition:
        return cls(ConditionKind.ALL)

    @classmethod
    def key(cls, *keys: KeyPath | ResolvedPath | str) -> Condition:
        return cls(ConditionKind.KEY_PATHS, paths=[_as_key_path(k) for k in keys])

    @classmethod
    def exact_key(cls, *keys: KeyPath | ResolvedPath | str) -> Condition:
        return cls(ConditionKind.EXACT_KEY_PATHS, paths=[_as_key_path(k) for k in keys])

    @classmethod
    def key_regex(cls, pattern: str | re.Pattern) -> Condition:
        return cls(ConditionKind.KEY_REGEX, regex=_as_regex(pattern))

    @classmethod
    def value_exact(cls, value: Any) -> Condition:
        if isinstance(value, FrontMatterValue):
            value = value.inner
        return cls(ConditionKind.VALUE_EXACT, value=value)

    @classmethod
    def value_regex(cls, pattern: str | re.Pattern) -> Condition:
        return cls(ConditionKind.VALUE_REGEX, regex=_as_regex(pattern))

    @classmethod
    def value_type(cls, kind: ValueKind | str) -> Condition:
        if isinstance(kind, str):
            kind = ValueKind.from_name(kind)
        return cls(ConditionKind.VALUE_TYPE, value_type=kind)

    @classmethod
    def at_depth(cls, depth: int) -> Condition:
        return cls(ConditionKind.DEPTH, depth=depth)

    @classmethod
    def exists(cls) -> Condition:
        return cls(ConditionKind.EXISTS)

    @classmethod
    def missing(cls) -> Condition:
        return cls(ConditionKind.MISSING)

    @classmethod
    def custom(cls, predicate: Predicate) -> Condition:
        return cls(ConditionKind.CUSTOM, predicate=predicate)

    # -- evaluation ---------------------------------------------------------

    def matches(self, path: ResolvedPath, value: FrontMatterValue) -> bool:
        kind = self.kind
        if kind is ConditionKind.ALL:
            return True
        if kind is ConditionKind.KEY_PATHS:
            return any(_hierarchical_match(path, pattern) for pattern in self.paths)
        if kind is ConditionKind.EXACT_KEY_PATHS:
            return any(_exact_match(path, pattern) for pattern in self.paths)
        if kind is ConditionKind.KEY_REGEX:
            return self.regex.search(path.to_dot_notation()) is not None
        if kind is ConditionKind.VALUE_EXACT:
            text = scalar_to_string(value.inner)
            return text is not None and text == self._expected_text()
        if kind is ConditionKind.VALUE_REGEX:
            text = scalar_to_string(value.inner)
            return text is not None and self.regex.search(text) is not None
        if kind is ConditionKind.VALUE_TYPE:
            return value.kind is self.value_type
        if kind is ConditionKind.DEPTH:
            return len(path) == self.depth
        if kind is ConditionKind.EXISTS:
            return not value.is_null()
        if kind is ConditionKind.MISSING:
            return value.is_null()
        return bool(self.predicate(path, value))

    def _expected_text(self) -> str | None:
        if isinstance(self.value, (list, dict)):
            return None
        return scalar_to_string(self.value)


def _hierarchical_match(path: ResolvedPath, pattern: KeyPath) -> bool:
    # Either path may be the prefix of the other.
    concrete = path.segments
    wanted = pattern.segments
    if len(wanted) <= len(concrete):
        return _prefix_matches(wanted, concrete, pattern_is_shorter=True)
    return _prefix_matches(concrete, wanted, pattern_is_shorter=False)


def _exact_match(path: ResolvedPath, pattern: KeyPath) -> bool:
    if len(path) != len(pattern):
        return False
    return all(segment_matches(p, c) for p, c in zip(pattern.segments, path.segments))


@dataclass
class Query:
    """A set of conditions combined with ALL or ANY.

    A query with no conditions matches every node.
    """

    conditions: list[Condition] = field(default_factory=list)
    combine_mode: CombineMode = CombineMode.ALL

    # -- builders -----------------------------------------------------------

    @classmethod
    def all(cls) -> Query:
        return cls([Condition.all()])

    @classmethod
    def key(cls, key: KeyPath | ResolvedPath | str) -> Query:
        return cls([Condition.key(key)])

    @classmethod
    def keys(cls, keys: list[KeyPath | ResolvedPath | str]) -> Query:
        return cls([Condition.key(*keys)])

    @classmethod
    def exact_key(cls, key: KeyPath | ResolvedPath | str) -> Query:
        return cls([Condition.exact_key(key)])

    @classmethod
    def exact_keys(cls, keys: list[KeyPath | ResolvedPath | str]) -> Query:
        return cls([Condition.exact_key(*keys)])

    @classmethod
    def key_regex(cls, pattern: str | re.Pattern) -> Query:
        return cls([Condition.key_regex(pattern)])

    @classmethod
    def value_exact(cls, value: Any) -> Query:
        return cls([Condition.value_exact(value)])

    @classmethod
    def value_regex(cls, pattern: str | re.Pattern) -> Query:
        return cls([Condition.value_regex(pattern)])

    @classmethod
    def value_type(cls, kind: ValueKind | str) -> Query:
        return cls([Condition.value_type(kind)])

    @classmethod
    def depth(cls, depth: int) -> Query:
        return cls([Condition.at_depth(depth)])

    @classmethod
    def exists(cls) -> Query:
        return cls([Condition.exists()])

    @classmethod
    def missing(cls) -> Query:
        return cls([Condition.missing()])

    @classmethod
    def custom(cls, predicate: Predicate) -> Query:
        return cls([Condition.custom(predicate)])

    # -- chaining -----------------------------------------------------------

    def _with(self, condition: Condition) -> Query:
        return Query(self.conditions + [condition], self.combine_mode)

    def and_key(self, key: KeyPath | ResolvedPath | str) -> Query:
        return self._with(Condition.key(key))

    def and_exact_key(self, key: KeyPath | ResolvedPath | str) -> Query:
        return self._with(Condition.exact_key(key))

    def and_key_regex(self, pattern: str | re.Pattern) -> Query:
        return self._with(Condition.key_regex(pattern))

    def and_value(self, value: Any) -> Query:
        return self._with(Condition.value_exact(value))

    def and_value_regex(self, pattern: str | re.Pattern) -> Query:
        return self._with(Condition.value_regex(pattern))

    def and_type(self, kind: ValueKind | str) -> Query:
        return self._with(Condition.value_type(kind))

    def and_depth(self, depth: int) -> Query:
        return self._with(Condition.at_depth(depth))

    def and_exists(self) -> Query:
        return self._with(Condition.exists())

    def and_missing(self) -> Query:
        return self._with(Condition.missing())

    def and_custom(self, predicate: Predicate) -> Query:
        return self._with(Condition.custom(predicate))

    def or_(self, condition: Condition) -> Query:
        """Add a condition and switch to ANY."""
        return Query(self.conditions + [condition], CombineMode.ANY)

    def combine_with(self, mode: CombineMode) -> Query:
        return Query(list(self.conditions), mode)

    # -- evaluation ---------------------------------------------------------

    def is_empty(self) -> bool:
        return not self.conditions

    def matches(self, path: ResolvedPath, value: FrontMatterValue | Any) -> bool:
        if not isinstance(value, FrontMatterValue):
            value = FrontMatterValue(value)
        if not self.conditions:
            return True
        if self.combine_mode is CombineMode.ALL:
            return all(c.matches(path, value) for c in self.conditions)
        return any(c.matches(path, value) for c in self.conditions)


class QueryResult:
    """Snapshot of the (path, value) pairs a query matched, in document order."""

    def __init__(self, matches: list[tuple[ResolvedPath, FrontMatterValue]] | None = None) -> None:
        self.matches: list[tuple[ResolvedPath, FrontMatterValue]] = list(matches or [])

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self) -> Iterator[tuple[ResolvedPath, FrontMatterValue]]:
        return iter(self.matches)

    def __bool__(self) -> bool:
        return bool(self.matches)

    def is_empty(self) -> bool:
        return not self.matches

    def get(self, path: ResolvedPath | str) -> FrontMatterValue | None:
        if isinstance(path, str):
            path = ResolvedPath(KeyPath.parse(path).segments)
        for match_path, value in self.matches:
            if match_path == path:
                return value
        return None

    def paths(self) -> list[ResolvedPath]:
        return [path for path, _ in self.matches]

    def values(self) -> list[FrontMatterValue]:
        return [value for _, value in self.matches]

    def leaf_matches(self) -> list[tuple[ResolvedPath, FrontMatterValue]]:
        """Matches that have no matched descendant."""
        ancestors = {
            ResolvedPath(path.segments[:length])
            for path in self.paths()
            for length in range(len(path))
        }
        return [(path, value) for path, value in self.matches if path not in ancestors]

    def to_tree(self) -> Any:
        """Rebuild a nested structure from the matched locations.

        Children addressed by sequence positions come back as a list in
        position order (compacted), never as a mapping keyed by ``"0"``.
        """
        root = _TreeNode()
        for path, value in self.leaf_matches():
            node = root
            for segment in path.segments:
                node = node.child(segment)
            node.value = value.inner
            node.has_value = True
        return root.build()

    def to_value(self) -> Any:
        leaves = self.leaf_matches()
        if not leaves:
            return None
        if len(leaves) == 1:
            return leaves[0][1].inner
        return self.to_tree()

    def to_normalized(self) -> dict[str, Any]:
        return {path.to_normalized(): value.inner for path, value in self.matches}


class _TreeNode:
    __slots__ = ("children", "value", "has_value")

    def __init__(self) -> None:
        self.children: dict[Property | Index, _TreeNode] = {}
        self.value: Any = None
        self.has_value = False

    def child(self, segment: Property | Index) -> _TreeNode:
        node = self.children.get(segment)
        if node is None:
            node = _TreeNode()
            self.children[segment] = node
        return node

    def build(self) -> Any:
        if not self.children:
            return self.value if self.has_value else {}
        if all(isinstance(segment, Index) for segment in self.children):
            ordered = sorted(self.children.items(), key=lambda item: item[0].position)
            return [child.build() for _, child in ordered]
        return {
            segment.name if isinstance(segment, Property) else str(segment.position): child.build()
            for segment, child in self.children.items()
        }
