"""Document: front matter tree plus body text.

The document owns its tree.  Values passed in are copied on the way in and
values handed out are copies, so two documents never share nodes.

Front matter is either None or a non-empty mapping.  An empty mapping is never
observable: it reads as None and is dropped whenever an edit empties it.

Single-location edits (``set``, ``remove``, ``add_to_array``) take key paths
and apply directly.  Bulk edits (``set_matching``, ``remove_matching``,
``replace``) take a query or a query path, run against a JSON-flavored
working copy and replace the tree only once every mutation has succeeded.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

from ..errors import InvalidQueryError, TypeMismatchError, ValidationError
from . import mutator
from .key_path import Index, KeyPath, Property, ResolvedPath
from .normalized_path import parse_query_path
from .query import Query, QueryResult
from .resolver import MISSING, Resolver
from .value import FrontMatterValue, json_to_yaml, kind_of, merge_values, values_equal, yaml_to_json

logger = logging.getLogger(__name__)


def _key_path(key: KeyPath | ResolvedPath | str) -> KeyPath:
    if isinstance(key, KeyPath):
        return key
    if isinstance(key, ResolvedPath):
        return key.to_key_path()
    return KeyPath.parse(key)


def _resolvable(key: KeyPath | ResolvedPath | str) -> KeyPath:
    path = _key_path(key)
    if not path.is_resolvable():
        raise InvalidQueryError(f"key path {path} has wildcard segments; use a query instead")
    return path


def _owned(value: Any) -> Any:
    """A private copy of ``value`` checked against the value union."""
    if isinstance(value, FrontMatterValue):
        value = value.inner
    return json_to_yaml(value)


class Document:
    """A markdown document split into optional front matter and body."""

    def __init__(
        self,
        front_matter: dict | None = None,
        body: str = "",
        resolver: Resolver | None = None,
    ) -> None:
        if front_matter is not None and not isinstance(front_matter, dict):
            raise TypeMismatchError(
                "front matter must be a mapping",
                expected="mapping",
                found=kind_of(front_matter).value,
            )
        self._front_matter: dict | None = copy.deepcopy(front_matter) or None
        self.body = body
        self.resolver = resolver or Resolver()

    @classmethod
    def empty(cls) -> Document:
        return cls()

    @classmethod
    def body_only(cls, body: str) -> Document:
        return cls(None, body)

    @property
    def front_matter(self) -> dict | None:
        return self._front_matter or None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        if self.body != other.body:
            return False
        if self.front_matter is None or other.front_matter is None:
            return self.front_matter is other.front_matter
        return values_equal(self.front_matter, other.front_matter)

    def __repr__(self) -> str:
        return f"Document(front_matter={self.front_matter!r}, body={self.body!r})"

    # -- lifecycle ----------------------------------------------------------

    def has_front_matter(self) -> bool:
        return bool(self._front_matter)

    def ensure_front_matter(self) -> dict:
        if self._front_matter is None:
            self._front_matter = {}
        return self._front_matter

    def clean_empty_front_matter(self) -> None:
        if not self._front_matter:
            self._front_matter = None

    def copy(self) -> Document:
        return Document(copy.deepcopy(self._front_matter), self.body, self.resolver)

    def to_yaml_value(self) -> dict | None:
        return copy.deepcopy(self.front_matter)

    # -- single-location operations -----------------------------------------

    def get(self, key: KeyPath | ResolvedPath | str) -> FrontMatterValue | None:
        path = _resolvable(key)
        if self._front_matter is None:
            return None
        node = self.resolver.lookup(self._front_matter, path)
        if node is MISSING:
            return None
        return FrontMatterValue(copy.deepcopy(node))

    def contains(self, key: KeyPath | ResolvedPath | str) -> bool:
        return self.get(key) is not None

    def set(self, key: KeyPath | ResolvedPath | str, value: Any) -> None:
        path = _resolvable(key)
        value = _owned(value)
        if path.is_root():
            if value is not None and not isinstance(value, dict):
                raise TypeMismatchError(
                    "front matter must be a mapping", expected="mapping", found=kind_of(value).value
                )
            self._front_matter = value or None
            return
        self._check_top_level(path)
        mutator.set_at(self.ensure_front_matter(), path, value)
        self.clean_empty_front_matter()

    def remove(self, key: KeyPath | ResolvedPath | str) -> FrontMatterValue | None:
        path = _resolvable(key)
        if self._front_matter is None:
            return None
        if path.is_root():
            removed = FrontMatterValue(self._front_matter)
            self._front_matter = None
            return removed
        node = self.resolver.lookup(self._front_matter, path)
        if node is MISSING:
            return None
        mutator.remove_at(self._front_matter, path)
        self.clean_empty_front_matter()
        return FrontMatterValue(node)

    def add_to_array(self, key: KeyPath | ResolvedPath | str, value: Any, index: int | None = None) -> None:
        path = _resolvable(key)
        if path.is_root():
            raise TypeMismatchError("cannot add to the front matter root", expected="sequence", found="mapping")
        self._check_top_level(path)
        mutator.add_to_array(self.ensure_front_matter(), path, _owned(value), index)

    def remove_range(self, key: KeyPath | ResolvedPath | str, start: int, end: int) -> int:
        path = _resolvable(key)
        removed = mutator.remove_range(self._front_matter or {}, path, start, end)
        self.clean_empty_front_matter()
        return removed

    # -- queries ------------------------------------------------------------

    def query(self, query: Query) -> QueryResult:
        if self._front_matter is None:
            return QueryResult()
        matches = self.resolver.resolve(self._front_matter, query)
        return QueryResult([(path, FrontMatterValue(copy.deepcopy(node))) for path, node in matches])

    def resolve(self, pattern: Query | KeyPath | str) -> list[tuple[ResolvedPath, FrontMatterValue]]:
        """Concrete matches of a query, key path or query path string."""
        if self._front_matter is None:
            return []
        if isinstance(pattern, str):
            pattern = parse_query_path(pattern)
        return [
            (path, FrontMatterValue(copy.deepcopy(node)))
            for path, node in self.resolver.resolve(self._front_matter, pattern)
        ]

    def flatten(self) -> list[tuple[ResolvedPath, FrontMatterValue]]:
        """Every node below the root, in document order."""
        if self._front_matter is None:
            return []
        return [
            (path, FrontMatterValue(copy.deepcopy(node)))
            for path, node in self.resolver.walk(self._front_matter)
        ]

    # -- bulk operations ----------------------------------------------------

    def set_matching(self, pattern: Query | KeyPath | str, value: Any) -> int:
        paths = [path for path, _ in self.resolve(pattern)]
        value = _owned(value)

        def apply(working: dict) -> int:
            mutator.set_all(working, paths, value)
            return len(paths)

        return self._apply_bulk(apply)

    def remove_matching(self, pattern: Query | KeyPath | str, prune_empty: bool = False) -> int:
        paths = [path for path, _ in self.resolve(pattern)]

        def apply(working: dict) -> int:
            removed = mutator.remove_all(working, paths)
            if prune_empty and removed:
                mutator.prune_empty_containers(working)
            return removed

        return self._apply_bulk(apply)

    def remove_nulls(self) -> int:
        return self.remove_matching(Query.missing())

    def prune_empty_containers(self) -> None:
        """Drop empty mappings and sequences, then empty front matter."""
        if self._front_matter is not None:
            mutator.prune_empty_containers(self._front_matter)
        self.clean_empty_front_matter()

    def replace(
        self,
        pattern: Query | KeyPath | str,
        new_value: Any = MISSING,
        new_key: str | None = None,
        old_value: Any = MISSING,
    ) -> int:
        """Replace matched values and/or rename the matched key.

        ``old_value`` restricts the matches to those currently holding it.
        Renaming needs exactly one location; several matches are ambiguous.
        """
        if new_key is None and new_value is MISSING:
            raise InvalidQueryError("replace needs a new key or a new value")
        matches = self.resolve(pattern)
        if old_value is not MISSING:
            wanted = _owned(old_value)
            matches = [(path, value) for path, value in matches if values_equal(value.inner, wanted)]
        paths = [path for path, _ in matches]
        if new_key is not None:
            if len(paths) > 1:
                raise InvalidQueryError(f"cannot rename {len(paths)} locations to one key {new_key!r}")
            if paths and not isinstance(paths[0].last, Property):
                raise InvalidQueryError(f"cannot rename sequence position {paths[0]}")
        replacement = _owned(new_value) if new_value is not MISSING else MISSING

        def apply(working: dict) -> int:
            for path in paths:
                if replacement is not MISSING:
                    mutator.set_at(working, path, copy.deepcopy(replacement))
                if new_key is not None:
                    mutator.rename_key(working, path, new_key)
            return len(paths)

        return self._apply_bulk(apply)

    def merge_front_matter(self, other: Document | FrontMatterValue | dict | None) -> None:
        if isinstance(other, Document):
            other = other.front_matter
        elif isinstance(other, FrontMatterValue):
            other = other.inner
        if not other:
            return
        if not isinstance(other, dict):
            raise TypeMismatchError("can only merge a mapping into front matter", expected="mapping",
                                    found=kind_of(other).value)
        self._front_matter = merge_values(self._front_matter or {}, other) or None

    # -- validation ---------------------------------------------------------

    def validate(self) -> None:
        """Check the tree survives a YAML dump and reload unchanged.

        Raises ValidationError naming the first offending location.
        """
        from ..errors import ConversionError
        from ..io.codec import dump_yaml, load_yaml

        if not self._front_matter:
            return
        self._check_keys(ResolvedPath(), self._front_matter)
        for path, node in self.resolver.walk(self._front_matter):
            if isinstance(node, dict):
                self._check_keys(path, node)
            else:
                try:
                    kind_of(node)
                except ConversionError as exc:
                    raise ValidationError(str(exc), path=str(path)) from exc
        try:
            text = dump_yaml(self._front_matter)
            reloaded = load_yaml(text)
        except ConversionError as exc:
            raise ValidationError(str(exc)) from exc
        if not isinstance(reloaded, dict) or dump_yaml(reloaded) != text:
            raise ValidationError("front matter does not survive a YAML round-trip")

    # -- internals ----------------------------------------------------------

    @staticmethod
    def _check_keys(path: ResolvedPath, mapping: dict) -> None:
        for key in mapping:
            if not isinstance(key, str):
                location = str(path) or "front matter root"
                raise ValidationError(f"non-string mapping key {key!r}", path=location)

    @staticmethod
    def _check_top_level(path: KeyPath) -> None:
        if isinstance(path.segments[0], Index):
            raise TypeMismatchError(
                "front matter root is a mapping; the first segment must be a key",
                expected="mapping",
                found="sequence",
            )

    def _apply_bulk(self, mutate: Callable[[dict], int]) -> int:
        if self._front_matter is None:
            return 0
        working = yaml_to_json(self._front_matter)
        count = mutate(working)
        if count:
            self._front_matter = json_to_yaml(working) or None
        logger.debug("bulk edit touched %d location(s)", count)
        return count
