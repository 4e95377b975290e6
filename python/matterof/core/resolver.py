"""Resolve patterns and queries against a value tree.

The resolver walks the tree depth-first in document order, using an explicit
stack so adversarial nesting cannot exhaust the interpreter stack.  Every node
below the root is visited, containers included.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator

from ..errors import OutOfRangeError
from .key_path import Index, KeyPath, Property, Regex, ResolvedPath, segment_matches
from .query import Query
from .value import DEFAULT_MAX_DEPTH, FrontMatterValue, key_to_string

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def _children(node: Any) -> list[tuple[Property | Index, Any]]:
    if isinstance(node, dict):
        return [(Property(key_to_string(key)), value) for key, value in node.items()]
    if isinstance(node, list):
        return [(Index(position), value) for position, value in enumerate(node)]
    return []


def find_key(mapping: dict, name: str) -> Any:
    """Return the actual key in ``mapping`` spelled ``name``, or MISSING.

    YAML allows non-string keys (``2024: x``); they are addressed by their
    string form.
    """
    if name in mapping:
        return name
    for key in mapping:
        if not isinstance(key, str) and key_to_string(key) == name:
            return key
    return MISSING


def step(node: Any, segment: Property | Index) -> Any:
    """Follow one concrete segment from ``node``; MISSING when absent."""
    if isinstance(node, dict) and isinstance(segment, Property):
        key = find_key(node, segment.name)
        return MISSING if key is MISSING else node[key]
    if isinstance(node, list) and isinstance(segment, Index):
        if segment.position < len(node):
            return node[segment.position]
    return MISSING


class Resolver:
    """Caller-owned resolver; ``max_depth`` caps how deep a walk may go."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth

    def walk(self, root: Any) -> Iterator[tuple[ResolvedPath, Any]]:
        """Yield every (path, node) below ``root`` in document order."""
        stack: list[tuple[ResolvedPath, Any]] = [
            (ResolvedPath((segment,)), value)
            for segment, value in reversed(_children(root))
        ]
        while stack:
            path, node = stack.pop()
            if len(path) > self.max_depth:
                raise OutOfRangeError(
                    "document nesting exceeds the maximum depth",
                    index=len(path),
                    length=self.max_depth,
                )
            yield path, node
            for segment, value in reversed(_children(node)):
                stack.append((path.child(segment), value))

    def lookup(self, root: Any, path: ResolvedPath | KeyPath) -> Any:
        """Exact single-location lookup; MISSING when the location is absent."""
        node = root
        for segment in path.segments:
            if isinstance(segment, Regex):
                return MISSING
            node = step(node, segment)
            if node is MISSING:
                return MISSING
        return node

    def resolve(self, root: Any, pattern: KeyPath | Query | str) -> list[tuple[ResolvedPath, Any]]:
        """Resolve a key path pattern or a query to concrete matches.

        Key paths are matched positionally, expanding regex segments over
        every child whose key or position they match.  Queries are tested at
        every node.
        """
        if isinstance(pattern, str):
            pattern = KeyPath.parse(pattern)
        if isinstance(pattern, Query):
            matches = [
                (path, node)
                for path, node in self.walk(root)
                if pattern.matches(path, FrontMatterValue(node))
            ]
        else:
            matches = self._resolve_pattern(root, pattern)
        logger.debug("resolved %d match(es)", len(matches))
        return matches

    def _resolve_pattern(self, root: Any, pattern: KeyPath) -> list[tuple[ResolvedPath, Any]]:
        if pattern.is_root():
            return []
        if len(pattern) > self.max_depth:
            raise OutOfRangeError(
                "path is deeper than the maximum depth",
                index=len(pattern),
                length=self.max_depth,
            )
        frontier: list[tuple[ResolvedPath, Any]] = [(ResolvedPath(), root)]
        for segment in pattern.segments:
            following: list[tuple[ResolvedPath, Any]] = []
            for path, node in frontier:
                if isinstance(segment, Regex):
                    for concrete, child in _children(node):
                        if segment_matches(segment, concrete):
                            following.append((path.child(concrete), child))
                    continue
                child = step(node, segment)
                if child is not MISSING:
                    following.append((path.child(segment), child))
            frontier = following
        return frontier
