"""Apply set/remove/add mutations at concrete paths.

Paths may be given as a ``ResolvedPath``, a ``NormalizedPath``, a resolvable
``KeyPath`` or a normalized path string such as ``$['tags'][-]``.

Navigation is a plain loop over the segments: each step takes the current
container, makes sure the next slot exists with the right shape, stores it
back and moves on.  Intermediate containers are created on demand:

* a ``Property`` segment needs a mapping; anything else there is replaced;
* an ``Index`` segment needs a sequence, padded with nulls up to the index;
  a mapping in its place is replaced like any other non-sequence;
* the append sentinel pushes onto a sequence.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable

from ..errors import InvalidQueryError, OutOfRangeError, PathParseError, TypeMismatchError
from .key_path import Index, KeyPath, Property, ResolvedPath
from .normalized_path import APPEND, NormalizedPath, parse_normalized_path
from .resolver import MISSING, find_key, step
from .value import kind_of

logger = logging.getLogger(__name__)


def path_segments(path: ResolvedPath | NormalizedPath | KeyPath | str) -> tuple:
    """Normalize any accepted path form to a tuple of concrete segments."""
    if isinstance(path, str):
        return parse_normalized_path(path)
    if isinstance(path, KeyPath) and not path.is_resolvable():
        raise PathParseError("path with wildcard segments cannot be mutated", str(path))
    return tuple(path.segments)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def get_at(root: Any, path: ResolvedPath | NormalizedPath | KeyPath | str, default: Any = MISSING) -> Any:
    """Read the node at ``path``; ``default`` when absent.

    The append sentinel reads the last element of a sequence.
    """
    node = root
    for segment in path_segments(path):
        if segment is APPEND:
            node = node[-1] if isinstance(node, list) and node else MISSING
        else:
            node = step(node, segment)
        if node is MISSING:
            return default
    return node


def set_at(root: Any, path: ResolvedPath | NormalizedPath | KeyPath | str, value: Any) -> Any:
    """Assign ``value`` at ``path``, creating containers on the way.

    Returns the (possibly replaced) root.
    """
    segments = path_segments(path)
    if not segments:
        return value
    root = _coerce(root, segments[0])
    current = root
    last = len(segments) - 1
    for position, segment in enumerate(segments):
        slot = _slot(current, segment)
        if position == last:
            current[slot] = value
        else:
            child = _coerce(current[slot], segments[position + 1])
            current[slot] = child
            current = child
    return root


def remove_at(root: Any, path: ResolvedPath | NormalizedPath | KeyPath | str) -> bool:
    """Remove the node at ``path``.  Returns whether anything was removed.

    Emptied parents are left in place; pruning is a separate step.
    """
    segments = path_segments(path)
    if not segments:
        raise InvalidQueryError("cannot remove the root element")
    parent = root
    for segment in segments[:-1]:
        if segment is APPEND:
            parent = parent[-1] if isinstance(parent, list) and parent else MISSING
        else:
            parent = step(parent, segment)
        if parent is MISSING:
            return False
    target = segments[-1]
    if isinstance(parent, dict) and isinstance(target, Property):
        key = find_key(parent, target.name)
        if key is MISSING:
            return False
        del parent[key]
        return True
    if isinstance(parent, list):
        if target is APPEND:
            if not parent:
                return False
            parent.pop()
            return True
        if isinstance(target, Index) and target.position < len(parent):
            del parent[target.position]
            return True
    return False


def add_to_array(
    root: Any,
    path: ResolvedPath | NormalizedPath | KeyPath | str,
    value: Any,
    index: int | None = None,
) -> Any:
    """Add ``value`` to the sequence at ``path``.

    An absent or null target becomes ``[value]``.  A sequence gets ``value``
    inserted at ``index`` (clamped, so out-of-range means append) or appended.
    Any other value is widened to ``[old, value]``.  Returns the root.
    """
    current = get_at(root, path)
    if isinstance(current, list):
        if index is None or index >= len(current):
            current.append(value)
        else:
            current.insert(max(index, 0), value)
        return root
    if current is MISSING or current is None:
        return set_at(root, path, [value])
    return set_at(root, path, [current, value])


def remove_range(
    root: Any,
    path: ResolvedPath | NormalizedPath | KeyPath | str,
    start: int,
    end: int,
) -> int:
    """Remove positions ``[start, end)`` from the sequence at ``path``.

    Returns the number of elements removed.
    """
    target = get_at(root, path)
    if not isinstance(target, list):
        found = "nothing" if target is MISSING else kind_of(target).value
        raise TypeMismatchError("range removal needs a sequence", expected="sequence", found=found)
    if end > len(target):
        raise OutOfRangeError("range end is beyond the end of the sequence", index=end, length=len(target))
    if start < 0 or start > end:
        raise OutOfRangeError(f"invalid range {start}:{end}", index=start, length=len(target))
    for position in range(end - 1, start - 1, -1):
        del target[position]
    return end - start


def rename_key(root: Any, path: ResolvedPath | KeyPath | str, new_key: str) -> bool:
    """Rename the mapping entry at ``path``, keeping its position.

    Returns False when there is no such entry.  Renaming onto an existing
    sibling key replaces that sibling.
    """
    segments = path_segments(path)
    if not segments or not isinstance(segments[-1], Property):
        raise InvalidQueryError("only mapping keys can be renamed")
    parent = get_at(root, ResolvedPath(segments[:-1]))
    if not isinstance(parent, dict):
        return False
    old_key = find_key(parent, segments[-1].name)
    if old_key is MISSING:
        return False
    items = [(key, value) for key, value in parent.items() if key != new_key or key == old_key]
    parent.clear()
    for key, value in items:
        parent[new_key if key == old_key else key] = value
    return True


def removal_order(paths: Iterable[ResolvedPath]) -> list[ResolvedPath]:
    """Order paths for bulk removal: longest first, higher positions first.

    Deleting deeper locations before their ancestors, and higher sequence
    positions before lower ones, keeps every path valid against the
    snapshot it was resolved from, whatever order the paths arrive in.
    """
    unique = dict.fromkeys(paths)
    return sorted(unique, key=_removal_key, reverse=True)


def set_all(root: Any, paths: Iterable[ResolvedPath], value: Any) -> Any:
    """Assign a copy of ``value`` at every path.  Returns the root."""
    for path in dict.fromkeys(paths):
        root = set_at(root, path, copy.deepcopy(value))
    return root


def remove_all(root: Any, paths: Iterable[ResolvedPath]) -> int:
    """Remove every path, in removal order.  Returns how many were removed."""
    removed = 0
    for path in removal_order(paths):
        if remove_at(root, path):
            removed += 1
    logger.debug("removed %d location(s)", removed)
    return removed


def prune_empty_containers(node: Any) -> Any:
    """Drop empty mappings and sequences held in mappings, recursively."""
    if isinstance(node, dict):
        for key in list(node):
            child = prune_empty_containers(node[key])
            if isinstance(child, (dict, list)) and not child:
                del node[key]
    elif isinstance(node, list):
        for item in node:
            prune_empty_containers(item)
    return node


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _removal_key(path: ResolvedPath) -> tuple:
    # Positions compare numerically; keys sort apart from positions
    return len(path), tuple(
        (0, segment.position, "") if isinstance(segment, Index) else (1, 0, segment.name)
        for segment in path.segments
    )


def _coerce(node: Any, segment: Any) -> Any:
    """Return ``node`` if it can hold ``segment``, else a fresh container."""
    if isinstance(segment, Property):
        return node if isinstance(node, dict) else {}
    return node if isinstance(node, list) else []


def _slot(container: dict | list, segment: Any) -> Any:
    """Make sure ``container`` has a slot for ``segment`` and return its key."""
    if isinstance(container, dict):
        key = find_key(container, segment.name)
        if key is MISSING:
            container[segment.name] = None
            return segment.name
        return key
    if segment is APPEND:
        container.append(None)
        return len(container) - 1
    while len(container) <= segment.position:
        container.append(None)
    return segment.position
