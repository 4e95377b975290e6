"""Normalized paths and query paths.

A normalized path is the canonical bracket form that addresses one location::

    $            the root
    $['title']   a mapping key
    $[0]         a sequence position
    $['tags'][-] the append sentinel: push on set, pop on remove

Query paths are the looser, user-facing form (``$.author.name``,
``tags[*]``, ``title``) and compile to a ``KeyPath`` whose wildcards are
regex segments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Union

from ..errors import PathParseError
from .key_path import WILDCARD, Index, KeyPath, Property, ResolvedPath, Segment

logger = logging.getLogger(__name__)


class _Append:
    """The ``[-]`` sentinel segment."""

    _instance: _Append | None = None

    def __new__(cls) -> _Append:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "APPEND"

    def __str__(self) -> str:
        return "-"


APPEND = _Append()

NormalizedSegment = Union[Property, Index, _Append]

_KEY_ESCAPES = {"\\": "\\", "'": "'", '"': '"', "n": "\n", "t": "\t", "r": "\r"}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _escape_key(name: str) -> str:
    return (
        name.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )


def render_normalized(segments: tuple[NormalizedSegment, ...] | list[NormalizedSegment]) -> str:
    parts = ["$"]
    for segment in segments:
        if isinstance(segment, Property):
            parts.append(f"['{_escape_key(segment.name)}']")
        elif isinstance(segment, Index):
            parts.append(f"[{segment.position}]")
        elif segment is APPEND:
            parts.append("[-]")
        else:
            raise PathParseError(f"segment {segment} has no normalized form")
    return "".join(parts)


@dataclass(frozen=True)
class NormalizedPath:
    """A parsed normalized path, possibly ending in the append sentinel."""

    segments: tuple[NormalizedSegment, ...] = ()

    @classmethod
    def parse(cls, text: str) -> NormalizedPath:
        return cls(parse_normalized_path(text))

    @classmethod
    def from_resolved(cls, path: ResolvedPath) -> NormalizedPath:
        return cls(tuple(path.segments))

    def __str__(self) -> str:
        return render_normalized(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[NormalizedSegment]:
        return iter(self.segments)

    def is_root(self) -> bool:
        return not self.segments

    def to_resolved(self) -> ResolvedPath | None:
        if any(segment is APPEND for segment in self.segments):
            return None
        return ResolvedPath(self.segments)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Strict parser for normalized paths
# ---------------------------------------------------------------------------

def parse_normalized_path(text: str) -> tuple[NormalizedSegment, ...]:
    """Parse ``$['a'][0][-]`` strictly.

    Anything that does not start with ``$`` or that contains a bracket body
    other than a quoted key, digits or ``-`` is a PathParseError.
    """
    if not text.startswith("$"):
        raise PathParseError("normalized path must start with '$'", text, 0)
    segments: list[NormalizedSegment] = []
    pos = 1
    while pos < len(text):
        if text[pos] != "[":
            raise PathParseError(f"expected '[' but found {text[pos]!r}", text, pos)
        start = pos
        pos += 1
        if pos >= len(text):
            raise PathParseError("unterminated bracket", text, start)
        if text[pos] == "'":
            name, pos = _scan_quoted(text, pos, "'")
            segments.append(Property(name))
        else:
            close = text.find("]", pos)
            if close < 0:
                raise PathParseError("unterminated bracket", text, start)
            body = text[pos:close]
            if body == "-":
                segments.append(APPEND)
            elif body.isdigit() and body.isascii():
                segments.append(Index(int(body)))
            else:
                raise PathParseError(f"invalid bracket body {body!r}", text, pos)
            pos = close
        if pos >= len(text) or text[pos] != "]":
            raise PathParseError("unterminated bracket", text, start)
        pos += 1
    return tuple(segments)


def _scan_quoted(text: str, pos: int, quote: str) -> tuple[str, int]:
    """Scan a quoted key starting at ``text[pos] == quote``.

    Returns the unescaped key and the position just past the closing quote.
    """
    start = pos
    pos += 1
    chars: list[str] = []
    while pos < len(text):
        ch = text[pos]
        if ch == quote:
            return "".join(chars), pos + 1
        if ch == "\\" and pos + 1 < len(text):
            nxt = text[pos + 1]
            chars.append(_KEY_ESCAPES.get(nxt, "\\" + nxt))
            pos += 2
            continue
        chars.append(ch)
        pos += 1
    raise PathParseError("unterminated quoted key", text, start)


# ---------------------------------------------------------------------------
# Query paths
# ---------------------------------------------------------------------------

def parse_query_path(text: str, auto_root: bool = True) -> KeyPath:
    """Compile a JSONPath-style query into a KeyPath.

    With ``auto_root`` a path that does not parse as given is retried with
    ``$`` prepended when it starts with ``[`` and ``$.`` otherwise, so
    ``title`` means ``$.title`` and ``[0]`` means ``$[0]``.
    """
    stripped = text.strip()
    try:
        return KeyPath(_parse_query_segments(stripped))
    except PathParseError:
        if not auto_root or stripped.startswith("$"):
            raise
    candidate = "$" + stripped if stripped.startswith("[") else "$." + stripped
    logger.debug("query path %r parsed as %r", text, candidate)
    return KeyPath(_parse_query_segments(candidate))


def _parse_query_segments(text: str) -> tuple[Segment, ...]:
    if not text.startswith("$"):
        raise PathParseError("query path must start with '$'", text, 0)
    segments: list[Segment] = []
    pos = 1
    while pos < len(text):
        ch = text[pos]
        if ch == ".":
            pos += 1
            if pos < len(text) and text[pos] == "*":
                segments.append(WILDCARD)
                pos += 1
                continue
            start = pos
            while pos < len(text) and text[pos] not in ".[":
                pos += 1
            name = text[start:pos].strip()
            if not name:
                raise PathParseError("empty member name", text, start)
            if name.isdigit() and name.isascii():
                segments.append(Index(int(name)))
            else:
                segments.append(Property(name))
        elif ch == "[":
            start = pos
            pos += 1
            while pos < len(text) and text[pos] == " ":
                pos += 1
            if pos >= len(text):
                raise PathParseError("unterminated bracket", text, start)
            if text[pos] in ("'", '"'):
                name, pos = _scan_quoted(text, pos, text[pos])
                segments.append(Property(name))
            else:
                close = text.find("]", pos)
                if close < 0:
                    raise PathParseError("unterminated bracket", text, start)
                body = text[pos:close].strip()
                if body == "*":
                    segments.append(WILDCARD)
                elif body.isdigit() and body.isascii():
                    segments.append(Index(int(body)))
                else:
                    raise PathParseError(f"invalid bracket body {body!r}", text, pos)
                pos = close
            while pos < len(text) and text[pos] == " ":
                pos += 1
            if pos >= len(text) or text[pos] != "]":
                raise PathParseError("unterminated bracket", text, start)
            pos += 1
        else:
            raise PathParseError(f"unexpected character {ch!r}", text, pos)
    return tuple(segments)
