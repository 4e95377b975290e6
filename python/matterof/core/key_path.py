"""Key paths: dot/bracket notation for addressing front matter.

Grammar::

    path    := segment ('.' segment)*
    segment := quoted | unquoted | '[' (quoted | integer) ']'

Examples: ``title``, ``author.name``, ``tags[0]``, ``tags.0``,
``"key.with.dots".child``, ``meta['odd key']``.

A ``KeyPath`` may hold ``Regex`` segments (produced by wildcard queries);
a ``ResolvedPath`` holds only concrete ``Property``/``Index`` segments and
addresses exactly one location.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

from ..errors import PathParseError


@dataclass(frozen=True)
class Property:
    """A mapping key."""

    name: str

    def __str__(self) -> str:
        return _render_property(self.name)


@dataclass(frozen=True)
class Index:
    """A sequence position."""

    position: int

    def __str__(self) -> str:
        return str(self.position)


@dataclass(frozen=True)
class Regex:
    """Matches every key or position whose string form the pattern finds."""

    pattern: re.Pattern

    @classmethod
    def compile(cls, pattern: str) -> Regex:
        try:
            return cls(re.compile(pattern))
        except re.error as exc:
            raise PathParseError(f"invalid regex segment: {exc}", pattern) from exc

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def __str__(self) -> str:
        if self.pattern.pattern == "":
            return "*"
        return f"/{self.pattern.pattern}/"


WILDCARD = Regex(re.compile(""))

Segment = Union[Property, Index, Regex]
ConcreteSegment = Union[Property, Index]

_NEEDS_QUOTING = re.compile(r"""[.\\"'\[\]]""")
_QUOTE_ESCAPES = {"\\": "\\", '"': '"', "'": "'", "n": "\n", "t": "\t", "r": "\r"}


# ---------------------------------------------------------------------------
# Segment helpers
# ---------------------------------------------------------------------------

def segment_text(segment: Segment) -> str:
    """The plain string a segment is compared against by regexes."""
    if isinstance(segment, Property):
        return segment.name
    if isinstance(segment, Index):
        return str(segment.position)
    return segment.pattern.pattern


def segment_matches(pattern: Segment, concrete: ConcreteSegment) -> bool:
    """Whether a pattern segment selects a concrete one.

    An ``Index`` selects sequence positions only; a mapping key spelled as
    digits is reached through a quoted segment such as ``meta."2024"``.
    """
    if isinstance(pattern, Regex):
        return pattern.matches(segment_text(concrete))
    if isinstance(pattern, Property):
        return isinstance(concrete, Property) and concrete.name == pattern.name
    return isinstance(concrete, Index) and concrete.position == pattern.position


def render_segments(segments: tuple[Segment, ...]) -> str:
    return ".".join(str(segment) for segment in segments)


def _render_property(name: str) -> str:
    needs_quotes = (
        not name
        or name.isdigit()
        or name != name.strip()
        or _NEEDS_QUOTING.search(name) is not None
    )
    if not needs_quotes:
        return name
    escaped = (
        name.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeyPath:
    """A key path, possibly containing regex segments."""

    segments: tuple[Segment, ...] = ()

    @classmethod
    def parse(cls, text: str) -> KeyPath:
        return cls(_KeyPathParser(text).parse())

    @classmethod
    def of(cls, *parts: str | int) -> KeyPath:
        """Build a path from raw keys and positions without parsing."""
        return cls(tuple(Index(p) if isinstance(p, int) else Property(p) for p in parts))

    def __str__(self) -> str:
        return render_segments(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def is_root(self) -> bool:
        return not self.segments

    def is_resolvable(self) -> bool:
        return not any(isinstance(segment, Regex) for segment in self.segments)

    def to_resolved(self) -> ResolvedPath | None:
        if not self.is_resolvable():
            return None
        return ResolvedPath(self.segments)

    def child_key(self, name: str) -> KeyPath:
        return KeyPath(self.segments + (Property(name),))

    def child_index(self, position: int) -> KeyPath:
        return KeyPath(self.segments + (Index(position),))

    def parent(self) -> KeyPath | None:
        if not self.segments:
            return None
        return KeyPath(self.segments[:-1])

    def starts_with(self, prefix: KeyPath | ResolvedPath) -> bool:
        other = prefix.segments
        return len(other) <= len(self.segments) and self.segments[:len(other)] == other


@dataclass(frozen=True)
class ResolvedPath:
    """A concrete path addressing exactly one location in a tree."""

    segments: tuple[ConcreteSegment, ...] = ()

    @classmethod
    def of(cls, *parts: str | int) -> ResolvedPath:
        return cls(tuple(Index(p) if isinstance(p, int) else Property(p) for p in parts))

    def __str__(self) -> str:
        return self.to_dot_notation()

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[ConcreteSegment]:
        return iter(self.segments)

    def is_root(self) -> bool:
        return not self.segments

    @property
    def last(self) -> ConcreteSegment | None:
        return self.segments[-1] if self.segments else None

    def child(self, segment: ConcreteSegment) -> ResolvedPath:
        return ResolvedPath(self.segments + (segment,))

    def parent(self) -> ResolvedPath | None:
        if not self.segments:
            return None
        return ResolvedPath(self.segments[:-1])

    def starts_with(self, prefix: ResolvedPath | KeyPath) -> bool:
        other = prefix.segments
        return len(other) <= len(self.segments) and self.segments[:len(other)] == other

    def to_key_path(self) -> KeyPath:
        return KeyPath(self.segments)

    def to_dot_notation(self) -> str:
        return render_segments(self.segments)

    def to_normalized(self) -> str:
        from .normalized_path import render_normalized

        return render_normalized(self.segments)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _KeyPathParser:
    """Single-pass parser over a key path string."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> tuple[Segment, ...]:
        segments: list[Segment] = []
        while True:
            self._skip_dots()
            if self._at_end():
                break
            ch = self.text[self.pos]
            if ch in ("'", '"'):
                segments.append(Property(self._quoted()))
                self._expect_separator()
            elif ch == "[":
                segments.append(self._bracket())
                self._expect_separator()
            else:
                segments.append(self._unquoted())
        return tuple(segments)

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _error(self, message: str, position: int | None = None) -> PathParseError:
        return PathParseError(message, self.text, self.pos if position is None else position)

    def _skip_dots(self) -> None:
        while not self._at_end() and (self.text[self.pos] == "." or self.text[self.pos].isspace()):
            self.pos += 1

    def _skip_spaces(self) -> None:
        while not self._at_end() and self.text[self.pos].isspace():
            self.pos += 1

    def _expect_separator(self) -> None:
        self._skip_spaces()
        if not self._at_end() and self.text[self.pos] not in ".[":
            raise self._error(f"unexpected character {self.text[self.pos]!r} after segment")

    def _quoted(self) -> str:
        start = self.pos
        quote = self.text[self.pos]
        self.pos += 1
        chars: list[str] = []
        while not self._at_end():
            ch = self.text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(chars)
            if ch == "\\" and self.pos + 1 < len(self.text):
                nxt = self.text[self.pos + 1]
                # Unknown escapes keep their backslash
                chars.append(_QUOTE_ESCAPES.get(nxt, "\\" + nxt))
                self.pos += 2
                continue
            chars.append(ch)
            self.pos += 1
        raise self._error("unterminated quoted segment", start)

    def _bracket(self) -> Segment:
        start = self.pos
        self.pos += 1
        self._skip_spaces()
        if self._at_end():
            raise self._error("unterminated bracket", start)
        if self.text[self.pos] in ("'", '"'):
            segment: Segment = Property(self._quoted())
        else:
            digits_start = self.pos
            while not self._at_end() and self.text[self.pos] not in "]" and not self.text[self.pos].isspace():
                self.pos += 1
            token = self.text[digits_start:self.pos]
            if self._at_end() and not token:
                raise self._error("unterminated bracket", start)
            if not token.isdigit() or not token.isascii():
                raise self._error(f"invalid index {token!r}", digits_start)
            segment = Index(int(token))
        self._skip_spaces()
        if self._at_end() or self.text[self.pos] != "]":
            raise self._error("unterminated bracket", start)
        self.pos += 1
        return segment

    def _unquoted(self) -> Segment:
        chars: list[str] = []
        while not self._at_end():
            ch = self.text[self.pos]
            if ch in ".[":
                break
            if ch == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            chars.append(ch)
            self.pos += 1
        name = "".join(chars).strip()
        if name.isdigit() and name.isascii():
            return Index(int(name))
        return Property(name)
