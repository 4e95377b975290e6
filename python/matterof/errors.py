"""Error taxonomy for matterof.

Every error raised by the library derives from ``MatterOfError`` so callers
can catch the whole family in one place.  The core raises; only the CLI
catches and reports.
"""

from __future__ import annotations


class MatterOfError(Exception):
    """Base class for all matterof errors."""


class PathParseError(MatterOfError, ValueError):
    """Malformed key path, query path or normalized path."""

    def __init__(self, message: str, path: str = "", position: int | None = None) -> None:
        self.path = path
        self.position = position
        self.reason = message
        if position is not None:
            super().__init__(f"{message} at position {position} in path {path!r}")
        elif path:
            super().__init__(f"{message} in path {path!r}")
        else:
            super().__init__(message)


class TypeMismatchError(MatterOfError):
    """A value has the wrong shape for the requested operation."""

    def __init__(self, message: str, expected: str | None = None, found: str | None = None) -> None:
        self.expected = expected
        self.found = found
        if expected is not None and found is not None:
            super().__init__(f"{message} (expected {expected}, found {found})")
        else:
            super().__init__(message)


class InvalidQueryError(MatterOfError):
    """The operation is ambiguous or malformed given its matches."""


class OutOfRangeError(MatterOfError):
    """An explicit bound was exceeded."""

    def __init__(self, message: str, index: int | None = None, length: int | None = None) -> None:
        self.index = index
        self.length = length
        if index is not None and length is not None:
            super().__init__(f"{message} (index {index}, length {length})")
        else:
            super().__init__(message)


class ValidationError(MatterOfError):
    """A front matter tree does not survive a serializer round-trip."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            super().__init__(f"{message} at {path}")
        else:
            super().__init__(message)


class ConversionError(MatterOfError):
    """A value cannot be represented in the target tree model."""


class ReadError(MatterOfError):
    """A document could not be read or parsed."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        if source:
            super().__init__(f"{source}: {message}")
        else:
            super().__init__(message)


class WriteError(MatterOfError):
    """A document could not be written."""

    def __init__(self, message: str, target: str | None = None) -> None:
        self.target = target
        if target:
            super().__init__(f"{target}: {message}")
        else:
            super().__init__(message)
