"""matterof -- query and edit YAML front matter in markdown documents."""

from __future__ import annotations

from pathlib import Path

from .core import (
    APPEND,
    CombineMode,
    Condition,
    Document,
    FrontMatterValue,
    Index,
    KeyPath,
    NormalizedPath,
    Property,
    Query,
    QueryResult,
    ResolvedPath,
    Resolver,
    ValueKind,
    ValueType,
    parse_query_path,
)
from .errors import (
    ConversionError,
    InvalidQueryError,
    MatterOfError,
    OutOfRangeError,
    PathParseError,
    ReadError,
    TypeMismatchError,
    ValidationError,
    WriteError,
)
from .io import format_document, read_document, read_file


def loads(text: str) -> Document:
    """Parse markdown text into a Document."""
    return read_document(text)


def load(path: Path | str) -> Document:
    """Read a markdown file into a Document."""
    return read_file(Path(path))


def dumps(doc: Document) -> str:
    """Render a Document back to markdown text."""
    return format_document(doc)


__all__ = [
    'Document', 'FrontMatterValue', 'ValueKind', 'ValueType',
    'KeyPath', 'ResolvedPath', 'Property', 'Index', 'NormalizedPath', 'APPEND',
    'Query', 'QueryResult', 'Condition', 'CombineMode', 'Resolver', 'parse_query_path',
    'MatterOfError', 'PathParseError', 'TypeMismatchError', 'InvalidQueryError',
    'OutOfRangeError', 'ValidationError', 'ConversionError', 'ReadError', 'WriteError',
    'load', 'loads', 'dumps',
]
