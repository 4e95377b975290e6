"""matterof.io -- reading, writing and locating front matter documents."""

from .codec import dump_yaml, load_yaml
from .files import FileFilter, resolve_files
from .reader import ReaderOptions, is_markdown_file, read_document, read_file
from .writer import (
    DocumentWriter,
    LineEnding,
    OutputMode,
    WriteOptions,
    WriteResult,
    format_document,
    make_diff,
)

__all__ = [
    "load_yaml",
    "dump_yaml",
    "FileFilter",
    "resolve_files",
    "ReaderOptions",
    "read_document",
    "read_file",
    "is_markdown_file",
    "DocumentWriter",
    "WriteOptions",
    "WriteResult",
    "OutputMode",
    "LineEnding",
    "format_document",
    "make_diff",
]
