"""Split markdown text into front matter and body.

A front matter block is a ``---`` line at the top of the file, YAML, and a
closing ``---`` line::

    ---
    title: Hello
    tags: [a, b]
    ---
    # Body starts here

Text without an opening delimiter, or without a closing one, is all body.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.document import Document
from ..core.value import DEFAULT_MAX_DEPTH
from ..errors import ConversionError, ReadError, ValidationError
from .codec import load_yaml

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ("md", "markdown", "mdown", "mkd", "mkdn")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass
class ReaderOptions:
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    validate_on_read: bool = False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_document(content: str, source: str | None = None) -> Document:
    """Parse markdown text into a Document.

    An empty or null block gives a document without front matter.
    """
    extracted = _extract_frontmatter(content)
    if extracted is None:
        return Document.body_only(content)
    yaml_str, body = extracted
    try:
        data = load_yaml(yaml_str)
    except ConversionError as exc:
        raise ReadError(str(exc), source) from exc
    if data is None:
        return Document(None, body)
    if not isinstance(data, dict):
        raise ReadError(f"front matter must be a mapping, got {type(data).__name__}", source)
    return Document(_detach(data, set(), source), body)


def read_file(path: Path, options: ReaderOptions | None = None) -> Document:
    """Read and parse a markdown file."""
    options = options or ReaderOptions()
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > options.max_file_size:
            raise ReadError(
                f"file is {size} bytes, larger than the {options.max_file_size} byte limit",
                str(path),
            )
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ReadError(f"not valid UTF-8: {exc.reason}", str(path)) from exc
    except OSError as exc:
        raise ReadError(exc.strerror or str(exc), str(path)) from exc

    doc = read_document(content, str(path))
    if options.validate_on_read:
        try:
            doc.validate()
        except ValidationError as exc:
            raise ReadError(str(exc), str(path)) from exc
    logger.debug("read %s (front matter: %s)", path, doc.has_front_matter())
    return doc


def is_markdown_file(path: Path | str) -> bool:
    suffix = Path(path).suffix.lower().lstrip(".")
    return suffix in MARKDOWN_EXTENSIONS


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _extract_frontmatter(content: str) -> tuple[str, str] | None:
    """Extract the YAML text and body from a markdown string.

    Returns (yaml_str, body) or None if there is no front matter block.
    """
    trimmed = content.lstrip("\ufeff").lstrip()
    if not trimmed.startswith("---"):
        return None

    first_line_end = trimmed.find("\n")
    if first_line_end < 0 or trimmed[:first_line_end].rstrip("\r") != "---":
        return None
    after_first = trimmed[first_line_end + 1:]

    # The closing delimiter is the first line that is exactly ---
    offset = 0
    for line in after_first.splitlines(keepends=True):
        if line.rstrip("\r\n") == "---":
            yaml_str = after_first[:offset]
            body = after_first[offset + len(line):]
            return yaml_str, body
        offset += len(line)
    return None


def _detach(node: Any, active: set[int], source: str | None, depth: int = 0) -> Any:
    """Copy a loaded tree so YAML aliases do not share nodes.

    Recursive aliases cannot be represented and are rejected, as is nesting
    deeper than the resolver will walk.
    """
    if isinstance(node, (dict, list)):
        if id(node) in active:
            raise ReadError("front matter contains a recursive alias", source)
        if depth > DEFAULT_MAX_DEPTH:
            raise ReadError(f"front matter nests deeper than {DEFAULT_MAX_DEPTH} levels", source)
        active.add(id(node))
        if isinstance(node, dict):
            copied: Any = {
                key: _detach(value, active, source, depth + 1) for key, value in node.items()
            }
        else:
            copied = [_detach(item, active, source, depth + 1) for item in node]
        active.discard(id(node))
        return copied
    return node
