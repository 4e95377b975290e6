"""Expand command-line path arguments into a sorted list of files.

Explicit file arguments are taken as given.  Directories are scanned
recursively for files with a matching extension, skipping hidden entries and
excluded names unless configured otherwise.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..errors import ReadError

logger = logging.getLogger(__name__)


@dataclass
class FileFilter:
    extensions: list[str] = field(default_factory=lambda: ["md", "markdown"])
    max_depth: int | None = None
    include_hidden: bool = False
    exclude: list[str] = field(default_factory=list)
    follow_links: bool = False

    def accepts_name(self, path: Path) -> bool:
        suffix = path.suffix.lower().lstrip(".")
        wanted = {ext.lower().lstrip(".") for ext in self.extensions}
        return suffix in wanted and not self.is_excluded(path)

    def is_excluded(self, path: Path) -> bool:
        return any(
            fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(str(path), pattern)
            for pattern in self.exclude
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def resolve_files(paths: list[Path | str], file_filter: FileFilter | None = None) -> list[Path]:
    """Resolve files and directories to a de-duplicated, sorted file list."""
    file_filter = file_filter or FileFilter()
    results: set[Path] = set()
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise ReadError("no such file or directory", str(path))
        if path.is_dir():
            _scan_dir_recursive(path, 0, file_filter, results, set())
        else:
            results.add(path)
    logger.debug("resolved %d file(s)", len(results))
    return sorted(results)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _scan_dir_recursive(
    dir_path: Path,
    depth: int,
    file_filter: FileFilter,
    results: set[Path],
    visited: set[Path],
) -> None:
    # Symlinked directories can form cycles
    real = dir_path.resolve()
    if real in visited:
        return
    visited.add(real)

    try:
        entries = sorted(dir_path.iterdir())
    except OSError as exc:
        logger.warning("cannot list %s: %s", dir_path, exc)
        return

    subdirs: list[Path] = []

    for entry in entries:
        name = entry.name

        if name.startswith(".") and not file_filter.include_hidden:
            continue
        if entry.is_symlink() and not file_filter.follow_links:
            continue

        if entry.is_dir():
            if not file_filter.is_excluded(entry):
                subdirs.append(entry)
            continue

        if entry.is_file() and file_filter.accepts_name(entry):
            results.add(entry)

    if file_filter.max_depth is not None and depth >= file_filter.max_depth:
        return

    for subdir in subdirs:
        _scan_dir_recursive(subdir, depth + 1, file_filter, results, visited)
