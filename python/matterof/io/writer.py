"""Serialize documents and write them out.

``format_document`` is the only place a tree becomes text.  ``DocumentWriter``
decides where that text goes (in place, stdout, another file or a directory)
and handles dry runs, backups and atomic replacement.
"""

from __future__ import annotations

import difflib
import logging
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TextIO

from ..core.document import Document
from ..errors import ConversionError, WriteError
from .codec import dump_yaml

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_SUFFIX = ".bak"


class OutputMode(Enum):
    IN_PLACE = "in_place"
    STDOUT = "stdout"
    FILE = "file"
    DIRECTORY = "directory"


class LineEnding(Enum):
    PRESERVE = "preserve"
    UNIX = "unix"
    WINDOWS = "windows"


@dataclass
class WriteOptions:
    dry_run: bool = False
    backup_suffix: str | None = None
    backup_dir: Path | None = None
    atomic: bool = True
    output: OutputMode = OutputMode.IN_PLACE
    output_path: Path | None = None
    line_ending: LineEnding = LineEnding.PRESERVE

    @property
    def makes_backup(self) -> bool:
        return self.backup_suffix is not None or self.backup_dir is not None


@dataclass
class WriteResult:
    modified: bool
    output_path: Path | None = None
    backup_path: Path | None = None
    diff: str | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def format_document(doc: Document) -> str:
    """Render a document as ``---`` delimited YAML followed by the body."""
    if not doc.has_front_matter():
        return doc.body
    try:
        yaml_text = dump_yaml(doc.front_matter)
    except ConversionError as exc:
        raise WriteError(str(exc)) from exc
    return f"---\n{yaml_text.strip()}\n---\n{doc.body}"


def make_diff(label: str, old_text: str, new_text: str) -> str:
    diff = difflib.unified_diff(
        old_text.splitlines(keepends=True),
        new_text.splitlines(keepends=True),
        fromfile=label + " (original)",
        tofile=label + " (modified)",
        n=3,
    )
    return "".join(diff)


class DocumentWriter:
    """Writes documents according to a WriteOptions."""

    def __init__(self, options: WriteOptions | None = None, stdout: TextIO | None = None) -> None:
        self.options = options or WriteOptions()
        self.stdout = stdout

    def write(self, doc: Document, path: Path, original: str | None = None) -> WriteResult:
        """Write ``doc``, which was read from ``path``.

        ``original`` is the text the document was read from; it drives the
        dry-run diff, line ending detection and the unchanged check.
        """
        path = Path(path)
        options = self.options
        if original is None and path.exists():
            original = _read_original(path)
        content = self._apply_line_endings(format_document(doc), original)

        if options.dry_run:
            diff = make_diff(str(path), original or "", content)
            logger.debug("dry run for %s", path)
            return WriteResult(modified=bool(diff), diff=diff)

        if options.output is OutputMode.STDOUT:
            out = self.stdout or sys.stdout
            out.write(content)
            return WriteResult(modified=content != original)

        target = self._target_path(path)
        if target == path and content == original:
            logger.debug("%s unchanged", path)
            return WriteResult(modified=False, output_path=target)

        backup_path = None
        if options.makes_backup and target.exists():
            backup_path = self._backup(target)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if options.atomic:
                _atomic_write_text(target, content)
            else:
                with open(target, "w", encoding="utf-8", newline="") as fh:
                    fh.write(content)
        except OSError as exc:
            raise WriteError(exc.strerror or str(exc), str(target)) from exc
        logger.info("wrote %s", target)
        return WriteResult(modified=True, output_path=target, backup_path=backup_path)

    # -- internals ----------------------------------------------------------

    def _target_path(self, path: Path) -> Path:
        options = self.options
        if options.output is OutputMode.FILE:
            if options.output_path is None:
                raise WriteError("file output needs an output path")
            return Path(options.output_path)
        if options.output is OutputMode.DIRECTORY:
            if options.output_path is None:
                raise WriteError("directory output needs an output directory")
            return Path(options.output_path) / path.name
        return path

    def _backup(self, target: Path) -> Path:
        options = self.options
        suffix = options.backup_suffix if options.backup_suffix is not None else DEFAULT_BACKUP_SUFFIX
        if options.backup_dir is not None:
            backup = Path(options.backup_dir) / (target.name + suffix)
        else:
            backup = target.with_name(target.name + suffix)
        try:
            backup.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(target, backup)
        except OSError as exc:
            raise WriteError(f"cannot create backup: {exc.strerror or exc}", str(target)) from exc
        logger.debug("backed up %s to %s", target, backup)
        return backup

    def _apply_line_endings(self, content: str, original: str | None) -> str:
        ending = self.options.line_ending
        if ending is LineEnding.PRESERVE:
            use_crlf = original is not None and "\r\n" in original
        else:
            use_crlf = ending is LineEnding.WINDOWS
        unix = content.replace("\r\n", "\n")
        return unix.replace("\n", "\r\n") if use_crlf else unix


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _read_original(path: Path) -> str:
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise WriteError(f"cannot read existing file: {exc}", str(path)) from exc


def _atomic_write_text(path: Path, text: str) -> None:
    # The temp file lives next to the target so os.replace stays on one filesystem
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
        logger.debug("replaced %s via %s", path, tmp_name)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
