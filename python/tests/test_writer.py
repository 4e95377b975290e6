"""Tests for matterof.io.writer -- formatting, dry runs, backups, output modes."""

import io
import os

import pytest

from matterof.core.document import Document
from matterof.errors import WriteError
from matterof.io.reader import read_document, read_file
from matterof.io.writer import (
    DocumentWriter,
    LineEnding,
    OutputMode,
    WriteOptions,
    format_document,
    make_diff,
)

ORIGINAL = "---\ntitle: Old\n---\nBody text\n"


@pytest.fixture
def post(tmp_path):
    path = tmp_path / "post.md"
    path.write_text(ORIGINAL, encoding="utf-8")
    return path


def edited(path):
    doc = read_file(path)
    doc.set("title", "New")
    return doc


def test_format_with_front_matter():
    """The block is fenced and followed by the body."""
    doc = Document({"title": "Hi", "tags": ["a"]}, "body\n")
    assert format_document(doc) == "---\ntitle: Hi\ntags:\n  - a\n---\nbody\n"


def test_format_without_front_matter():
    """A document whose front matter became empty has no block at all."""
    doc = read_document("---\nonly: 1\n---\nbody\n")
    doc.remove("only")
    assert format_document(doc) == "body\n"


def test_read_format_round_trip():
    """Canonical input is written back byte for byte."""
    text = "---\ntitle: Hello\ndate: 2024-01-15\ntags:\n  - a\n  - b\n---\n# Heading\n"
    assert format_document(read_document(text)) == text


def test_make_diff():
    """Diff headers mark the original and modified sides."""
    diff = make_diff("post.md", "a\n", "b\n")
    assert "--- post.md (original)" in diff
    assert "+++ post.md (modified)" in diff
    assert "-a" in diff and "+b" in diff


def test_write_in_place(post):
    """By default the source file is overwritten."""
    result = DocumentWriter().write(edited(post), post)
    assert result.modified
    assert result.output_path == post
    assert post.read_text(encoding="utf-8") == "---\ntitle: New\n---\nBody text\n"


def test_unchanged_document_is_not_rewritten(post):
    """Identical output leaves the file and its mtime alone."""
    before = os.stat(post).st_mtime_ns
    result = DocumentWriter().write(read_file(post), post)
    assert not result.modified
    assert os.stat(post).st_mtime_ns == before


def test_dry_run_leaves_file_alone(post):
    """A dry run reports the diff only."""
    result = DocumentWriter(WriteOptions(dry_run=True)).write(edited(post), post)
    assert result.modified
    assert "+title: New" in result.diff
    assert post.read_text(encoding="utf-8") == ORIGINAL


def test_backup_with_suffix(post):
    """The backup holds the original text."""
    result = DocumentWriter(WriteOptions(backup_suffix=".orig")).write(edited(post), post)
    assert result.backup_path == post.with_name("post.md.orig")
    assert result.backup_path.read_text(encoding="utf-8") == ORIGINAL


def test_backup_into_directory(post, tmp_path):
    """backup_dir collects backups under the file name plus .bak."""
    backups = tmp_path / "backups"
    result = DocumentWriter(WriteOptions(backup_dir=backups)).write(edited(post), post)
    assert result.backup_path == backups / "post.md.bak"
    assert result.backup_path.exists()


def test_stdout_output(post):
    """Stdout output leaves the source file alone."""
    out = io.StringIO()
    writer = DocumentWriter(WriteOptions(output=OutputMode.STDOUT), stdout=out)
    writer.write(edited(post), post)
    assert out.getvalue() == "---\ntitle: New\n---\nBody text\n"
    assert post.read_text(encoding="utf-8") == ORIGINAL


def test_directory_output(post, tmp_path):
    """Directory output writes a file of the same name there."""
    outdir = tmp_path / "out"
    options = WriteOptions(output=OutputMode.DIRECTORY, output_path=outdir)
    result = DocumentWriter(options).write(edited(post), post)
    assert result.output_path == outdir / "post.md"
    assert "title: New" in (outdir / "post.md").read_text(encoding="utf-8")
    assert post.read_text(encoding="utf-8") == ORIGINAL


def test_file_output_needs_a_path(post):
    """File output without a path is a WriteError."""
    with pytest.raises(WriteError):
        DocumentWriter(WriteOptions(output=OutputMode.FILE)).write(edited(post), post)


def test_crlf_is_preserved(tmp_path):
    """A CRLF file is written back with CRLF."""
    path = tmp_path / "win.md"
    path.write_bytes(b"---\r\ntitle: Old\r\n---\r\nBody\r\n")
    doc = read_file(path)
    doc.set("title", "New")
    DocumentWriter().write(doc, path)
    assert path.read_bytes() == b"---\r\ntitle: New\r\n---\r\nBody\r\n"


def test_forced_unix_line_endings(tmp_path):
    """LineEnding.UNIX converts CRLF to LF."""
    path = tmp_path / "win.md"
    path.write_bytes(b"---\r\ntitle: Old\r\n---\r\nBody\r\n")
    doc = read_file(path)
    DocumentWriter(WriteOptions(line_ending=LineEnding.UNIX)).write(doc, path)
    assert path.read_bytes() == b"---\ntitle: Old\n---\nBody\n"


def test_non_atomic_write(post):
    DocumentWriter(WriteOptions(atomic=False)).write(edited(post), post)
    assert "title: New" in post.read_text(encoding="utf-8")


def test_atomic_write_leaves_no_temp_files(post):
    """The temporary file is renamed over the target."""
    DocumentWriter().write(edited(post), post)
    assert sorted(p.name for p in post.parent.iterdir()) == ["post.md"]


def test_package_level_helpers(post):
    import matterof

    doc = matterof.load(post)
    assert matterof.dumps(doc) == ORIGINAL
    assert matterof.loads(ORIGINAL) == doc
