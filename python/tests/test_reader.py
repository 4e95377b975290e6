"""Tests for matterof.io.reader -- splitting markdown into front matter and body."""

import pytest

from matterof.errors import ReadError
from matterof.io.reader import ReaderOptions, is_markdown_file, read_document, read_file


def test_basic_document():
    """The block between the fences is parsed and the rest kept as body."""
    doc = read_document("---\ntitle: Hello\ntags: [a, b]\n---\n# Body\n")
    assert doc.front_matter == {"title": "Hello", "tags": ["a", "b"]}
    assert doc.body == "# Body\n"


def test_no_front_matter():
    """Text without an opening fence is all body."""
    doc = read_document("# Just a body\n")
    assert doc.front_matter is None
    assert doc.body == "# Just a body\n"


def test_unclosed_block_is_all_body():
    """An opening fence with no closing fence is not front matter."""
    text = "---\ntitle: x\nno closing line\n"
    doc = read_document(text)
    assert doc.front_matter is None
    assert doc.body == text


def test_opening_line_must_be_exact():
    """Four dashes are not a fence."""
    doc = read_document("----\ntitle: x\n---\nbody")
    assert doc.front_matter is None


def test_empty_block():
    """An empty block means no front matter."""
    doc = read_document("---\n---\nbody\n")
    assert doc.front_matter is None
    assert doc.body == "body\n"


def test_crlf_line_endings():
    """CRLF fences are recognized and the body keeps its line endings."""
    doc = read_document("---\r\ntitle: x\r\n---\r\nbody\r\n")
    assert doc.front_matter == {"title": "x"}
    assert doc.body == "body\r\n"


def test_bom_is_ignored():
    """A byte order mark before the fence is skipped."""
    doc = read_document("\ufeff---\na: 1\n---\n")
    assert doc.front_matter == {"a": 1}


def test_dashes_inside_body_are_body():
    """Only the first closing fence ends the block."""
    doc = read_document("---\na: 1\n---\ntext\n---\nmore\n")
    assert doc.body == "text\n---\nmore\n"


def test_dates_stay_strings():
    """Dates are read as text, not as date objects."""
    doc = read_document("---\ndate: 2024-01-15\n---\n")
    assert doc.get("date").inner == "2024-01-15"


def test_non_mapping_front_matter():
    """Front matter must be a mapping."""
    with pytest.raises(ReadError):
        read_document("---\n- a\n- b\n---\n")


def test_invalid_yaml():
    """YAML errors carry the source name."""
    with pytest.raises(ReadError) as excinfo:
        read_document("---\na: [unclosed\n---\n", source="post.md")
    assert excinfo.value.source == "post.md"


def test_deep_nesting_is_a_read_error():
    """Nesting past what the parser can handle is reported, not a crash."""
    with pytest.raises(ReadError):
        read_document("---\na: " + "[" * 3000 + "]" * 3000 + "\n---\n")


def test_nesting_past_the_depth_limit_is_rejected():
    """Nesting deeper than the resolver walks is a ReadError."""
    with pytest.raises(ReadError):
        read_document("---\na: " + "[" * 300 + "]" * 300 + "\n---\n")


def test_aliases_are_detached():
    """An alias is copied, so editing it leaves the anchor alone."""
    doc = read_document("---\nbase: &b {x: 1}\ncopy: *b\n---\n")
    doc.set("copy.x", 2)
    assert doc.get("base.x").inner == 1


def test_read_file(tmp_path):
    """read_file parses a file from disk."""
    path = tmp_path / "post.md"
    path.write_text("---\ntitle: File\n---\nbody\n", encoding="utf-8")
    doc = read_file(path)
    assert doc.get("title").inner == "File"


def test_read_file_size_limit(tmp_path):
    """Files over max_file_size are refused."""
    path = tmp_path / "big.md"
    path.write_text("x" * 100, encoding="utf-8")
    with pytest.raises(ReadError):
        read_file(path, ReaderOptions(max_file_size=10))


def test_read_file_missing(tmp_path):
    """A missing file is a ReadError."""
    with pytest.raises(ReadError):
        read_file(tmp_path / "nope.md")


def test_read_file_not_utf8(tmp_path):
    """Invalid UTF-8 is a ReadError."""
    path = tmp_path / "bad.md"
    path.write_bytes(b"---\na: \xff\xfe\n---\n")
    with pytest.raises(ReadError):
        read_file(path)


def test_validate_on_read(tmp_path):
    """validate_on_read rejects non-string keys that a plain read accepts."""
    path = tmp_path / "keys.md"
    path.write_text("---\n1: one\n---\n", encoding="utf-8")
    assert read_file(path).get('"1"').inner == "one"
    with pytest.raises(ReadError):
        read_file(path, ReaderOptions(validate_on_read=True))


def test_is_markdown_file():
    """Extensions match case-insensitively."""
    assert is_markdown_file("a/b.md")
    assert is_markdown_file("README.MARKDOWN")
    assert not is_markdown_file("notes.txt")
