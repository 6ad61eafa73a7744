"""Unit tests for core/frontmatter.py"""

import datetime
from pathlib import Path

import pytest

from mdsite.core.errors import MalformedFrontMatter
from mdsite.core.frontmatter import load_document, parse_frontmatter, serialize_frontmatter


def test_parse_frontmatter_simple():
    """A title-only block is split from the body."""
    fm, body = parse_frontmatter("---\ntitle: X\n---\nBody")
    assert fm == {"title": "X"}
    assert body == "Body"


@pytest.mark.parametrize("text", ["Body only", "", "# Heading\n\n---\n", "\n---\ntitle: X\n---\n"])
def test_parse_frontmatter_without_block(text):
    """Text not starting with a delimiter line is returned untouched."""
    fm, body = parse_frontmatter(text)
    assert fm == {}
    assert body == text


def test_parse_frontmatter_missing_closing_delimiter():
    """An unterminated block raises MalformedFrontMatter naming the file."""
    with pytest.raises(MalformedFrontMatter, match="posts/x.md") as exc:
        parse_frontmatter("---\ntitle: X\nBody", Path("posts/x.md"))
    assert exc.value.path == Path("posts/x.md")
    assert isinstance(exc.value, ValueError)


def test_parse_frontmatter_invalid_yaml():
    """A block that is not valid YAML is malformed."""
    with pytest.raises(MalformedFrontMatter, match="invalid YAML"):
        parse_frontmatter("---\nkey: [unclosed\n---\nBody", "a.md")


def test_parse_frontmatter_non_mapping():
    """A YAML list instead of key/value pairs is malformed."""
    with pytest.raises(MalformedFrontMatter, match="mapping"):
        parse_frontmatter("---\n- a\n- b\n---\nBody", "a.md")


def test_parse_frontmatter_empty_block():
    fm, body = parse_frontmatter("---\n---\nBody\n")
    assert fm == {}
    assert body == "Body\n"


def test_parse_frontmatter_preserves_order_and_unknown_keys():
    """Keys keep source order; keys with no special meaning are kept verbatim."""
    text = "---\nlayout: post\ntitle: T\ncustom_flag: true\npermalink: /t/\nkeywords:\n  - a\n  - b\n---\n"
    fm, _ = parse_frontmatter(text)
    assert list(fm) == ["layout", "title", "custom_flag", "permalink", "keywords"]
    assert fm["custom_flag"] is True
    assert fm["keywords"] == ["a", "b"]


def test_parse_frontmatter_body_is_verbatim():
    """Everything after the closing delimiter, blank lines included, is the body."""
    fm, body = parse_frontmatter("---\ntitle: X\n---\n\n\n# H\r\nline\n")
    assert body == "\n\n# H\r\nline\n"


def test_parse_frontmatter_tolerates_bom_and_trailing_spaces():
    fm, body = parse_frontmatter("\ufeff---  \ntitle: X\n--- \nBody")
    assert fm == {"title": "X"}
    assert body == "Body"


@pytest.mark.parametrize("fm,body", [
    ({"title": "X"}, "Body"),
    ({"layout": "post", "title": "Data classes", "keywords": ["kotlin", "data"], "draft": False}, "# H\n\nText.\n"),
    ({"title": "Dated", "date": datetime.date(2021, 3, 14)}, "\nBody with leading blank line\n"),
    ({"title": "Ünïcode – dash"}, ""),
])
def test_serialize_then_parse_round_trips(fm, body):
    """parse(serialize(fm, body)) returns the same mapping and body."""
    assert parse_frontmatter(serialize_frontmatter(fm, body)) == (fm, body)


def test_parse_then_serialize_round_trips():
    """Re-serializing a parsed document parses back to the same content."""
    original = "---\ntitle: X\npermalink: /x/\n---\nBody\n"
    fm, body = parse_frontmatter(original)
    assert parse_frontmatter(serialize_frontmatter(fm, body)) == (fm, body)


def test_serialize_without_frontmatter_is_body():
    assert serialize_frontmatter({}, "Body only") == "Body only"


def test_load_document_relative_path(tmp_path):
    """load_document keys the Document by its path relative to the root."""
    sub = tmp_path / "kotlin"
    sub.mkdir()
    f = sub / "enums.md"
    f.write_text("---\ntitle: Enums\n---\n# Enums\n")
    doc = load_document(f, tmp_path)
    assert doc.path == Path("kotlin/enums.md")
    assert doc.title == "Enums"
    assert doc.body == "# Enums\n"


def test_load_document_malformed_names_file(tmp_path):
    f = tmp_path / "bad.md"
    f.write_text("---\ntitle: X\nBody")
    with pytest.raises(MalformedFrontMatter) as exc:
        load_document(f, tmp_path)
    assert exc.value.path == f
    assert "bad.md" in str(exc.value)
