"""Tests for the markdown parser: fingerprint, front-matter, plain text."""

from __future__ import annotations

import hashlib

import pytest

from metamind.errors import ParseError
from metamind.ingest.base import WordChunker
from metamind.ingest.markdown import MarkdownParser, parse_frontmatter, split_frontmatter


@pytest.fixture
def parser():
    return MarkdownParser()


# ------------------------------------------------------------------
# Fingerprint
# ------------------------------------------------------------------

def test_fingerprint_is_sha256_of_raw_input(parser):
    raw = "---\ntitle: X\n---\n# Hello\n"
    assert parser.parse(raw).fingerprint == hashlib.sha256(raw.encode()).hexdigest()


def test_fingerprint_stable_and_sensitive(parser):
    assert parser.parse("same text").fingerprint == parser.parse("same text").fingerprint
    assert parser.parse("same text").fingerprint != parser.parse("same text.").fingerprint


def test_fingerprint_covers_whitespace_changes(parser):
    # Normalized text is identical, raw bytes are not.
    a, b = parser.parse("a  b"), parser.parse("a b")
    assert a.text == b.text
    assert a.fingerprint != b.fingerprint


# ------------------------------------------------------------------
# Front-matter
# ------------------------------------------------------------------

def test_frontmatter_parsed_and_stripped(parser):
    doc = parser.parse("---\ntitle: My Note\ntags: [a, b]\n---\nBody text")
    assert doc.frontmatter.title == "My Note"
    assert doc.frontmatter.tags == ["a", "b"]
    assert doc.text == "Body text"


def test_scalar_tags_split_on_commas():
    assert parse_frontmatter("tags: rust, python ,go").tags == ["rust", "python", "go"]


def test_scalar_alias_becomes_list():
    assert parse_frontmatter("aliases: Other Name").aliases == ["Other Name"]


def test_malformed_frontmatter_is_ignored(parser):
    doc = parser.parse("---\ntitle: [unclosed\n---\nStill indexed")
    assert doc.frontmatter.title is None
    assert doc.frontmatter.tags == []
    assert doc.text == "Still indexed"


def test_non_mapping_frontmatter_gives_defaults():
    fm = parse_frontmatter("- just\n- a list")
    assert fm.title is None and fm.aliases == []


def test_unterminated_block_left_in_body():
    fm, body = split_frontmatter("---\ntitle: x\nno closing")
    assert fm.title is None
    assert body.startswith("---")


def test_empty_frontmatter_block():
    fm, body = split_frontmatter("---\n---\nbody")
    assert fm.title is None
    assert body == "body"


# ------------------------------------------------------------------
# Plain text
# ------------------------------------------------------------------

def test_headings_and_paragraphs_become_spaces(parser):
    assert parser.parse("# Title\n\nFirst para.\n\nSecond para.").text == (
        "Title First para. Second para."
    )


def test_emphasis_and_links_keep_only_text(parser):
    text = parser.parse("Some **bold** and _italic_ with a [link](http://x.y).").text
    assert text == "Some bold and italic with a link."


def test_inline_code_preserved(parser):
    assert parser.parse("Call `foo(bar)` now").text == "Call foo(bar) now"


def test_fenced_code_preserved(parser):
    text = parser.parse("Intro\n\n```python\ndef f():\n    return 1\n```\n").text
    assert text == "Intro def f(): return 1"


def test_lists_and_quotes_flattened(parser):
    text = parser.parse("- one\n- two\n\n> quoted *words*").text
    assert text == "one two quoted words"


def test_html_dropped(parser):
    assert parser.parse("<div>\nhidden\n</div>\n\nVisible").text == "Visible"


def test_whitespace_collapsed(parser):
    assert parser.parse("a\tb\n\n\n   c").text == "a b c"


# ------------------------------------------------------------------
# Chunks + errors
# ------------------------------------------------------------------

def test_chunks_use_configured_chunker():
    parser = MarkdownParser(WordChunker(chunk_size=2, overlap=0))
    assert parser.parse("one two three").chunks == ["one two", "three"]


def test_invalid_utf8_raises_parse_error(parser):
    with pytest.raises(ParseError):
        parser.parse(b"\xff\xfe broken")


def test_parse_file_missing_raises_parse_error(parser, tmp_path):
    with pytest.raises(ParseError):
        parser.parse_file(tmp_path / "missing.md")


def test_parse_file_reads_bytes(parser, tmp_path):
    f = tmp_path / "n.md"
    f.write_text("# Hi\n\nthere", encoding="utf-8")
    assert parser.parse_file(f).text == "Hi there"
