"""Markdown parser: fingerprint, front-matter, plain text and word chunks."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt
from markdown_it.token import Token

from metamind.errors import ParseError
from metamind.ingest.base import WordChunker

logger = logging.getLogger(__name__)

# Opening "---" line, the YAML body, then the first line consisting of "---".
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<body>.*?)^---[ \t]*\r?$\n?",
    re.DOTALL | re.MULTILINE,
)

# Inline tokens whose ``content`` is human-readable text.
_INLINE_TEXT = frozenset(["text", "code_inline", "image"])
_INLINE_BREAKS = frozenset(["softbreak", "hardbreak"])
# Block tokens whose ``content`` is kept verbatim.
_BLOCK_CODE = frozenset(["fence", "code_block"])


@dataclass
class Frontmatter:
    title: str | None = None
    tags: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)


@dataclass
class ParsedDocument:
    """Result of parsing one raw markdown document."""

    fingerprint: str
    frontmatter: Frontmatter
    text: str
    chunks: list[str]


def fingerprint(raw: bytes) -> str:
    """SHA-256 hex digest of the raw document bytes (change detector only)."""
    return hashlib.sha256(raw).hexdigest()


def _as_list(value: Any, *, split_commas: bool) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    if split_commas:
        return [part.strip() for part in str(value).split(",")]
    return [str(value)]


def parse_frontmatter(yaml_text: str) -> Frontmatter:
    """Parse a front-matter body. Malformed YAML yields empty metadata."""
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        logger.debug("Ignoring malformed front-matter: %s", exc)
        return Frontmatter()

    if not isinstance(data, dict):
        return Frontmatter()

    title = data.get("title")
    return Frontmatter(
        title=str(title) if title is not None else None,
        # A scalar "tags: a, b" is a comma list; a scalar alias is one alias.
        tags=_as_list(data.get("tags"), split_commas=True),
        aliases=_as_list(data.get("aliases"), split_commas=False),
    )


def split_frontmatter(raw: str) -> tuple[Frontmatter, str]:
    """Strip a leading ``---`` metadata block from *raw*.

    Returns:
        (frontmatter, body). Without a complete block the body is the trimmed
        input and the metadata is empty.
    """
    content = raw.strip()
    match = _FRONTMATTER_RE.match(content)
    if match is None:
        return Frontmatter(), content
    return parse_frontmatter(match.group("body")), content[match.end():].strip()


class MarkdownParser:
    """Turn raw markdown into a fingerprint, plain text and word-window chunks.

    Code (inline and fenced) is preserved verbatim; headings and paragraph
    breaks become a single space; every other markup construct is dropped.
    """

    def __init__(self, chunker: WordChunker | None = None) -> None:
        self.chunker = chunker or WordChunker()
        self._md = MarkdownIt("commonmark").enable(["table", "strikethrough"])

    def parse(self, raw: str | bytes) -> ParsedDocument:
        """Parse a raw document.

        Raises:
            ParseError: If *raw* is bytes that are not valid UTF-8.
        """
        raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else raw
        try:
            raw_text = raw if isinstance(raw, str) else raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"Document is not valid UTF-8: {exc}") from exc

        frontmatter, body = split_frontmatter(raw_text)
        text = self.to_plain_text(body)
        return ParsedDocument(
            fingerprint=fingerprint(raw_bytes),
            frontmatter=frontmatter,
            text=text,
            chunks=self.chunker.split(text),
        )

    def parse_file(self, path: Path) -> ParsedDocument:
        """Read and parse *path*.

        Raises:
            ParseError: If the file cannot be read or decoded.
        """
        try:
            raw = Path(path).read_bytes()
        except OSError as exc:
            raise ParseError(f"Cannot read {path}: {exc}") from exc
        return self.parse(raw)

    def to_plain_text(self, body: str) -> str:
        """Render markdown *body* as whitespace-collapsed plain text."""
        parts: list[str] = []
        for token in self._md.parse(body):
            if token.type == "inline":
                parts.append(_inline_text(token.children or []))
            elif token.type in _BLOCK_CODE:
                parts.append(token.content)
            # Every other block token is a structural boundary.
            else:
                parts.append(" ")
        return " ".join(" ".join(parts).split())


def _inline_text(children: list[Token]) -> str:
    out: list[str] = []
    for child in children:
        if child.type in _INLINE_TEXT:
            out.append(child.content)
        elif child.type in _INLINE_BREAKS:
            out.append(" ")
    return "".join(out)
