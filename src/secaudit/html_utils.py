"""Markup helpers for EDGAR filings.

The locator and extractor read a filing's markup two ways:
- ``top_level_blocks``: rendered text of each top-level element of
  ``<body>``, in document order. EDGAR 10-K HTML is usually a flat run of
  ``body > div`` blocks, one per heading or paragraph.
- ``strip_html``: the whole document as text, one line per block element,
  with page furniture (timestamps, archive URLs, page markers, TOC links)
  removed.

Fetched bytes go through ``decode_bytes`` first.
"""
from __future__ import annotations

import re

from bs4 import BeautifulSoup
from bs4.element import Tag

# Elements that start a new line when the document is flattened.
_LINE_BREAK_TAGS = (
    "p", "div", "br", "tr", "li", "table", "dt", "dd",
    "h1", "h2", "h3", "h4", "h5", "h6",
)
_DROPPED_TAGS = ("script", "style", "noscript", "meta", "link")

# Tried in order; the last entry never fails.
_DECODE_CHAIN: tuple[tuple[str, str], ...] = (
    ("utf-8", "strict"),
    ("cp1252", "strict"),
    ("utf-8", "replace"),
)

_WS_RE = re.compile(r"\s+")
_INLINE_WS_RE = re.compile(r"[^\S\n]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
# ZWSP, ZWNJ and BOM survive Word-to-HTML conversion and break heading regexes.
_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\ufeff]")

_FURNITURE_LINES: tuple[re.Pattern[str], ...] = (
    # browser print header, e.g. "1/16/26, 1:44 PM"
    re.compile(r"\d{1,2}/\d{1,2}/\d{2,4},\s+\d{1,2}:\d{2}\s+[AP]M"),
    re.compile(r"https?://www\.sec\.gov/Archives/\S*"),
    re.compile(r"Page\s+\d+\s+of\s+\d+"),
    re.compile(r"Table\s+of\s+Contents", re.IGNORECASE),
)


def decode_bytes(raw: bytes) -> str:
    """Decode a filing payload: UTF-8, then CP1252, then UTF-8 with replacement."""
    for encoding, errors in _DECODE_CHAIN[:-1]:
        try:
            return raw.decode(encoding, errors=errors)
        except UnicodeDecodeError:
            continue
    encoding, errors = _DECODE_CHAIN[-1]
    return raw.decode(encoding, errors=errors)


def parse_html(raw_html: str) -> BeautifulSoup:
    """Parse markup with the stdlib parser, minus scripts, styles and head metadata."""
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup.find_all(_DROPPED_TAGS):
        tag.decompose()
    return soup


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def strip_zero_width(text: str) -> str:
    return _ZERO_WIDTH_RE.sub("", text)


def top_level_blocks(raw_html: str) -> list[str]:
    """Rendered text of each top-level ``<body>`` element, in order.

    Bare text nodes between elements are ignored. Documents without a
    ``<body>`` use the root's element children.
    """
    if not raw_html:
        return []
    soup = parse_html(raw_html)
    root = soup.body if soup.body is not None else soup
    return [
        strip_zero_width(collapse_ws(child.get_text(separator=" ")))
        for child in root.children
        if isinstance(child, Tag)
    ]


def strip_html(raw_html: str, *, preserve_newlines: bool = True) -> str:
    """Flatten markup to text.

    With ``preserve_newlines`` each block element starts a new line and
    runs of blank lines shrink to one; otherwise all whitespace collapses
    to single spaces.
    """
    if not raw_html:
        return ""
    soup = parse_html(raw_html)

    if not preserve_newlines:
        text = collapse_ws(soup.get_text(separator=" "))
        return strip_boilerplate(strip_zero_width(text))

    for tag in soup.find_all(_LINE_BREAK_TAGS):
        tag.insert_before("\n")
    lines = [
        _INLINE_WS_RE.sub(" ", line).strip()
        for line in soup.get_text(separator=" ").split("\n")
    ]
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()
    return strip_boilerplate(strip_zero_width(text))


def strip_boilerplate(text: str) -> str:
    """Blank out lines that are nothing but EDGAR page furniture."""
    kept = [
        "" if any(p.fullmatch(line.strip()) for p in _FURNITURE_LINES) else line
        for line in text.split("\n")
    ]
    return "\n".join(kept)
