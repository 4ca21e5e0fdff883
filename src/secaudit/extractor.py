"""Plain-text extraction, one handler per content kind.

The dispatch table is closed over ``ContentKind``; adding a kind means
adding a handler here.
"""
from __future__ import annotations

import io
import logging
from collections.abc import Callable

from pypdf import PdfReader

from secaudit.errors import StepError
from secaudit.html_utils import (
    collapse_ws,
    decode_bytes,
    parse_html,
    strip_html,
    strip_zero_width,
)
from secaudit.workflow_types import ContentKind

log = logging.getLogger(__name__)

# Elements whose own text forms one extracted line.
_TEXT_BLOCK_SELECTOR = "p, td, th, li, h1, h2, h3, h4, h5, h6, dt, dd, blockquote"


def _as_text(raw: str | bytes) -> str:
    return decode_bytes(raw) if isinstance(raw, bytes) else raw


def extract_from_html(raw: str | bytes) -> str:
    """Text of each content element, de-duplicated, one per line.

    Nested blocks (a ``<p>`` inside a ``<td>``) can render the same text
    twice; only the first occurrence is kept. Falls back to the whole body
    text (block breaks kept) when the markup has none of the content elements.
    """
    markup = _as_text(raw)
    soup = parse_html(markup)

    blocks: list[str] = []
    seen: set[str] = set()
    for el in soup.select(_TEXT_BLOCK_SELECTOR):
        text = strip_zero_width(collapse_ws(el.get_text(separator=" ")))
        if len(text) > 2 and text not in seen:
            seen.add(text)
            blocks.append(text)

    if blocks:
        return "\n".join(blocks)

    return strip_html(markup)


def extract_from_pdf(raw: str | bytes) -> str:
    """Page text joined by blank lines."""
    data = raw if isinstance(raw, bytes) else raw.encode("latin-1", errors="replace")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as exc:
        raise StepError(
            f"PDF extraction failed: {exc}. Try providing an HTML filing URL instead."
        ) from exc
    log.debug("Extracted %d PDF pages", len(pages))
    return "\n\n".join(pages)


def extract_from_text(raw: str | bytes) -> str:
    return _as_text(raw)


_EXTRACTORS: dict[ContentKind, Callable[[str | bytes], str]] = {
    "html": extract_from_html,
    "pdf": extract_from_pdf,
    "text": extract_from_text,
}


def extract_text(raw: str | bytes, kind: ContentKind) -> str:
    """Extract plain text from a fetched filing."""
    try:
        handler = _EXTRACTORS[kind]
    except KeyError:
        raise StepError(f"Unsupported content kind: {kind!r}") from None
    return handler(raw)
